"""Query models — The normalized search request every engine translates."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SortOrder(str, Enum):
    """Backend-agnostic sort vocabulary."""

    RELEVANCE = "relevance"
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    TITLE_ASC = "title_asc"
    AUTHOR_ASC = "author_asc"


class SemanticField(str, Enum):
    """Backend-agnostic search fields, mapped to field codes by each engine."""

    KEYWORD = "keyword"
    TITLE = "title"
    AUTHOR = "author"
    SUBJECT = "subject"
    ISSN = "issn"
    ISBN = "isbn"
    AUTHOR_AFFILIATION = "author_affiliation"
    VOLUME = "volume"
    ISSUE = "issue"
    START_PAGE = "start_page"
    ACCESSION_NUMBER = "accession_number"
    OCLCNUM = "oclcnum"


class SearchFilters(BaseModel):
    """Limits and per-call configuration overrides."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    peer_reviewed_only: bool = Field(default=False, description="Limit to peer-reviewed sources")
    pubyear_start: str | None = Field(default=None, description="First publication year (inclusive)")
    pubyear_end: str | None = Field(default=None, description="Last publication year (inclusive)")
    auth: bool | None = Field(default=None, description="Per-call override of the engine's 'auth' setting")
    databases: list[str] | None = Field(default=None, description="Per-call override of the engine's databases")


class Query(BaseModel):
    """A normalized search request.

    ``keywords`` is either free text or a multi-field map of
    ``field -> value``.  Map keys may be :class:`SemanticField` values
    (``"title"``, ``"author"``, ...) or raw backend field codes
    (``"srw.ti"``, ``"SU"``); each engine resolves them.

    Examples::

        Query(keywords="cancer", sort="date_desc")
        Query(keywords="cancer", search_field="SU", filters={"peer_reviewed_only": True})
        Query(keywords={"title": "Manufacturing consent", "author": "chomsky"})
    """

    model_config = ConfigDict(frozen=True)

    keywords: str | dict[str, str] = Field(description="Free-text query or field -> value map")
    search_field: str | None = Field(default=None, description="Raw backend field code to scope the query")
    semantic_field: SemanticField | None = Field(default=None, description="Backend-agnostic field to scope the query")
    start: int = Field(default=0, ge=0, description="0-based offset of the first record")
    per_page: int = Field(default=10, gt=0, description="Records per page")
    sort: SortOrder = Field(default=SortOrder.RELEVANCE, description="Requested sort order")
    filters: SearchFilters = Field(default_factory=SearchFilters, description="Limits and overrides")

    @field_validator("keywords")
    @classmethod
    def _check_keywords(cls, v: str | dict[str, str]) -> str | dict[str, str]:
        if isinstance(v, dict):
            if not v:
                raise ValueError("multi-field keywords must name at least one field")
            blank = [k for k, val in v.items() if not val.strip()]
            if blank:
                raise ValueError(f"multi-field keywords have blank values for: {blank}")
            return v
        if not v.strip():
            raise ValueError("keywords must not be blank")
        return v

    @model_validator(mode="after")
    def _check_field_scope(self) -> Query:
        if self.is_multi_field and (self.search_field or self.semantic_field):
            raise ValueError("a multi-field query cannot also set search_field or semantic_field")
        return self

    @property
    def is_multi_field(self) -> bool:
        """True when ``keywords`` is a field -> value map."""
        return isinstance(self.keywords, dict)
