"""Result models — The normalized citation model every engine produces.

Downstream consumers (display, citation export) only read these models,
so they are frozen once built.
An absent value is always ``None``, never an empty string, so that
"omit from display" can be decided by a plain ``is None`` check.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Format(str, Enum):
    """Normalized format vocabulary."""

    BOOK = "book"
    BOOK_ITEM = "book_item"
    ARTICLE = "article"
    DISSERTATION = "dissertation"
    CONFERENCE_PAPER = "conference_paper"
    REPORT = "report"
    SERIAL = "serial"
    VIDEO = "video"
    AUDIO_RECORDING = "audio_recording"
    MUSICAL_SCORE = "musical_score"


class Author(BaseModel):
    """An author name.

    None of the parts is required; an Author with no parts means the
    backend listed an author it could not name.
    """

    model_config = ConfigDict(frozen=True)

    first: str | None = Field(default=None, description="Given name(s)")
    last: str | None = Field(default=None, description="Family name")
    display: str | None = Field(default=None, description="Full name as the backend displays it")


class Link(BaseModel):
    """An additional link attached to a result."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Target URL")
    label: str | None = Field(default=None, description="Human-readable label")
    rel: str | None = Field(default=None, description="Link relation, e.g. 'alternate'")
    style_classes: set[str] = Field(default_factory=set, description="Presentation hints for renderers")


class ResultItem(BaseModel):
    """A single normalized citation."""

    model_config = ConfigDict(frozen=True)

    title: str | None = Field(default=None, description="Title")
    subtitle: str | None = Field(default=None, description="Subtitle")
    authors: list[Author] = Field(default_factory=list, description="Authors in backend order")
    year: str | None = Field(default=None, description="Publication year")
    publication_date: date | None = Field(default=None, description="Full publication date when known")
    format: Format | None = Field(default=None, description="Normalized format")
    format_str: str | None = Field(default=None, description="Format label as stated by the backend")
    source_title: str | None = Field(default=None, description="Containing journal or book")
    publisher: str | None = Field(default=None, description="Publisher")
    volume: str | None = Field(default=None, description="Volume")
    issue: str | None = Field(default=None, description="Issue")
    start_page: str | None = Field(default=None, description="First page")
    end_page: str | None = Field(default=None, description="Last page")
    doi: str | None = Field(default=None, description="DOI")
    issn: str | None = Field(default=None, description="ISSN")
    isbn: str | None = Field(default=None, description="ISBN")
    oclcnum: str | None = Field(default=None, description="OCLC number")
    language_code: str | None = Field(default=None, description="Language code as given by the backend")
    language_str: str | None = Field(default=None, description="Language name as given by the backend")
    abstract: str | None = Field(default=None, description="Abstract or description")
    link: str | None = Field(default=None, description="Main link to the record")
    link_is_fulltext: bool = Field(default=False, description="Whether 'link' leads to full text")
    other_links: list[Link] = Field(default_factory=list, description="Additional links")
    unique_id: str | None = Field(default=None, description="Backend identifier accepted by the engine's get()")
    engine_id: str | None = Field(default=None, description="Registry id of the engine that produced the item")
    custom_data: dict[str, Any] = Field(default_factory=dict, description="Backend-specific extras")

    @field_validator(
        "title",
        "subtitle",
        "year",
        "format_str",
        "source_title",
        "publisher",
        "volume",
        "issue",
        "start_page",
        "end_page",
        "doi",
        "issn",
        "isbn",
        "oclcnum",
        "language_code",
        "language_str",
        "abstract",
        "link",
        "unique_id",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class Pagination(BaseModel):
    """Paging position of a result set.

    ``start_record`` is the 1-based record offset actually sent to the
    backend (after any clamping); ``current_page`` is derived from it.
    """

    model_config = ConfigDict(frozen=True)

    start_record: int = Field(default=1, ge=1, description="1-based offset of the first record")
    current_page: int = Field(default=1, ge=1, description="1-based page number")
    per_page: int = Field(default=10, gt=0, description="Records per page")

    @classmethod
    def for_start_record(cls, start_record: int, per_page: int) -> Pagination:
        """Build a Pagination whose page number matches *start_record*."""
        return cls(
            start_record=start_record,
            current_page=(start_record - 1) // per_page + 1,
            per_page=per_page,
        )


class ResultSet(BaseModel):
    """The outcome of one ``search`` call against one engine.

    A failed search is encoded here rather than raised: ``failed`` is set,
    ``error`` holds the details, and ``items`` is always empty.
    """

    model_config = ConfigDict(frozen=True)

    items: list[ResultItem] = Field(default_factory=list, description="Results in backend order")
    total_items: int | None = Field(default=None, description="Total hits reported by the backend")
    pagination: Pagination = Field(default_factory=Pagination, description="Paging position")
    failed: bool = Field(default=False, description="Whether the backend call failed")
    error: dict[str, Any] | None = Field(default=None, description="Failure details, including 'error_info'")
    engine_id: str | None = Field(default=None, description="Registry id of the engine")

    @model_validator(mode="after")
    def _failed_means_empty(self) -> ResultSet:
        if self.failed and self.items:
            raise ValueError("a failed ResultSet cannot carry items")
        return self

    @classmethod
    def failure(
        cls,
        error: dict[str, Any],
        *,
        engine_id: str | None = None,
        pagination: Pagination | None = None,
    ) -> ResultSet:
        """Build a failed, empty ResultSet."""
        return cls(
            failed=True,
            error=error,
            engine_id=engine_id,
            pagination=pagination or Pagination(),
        )

    @property
    def first(self) -> ResultItem | None:
        """The first item, or None when empty."""
        return self.items[0] if self.items else None

    def __len__(self) -> int:
        return len(self.items)

