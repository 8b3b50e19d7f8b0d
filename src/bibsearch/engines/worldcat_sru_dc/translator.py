"""WorldCat SRU query translation — Query -> CQL and SRU request parameters."""

from __future__ import annotations

import re
from urllib.parse import urlencode

from bibsearch.config.engines import WorldcatSruDcConfig
from bibsearch.models.query import Query, SemanticField, SortOrder
from bibsearch.models.result import Pagination

RECORD_SCHEMA = "info:srw/schema/1/dc"

# WorldCat rejects startRecord values above this.
MAX_START_RECORD = 9999

KEYWORD_INDEX = "srw.kw"

SEMANTIC_INDEXES: dict[str, str] = {
    SemanticField.KEYWORD.value: KEYWORD_INDEX,
    SemanticField.TITLE.value: "srw.ti",
    SemanticField.AUTHOR.value: "srw.au",
    SemanticField.SUBJECT.value: "srw.su",
    SemanticField.ISSN.value: "srw.in",
    SemanticField.ISBN.value: "srw.bn",
    SemanticField.OCLCNUM.value: "srw.no",
}

SORT_KEYS: dict[SortOrder, str] = {
    SortOrder.RELEVANCE: "relevance",
    SortOrder.DATE_DESC: "Date,,0",
    SortOrder.DATE_ASC: "Date,,1",
    SortOrder.TITLE_ASC: "Title,,1",
    SortOrder.AUTHOR_ASC: "Author,,1",
}

_TERM = re.compile(r'"[^"]*"|\S+')


def tokenize_keywords(text: str) -> list[str]:
    """Split on whitespace; a ``"quoted phrase"`` is one term (quotes removed)."""
    terms = []
    for match in _TERM.findall(text):
        if len(match) >= 2 and match.startswith('"') and match.endswith('"'):
            match = match[1:-1]
        if match.strip():
            terms.append(match)
    return terms


def cql_escape(value: str) -> str:
    """Backslash-escape characters that are special inside a CQL quoted string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def cql_clause(index: str, value: str) -> str:
    return f'{index} = "{cql_escape(value)}"'


def index_for(field: str) -> str:
    """CQL index for a semantic field name, or *field* itself as a raw index."""
    return SEMANTIC_INDEXES.get(field, field)


def construct_cql_query(query: Query) -> str:
    """Compile *query* to CQL.

    >>> construct_cql_query(Query(keywords='alpha "one two"'))
    'srw.kw = "alpha" AND srw.kw = "one two"'
    >>> construct_cql_query(Query(keywords="cancer", search_field="srw.ti"))
    'srw.ti = "cancer"'
    """
    if isinstance(query.keywords, dict):
        return " AND ".join(cql_clause(index_for(f), v) for f, v in query.keywords.items())

    index = query.search_field
    if index is None and query.semantic_field is not None:
        index = index_for(query.semantic_field.value)
    if index and index != KEYWORD_INDEX:
        return cql_clause(index, query.keywords)

    return " AND ".join(cql_clause(KEYWORD_INDEX, term) for term in tokenize_keywords(query.keywords))


def clamped_pagination(query: Query, per_page: int) -> Pagination:
    """Pagination with ``startRecord`` clamped to ``MAX_START_RECORD``."""
    return Pagination.for_start_record(min(query.start + 1, MAX_START_RECORD), per_page)


def construct_query_params(
    query: Query,
    config: WorldcatSruDcConfig,
    per_page: int | None = None,
) -> tuple[list[tuple[str, str]], Pagination]:
    """SRU ``searchRetrieve`` parameters plus the pagination they produce."""
    pagination = clamped_pagination(query, per_page or query.per_page)
    params = [
        ("wskey", config.api_key.get_secret_value()),
        ("recordSchema", RECORD_SCHEMA),
        ("query", construct_cql_query(query)),
        ("maximumRecords", str(pagination.per_page)),
        ("startRecord", str(pagination.start_record)),
    ]
    sort_key = SORT_KEYS.get(query.sort)
    if sort_key:
        params.append(("sortKeys", sort_key))

    auth = query.filters.auth if query.filters.auth is not None else config.auth
    if auth:
        params.append(("servicelevel", "full"))

    return params, pagination


def search_url(config: WorldcatSruDcConfig, params: list[tuple[str, str]]) -> str:
    return f"{config.base_url}?{urlencode(params)}"
