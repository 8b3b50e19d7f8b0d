"""EBSCOhost query translation — Query -> EIT ``Search`` request parameters.

EIT takes a boolean query string of ``(FIELD value)`` clauses joined with
``AND``.  It chokes on some characters even inside quoted phrases, and
treats ``and`` / ``or`` / ``not`` as operators wherever they appear.
"""

from __future__ import annotations

import re
from urllib.parse import urlencode

from bibsearch.config.engines import EbscoHostConfig
from bibsearch.models.query import Query, SemanticField, SortOrder

# Characters EIT rejects anywhere in a query, quoted or not.
_ILLEGAL_CHARS = re.compile(r"[()?\[\]]")

# A quoted phrase, or a run of characters that are not delimiters.
_TOKEN = re.compile(r'"[^"]*"|[^\s:.;"]+')

_RESERVED_WORDS = frozenset({"and", "or", "not"})

SEMANTIC_FIELDS: dict[str, str | None] = {
    SemanticField.KEYWORD.value: None,
    SemanticField.TITLE.value: "TI",
    SemanticField.AUTHOR.value: "AU",
    SemanticField.SUBJECT.value: "SU",
    SemanticField.ISSN.value: "IS",
    SemanticField.ISBN.value: "IB",
    SemanticField.AUTHOR_AFFILIATION.value: "AF",
    SemanticField.VOLUME.value: "VI",
    SemanticField.ISSUE.value: "IP",
    SemanticField.START_PAGE.value: "SP",
    SemanticField.ACCESSION_NUMBER.value: "AN",
}

SORT_KEYS: dict[SortOrder, str] = {
    SortOrder.RELEVANCE: "relevance",
    SortOrder.DATE_DESC: "date",
    SortOrder.DATE_ASC: "date2",
    SortOrder.TITLE_ASC: "title",
    SortOrder.AUTHOR_ASC: "author",
}


def ebsco_query_prepare(text: str) -> str:
    """Make free text safe for EIT and AND its terms together.

    Parentheses, question marks and brackets are replaced with spaces.  The
    rest is split on whitespace, ``:``, ``.`` and ``;`` with quoted phrases
    kept whole; literal ``and``/``or``/``not`` terms are quoted.  Text that
    is already a single clean term is returned as-is.

    >>> ebsco_query_prepare('one :. ; two "three four" and NOT OR five')
    'one AND two AND "three four" AND "and" AND "NOT" AND "OR" AND five'
    >>> ebsco_query_prepare("[cancer]")
    ' cancer '
    """
    cleaned = _ILLEGAL_CHARS.sub(" ", text)
    tokens = _TOKEN.findall(cleaned)

    if len(tokens) == 1 and tokens[0] == cleaned.strip() and tokens[0].lower() not in _RESERVED_WORDS:
        return cleaned

    return " AND ".join(f'"{t}"' if t.lower() in _RESERVED_WORDS else t for t in tokens)


def field_code(field: str) -> str | None:
    """EIT field code for a semantic field name, or *field* itself as a raw code."""
    if field in SEMANTIC_FIELDS:
        return SEMANTIC_FIELDS[field]
    return field


def _clause(code: str | None, value: str) -> str:
    prepared = ebsco_query_prepare(value)
    return f"({code} {prepared})" if code else prepared


def build_query_string(query: Query) -> str:
    """Compile the full EIT query string, limits included."""
    if isinstance(query.keywords, dict):
        result = " AND ".join(_clause(field_code(f), v) for f, v in query.keywords.items())
    else:
        code = query.search_field
        if code is None and query.semantic_field is not None:
            code = SEMANTIC_FIELDS.get(query.semantic_field.value)
        result = _clause(code, query.keywords)

    filters = query.filters
    if filters.peer_reviewed_only:
        result += " AND (RV Y)"
    if filters.pubyear_start or filters.pubyear_end:
        result += f" AND (DT {filters.pubyear_start or ''}-{filters.pubyear_end or ''})"

    return result


def query_params(query: Query, config: EbscoHostConfig, per_page: int | None = None) -> list[tuple[str, str]]:
    """EIT ``Search`` parameters for *query*.

    ``startrec`` is 1-based.  ``db`` repeats once per database; a per-call
    ``filters.databases`` replaces the configured set.
    """
    databases = query.filters.databases or sorted(config.databases)
    params = [
        ("prof", config.profile_id),
        ("pwd", config.profile_password.get_secret_value()),
        ("query", build_query_string(query)),
        ("numrec", str(per_page or query.per_page)),
        ("startrec", str(query.start + 1)),
        ("format", "detailed"),
        ("sort", SORT_KEYS.get(query.sort, SORT_KEYS[SortOrder.RELEVANCE])),
    ]
    params.extend(("db", db) for db in databases)
    return params


def search_url(config: EbscoHostConfig, params: list[tuple[str, str]]) -> str:
    return f"{config.base_url.rstrip('/')}/Search?{urlencode(params)}"


def info_url(config: EbscoHostConfig) -> str:
    params = [("prof", config.profile_id), ("pwd", config.profile_password.get_secret_value())]
    return f"{config.base_url.rstrip('/')}/Info?{urlencode(params)}"
