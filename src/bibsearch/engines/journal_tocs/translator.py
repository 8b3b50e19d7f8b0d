"""JournalTOCS request construction — ISSN -> journal feed URL."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from bibsearch.config.engines import JournalTocsConfig
from bibsearch.models.query import Query, SemanticField


def request_url(base_url: str, issn: str) -> str:
    """``<base_url>/<issn>``, with the ISSN path-escaped."""
    return f"{base_url.rstrip('/')}/{quote(issn.strip(), safe='')}"


def request_params(registered_email: str) -> list[tuple[str, str]]:
    return [("output", "articles"), ("user", registered_email)]


def feed_url(config: JournalTocsConfig, issn: str) -> str:
    """Full feed URL for *issn*, registered email included."""
    params = request_params(config.registered_email.get_secret_value())
    return f"{request_url(config.base_url, issn)}?{urlencode(params)}"


def issn_from_query(query: Query) -> str | None:
    """The ISSN a query asks for: its keywords, or the ``issn`` entry of a map."""
    if isinstance(query.keywords, dict):
        value = query.keywords.get(SemanticField.ISSN.value)
        return value.strip() if value else None
    return query.keywords.strip()
