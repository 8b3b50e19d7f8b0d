"""JournalTOCS feed normalization — RSS 1.0 items -> ResultItem.

Feeds are RDF/RSS 1.0 with PRISM and Dublin Core metadata.  Publishers
disagree on the PRISM version, so both the 1.2 and 2.0 namespaces are
read.  Text fields often carry HTML markup and entities.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import date
from email.utils import parsedate_to_datetime
from operator import attrgetter
from typing import Any

from bs4 import BeautifulSoup

from bibsearch.engines.base.exceptions import FetchError
from bibsearch.engines.base.xmlutil import child_text, children_named, split_tag
from bibsearch.models.result import Author, Format, ResultItem

RSS_NS = frozenset({"http://purl.org/rss/1.0/", None})
DC_NS = frozenset({"http://purl.org/dc/elements/1.1/"})
PRISM_NS = frozenset(
    {
        "http://prismstandard.org/namespaces/1.2/basic/",
        "http://prismstandard.org/namespaces/basic/2.0/",
    }
)

# JournalTOCS answers unregistered emails with a feed containing this phrase.
INVALID_ACCOUNT_PHRASE = "account is invalid"

_WHITESPACE = re.compile(r"\s+")
_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")
_YEAR_MONTH = re.compile(r"^\s*(\d{4})(?:-(\d{2}))?\b")
_DOI = re.compile(r"^\s*(?:doi:?\s*)?(10\.\S+)", re.IGNORECASE)


def clean_text(value: str | None) -> str | None:
    """Text content of an HTML fragment, entities decoded and whitespace collapsed."""
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", BeautifulSoup(value, "html.parser").get_text(" ")).strip()
    return text or None


def parse_date(value: str | None) -> date | None:
    """Best-effort parse of the date formats seen in feeds.

    ``2013-05-01``, ``2013-05-01T00:00:00Z``, RFC 822 dates, and bare
    ``2013-05`` / ``2013`` (first day of the period).
    """
    if not value:
        return None
    match = _ISO_DATE.match(value)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None
    try:
        return parsedate_to_datetime(value).date()
    except (TypeError, ValueError, IndexError):
        pass
    match = _YEAR_MONTH.match(value)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2) or 1), 1)
        except ValueError:
            return None
    return None


def extract_doi(identifier: str | None) -> str | None:
    """DOI out of a ``dc:identifier`` like ``"DOI 10.1107/S0108; ..."``."""
    if not identifier:
        return None
    value = identifier.split("; ")[0].strip()
    if value.upper().startswith("DOI "):
        value = value[4:]
    match = _DOI.match(value)
    return match.group(1) if match else None


def raise_for_account_error(root: ET.Element, details: dict[str, Any]) -> None:
    """Raise ``FetchError`` when the feed reports an unregistered email.

    The notice arrives as the channel text or as an item title.  Item
    descriptions are article abstracts and are not inspected.
    """
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        ns, local = split_tag(el.tag)
        if local not in ("channel", "item") or ns not in RSS_NS:
            continue
        fields = ("title", "description") if local == "channel" else ("title",)
        for name in fields:
            text = child_text(el, name, RSS_NS)
            if text and INVALID_ACCOUNT_PHRASE in text.lower():
                raise FetchError(_WHITESPACE.sub(" ", text).strip(), details)


def feed_items(root: ET.Element) -> list[ET.Element]:
    """Every RSS ``item`` element of the feed."""
    items = []
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        ns, local = split_tag(el.tag)
        if local == "item" and ns in RSS_NS:
            items.append(el)
    return items


def _publication_date(el: ET.Element) -> date | None:
    for name, namespaces in (
        ("coverDate", PRISM_NS),
        ("date", DC_NS),
        ("publicationDate", PRISM_NS),
    ):
        parsed = parse_date(child_text(el, name, namespaces))
        if parsed:
            return parsed
    return None


def item_from_rss(el: ET.Element, issn: str | None = None) -> ResultItem:
    """Map one RSS ``item`` to an article ``ResultItem``."""
    link = child_text(el, "link", RSS_NS) or el.get("{http://www.w3.org/1999/02/22-rdf-syntax-ns#}about")
    doi = child_text(el, "doi", PRISM_NS) or extract_doi(child_text(el, "identifier", DC_NS))
    publication_date = _publication_date(el)
    names = (clean_text(child.text) for child in children_named(el, "creator", DC_NS))
    authors = [Author(display=name) for name in names if name]

    return ResultItem(
        title=clean_text(child_text(el, "title", RSS_NS)),
        authors=authors,
        year=str(publication_date.year) if publication_date else None,
        publication_date=publication_date,
        format=Format.ARTICLE,
        source_title=clean_text(child_text(el, "publicationName", PRISM_NS)),
        publisher=clean_text(child_text(el, "publisher", PRISM_NS) or child_text(el, "publisher", DC_NS)),
        volume=child_text(el, "volume", PRISM_NS),
        issue=child_text(el, "number", PRISM_NS),
        start_page=child_text(el, "startingPage", PRISM_NS),
        end_page=child_text(el, "endingPage", PRISM_NS),
        doi=doi,
        issn=issn or child_text(el, "issn", PRISM_NS),
        abstract=clean_text(child_text(el, "description", RSS_NS)),
        link=link,
        unique_id=doi or link,
    )


def sort_by_date(items: list[ResultItem]) -> list[ResultItem]:
    """Newest first; undated items keep their feed order at the end."""
    dated = [item for item in items if item.publication_date is not None]
    undated = [item for item in items if item.publication_date is None]
    return sorted(dated, key=attrgetter("publication_date"), reverse=True) + undated


def parse_feed(root: ET.Element, issn: str | None = None) -> list[ResultItem]:
    """Normalized items of a feed, newest first."""
    return sort_by_date([item_from_rss(el, issn) for el in feed_items(root)])
