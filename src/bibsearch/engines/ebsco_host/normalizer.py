"""EBSCOhost response normalization — EIT XML -> ResultItem.

EIT ``Search`` responses look like::

    <searchResponse>
      <Hits>1234</Hits>
      <SearchResults><records>
        <rec resultID="1">
          <header shortDbName="a9h" uiTerm="12345678">
            <controlInfo>
              <bkinfo>...</bkinfo> <jinfo>...</jinfo> <pubinfo>...</pubinfo>
              <artinfo>...</artinfo> <language code="eng">English</language>
            </controlInfo>
          </header>
          <plink>http://search.ebscohost.com/...</plink>
        </rec>
      </records></SearchResults>
    </searchResponse>

Errors come back as ``<Fault><Code/><Message/></Fault>``.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import date
from typing import Any

from bibsearch.engines.base.exceptions import FetchError
from bibsearch.engines.base.xmlutil import find_all_text, find_text, node_text
from bibsearch.engines.ebsco_host.classifier import FormatClassifier, RecordFacts
from bibsearch.models.result import Author, ResultItem

logger = logging.getLogger(__name__)

FULLTEXT_FORMATS = frozenset({"P", "T", "C"})

_ABSTRACT_PREFIX = re.compile(r"^\s*Abstract\s*:\s*", re.IGNORECASE)
_YEAR = re.compile(r"(\d{4})")


def raise_for_fault(root: ET.Element, details: dict[str, Any]) -> None:
    """Raise ``FetchError`` when *root* is an EIT ``Fault`` document."""
    if root.tag != "Fault":
        return
    message = find_text(root, "Message") or find_text(root, "Code") or "EBSCOhost returned a fault"
    code = find_text(root, "Code")
    raise FetchError(message, {**details, "fault_code": code} if code else details)


def parse_search_response(
    root: ET.Element,
    classifier: FormatClassifier,
) -> tuple[int | None, list[ResultItem]]:
    """Total hits and normalized items of a ``searchResponse`` document."""
    hits = find_text(root, "Hits")
    total = int(hits) if hits and hits.isdigit() else None
    items = [item_from_record(rec, classifier) for rec in root.findall("./SearchResults/records/rec")]
    return total, items


def parse_databases(root: ET.Element) -> list[tuple[str, str | None]]:
    """``(short_name, long_name)`` for each database of an ``Info`` document."""
    return [
        (db.get("shortName", ""), db.get("longName"))
        for db in root.findall("./dbInfo/db")
        if db.get("shortName")
    ]


def _control_info(rec: ET.Element) -> ET.Element:
    info = rec.find("./header/controlInfo")
    return info if info is not None else ET.Element("controlInfo")


def _title_and_source(info: ET.Element) -> tuple[str | None, str | None]:
    title = find_text(info, "./artinfo/tig/atl")
    book_title = find_text(info, "./bkinfo/btl")
    if title is None:
        return book_title, find_text(info, "./jinfo/jtl")

    source_title = find_text(info, "./jinfo/jtl")
    if source_title is None and book_title and book_title != title:
        source_title = book_title
    return title, source_title


def _year(info: ET.Element) -> str | None:
    dt = info.find("./pubinfo/dt")
    if dt is None:
        return None
    if dt.get("year"):
        return dt.get("year")
    match = _YEAR.search(node_text(dt) or "")
    return match.group(1) if match else None


def _publication_date(info: ET.Element) -> date | None:
    dt = info.find("./pubinfo/dt")
    if dt is None:
        return None
    try:
        return date(int(dt.get("year", "")), int(dt.get("month", "")), int(dt.get("day", "")))
    except ValueError:
        return None


def extract_facts(rec: ET.Element) -> RecordFacts:
    """The classification-relevant metadata of one ``rec``."""
    info = _control_info(rec)
    title, source_title = _title_and_source(info)
    return RecordFacts(
        pubtypes=tuple(t.lower() for t in find_all_text(info, "./artinfo/pubtype")),
        doctypes=tuple(t.lower() for t in find_all_text(info, "./artinfo/doctype")),
        title=title,
        source_title=source_title,
        publisher=find_text(info, "./pubinfo/pub"),
        year=_year(info),
        notes=tuple(find_all_text(info, ".//note")),
        has_dissertation_info=info.find(".//dissinfo") is not None,
    )


def _author(name: str) -> Author:
    last, sep, first = name.partition(",")
    if sep and last.strip() and first.strip():
        return Author(last=last.strip(), first=first.strip(), display=name)
    return Author(display=name)


def _end_page(start_page: str | None, page_count: str | None) -> str | None:
    if start_page and page_count and start_page.isdigit() and page_count.isdigit() and int(page_count) > 0:
        return str(int(start_page) + int(page_count) - 1)
    return None


def item_from_record(rec: ET.Element, classifier: FormatClassifier) -> ResultItem:
    """Map one EIT ``rec`` element to a ``ResultItem``."""
    info = _control_info(rec)
    header = rec.find("./header")
    facts = extract_facts(rec)

    unique_id = None
    if header is not None and header.get("shortDbName") and header.get("uiTerm"):
        unique_id = f"{header.get('shortDbName')}:{header.get('uiTerm')}"

    abstract = find_text(info, "./artinfo/ab")
    if abstract:
        abstract = _ABSTRACT_PREFIX.sub("", abstract)

    start_page = find_text(info, "./artinfo/ppf")
    fulltext_formats = [
        fmt.get("type", "")
        for fmt in info.findall("./artinfo/formats/fmt")
        if fmt.get("type") in FULLTEXT_FORMATS
    ]
    stated_types = find_all_text(info, "./artinfo/pubtype") or find_all_text(info, "./artinfo/doctype")
    language = info.find("./language")

    custom_data: dict[str, Any] = {}
    if fulltext_formats:
        custom_data["fulltext_formats"] = fulltext_formats
    subjects = find_all_text(info, "./artinfo/su")
    if subjects:
        custom_data["subjects"] = subjects

    item = ResultItem(
        title=facts.title,
        authors=[_author(name) for name in find_all_text(info, "./artinfo/aug/au")],
        year=facts.year,
        publication_date=_publication_date(info),
        format=classifier.classify(facts),
        format_str=stated_types[0] if stated_types else None,
        source_title=facts.source_title,
        publisher=facts.publisher,
        volume=find_text(info, "./pubinfo/vid"),
        issue=find_text(info, "./pubinfo/iid"),
        start_page=start_page,
        end_page=_end_page(start_page, find_text(info, "./artinfo/ppct")),
        doi=find_text(info, "./artinfo/ui[@type='doi']"),
        issn=find_text(info, "./jinfo/issn") or find_text(info, "./jinfo/jid[@type='issn']"),
        isbn=find_text(info, "./bkinfo/isbn"),
        language_code=language.get("code") if language is not None else None,
        language_str=node_text(language),
        abstract=abstract,
        link=find_text(rec, "./plink"),
        link_is_fulltext=bool(fulltext_formats),
        unique_id=unique_id,
        custom_data=custom_data,
    )
    logger.debug("Normalized EBSCO record %s as %s", unique_id, item.format)
    return item
