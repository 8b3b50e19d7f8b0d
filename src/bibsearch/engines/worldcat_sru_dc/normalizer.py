"""WorldCat SRU response normalization — SRW Dublin Core XML -> ResultItem.

The DC record schema is thin: no structured authors, no reliable format,
and dates are free text.  We take what is there and leave the rest
``None``.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any

from bibsearch.engines.base.exceptions import FetchError
from bibsearch.engines.base.xmlutil import find_all_text, find_text
from bibsearch.models.result import Author, ResultItem

WORLDCAT_RECORD_URL = "https://worldcat.org/oclc/{oclcnum}"

_YEAR = re.compile(r"(?<!\d)(\d{4})(?!\d)")
_ISBN = re.compile(r"^(?:97[89])?\d{9}[\dX]$")
_ISSN = re.compile(r"^\d{4}-?\d{3}[\dX]$")


def raise_for_diagnostics(root: ET.Element, details: dict[str, Any]) -> None:
    """Raise ``FetchError`` when the SRW response carries diagnostics."""
    diagnostic = root.find("./diagnostics/diagnostic")
    if diagnostic is None:
        return
    message = find_text(diagnostic, "message") or "WorldCat returned a diagnostic"
    extra = find_text(diagnostic, "details")
    if extra:
        message = f"{message}: {extra}"
    raise FetchError(message, {**details, "diagnostic_uri": find_text(diagnostic, "uri")})


def parse_search_response(root: ET.Element) -> tuple[int | None, list[ResultItem]]:
    """Total hits and normalized items of a namespace-stripped SRW response."""
    count = find_text(root, "./numberOfRecords")
    total = int(count) if count and count.isdigit() else None
    items = [item_from_record(dc) for dc in root.findall("./records/record/recordData/oclcdcs")]
    return total, items


def _identifiers(dc: ET.Element) -> tuple[str | None, str | None]:
    isbn = issn = None
    for value in find_all_text(dc, "identifier"):
        compact = value.split()[0].replace("-", "").upper()
        if isbn is None and _ISBN.match(compact):
            isbn = compact
        elif issn is None and _ISSN.match(value.split()[0]):
            issn = value.split()[0]
    return isbn, issn


def item_from_record(dc: ET.Element) -> ResultItem:
    """Map one ``oclcdcs`` record to a ``ResultItem``."""
    oclcnum = find_text(dc, "recordIdentifier")
    date_text = find_text(dc, "date")
    year_match = _YEAR.search(date_text or "")
    isbn, issn = _identifiers(dc)
    descriptions = find_all_text(dc, "description")
    names = find_all_text(dc, "creator") + find_all_text(dc, "contributor")

    custom_data: dict[str, Any] = {}
    subjects = find_all_text(dc, "subject")
    if subjects:
        custom_data["subjects"] = subjects

    return ResultItem(
        title=find_text(dc, "title"),
        authors=[Author(display=name) for name in names],
        year=year_match.group(1) if year_match else None,
        format_str=find_text(dc, "type"),
        publisher=find_text(dc, "publisher"),
        isbn=isbn,
        issn=issn,
        oclcnum=oclcnum,
        language_code=find_text(dc, "language"),
        abstract=" ".join(descriptions) if descriptions else None,
        link=WORLDCAT_RECORD_URL.format(oclcnum=oclcnum) if oclcnum else None,
        unique_id=oclcnum,
        custom_data=custom_data,
    )
