"""JournalTOCS engine — Latest articles of a journal, looked up by ISSN.

JournalTOCS has no query language: each request returns the RSS feed of
one journal's most recent table of contents.  ``search`` treats the query
keywords as the ISSN and pages over the feed client-side.

Usage::

    engine = JournalTocsEngine(registered_email="librarian@example.edu")
    async with engine:
        results = await engine.fetch_by_issn("1600-5740")
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from bibsearch.config.engines import JournalTocsConfig
from bibsearch.engines.base.engine import SearchEngine
from bibsearch.engines.base.exceptions import FetchError
from bibsearch.engines.journal_tocs import normalizer, translator
from bibsearch.models.query import Query
from bibsearch.models.result import Pagination, ResultSet
from bibsearch.observability.logging import redact_url

logger = logging.getLogger(__name__)


class JournalTocsEngine(SearchEngine):
    """Search engine for JournalTOCS journal feeds."""

    config_class = JournalTocsConfig
    config: JournalTocsConfig

    @property
    def name(self) -> str:
        return "journal_tocs"

    async def fetch_xml(self, issn: str) -> ET.Element:
        """The raw feed document for *issn*.

        Raises:
            FetchError: On transport failure, a non-2xx status, an
                unparseable body, or an unregistered email.
        """
        url = translator.feed_url(self.config, issn)
        response = await self._fetch(url)
        details: dict[str, Any] = {"api_url": redact_url(url), "status": response.status_code}
        if not httpx.codes.is_success(response.status_code):
            raise FetchError(f"JournalTOCS returned HTTP {response.status_code}", details)

        root = self._parse_xml(response, url)
        normalizer.raise_for_account_error(root, details)
        return root

    async def fetch_by_issn(self, issn: str) -> ResultSet:
        """Every article in the journal's current feed, newest first.

        An ISSN JournalTOCS does not know yields an empty, successful
        ``ResultSet``.

        Raises:
            FetchError: As for :meth:`fetch_xml`.
        """
        root = await self.fetch_xml(issn)
        items = [self._stamp(item) for item in normalizer.parse_feed(root, issn=issn.strip())]

        logger.debug("JournalTOCS feed: issn=%s, items=%d", issn, len(items))
        return ResultSet(
            items=items,
            total_items=len(items),
            pagination=Pagination(per_page=max(len(items), 1)),
            engine_id=self.engine_id,
        )

    async def _search(self, query: Query) -> ResultSet:
        issn = translator.issn_from_query(query)
        if not issn:
            raise FetchError("JournalTOCS searches need an ISSN, as keywords or an 'issn' field")

        feed = await self.fetch_by_issn(issn)
        page_size = self.page_size(query)
        return ResultSet(
            items=feed.items[query.start : query.start + page_size],
            total_items=feed.total_items,
            pagination=self.pagination_for(query),
        )
