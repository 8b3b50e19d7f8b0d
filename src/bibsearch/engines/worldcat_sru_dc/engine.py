"""WorldCat engine — Search via the WorldCat SRU API with Dublin Core records.

Usage::

    engine = WorldcatSruDcEngine(api_key="...")
    async with engine:
        results = await engine.search(Query(keywords='"climate change" policy'))
        item = await engine.get(results.first.unique_id)

Record ids are OCLC numbers.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from bibsearch.config.engines import WorldcatSruDcConfig
from bibsearch.engines.base.engine import SearchEngine
from bibsearch.engines.base.exceptions import FetchError, InvalidIdentifier, NotFound
from bibsearch.engines.base.xmlutil import strip_namespaces
from bibsearch.engines.worldcat_sru_dc import normalizer, translator
from bibsearch.models.query import Query, SemanticField
from bibsearch.models.result import Pagination, ResultItem, ResultSet
from bibsearch.observability.logging import redact_url

logger = logging.getLogger(__name__)


class WorldcatSruDcEngine(SearchEngine):
    """Search engine for the WorldCat SRU ``searchRetrieve`` service."""

    config_class = WorldcatSruDcConfig
    config: WorldcatSruDcConfig

    @property
    def name(self) -> str:
        return "worldcat_sru_dc"

    # ── Query construction ───────────────────────────────────────────────

    def construct_query_url(self, query: Query) -> str:
        """Full SRU URL for *query*, ``wskey`` included."""
        params, _ = translator.construct_query_params(query, self.config, per_page=self.page_size(query))
        return translator.search_url(self.config, params)

    @staticmethod
    def construct_cql_query(query: Query) -> str:
        return translator.construct_cql_query(query)

    def pagination_for(self, query: Query) -> Pagination:
        return translator.clamped_pagination(query, self.page_size(query))

    # ── Search ───────────────────────────────────────────────────────────

    async def _search(self, query: Query) -> ResultSet:
        root = await self._fetch_document(self.construct_query_url(query))
        total, items = normalizer.parse_search_response(root)

        logger.debug("WorldCat search: query=%r, hits=%s, returned=%d", query.keywords, total, len(items))
        return ResultSet(items=items, total_items=total, pagination=self.pagination_for(query))

    async def get(self, identifier: str) -> ResultItem:
        """Fetch one record by OCLC number.

        Raises:
            InvalidIdentifier: If *identifier* is not a number.
            NotFound: If WorldCat has no record with that number.
            FetchError: On transport failure or an SRU diagnostic.
        """
        oclcnum = identifier.strip()
        if not (oclcnum.isascii() and oclcnum.isdigit()):
            raise InvalidIdentifier(f"WorldCat identifier must be a numeric OCLC number, got {identifier!r}")

        query = Query(keywords=oclcnum, semantic_field=SemanticField.OCLCNUM, per_page=1)
        root = await self._fetch_document(self.construct_query_url(query))
        _, items = normalizer.parse_search_response(root)
        if not items:
            raise NotFound(f"No WorldCat record {identifier!r}")

        return self._stamp(items[0])

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _fetch_document(self, url: str) -> ET.Element:
        response = await self._fetch(url)
        details: dict[str, Any] = {"api_url": redact_url(url), "status": response.status_code}
        try:
            root = strip_namespaces(self._parse_xml(response, url))
        except FetchError:
            if httpx.codes.is_success(response.status_code):
                raise
            raise FetchError(f"WorldCat returned HTTP {response.status_code}", details) from None

        normalizer.raise_for_diagnostics(root, details)
        if not httpx.codes.is_success(response.status_code):
            raise FetchError(f"WorldCat returned HTTP {response.status_code}", details)
        return root
