"""EBSCOhost engine — Search via the EBSCOhost Integration Toolkit (EIT) REST API.

Usage::

    engine = EbscoHostEngine(
        profile_id="s1234567.main.eit",
        profile_password="...",
        databases={"a9h", "awn"},
    )
    async with engine:
        results = await engine.search(Query(keywords="cancer", per_page=5))
        item = await engine.get(results.first.unique_id)

Record ids have the form ``"<database>:<accession number>"``.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from bibsearch.config.engines import EbscoHostConfig
from bibsearch.engines.base.engine import SearchEngine
from bibsearch.engines.base.exceptions import FetchError, InvalidIdentifier, NotFound
from bibsearch.engines.base.xmlutil import strip_namespaces
from bibsearch.engines.ebsco_host import normalizer, translator
from bibsearch.engines.ebsco_host.classifier import FormatClassifier
from bibsearch.models.query import Query, SearchFilters
from bibsearch.models.result import ResultItem, ResultSet
from bibsearch.observability.logging import redact_url

logger = logging.getLogger(__name__)

ID_SEPARATOR = ":"


class EbscoHostEngine(SearchEngine):
    """Search engine for EBSCOhost databases.

    Args:
        config: EBSCOhost configuration.  Keyword settings
            (``profile_id``, ``profile_password``, ``databases``, ...) may be
            passed instead.
        classifier: Format classifier; defaults to the built-in rule list.
    """

    config_class = EbscoHostConfig
    config: EbscoHostConfig

    def __init__(
        self,
        config: EbscoHostConfig | None = None,
        *,
        classifier: FormatClassifier | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, **kwargs)
        self.classifier = classifier or FormatClassifier()

    @property
    def name(self) -> str:
        return "ebsco_host"

    # ── Query construction ───────────────────────────────────────────────

    def query_url(self, query: Query) -> str:
        """Full EIT ``Search`` URL for *query*, credentials included."""
        params = translator.query_params(query, self.config, per_page=self.page_size(query))
        return translator.search_url(self.config, params)

    @staticmethod
    def ebsco_query_prepare(text: str) -> str:
        return translator.ebsco_query_prepare(text)

    # ── Search ───────────────────────────────────────────────────────────

    async def _search(self, query: Query) -> ResultSet:
        url = self.query_url(query)
        root = await self._fetch_document(url)
        total, items = normalizer.parse_search_response(root, self.classifier)

        logger.debug("EBSCOhost search: query=%r, hits=%s, returned=%d", query.keywords, total, len(items))
        return ResultSet(items=items, total_items=total, pagination=self.pagination_for(query))

    async def get(self, identifier: str) -> ResultItem:
        """Fetch one record by ``"<database>:<accession number>"``.

        Raises:
            InvalidIdentifier: If *identifier* lacks the ``:`` separator or
                either half is empty.
            NotFound: If the database has no such accession number.
            FetchError: On transport failure or an EIT fault (e.g. unknown
                database).
        """
        database, sep, accession = identifier.partition(ID_SEPARATOR)
        if not sep or not database or not accession:
            raise InvalidIdentifier(
                f"EBSCOhost identifier must look like '<database>{ID_SEPARATOR}<accession number>', got {identifier!r}"
            )

        query = Query(
            keywords=accession,
            search_field="AN",
            per_page=1,
            filters=SearchFilters(databases=[database]),
        )
        root = await self._fetch_document(self.query_url(query))
        _, items = normalizer.parse_search_response(root, self.classifier)
        if not items:
            raise NotFound(f"No EBSCOhost record {identifier!r}")

        return self._stamp(items[0])

    # ── Database info ────────────────────────────────────────────────────

    async def get_info(self) -> ET.Element:
        """The EIT ``Info`` document describing the profile's databases.

        Raises:
            FetchError: On transport failure or an EIT fault.
        """
        return await self._fetch_document(translator.info_url(self.config))

    async def list_databases(self) -> list[tuple[str, str | None]]:
        """``(short_name, long_name)`` of every database the profile can search."""
        return normalizer.parse_databases(await self.get_info())

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _fetch_document(self, url: str) -> ET.Element:
        response = await self._fetch(url)
        details: dict[str, Any] = {"api_url": redact_url(url), "status": response.status_code}
        try:
            root = strip_namespaces(self._parse_xml(response, url))
        except FetchError:
            if httpx.codes.is_success(response.status_code):
                raise
            raise FetchError(f"EBSCOhost returned HTTP {response.status_code}", details) from None

        # EIT reports bad credentials and unknown databases as a Fault body,
        # usually with a non-2xx status.
        normalizer.raise_for_fault(root, details)
        if not httpx.codes.is_success(response.status_code):
            raise FetchError(f"EBSCOhost returned HTTP {response.status_code}", details)
        return root
