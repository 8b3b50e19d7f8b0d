"""Base search engine — Abstract interface for all bibliographic backend connectors.

Every backend must implement this interface to be usable through the
registry.  An engine is responsible for:
  1. Translating a normalized ``Query`` into the backend's request
  2. Executing the request over HTTP with a bounded timeout
  3. Mapping the backend payload to ``ResultSet`` / ``ResultItem``
  4. Signalling failure the way the contract asks for it:
     ``search`` encodes failure in the ``ResultSet``, ``get`` raises
"""

from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from bibsearch.config.engines import BaseEngineConfig
from bibsearch.engines.base.exceptions import (
    ConfigurationError,
    EngineError,
    FetchError,
    InvalidIdentifier,
    NotFound,
)
from bibsearch.models.query import Query
from bibsearch.models.result import Pagination, ResultItem, ResultSet
from bibsearch.observability.logging import redact_url

logger = logging.getLogger(__name__)


class LookupResult(BaseModel):
    """Tagged outcome of ``SearchEngine.lookup``: exactly one of item / error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    identifier: str = Field(description="The identifier that was looked up")
    item: ResultItem | None = Field(default=None, description="The record, when found")
    error: EngineError | None = Field(default=None, description="Why the lookup failed")

    @model_validator(mode="after")
    def _exactly_one(self) -> LookupResult:
        if (self.item is None) == (self.error is None):
            raise ValueError("LookupResult needs exactly one of 'item' or 'error'")
        return self

    @property
    def ok(self) -> bool:
        return self.item is not None


class SearchEngine(ABC):
    """Abstract base class for bibliographic search engines.

    Subclasses implement:
      - name: engine type name
      - _search(): translate, fetch and normalize one query
      - get(): optional single-record lookup

    Engines hold read-only configuration and a shared ``httpx.AsyncClient``
    connection pool, so one instance can serve concurrent calls.

    Args:
        config: The engine's typed configuration.  When omitted, ``**kwargs``
            are validated into ``config_class``.
        engine_id: Registry id stamped onto results. Defaults to ``name``.
        client: Optional pre-built HTTP client (the engine will not close it).
    """

    config_class: ClassVar[type[BaseEngineConfig]]

    def __init__(
        self,
        config: BaseEngineConfig | None = None,
        *,
        engine_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> None:
        if config is None:
            try:
                config = self.config_class(**kwargs)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid {self.config_class.__name__}: {e}") from e
        elif kwargs:
            raise ConfigurationError("Pass either a config object or keyword settings, not both.")
        if not isinstance(config, self.config_class):
            raise ConfigurationError(
                f"{type(self).__name__} needs a {self.config_class.__name__}, got {type(config).__name__}"
            )
        self.config = config
        self.engine_id = engine_id or self.name
        self._client = client
        self._owns_client = client is None

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine type name (e.g., 'ebsco_host')."""

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the HTTP client. Called once at startup."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))
            self._owns_client = True
        logger.info("Initialized engine '%s' (%s)", self.engine_id, self.name)

    async def shutdown(self) -> None:
        """Close the HTTP client if the engine created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> SearchEngine:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, query: Query) -> ResultSet:
        """Run *query* against the backend.

        Never raises for zero hits or backend failure: a ``FetchError`` is
        turned into a failed, empty ``ResultSet`` carrying ``error_info``.
        """
        try:
            results = await self._search(query)
        except FetchError as e:
            logger.warning("Search failed on engine '%s': %s", self.engine_id, e.message)
            return ResultSet.failure(
                e.to_error_info(),
                engine_id=self.engine_id,
                pagination=self.pagination_for(query),
            )
        return results.model_copy(
            update={"engine_id": self.engine_id, "items": [self._stamp(item) for item in results.items]}
        )

    @abstractmethod
    async def _search(self, query: Query) -> ResultSet:
        """Translate, execute and normalize one query.

        Raises:
            FetchError: On any transport or backend failure.
        """

    # ── Single-record lookup ─────────────────────────────────────────────

    async def get(self, identifier: str) -> ResultItem:
        """Fetch one record by the ``unique_id`` a previous search produced.

        Raises:
            InvalidIdentifier: If *identifier* has the wrong shape.
            NotFound: If the backend has no such record.
            FetchError: On transport or backend failure.
        """
        raise NotImplementedError(f"Engine '{self.name}' does not support single-record lookup.")

    async def lookup(self, identifier: str) -> LookupResult:
        """Like :meth:`get`, but returns the failure instead of raising it."""
        try:
            item = await self.get(identifier)
        except (InvalidIdentifier, NotFound, FetchError) as e:
            return LookupResult(identifier=identifier, error=e)
        return LookupResult(identifier=identifier, item=item)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _stamp(self, item: ResultItem) -> ResultItem:
        """A copy of *item* attributed to this engine."""
        return item.model_copy(update={"engine_id": self.engine_id})

    def page_size(self, query: Query) -> int:
        """``query.per_page`` clamped to the backend's maximum."""
        return min(query.per_page, self.config.max_per_page)

    def pagination_for(self, query: Query) -> Pagination:
        """Pagination for *query* as the backend will see it."""
        return Pagination.for_start_record(query.start + 1, self.page_size(query))

    async def _fetch(self, url: str) -> httpx.Response:
        """GET *url*, wrapping transport errors in ``FetchError``."""
        if self._client is None:
            raise ConfigurationError(f"Engine '{self.engine_id}' is not initialized. Call initialize() first.")

        safe_url = redact_url(url)
        try:
            start = time.monotonic()
            response = await self._client.get(url)
            took_ms = int((time.monotonic() - start) * 1000)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(
                f"HTTP request failed: {type(e).__name__}: {e}",
                {"api_url": safe_url, "exception": type(e).__name__},
            ) from e

        logger.debug("GET %s -> %d (%dms)", safe_url, response.status_code, took_ms)
        return response

    @staticmethod
    def _parse_xml(response: httpx.Response, url: str) -> ET.Element:
        """Parse a response body, wrapping parse errors in ``FetchError``."""
        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            raise FetchError(
                f"Unparseable response: {e}",
                {"api_url": redact_url(url), "status": response.status_code},
            ) from e
