"""Federated search — Run one query against several engines at once.

The searcher fans a ``Query`` out to every selected engine concurrently and
collects one ``ResultSet`` per engine.  Engines never coordinate: a slow or
broken backend only affects its own entry in the result map.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bibsearch.engines.base.engine import SearchEngine
from bibsearch.engines.base.registry import EngineRegistry
from bibsearch.engines.ebsco_host.engine import EbscoHostEngine
from bibsearch.engines.journal_tocs.engine import JournalTocsEngine
from bibsearch.engines.worldcat_sru_dc.engine import WorldcatSruDcEngine
from bibsearch.models.query import Query
from bibsearch.models.result import ResultSet

if TYPE_CHECKING:
    from bibsearch.config.settings import Settings

logger = logging.getLogger(__name__)

BUILTIN_ENGINES: dict[str, type[SearchEngine]] = {
    "ebsco_host": EbscoHostEngine,
    "worldcat_sru_dc": WorldcatSruDcEngine,
    "journal_tocs": JournalTocsEngine,
}


def build_registry(settings: Settings) -> EngineRegistry:
    """Create a registry with the built-in engine types and every configured engine.

    Raises:
        ConfigurationError: If an engine configuration is invalid.
    """
    registry = EngineRegistry(BUILTIN_ENGINES)
    for engine_id, config in settings.engines.items():
        registry.register(engine_id, config)
    return registry


class FederatedSearcher:
    """Fan-out / fan-in search across the engines of a registry.

    Attributes:
        registry: Registry the engines are looked up in.
        max_concurrency: Upper bound on engines queried at the same time.
        default_engines: Engine ids searched when a call names none.
    """

    def __init__(
        self,
        registry: EngineRegistry,
        max_concurrency: int = 10,
        default_engines: list[str] | None = None,
    ) -> None:
        self.registry = registry
        self.max_concurrency = max_concurrency
        self.default_engines = list(default_engines or [])

    @classmethod
    def from_settings(cls, settings: Settings) -> FederatedSearcher:
        return cls(
            build_registry(settings),
            max_concurrency=settings.search.max_concurrent_engines,
            default_engines=settings.search.default_engines,
        )

    async def initialize(self) -> None:
        await self.registry.initialize_all()

    async def shutdown(self) -> None:
        await self.registry.shutdown_all()

    async def search_all(self, query: Query, engine_ids: list[str] | None = None) -> dict[str, ResultSet]:
        """Search every selected engine concurrently.

        Args:
            query: The query sent to every engine.
            engine_ids: Engines to search. Defaults to ``default_engines``, or
                every registered engine when that is empty.

        Returns:
            ``engine_id -> ResultSet`` in the order the engines were selected.
            An engine that raised unexpectedly gets a failed ResultSet.

        Raises:
            ConfigurationError: If an engine id is not registered.
        """
        ids = engine_ids or self.default_engines or self.registry.engine_ids
        engines = [self.registry.get(engine_id) for engine_id in ids]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _search(engine: SearchEngine) -> ResultSet:
            async with semaphore:
                return await engine.search(query)

        raw_results: list[ResultSet | BaseException] = await asyncio.gather(
            *(_search(engine) for engine in engines),
            return_exceptions=True,
        )

        results: dict[str, ResultSet] = {}
        for engine, result in zip(engines, raw_results):
            if isinstance(result, BaseException):
                logger.warning("Search failed on engine '%s': %s", engine.engine_id, result, exc_info=result)
                results[engine.engine_id] = ResultSet.failure(
                    {"error_info": f"{type(result).__name__}: {result}"},
                    engine_id=engine.engine_id,
                    pagination=engine.pagination_for(query),
                )
            else:
                results[engine.engine_id] = result

        hits = sum(len(r) for r in results.values())
        logger.info("Federated search over %d engines returned %d items", len(engines), hits)
        return results
