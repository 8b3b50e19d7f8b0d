"""Engine Registry — Maps engine ids to configured engine instances.

The registry keeps two tables: engine *types* (name -> class) and
configured *instances* (engine id -> engine).  It is populated once at
startup and only read afterwards, so concurrent ``get`` calls need no
locking.  Registries are explicit objects; build one at the top-level
composition point and pass it down.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from bibsearch.config.engines import BaseEngineConfig, engine_config_adapter
from bibsearch.engines.base.engine import SearchEngine
from bibsearch.engines.base.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EngineRegistry:
    """Registry of configured search engines.

    Example:
        >>> registry = EngineRegistry()
        >>> registry.register_class("worldcat_sru_dc", WorldcatSruDcEngine)
        >>> registry.register("worldcat", {"engine": "worldcat_sru_dc", "api_key": "..."})
        >>> await registry.initialize_all()
        >>> engine = registry.get("worldcat")
    """

    def __init__(self, engine_classes: dict[str, type[SearchEngine]] | None = None) -> None:
        self._classes: dict[str, type[SearchEngine]] = dict(engine_classes or {})
        self._instances: dict[str, SearchEngine] = {}

    def register_class(self, name: str, engine_class: type[SearchEngine]) -> None:
        """Register an engine type under the name used as ``engine`` in configs."""
        if name in self._classes:
            logger.warning("Overwriting existing engine type registration: %s", name)
        self._classes[name] = engine_class

    def register(self, engine_id: str, config: BaseEngineConfig | dict[str, Any]) -> SearchEngine:
        """Build an engine from *config* and register it under *engine_id*.

        Args:
            engine_id: Id callers use to look the engine up.
            config: A typed engine config, or a mapping with an ``engine`` key.

        Returns:
            The configured (not yet initialized) engine.

        Raises:
            ConfigurationError: If the configuration is invalid or its engine
                type is not registered.
        """
        if not isinstance(config, BaseEngineConfig):
            try:
                config = engine_config_adapter.validate_python(config)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid configuration for engine '{engine_id}': {e}") from e

        engine_type = config.engine  # type: ignore[attr-defined]
        engine_class = self._classes.get(engine_type)
        if engine_class is None:
            raise ConfigurationError(
                f"No engine type registered with name '{engine_type}'. "
                f"Available types: {list(self._classes.keys())}"
            )

        if engine_id in self._instances:
            logger.warning("Overwriting existing engine registration: %s", engine_id)
        engine = engine_class(config, engine_id=engine_id)
        self._instances[engine_id] = engine
        logger.info("Registered engine '%s' (%s)", engine_id, engine_type)
        return engine

    def get(self, engine_id: str) -> SearchEngine:
        """Get a registered engine by id.

        Raises:
            ConfigurationError: If no engine is registered under *engine_id*.
        """
        try:
            return self._instances[engine_id]
        except KeyError:
            raise ConfigurationError(
                f"No engine registered with id '{engine_id}'. Registered: {self.engine_ids}"
            ) from None

    def reset(self) -> None:
        """Forget every engine registration (engine types are kept)."""
        self._instances.clear()

    async def initialize_all(self) -> None:
        """Open the HTTP client of every registered engine."""
        for engine in self._instances.values():
            await engine.initialize()

    async def shutdown_all(self) -> None:
        """Close every engine's HTTP client."""
        for engine_id, engine in self._instances.items():
            try:
                await engine.shutdown()
            except Exception:
                logger.warning("Error shutting down engine: %s", engine_id, exc_info=True)

    @property
    def engine_ids(self) -> list[str]:
        """Ids of all registered engines."""
        return list(self._instances.keys())

    @property
    def engine_types(self) -> list[str]:
        """Names of all registered engine types."""
        return list(self._classes.keys())
