"""Settings — Engines, federated search and logging for bibsearch.

Values are resolved highest first:
  1. A YAML file passed to ``Settings.from_yaml`` (or ``bibsearch --config``)
  2. ``BIBSEARCH_*`` environment variables and ``.env``
  3. Field defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bibsearch.config.engines import EngineConfig


class SearchSettings(BaseModel):
    """How ``FederatedSearcher`` picks and schedules engines."""

    max_concurrent_engines: int = Field(default=10, gt=0, description="Max engines queried at once")
    default_engines: list[str] = Field(
        default_factory=list,
        description="Engine ids searched when none are named (empty means all)",
    )


class ObservabilitySettings(BaseModel):
    log_level: str = Field(default="info", description="debug, info, warning or error")
    log_format: str = Field(default="json", description="json or console")


class Settings(BaseSettings):
    """bibsearch configuration root.

    Engines are keyed by the id callers use; the ``engine`` key of each
    entry picks the backend type.  Nested values use ``__`` in env vars:

        BIBSEARCH_ENGINES__WORLDCAT__ENGINE=worldcat_sru_dc
        BIBSEARCH_ENGINES__WORLDCAT__API_KEY=...
        BIBSEARCH_SEARCH__DEFAULT_ENGINES='["worldcat"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="BIBSEARCH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    engines: dict[str, EngineConfig] = Field(default_factory=dict, description="Engine id -> engine configuration")
    search: SearchSettings = Field(default_factory=SearchSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @model_validator(mode="after")
    def _default_engines_are_configured(self) -> Settings:
        unknown = [engine_id for engine_id in self.search.default_engines if engine_id not in self.engines]
        if unknown:
            raise ValueError(f"search.default_engines names unconfigured engines: {unknown}")
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Build settings from a YAML file, layered over the environment.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the document is not a mapping.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        data: Any = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a mapping at the top level, got {type(data).__name__}")
        return cls(**data)
