"""Base engine interface — Abstract classes for bibliographic search connectors."""

from bibsearch.engines.base.engine import LookupResult, SearchEngine
from bibsearch.engines.base.registry import EngineRegistry

__all__ = ["EngineRegistry", "LookupResult", "SearchEngine"]
