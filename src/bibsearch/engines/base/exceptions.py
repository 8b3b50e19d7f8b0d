"""Engine-specific exceptions.

``search`` never raises these for backend trouble (failures are encoded in
the returned ``ResultSet``); ``get`` always does.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base exception for engine errors."""


class ConfigurationError(EngineError):
    """Raised when an engine id is unknown or engine configuration is invalid."""


class InvalidIdentifier(EngineError, ValueError):
    """Raised when ``get()`` receives an identifier of the wrong shape."""


class NotFound(EngineError):
    """Raised when ``get()`` resolves to zero backend records."""


class FetchError(EngineError):
    """Raised on transport failure, a backend error document or an unparseable payload.

    Args:
        message: Human-readable message, taken from the backend's error body
            when one is available.
        details: Extra diagnostics (redacted ``api_url``, HTTP ``status``, ...).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_error_info(self) -> dict[str, Any]:
        """Render as the ``ResultSet.error`` mapping."""
        return {"error_info": self.message, **self.details}
