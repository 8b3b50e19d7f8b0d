"""Structured logging configuration using structlog.

Backend credentials travel as query parameters (EBSCO profile/password,
WorldCat wskey, JournalTOCS registered email), so anything that logs a
request URL or a config mapping goes through the redaction helpers here.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

if TYPE_CHECKING:
    from bibsearch.config.settings import ObservabilitySettings

SECRET_KEYS = frozenset(
    {
        "prof",
        "pwd",
        "wskey",
        "user",
        "profile_id",
        "profile_password",
        "api_key",
        "registered_email",
    }
)

REDACTED = "[REDACTED]"


def redact_url(url: str) -> str:
    """Return *url* with credential query parameters masked."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = [(k, REDACTED if k in SECRET_KEYS else v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    return urlunsplit(parts._replace(query=urlencode(pairs, safe="[]")))


# Name of the root handler installed by setup_logging.
LOG_HANDLER_NAME = "bibsearch"

_URL_IN_TEXT = re.compile(r"https?://[^\s'\"<>]+")


def _redact_text(text: str) -> str:
    return _URL_IN_TEXT.sub(lambda m: redact_url(m.group(0)), text)


def redact_secrets(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """structlog processor: mask credential keys and credential-bearing URLs.

    Also applied to records from stdlib loggers, whose rendered message
    arrives as ``event``.
    """
    for key, value in list(event_dict.items()):
        if key in SECRET_KEYS:
            event_dict[key] = REDACTED
        elif key in ("event", "url", "api_url") and isinstance(value, str):
            event_dict[key] = _redact_text(value)
    return event_dict


def setup_logging(settings: ObservabilitySettings | None = None) -> None:
    """Configure structured logging for bibsearch.

    bibsearch modules log through stdlib ``logging``; their records are
    rendered by the same structlog processor chain as structlog events,
    so ``redact_secrets`` sees both.

    Args:
        settings: Observability settings. Uses defaults if None.
    """
    log_level = getattr(settings, "log_level", "info").upper() if settings else "INFO"
    log_format = getattr(settings, "log_format", "json") if settings else "json"

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    render: list = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if log_format == "console":
        render.append(structlog.dev.ConsoleRenderer())
    else:
        render += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(LOG_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=render,
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == LOG_HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level, logging.INFO))
