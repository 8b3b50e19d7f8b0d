"""Shared test fixtures and configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock

import httpx
import pytest

from bibsearch.config.engines import EbscoHostConfig, JournalTocsConfig, WorldcatSruDcConfig
from bibsearch.config.settings import Settings
from bibsearch.observability.logging import LOG_HANDLER_NAME


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo setup_logging so its stream handler does not outlive the test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in [h for h in root.handlers if h.get_name() == LOG_HANDLER_NAME]:
        root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with two configured engines."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        engines={
            "ebsco": {
                "engine": "ebsco_host",
                "profile_id": "s1234567.main.eit",
                "profile_password": "secret-password",
                "databases": ["a9h", "awn"],
            },
            "worldcat": {"engine": "worldcat_sru_dc", "api_key": "secret-wskey"},
        },
    )


@pytest.fixture
def ebsco_config() -> EbscoHostConfig:
    return EbscoHostConfig(
        profile_id="s1234567.main.eit",
        profile_password="secret-password",
        databases=frozenset({"a9h", "awn"}),
    )


@pytest.fixture
def worldcat_config() -> WorldcatSruDcConfig:
    return WorldcatSruDcConfig(api_key="secret-wskey")


@pytest.fixture
def journal_tocs_config() -> JournalTocsConfig:
    return JournalTocsConfig(registered_email="librarian@example.edu")


@pytest.fixture
def mock_client() -> AsyncMock:
    """An ``httpx.AsyncClient`` stand-in; set ``mock_client.get`` per test."""
    return AsyncMock(spec=httpx.AsyncClient)


def _xml_response(body: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=body.encode("utf-8"),
        headers={"Content-Type": "text/xml; charset=utf-8"},
    )


@pytest.fixture
def xml_response() -> Callable[..., httpx.Response]:
    """Factory for real ``httpx.Response`` objects carrying an XML body."""
    return _xml_response
