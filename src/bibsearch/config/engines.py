"""Engine configuration — Typed, validated per-backend settings.

Each backend has its own model with named fields and documented defaults.
Unknown keys are rejected, and credentials are held as ``SecretStr`` so
they never show up in reprs or logs.  The ``engine`` field selects the
engine type when configuration comes from YAML or environment variables.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, TypeAdapter, field_validator


class BaseEngineConfig(BaseModel):
    """Settings shared by every engine."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = Field(description="Backend endpoint")
    timeout: float = Field(default=10.0, gt=0, description="Connect/send/receive timeout in seconds")
    max_per_page: int = Field(default=100, gt=0, description="Largest page size sent to the backend")


class EbscoHostConfig(BaseEngineConfig):
    """EBSCOhost Integration Toolkit (EIT) search service."""

    engine: Literal["ebsco_host"] = "ebsco_host"
    base_url: str = Field(
        default="http://eit.ebscohost.com/Services/SearchService/rest",
        description="EIT REST endpoint",
    )
    timeout: float = Field(default=4.5, gt=0, description="Connect/send/receive timeout in seconds")
    profile_id: str = Field(min_length=1, description="EIT profile id")
    profile_password: SecretStr = Field(description="EIT profile password")
    databases: frozenset[str] = Field(description="Short names of the databases to search")

    @field_validator("databases")
    @classmethod
    def _require_databases(cls, v: frozenset[str]) -> frozenset[str]:
        if not v:
            raise ValueError("at least one database is required")
        return v


class WorldcatSruDcConfig(BaseEngineConfig):
    """WorldCat Search API, SRU interface with Dublin Core records."""

    engine: Literal["worldcat_sru_dc"] = "worldcat_sru_dc"
    base_url: str = Field(
        default="http://www.worldcat.org/webservices/catalog/search/sru",
        description="SRU endpoint",
    )
    api_key: SecretStr = Field(description="WorldCat Search API key (wskey)")
    auth: bool = Field(default=False, description="Request 'servicelevel=full' by default")


class JournalTocsConfig(BaseEngineConfig):
    """JournalTOCS API, latest table of contents by ISSN."""

    engine: Literal["journal_tocs"] = "journal_tocs"
    base_url: str = Field(
        default="http://www.journaltocs.ac.uk/api/journals/",
        description="Journals API endpoint",
    )
    registered_email: SecretStr = Field(description="Email address registered with JournalTOCS")


EngineConfig = Annotated[
    EbscoHostConfig | WorldcatSruDcConfig | JournalTocsConfig,
    Field(discriminator="engine"),
]

engine_config_adapter: TypeAdapter[Any] = TypeAdapter(EngineConfig)
