"""Pydantic-based runtime settings for local decisioning.

Loads from environment variables prefixed with ``DECISIONING_`` (with optional
.env file). Invalid values fail fast at construction time.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class DecisioningMethod(str, Enum):
    server_side = "server-side"
    on_device = "on-device"
    hybrid = "hybrid"


class DecisioningSettings(BaseSettings):
    """All configuration for the decisioning engine, validated at startup."""

    model_config = {"env_prefix": "DECISIONING_", "env_file": ".env", "env_file_encoding": "utf-8"}

    # --- Identity ---
    client: str = Field(default="demo", min_length=1, description="Client code")
    organization_id: str = Field(default="", description="Organization identifier")

    # --- Mode ---
    decisioning_method: DecisioningMethod = Field(
        default=DecisioningMethod.on_device,
        description="'server-side' disables rule loading; 'on-device' and 'hybrid' enable it",
    )
    local_environment: str = Field(
        default="production",
        description="Artifact environment; empty disables local decisioning",
    )

    # --- Artifact ---
    artifact_base_url: str = Field(
        default="https://assets.adobetarget.com",
        description="Base URL the rule-set artifact is fetched from",
    )
    polling_interval_seconds: int = Field(
        default=300, ge=0, description="Requested artifact refresh interval"
    )
    supported_major_version: str = Field(
        default="1", description="Rule-set major version this engine understands"
    )

    # --- Transport ---
    connect_timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP connect timeout")
    read_timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP read timeout")

    # --- Geo ---
    geo_lookup_url: str = Field(
        default="https://assets.adobetarget.com/v1/geo",
        description="Endpoint resolving an IP address into geo fields",
    )

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Log level for CLI and MCP entrypoints")

    @field_validator("artifact_base_url", "geo_lookup_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard logging level, got {v}")
        return level

    @property
    def local_decisioning_enabled(self) -> bool:
        return bool(self.local_environment) and self.decisioning_method != DecisioningMethod.server_side

    @property
    def artifact_url(self) -> str:
        return (
            f"{self.artifact_base_url}/{self.client}/"
            f"{self.local_environment.lower()}/rules.json"
        )


@lru_cache(maxsize=1)
def get_settings() -> DecisioningSettings:
    """Return the singleton DecisioningSettings (cached after first call)."""
    return DecisioningSettings()
