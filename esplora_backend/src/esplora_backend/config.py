"""
Configuration management using pydantic-settings.

Settings are built once at startup (from lightningd plugin options, CLI options
or the environment) and are frozen afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ESPLORA_API_ENDPOINT = "https://blockstream.info/api"
DEFAULT_BLOCKCHAIR_API_ENDPOINT = "https://api.blockchair.com/bitcoin"

# lightningd option name -> Settings field
PLUGIN_OPTIONS: dict[str, str] = {
    "esplora-api-endpoint": "esplora_api_endpoint",
    "blockchair-api-endpoint": "blockchair_api_endpoint",
    "esplora-cainfo": "esplora_cainfo",
    "esplora-verbose": "esplora_verbose",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, frozen=True
    )

    # Esplora instance, including the "/api" suffix
    esplora_api_endpoint: str = DEFAULT_ESPLORA_API_ENDPOINT
    # Only used to fetch raw blocks, which Esplora does not serve
    blockchair_api_endpoint: str = DEFAULT_BLOCKCHAIR_API_ENDPOINT
    esplora_cainfo: Path | None = Field(
        default=None, description="Path to a Certificate Authority (CA) bundle"
    )
    esplora_verbose: int = Field(default=0, ge=0, description="Echo HTTP traffic when > 0")

    log_level: str = "INFO"
    request_timeout: float = Field(default=60.0, gt=0)

    @field_validator("esplora_api_endpoint", "blockchair_api_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Endpoint must be an http(s) URL: {v!r}")
        return v.rstrip("/")

    @field_validator("esplora_cainfo", mode="before")
    @classmethod
    def empty_cainfo_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def verbose(self) -> bool:
        return self.esplora_verbose > 0


def get_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, with explicit overrides winning."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def settings_from_plugin_options(options: dict[str, Any]) -> Settings:
    """Build settings from the `options` object of lightningd's init call."""
    overrides = {
        field: options.get(name) for name, field in PLUGIN_OPTIONS.items() if name in options
    }
    return get_settings(**overrides)
