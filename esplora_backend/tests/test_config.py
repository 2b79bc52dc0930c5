"""
Tests for settings loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from esplora_backend.config import (
    DEFAULT_BLOCKCHAIR_API_ENDPOINT,
    DEFAULT_ESPLORA_API_ENDPOINT,
    Settings,
    get_settings,
    settings_from_plugin_options,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate from the developer's environment and any .env file."""
    for var in (
        "ESPLORA_API_ENDPOINT",
        "BLOCKCHAIR_API_ENDPOINT",
        "ESPLORA_CAINFO",
        "ESPLORA_VERBOSE",
        "LOG_LEVEL",
        "REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    settings = get_settings()
    assert settings.esplora_api_endpoint == DEFAULT_ESPLORA_API_ENDPOINT
    assert settings.blockchair_api_endpoint == DEFAULT_BLOCKCHAIR_API_ENDPOINT
    assert settings.esplora_cainfo is None
    assert settings.esplora_verbose == 0
    assert settings.verbose is False


def test_trailing_slash_is_stripped() -> None:
    settings = Settings(esplora_api_endpoint="https://mempool.space/api/")
    assert settings.esplora_api_endpoint == "https://mempool.space/api"


def test_endpoint_must_be_http_url() -> None:
    with pytest.raises(ValidationError, match="http"):
        Settings(esplora_api_endpoint="mempool.space/api")


def test_negative_verbose_fails() -> None:
    with pytest.raises(ValidationError):
        Settings(esplora_verbose=-1)


def test_settings_are_frozen() -> None:
    settings = get_settings()
    with pytest.raises(ValidationError):
        settings.esplora_verbose = 2  # type: ignore[misc]


def test_environment_is_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ESPLORA_API_ENDPOINT", "http://localhost:3002/api")
    monkeypatch.setenv("ESPLORA_VERBOSE", "1")
    settings = get_settings()
    assert settings.esplora_api_endpoint == "http://localhost:3002/api"
    assert settings.verbose is True


def test_overrides_win_and_none_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ESPLORA_API_ENDPOINT", "http://localhost:3002/api")
    settings = get_settings(esplora_api_endpoint=None, blockchair_api_endpoint="http://bc.local")
    assert settings.esplora_api_endpoint == "http://localhost:3002/api"
    assert settings.blockchair_api_endpoint == "http://bc.local"


def test_plugin_options() -> None:
    settings = settings_from_plugin_options(
        {
            "esplora-api-endpoint": "https://blockstream.info/testnet/api",
            "esplora-cainfo": "/etc/ssl/certs/ca-certificates.crt",
            "esplora-verbose": 1,
        }
    )
    assert settings.esplora_api_endpoint == "https://blockstream.info/testnet/api"
    assert settings.blockchair_api_endpoint == DEFAULT_BLOCKCHAIR_API_ENDPOINT
    assert settings.esplora_cainfo == Path("/etc/ssl/certs/ca-certificates.crt")
    assert settings.esplora_verbose == 1


def test_plugin_options_empty_cainfo_is_none() -> None:
    settings = settings_from_plugin_options({"esplora-cainfo": ""})
    assert settings.esplora_cainfo is None


def test_plugin_options_ignore_unknown() -> None:
    settings = settings_from_plugin_options({"network": "bitcoin"})
    assert settings.esplora_api_endpoint == DEFAULT_ESPLORA_API_ENDPOINT
