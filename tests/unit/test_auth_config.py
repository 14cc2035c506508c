"""Unit tests for authentication configuration and wiring."""

from __future__ import annotations

import pytest

from ghaction.auth import (
    AuthConfig,
    AuthConfigError,
    MemoryTokenStore,
    create_coordinator,
)
from ghaction.auth.config import PLACEHOLDER_CLIENT_ID

_VARIABLES = (
    "GHACTIONTRIGGER_CLIENT_ID",
    "GHACTIONTRIGGER_SCOPE",
    "GHACTIONTRIGGER_TOKEN_ENV",
    "GHACTIONTRIGGER_OAUTH_URL",
    "GHACTIONTRIGGER_API_URL",
    "GHACTIONTRIGGER_AUTH_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove configuration variables inherited from the shell."""
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    """Without overrides the placeholder app and public GitHub are used."""
    config = AuthConfig.from_env()

    assert config == AuthConfig()
    assert not config.has_client_id
    assert config.client_id == PLACEHOLDER_CLIENT_ID
    assert config.scope == "repo workflow"
    assert config.device_code_url == "https://github.com/login/device/code"
    assert config.token_url == "https://github.com/login/oauth/access_token"


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every setting can be supplied through the environment."""
    monkeypatch.setenv("GHACTIONTRIGGER_CLIENT_ID", "Iv1.real")
    monkeypatch.setenv("GHACTIONTRIGGER_SCOPE", "workflow")
    monkeypatch.setenv("GHACTIONTRIGGER_TOKEN_ENV", "GH_TOKEN")
    monkeypatch.setenv("GHACTIONTRIGGER_OAUTH_URL", "https://ghe.example/")
    monkeypatch.setenv("GHACTIONTRIGGER_API_URL", "https://ghe.example/api/v3")
    monkeypatch.setenv("GHACTIONTRIGGER_AUTH_TIMEOUT_S", "5")

    config = AuthConfig.from_env()

    assert config.has_client_id
    assert config.scope == "workflow"
    assert config.token_env_var == "GH_TOKEN"
    assert config.device_code_url == "https://ghe.example/login/device/code"
    assert config.api_url == "https://ghe.example/api/v3"
    assert config.timeout_s == 5.0


def test_blank_override_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set-but-blank variables are configuration mistakes."""
    monkeypatch.setenv("GHACTIONTRIGGER_CLIENT_ID", "  ")

    with pytest.raises(AuthConfigError, match="GHACTIONTRIGGER_CLIENT_ID"):
        AuthConfig.from_env()


@pytest.mark.parametrize("raw", ["soon", "0", "-1"])
def test_invalid_timeout(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    """Timeouts must be positive numbers."""
    monkeypatch.setenv("GHACTIONTRIGGER_AUTH_TIMEOUT_S", raw)

    with pytest.raises(AuthConfigError):
        AuthConfig.from_env()


@pytest.mark.asyncio
async def test_create_coordinator_honours_token_variable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The environment provider reads the configured variable."""
    monkeypatch.setenv("GH_TOKEN", "ghp_from_gh_token")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    config = AuthConfig(token_env_var="GH_TOKEN")

    coordinator = create_coordinator(config, MemoryTokenStore())
    status = await coordinator.status()

    assert [p.provider_identifier for p in coordinator.providers] == [
        "environment",
        "device-flow",
        "pat",
    ]
    assert status.provider == "environment"
    assert (await coordinator.get_credentials()).access_token == "ghp_from_gh_token"
