"""Configuration for credential providers."""

from __future__ import annotations

import dataclasses
import os

from .errors import AuthConfigError
from .storage import DEFAULT_SERVICE_NAME

# Registered OAuth apps supply their own id through GHACTIONTRIGGER_CLIENT_ID.
PLACEHOLDER_CLIENT_ID = "YOUR_GITHUB_OAUTH_APP_CLIENT_ID"

_DEFAULT_SCOPE = "repo workflow"
_DEFAULT_TOKEN_ENV_VAR = "GITHUB_TOKEN"
_DEFAULT_OAUTH_URL = "https://github.com"
_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 30.0


@dataclasses.dataclass(frozen=True, slots=True)
class AuthConfig:
    """Settings shared by the credential providers.

    Attributes
    ----------
    client_id
        OAuth app client id used by the device flow.
    scope
        Space-separated scopes requested during the device flow.
    token_env_var
        Environment variable read by the environment provider.
    oauth_url
        Base URL hosting ``/login/device/code`` and
        ``/login/oauth/access_token``.
    api_url
        REST API base URL, used to validate personal access tokens.
    keyring_service
        Keyring service name for stored tokens.
    timeout_s
        Per-request timeout for OAuth and validation requests.

    """

    client_id: str = PLACEHOLDER_CLIENT_ID
    scope: str = _DEFAULT_SCOPE
    token_env_var: str = _DEFAULT_TOKEN_ENV_VAR
    oauth_url: str = _DEFAULT_OAUTH_URL
    api_url: str = _DEFAULT_API_URL
    keyring_service: str = DEFAULT_SERVICE_NAME
    timeout_s: float = _DEFAULT_TIMEOUT_S

    @property
    def device_code_url(self) -> str:
        """Endpoint that issues device and user codes."""
        return f"{self.oauth_url.rstrip('/')}/login/device/code"

    @property
    def token_url(self) -> str:
        """Endpoint polled for the access token."""
        return f"{self.oauth_url.rstrip('/')}/login/oauth/access_token"

    @property
    def has_client_id(self) -> bool:
        """``False`` while the placeholder client id is in use."""
        return self.client_id != PLACEHOLDER_CLIENT_ID

    @staticmethod
    def _optional_env(name: str) -> str | None:
        raw = os.environ.get(name)
        if raw is None:
            return None
        value = raw.strip()
        if not value:
            raise AuthConfigError.blank(name)
        return value

    @staticmethod
    def _parse_timeout_from_env() -> float:
        raw = os.environ.get("GHACTIONTRIGGER_AUTH_TIMEOUT_S")
        if raw is None:
            return _DEFAULT_TIMEOUT_S
        try:
            timeout = float(raw)
        except ValueError as exc:
            raise AuthConfigError.invalid_timeout(raw) from exc
        if timeout <= 0:
            raise AuthConfigError.invalid_timeout(raw)
        return timeout

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Build configuration from environment variables.

        Reads:

        - ``GHACTIONTRIGGER_CLIENT_ID``: OAuth client id override
        - ``GHACTIONTRIGGER_SCOPE``: device-flow scopes override
        - ``GHACTIONTRIGGER_TOKEN_ENV``: name of the token variable
          (default ``GITHUB_TOKEN``)
        - ``GHACTIONTRIGGER_OAUTH_URL`` / ``GHACTIONTRIGGER_API_URL``: GitHub
          Enterprise hosts
        - ``GHACTIONTRIGGER_AUTH_TIMEOUT_S``: positive request timeout

        Raises
        ------
        AuthConfigError
            If a variable is set to a blank or invalid value.

        """
        return cls(
            client_id=cls._optional_env("GHACTIONTRIGGER_CLIENT_ID")
            or PLACEHOLDER_CLIENT_ID,
            scope=cls._optional_env("GHACTIONTRIGGER_SCOPE") or _DEFAULT_SCOPE,
            token_env_var=cls._optional_env("GHACTIONTRIGGER_TOKEN_ENV")
            or _DEFAULT_TOKEN_ENV_VAR,
            oauth_url=cls._optional_env("GHACTIONTRIGGER_OAUTH_URL")
            or _DEFAULT_OAUTH_URL,
            api_url=cls._optional_env("GHACTIONTRIGGER_API_URL") or _DEFAULT_API_URL,
            timeout_s=cls._parse_timeout_from_env(),
        )
