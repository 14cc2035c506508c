"""Credential resolution for the GitHub API.

Credentials come from an ordered chain of providers: the ``GITHUB_TOKEN``
environment variable, a token obtained through the OAuth device flow, and a
stored personal access token. :class:`AuthenticationCoordinator` walks the
chain, caches the first usable credential and offers interactive login,
logout and status reporting.

Examples
--------
>>> from ghaction.auth import CallbackObserver, create_coordinator
>>> coordinator = create_coordinator()
>>> record = await coordinator.authenticate(
...     observer=CallbackObserver(
...         on_user_code=lambda code, url: print(f"Enter {code} at {url}")
...     )
... )

"""

from __future__ import annotations

from .config import AuthConfig
from .coordinator import AuthenticationCoordinator
from .device_flow import DeviceFlowEngine, DeviceFlowState
from .errors import (
    AccessDeniedError,
    AuthConfigError,
    AuthenticationError,
    AuthNetworkError,
    CannotClearEnvironmentCredentialsError,
    DeviceCodeExpiredError,
    DeviceCodeRequestFailedError,
    EmptyTokenError,
    InteractiveAuthNotSupportedError,
    InvalidTokenError,
    InvalidTokenResponseError,
    NoCredentialsAvailableError,
    NoInteractiveProviderError,
    ProviderNotFoundError,
    TokenExpiredError,
    TokenRequestFailedError,
    TokenStorageError,
)
from .factory import create_coordinator
from .models import AuthenticationStatus, CredentialRecord, TokenKind
from .protocol import (
    CallbackObserver,
    CredentialProvider,
    DeviceFlowObserver,
    ProviderId,
)
from .providers import (
    DeviceFlowProvider,
    EnvironmentProvider,
    PersonalAccessTokenProvider,
    default_providers,
)
from .storage import (
    OAUTH_TOKEN_KEY,
    PAT_TOKEN_KEY,
    KeyringTokenStore,
    MemoryTokenStore,
    TokenStore,
)

__all__ = [
    "OAUTH_TOKEN_KEY",
    "PAT_TOKEN_KEY",
    "AccessDeniedError",
    "AuthConfig",
    "AuthConfigError",
    "AuthNetworkError",
    "AuthenticationCoordinator",
    "AuthenticationError",
    "AuthenticationStatus",
    "CallbackObserver",
    "CannotClearEnvironmentCredentialsError",
    "CredentialProvider",
    "CredentialRecord",
    "DeviceCodeExpiredError",
    "DeviceCodeRequestFailedError",
    "DeviceFlowEngine",
    "DeviceFlowObserver",
    "DeviceFlowProvider",
    "DeviceFlowState",
    "EmptyTokenError",
    "EnvironmentProvider",
    "InteractiveAuthNotSupportedError",
    "InvalidTokenError",
    "InvalidTokenResponseError",
    "KeyringTokenStore",
    "MemoryTokenStore",
    "NoCredentialsAvailableError",
    "NoInteractiveProviderError",
    "PersonalAccessTokenProvider",
    "ProviderId",
    "ProviderNotFoundError",
    "TokenExpiredError",
    "TokenKind",
    "TokenRequestFailedError",
    "TokenStorageError",
    "TokenStore",
    "create_coordinator",
    "default_providers",
]
