"""Assemble a coordinator from environment configuration."""

from __future__ import annotations

import typing as typ

from .config import AuthConfig
from .coordinator import AuthenticationCoordinator
from .providers import default_providers
from .storage import KeyringTokenStore

if typ.TYPE_CHECKING:
    import httpx

    from ghaction.common.clock import Clock

    from .storage import TokenStore


def create_coordinator(
    config: AuthConfig | None = None,
    store: TokenStore | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> AuthenticationCoordinator:
    """Build a coordinator wired with the default provider chain.

    Parameters
    ----------
    config
        Provider configuration; read with :meth:`AuthConfig.from_env` when
        omitted.
    store
        Token store; a :class:`KeyringTokenStore` under
        ``config.keyring_service`` when omitted.
    http_client
        Optional client shared by the OAuth and validation requests.
    clock
        Optional time source, mainly for tests.

    Raises
    ------
    AuthConfigError
        If the environment holds invalid configuration.

    """
    resolved_config = config or AuthConfig.from_env()
    resolved_store = store or KeyringTokenStore(resolved_config.keyring_service)
    return AuthenticationCoordinator(
        default_providers(
            resolved_config, resolved_store, http_client=http_client, clock=clock
        ),
        clock=clock,
    )
