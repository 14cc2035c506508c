"""Built-in credential providers.

Three sources are supported, tried in this order by the coordinator:

* :class:`EnvironmentProvider` reads ``GITHUB_TOKEN`` (CI/CD).
* :class:`DeviceFlowProvider` holds a token obtained through the OAuth device
  flow and is the default interactive provider.
* :class:`PersonalAccessTokenProvider` holds a user-supplied PAT.
"""

from __future__ import annotations

import contextlib
import os
import typing as typ

import httpx

from ghaction.common.clock import Clock, SystemClock
from ghaction.logging import get_logger, log_info, log_warning

from .config import AuthConfig
from .device_flow import DeviceFlowEngine
from .errors import (
    AuthNetworkError,
    CannotClearEnvironmentCredentialsError,
    EmptyTokenError,
    InteractiveAuthNotSupportedError,
    InvalidTokenError,
    NoCredentialsAvailableError,
    TokenExpiredError,
)
from .models import CredentialRecord, TokenKind
from .protocol import ProviderId
from .storage import OAUTH_TOKEN_KEY, PAT_TOKEN_KEY

if typ.TYPE_CHECKING:
    import asyncio
    import collections.abc as cabc

    from .protocol import CredentialProvider, DeviceFlowObserver
    from .storage import TokenStore

logger = get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"
_HTTP_OK = 200


class _HTTPClientScope:
    """Lend an injected client, or open a short-lived one per operation."""

    def __init__(self, http_client: httpx.AsyncClient | None, timeout_s: float) -> None:
        self._client = http_client
        self._timeout_s = timeout_s

    @contextlib.asynccontextmanager
    async def open(self) -> cabc.AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout_s) as client:
            yield client


class EnvironmentProvider:
    """Read a token from an environment variable.

    The token is never stored, so it cannot be cleared and has no interactive
    flow.
    """

    provider_identifier: str = ProviderId.ENVIRONMENT.value
    priority: int = 0

    def __init__(
        self,
        variable: str = "GITHUB_TOKEN",
        *,
        environ: cabc.Mapping[str, str] | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Bind to ``variable`` in ``environ`` (``os.environ`` by default)."""
        self._variable = variable
        self._environ = environ if environ is not None else os.environ
        self._clock = clock or SystemClock()

    @property
    def variable(self) -> str:
        """Name of the environment variable consulted."""
        return self._variable

    async def can_provide_credentials(self) -> bool:
        """Return ``True`` when the variable is set, even if blank."""
        return self._variable in self._environ

    async def get_credentials(self) -> CredentialRecord:
        """Return a non-expiring ``environment`` record for the variable."""
        token = self._environ.get(self._variable)
        if token is None:
            raise NoCredentialsAvailableError.for_provider(self.provider_identifier)
        if not token.strip():
            raise EmptyTokenError(self._variable)
        return CredentialRecord(
            access_token=token.strip(),
            token_kind=TokenKind.ENVIRONMENT,
            created_at=self._clock.now(),
        )

    async def authenticate(
        self, observer: DeviceFlowObserver | None = None
    ) -> CredentialRecord:
        """Environment tokens cannot be obtained interactively."""
        del observer
        raise InteractiveAuthNotSupportedError(self.provider_identifier)

    async def clear_credentials(self) -> None:
        """Environment variables are not ours to clear."""
        raise CannotClearEnvironmentCredentialsError(self._variable)


class DeviceFlowProvider:
    """Obtain and keep a token through the OAuth device flow.

    Parameters
    ----------
    config
        OAuth client id, scopes and endpoints.
    store
        Token store holding the OAuth record under ``github-oauth-token``.
    http_client
        Optional shared client; otherwise one is opened per flow.
    clock
        Time source for polling and expiry checks.

    """

    provider_identifier: str = ProviderId.DEVICE_FLOW.value
    priority: int = 1
    storage_key: str = OAUTH_TOKEN_KEY

    def __init__(
        self,
        config: AuthConfig,
        store: TokenStore,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Bind the provider to its configuration and store."""
        self._config = config
        self._store = store
        self._http = _HTTPClientScope(http_client, config.timeout_s)
        self._clock = clock or SystemClock()

    async def can_provide_credentials(self) -> bool:
        """Return ``True`` when an OAuth record is stored."""
        return await self._store.exists(self.storage_key)

    async def get_credentials(self) -> CredentialRecord:
        """Return the stored OAuth record."""
        record = await self._store.retrieve(self.storage_key)
        if record is None:
            raise NoCredentialsAvailableError.for_provider(self.provider_identifier)
        if record.is_expired(self._clock.now()):
            raise TokenExpiredError
        return record

    async def authenticate(
        self,
        observer: DeviceFlowObserver | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CredentialRecord:
        """Run the device flow, store the token and return it.

        ``observer`` receives the user code before polling starts and a
        completion notice at the end, ``success=False`` when the flow fails.
        """
        async with self._http.open() as client:
            engine = DeviceFlowEngine(self._config, client, clock=self._clock)
            try:
                record = await engine.run(observer, cancel_event=cancel_event)
            except BaseException:
                log_warning(logger, "Device flow ended in state %s", engine.state)
                if observer is not None:
                    observer.on_complete(success=False)
                raise

        await self._store.save(record, self.storage_key)
        log_info(logger, "Device flow succeeded after %d polls", engine.poll_count)
        if observer is not None:
            observer.on_complete(success=True)
        return record

    async def clear_credentials(self) -> None:
        """Delete the stored OAuth record, if any."""
        await self._store.delete(self.storage_key)


class PersonalAccessTokenProvider:
    """Keep a personal access token supplied by the user.

    Classic PATs carry no expiry metadata, so stored records are returned
    without an expiry check.
    """

    provider_identifier: str = ProviderId.PAT.value
    priority: int = 2
    storage_key: str = PAT_TOKEN_KEY

    def __init__(
        self,
        store: TokenStore,
        *,
        config: AuthConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Bind the provider to its store and validation endpoint."""
        self._store = store
        self._config = config or AuthConfig()
        self._http = _HTTPClientScope(http_client, self._config.timeout_s)
        self._clock = clock or SystemClock()

    async def can_provide_credentials(self) -> bool:
        """Return ``True`` when a PAT record is stored."""
        return await self._store.exists(self.storage_key)

    async def get_credentials(self) -> CredentialRecord:
        """Return the stored PAT record."""
        record = await self._store.retrieve(self.storage_key)
        if record is None:
            raise NoCredentialsAvailableError.for_provider(self.provider_identifier)
        return record

    async def authenticate(
        self, observer: DeviceFlowObserver | None = None
    ) -> CredentialRecord:
        """PATs are created outside this tool; use :meth:`store_token`."""
        del observer
        raise InteractiveAuthNotSupportedError(self.provider_identifier)

    async def store_token(self, token: str) -> CredentialRecord:
        """Validate ``token`` against ``GET /user`` and store it.

        Raises
        ------
        EmptyTokenError
            If ``token`` is blank.
        InvalidTokenError
            If GitHub does not answer ``200`` for the token.
        AuthNetworkError
            If the validation request fails below HTTP.

        """
        token = token.strip()
        if not token:
            raise EmptyTokenError
        await self._validate(token)

        record = CredentialRecord(
            access_token=token,
            token_kind=TokenKind.PERSONAL_ACCESS_TOKEN,
            created_at=self._clock.now(),
        )
        await self._store.save(record, self.storage_key)
        log_info(logger, "Stored validated personal access token")
        return record

    async def _validate(self, token: str) -> None:
        url = f"{self._config.api_url.rstrip('/')}/user"
        async with self._http.open() as client:
            try:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/vnd.github+json",
                        "X-GitHub-Api-Version": GITHUB_API_VERSION,
                    },
                )
            except httpx.RequestError as exc:
                raise AuthNetworkError.from_exception(exc) from exc
        if response.status_code != _HTTP_OK:
            raise InvalidTokenError(response.status_code)

    async def clear_credentials(self) -> None:
        """Delete the stored PAT record, if any."""
        await self._store.delete(self.storage_key)


def default_providers(
    config: AuthConfig,
    store: TokenStore,
    *,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> list[CredentialProvider]:
    """Return the built-in providers in priority order."""
    return [
        EnvironmentProvider(config.token_env_var, clock=clock),
        DeviceFlowProvider(config, store, http_client=http_client, clock=clock),
        PersonalAccessTokenProvider(
            store, config=config, http_client=http_client, clock=clock
        ),
    ]
