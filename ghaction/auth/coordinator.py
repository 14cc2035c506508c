"""Resolve GitHub credentials from an ordered chain of providers."""

from __future__ import annotations

import asyncio
import typing as typ

from ghaction.common.clock import Clock, SystemClock
from ghaction.logging import get_logger, log_debug, log_info, log_warning

from .errors import (
    AuthenticationError,
    CannotClearEnvironmentCredentialsError,
    NoCredentialsAvailableError,
    NoInteractiveProviderError,
    ProviderNotFoundError,
)
from .models import AuthenticationStatus
from .protocol import ProviderId
from .providers import DeviceFlowProvider

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import CredentialRecord
    from .protocol import CredentialProvider, DeviceFlowObserver
    from .providers import PersonalAccessTokenProvider

logger = get_logger(__name__)


class AuthenticationCoordinator:
    """Single entry point for obtaining GitHub credentials.

    Providers are sorted by ascending ``priority`` once, at construction. The
    first credential resolved is cached in a single slot; the cache is only
    ever replaced or discarded, and every read-then-write on it happens under
    an :class:`asyncio.Lock`.

    Parameters
    ----------
    providers
        Credential sources; order is irrelevant, ``priority`` decides.
    clock
        Time source for cache expiry checks.

    Examples
    --------
    >>> coordinator = AuthenticationCoordinator(default_providers(config, store))
    >>> record = await coordinator.get_credentials()

    """

    def __init__(
        self,
        providers: cabc.Iterable[CredentialProvider],
        *,
        clock: Clock | None = None,
    ) -> None:
        """Sort ``providers`` by priority and start with an empty cache."""
        self._providers: tuple[CredentialProvider, ...] = tuple(
            sorted(providers, key=lambda provider: provider.priority)
        )
        self._clock = clock or SystemClock()
        self._cached: CredentialRecord | None = None
        self._lock = asyncio.Lock()

    @property
    def providers(self) -> tuple[CredentialProvider, ...]:
        """Providers in resolution order."""
        return self._providers

    @property
    def device_flow_provider(self) -> DeviceFlowProvider | None:
        """The registered device-flow provider, if any."""
        return typ.cast(
            "DeviceFlowProvider | None", self.provider(ProviderId.DEVICE_FLOW)
        )

    @property
    def pat_provider(self) -> PersonalAccessTokenProvider | None:
        """The registered personal-access-token provider, if any."""
        return typ.cast(
            "PersonalAccessTokenProvider | None", self.provider(ProviderId.PAT)
        )

    def provider(self, identifier: str) -> CredentialProvider | None:
        """Return the provider registered under ``identifier``."""
        for candidate in self._providers:
            if candidate.provider_identifier == identifier:
                return candidate
        return None

    async def _resolve(self) -> tuple[CredentialProvider, CredentialRecord] | None:
        """Return the first provider able to supply a non-expired record."""
        now = self._clock.now()
        for provider in self._providers:
            if not await provider.can_provide_credentials():
                continue
            try:
                record = await provider.get_credentials()
            except AuthenticationError as exc:
                log_debug(
                    logger,
                    "Provider %s could not supply credentials: %s",
                    provider.provider_identifier,
                    type(exc).__name__,
                )
                continue
            if record.is_expired(now):
                log_debug(
                    logger,
                    "Provider %s returned an expired credential",
                    provider.provider_identifier,
                )
                continue
            return provider, record
        return None

    async def get_credentials(self) -> CredentialRecord:
        """Return the cached credential or resolve a fresh one.

        Raises
        ------
        NoCredentialsAvailableError
            If no provider yields a usable credential.

        """
        async with self._lock:
            cached = self._cached
            if cached is not None and not cached.is_expired(self._clock.now()):
                return cached

            resolved = await self._resolve()
            if resolved is None:
                self._cached = None
                raise NoCredentialsAvailableError
            provider, record = resolved
            log_debug(
                logger, "Resolved credentials via %s", provider.provider_identifier
            )
            self._cached = record
            return record

    async def authenticate(
        self,
        provider_identifier: str | None = None,
        *,
        observer: DeviceFlowObserver | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> CredentialRecord:
        """Authenticate interactively and cache the result.

        The interactive flow runs outside the cache lock, so concurrent
        :meth:`get_credentials` calls keep resolving from other providers
        while the user completes it.

        Parameters
        ----------
        provider_identifier
            Provider to use; defaults to the device-flow provider.
        observer
            Receives the user code and completion notifications.
        cancel_event
            Aborts the device flow when set; other providers ignore it.

        Raises
        ------
        ProviderNotFoundError
            If ``provider_identifier`` names no registered provider.
        NoInteractiveProviderError
            If no identifier is given and no device-flow provider exists.
        asyncio.CancelledError
            If ``cancel_event`` is set while the device flow is polling.

        """
        if provider_identifier is not None:
            provider = self.provider(provider_identifier)
            if provider is None:
                raise ProviderNotFoundError(provider_identifier)
        else:
            provider = self.provider(ProviderId.DEVICE_FLOW)
            if provider is None:
                raise NoInteractiveProviderError

        if isinstance(provider, DeviceFlowProvider):
            record = await provider.authenticate(observer, cancel_event=cancel_event)
        else:
            record = await provider.authenticate(observer)
        async with self._lock:
            self._cached = record
        log_info(logger, "Authenticated via %s", provider.provider_identifier)
        return record

    async def logout(self) -> None:
        """Discard the cache and clear every provider's stored credential.

        Every provider is attempted. The environment provider's refusal is
        expected and ignored; the first other failure is re-raised once all
        providers have been attempted.
        """
        first_failure: AuthenticationError | None = None
        async with self._lock:
            self._cached = None
            for provider in self._providers:
                try:
                    await provider.clear_credentials()
                except CannotClearEnvironmentCredentialsError:
                    continue
                except AuthenticationError as exc:
                    log_warning(
                        logger,
                        "Provider %s failed to clear credentials: %s",
                        provider.provider_identifier,
                        exc,
                    )
                    if first_failure is None:
                        first_failure = exc
        if first_failure is not None:
            raise first_failure
        log_info(logger, "Cleared stored credentials")

    async def status(self) -> AuthenticationStatus:
        """Report which provider would currently supply credentials.

        The scan mirrors :meth:`get_credentials` but never reads or writes the
        cache.
        """
        resolved = await self._resolve()
        if resolved is None:
            return AuthenticationStatus.unauthenticated()
        provider, record = resolved
        return AuthenticationStatus.from_record(provider.provider_identifier, record)

    async def invalidate(self) -> None:
        """Drop the cached credential so the next call rescans providers."""
        async with self._lock:
            self._cached = None
