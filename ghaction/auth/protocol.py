"""Interfaces for credential providers and device-flow observers."""

from __future__ import annotations

import enum
import typing as typ

if typ.TYPE_CHECKING:
    from .models import CredentialRecord


class ProviderId(enum.StrEnum):
    """Identifiers of the built-in providers."""

    ENVIRONMENT = "environment"
    DEVICE_FLOW = "device-flow"
    PAT = "pat"


@typ.runtime_checkable
class DeviceFlowObserver(typ.Protocol):
    """Receives the device-flow notifications a user interface must render."""

    def on_user_code(self, user_code: str, verification_uri: str) -> None:
        """Show ``user_code`` and where to enter it; called before polling."""
        ...

    def on_complete(self, *, success: bool) -> None:
        """Report that the flow finished."""
        ...


class CallbackObserver:
    """Adapt plain callables to :class:`DeviceFlowObserver`.

    Examples
    --------
    >>> observer = CallbackObserver(
    ...     on_user_code=lambda code, url: print(f"Enter {code} at {url}")
    ... )

    """

    def __init__(
        self,
        *,
        on_user_code: typ.Callable[[str, str], None] | None = None,
        on_complete: typ.Callable[[bool], None] | None = None,
    ) -> None:
        """Store the optional callbacks."""
        self._on_user_code = on_user_code
        self._on_complete = on_complete

    def on_user_code(self, user_code: str, verification_uri: str) -> None:
        """Forward to the ``on_user_code`` callable, if any."""
        if self._on_user_code is not None:
            self._on_user_code(user_code, verification_uri)

    def on_complete(self, *, success: bool) -> None:
        """Forward to the ``on_complete`` callable, if any."""
        if self._on_complete is not None:
            self._on_complete(success)


@typ.runtime_checkable
class CredentialProvider(typ.Protocol):
    """A source of GitHub credentials.

    Providers are ordered by ``priority`` (lower first) by the
    :class:`~ghaction.auth.coordinator.AuthenticationCoordinator`. They are
    matched structurally; no base class is required.

    Attributes
    ----------
    provider_identifier
        Stable name used for status reporting and explicit selection.
    priority
        Resolution order; lower values are tried first.

    """

    @property
    def provider_identifier(self) -> str:
        """Stable name of the provider."""
        ...

    @property
    def priority(self) -> int:
        """Resolution order, lower first."""
        ...

    async def can_provide_credentials(self) -> bool:
        """Return ``True`` if credentials are available without interaction.

        Must not prompt, write, or raise.
        """
        ...

    async def get_credentials(self) -> CredentialRecord:
        """Return the provider's credential.

        Raises
        ------
        NoCredentialsAvailableError
            If nothing is stored or exported.
        EmptyTokenError
            If the token source exists but is blank.
        TokenExpiredError
            If the stored credential has expired.

        """
        ...

    async def authenticate(
        self, observer: DeviceFlowObserver | None = None
    ) -> CredentialRecord:
        """Run an interactive flow and return the resulting credential.

        Raises
        ------
        InteractiveAuthNotSupportedError
            If the provider has no interactive flow.

        """
        ...

    async def clear_credentials(self) -> None:
        """Forget any stored credential.

        Raises
        ------
        CannotClearEnvironmentCredentialsError
            If the credential is not storage-backed.

        """
        ...
