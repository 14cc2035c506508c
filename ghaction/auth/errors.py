"""Errors raised while resolving or obtaining GitHub credentials."""

from __future__ import annotations


class AuthenticationError(RuntimeError):
    """Base class for every credential resolution failure.

    Catching this type is enough to handle any failure originating in
    :mod:`ghaction.auth`.
    """


class NoCredentialsAvailableError(AuthenticationError):
    """Raised when no provider can supply a usable credential."""

    def __init__(self, message: str = "No GitHub credentials are available") -> None:
        """Initialise with an optional override message."""
        super().__init__(message)

    @classmethod
    def for_provider(cls, provider: str) -> NoCredentialsAvailableError:
        """Return an error for a single provider with nothing stored."""
        return cls(f"Provider {provider!r} has no stored credentials")


class ProviderNotFoundError(AuthenticationError):
    """Raised when an explicitly requested provider is not registered."""

    def __init__(self, provider: str) -> None:
        """Record the identifier that failed to resolve."""
        self.provider = provider
        super().__init__(f"Authentication provider {provider!r} is not registered")


class NoInteractiveProviderError(AuthenticationError):
    """Raised when interactive login is requested without a device-flow provider."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("No interactive authentication provider is available")


class InteractiveAuthNotSupportedError(AuthenticationError):
    """Raised by providers that cannot run an interactive flow."""

    def __init__(self, provider: str) -> None:
        """Record the provider that refused."""
        self.provider = provider
        super().__init__(
            f"Provider {provider!r} does not support interactive authentication"
        )


class TokenExpiredError(AuthenticationError):
    """Raised when a stored credential has passed its expiry time."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("The stored GitHub token has expired")


class InvalidTokenError(AuthenticationError):
    """Raised when GitHub rejects a token during validation."""

    def __init__(self, status_code: int | None = None) -> None:
        """Record the validation status code, when one was received."""
        self.status_code = status_code
        msg = "GitHub rejected the supplied token"
        if status_code is not None:
            msg = f"{msg} (HTTP {status_code})"
        super().__init__(msg)


class EmptyTokenError(AuthenticationError):
    """Raised when a token source is present but blank."""

    def __init__(self, source: str | None = None) -> None:
        """Record where the blank token came from."""
        self.source = source
        msg = "GitHub token must be non-empty"
        if source:
            msg = f"{msg} ({source} is blank)"
        super().__init__(msg)


class DeviceCodeRequestFailedError(AuthenticationError):
    """Raised when GitHub refuses to issue a device code."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> DeviceCodeRequestFailedError:
        """Return an error for a non-2xx device code response."""
        return cls(
            f"Device code request failed with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def upstream_error(
        cls, error: str, description: str | None
    ) -> DeviceCodeRequestFailedError:
        """Return an error for an OAuth ``error`` payload."""
        detail = f"{error}: {description}" if description else error
        return cls(f"Device code request failed: {detail}")

    @classmethod
    def malformed(cls) -> DeviceCodeRequestFailedError:
        """Return an error for a body that is not a device code payload."""
        return cls("Device code response could not be decoded")


class DeviceCodeExpiredError(AuthenticationError):
    """Raised when the user did not authorise before the device code expired."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("The device code expired before authorisation completed")


class AccessDeniedError(AuthenticationError):
    """Raised when the user declines the authorisation request."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Authorisation was denied by the user")


class TokenRequestFailedError(AuthenticationError):
    """Raised for OAuth token errors other than the recognised polling codes."""

    def __init__(self, error: str, description: str | None = None) -> None:
        """Record the upstream error code and description."""
        self.error = error
        self.description = description
        msg = f"Token request failed: {error}"
        if description:
            msg = f"{msg} ({description})"
        super().__init__(msg)


class InvalidTokenResponseError(AuthenticationError):
    """Raised when a token response carries neither an error nor a token."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Token response did not contain an access token")


class TokenStorageError(AuthenticationError):
    """Raised when the secure token store fails."""

    def __init__(self, operation: str, detail: str | None = None) -> None:
        """Record the failing store operation."""
        self.operation = operation
        msg = f"Token storage {operation} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class CannotClearEnvironmentCredentialsError(AuthenticationError):
    """Raised when asked to clear credentials that live in the environment."""

    def __init__(self, variable: str = "GITHUB_TOKEN") -> None:
        """Record the environment variable that cannot be cleared."""
        self.variable = variable
        super().__init__(
            f"Credentials from {variable} cannot be cleared; unset the variable"
        )


class AuthNetworkError(AuthenticationError):
    """Raised when an OAuth or validation request fails below HTTP."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> AuthNetworkError:
        """Wrap a transport exception."""
        return cls(f"Network error during authentication: {exc}")


class AuthConfigError(AuthenticationError):
    """Raised when authentication configuration is invalid."""

    @classmethod
    def invalid_timeout(cls, value: str) -> AuthConfigError:
        """Return an error for a non-positive or non-numeric timeout."""
        return cls(f"Invalid authentication timeout: {value!r}")

    @classmethod
    def blank(cls, name: str) -> AuthConfigError:
        """Return an error for an environment variable set to a blank value."""
        return cls(f"{name} must not be blank when set")
