"""Credential and OAuth payload structures."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum

import msgspec

from ghaction.common.clock import utcnow


class TokenKind(enum.StrEnum):
    """Origin of a GitHub access token."""

    ENVIRONMENT = "environment"
    OAUTH = "oauth"
    PERSONAL_ACCESS_TOKEN = "pat"


class CredentialRecord(msgspec.Struct, kw_only=True, frozen=True):
    """A GitHub access token together with its metadata.

    Records are immutable; a refreshed credential replaces the old record
    rather than updating it. The token itself is excluded from ``repr`` so
    records can appear in logs and tracebacks without leaking the secret.

    Attributes
    ----------
    access_token
        Opaque bearer token.
    token_kind
        Where the token came from.
    scope
        Space-separated OAuth scopes, when GitHub reported them.
    created_at
        When the record was created.
    expires_at
        Expiry time; ``None`` means the token never expires.

    """

    access_token: str
    token_kind: TokenKind
    created_at: dt.datetime
    scope: str | None = None
    expires_at: dt.datetime | None = None

    def is_expired(self, now: dt.datetime | None = None) -> bool:
        """Return ``True`` once ``now`` reaches ``expires_at``."""
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at

    @property
    def authorization_header(self) -> str:
        """Value for the HTTP ``Authorization`` header."""
        return f"Bearer {self.access_token}"

    def __repr__(self) -> str:
        """Render the record without the access token."""
        return (
            f"CredentialRecord(token_kind={self.token_kind.value!r}, "
            f"scope={self.scope!r}, created_at={self.created_at!r}, "
            f"expires_at={self.expires_at!r})"
        )


class AuthenticationStatus(msgspec.Struct, kw_only=True, frozen=True):
    """Point-in-time view of which provider would supply credentials."""

    is_authenticated: bool
    provider: str | None = None
    token_kind: TokenKind | None = None
    scope: str | None = None
    expires_at: dt.datetime | None = None

    @classmethod
    def unauthenticated(cls) -> AuthenticationStatus:
        """Return the snapshot used when no provider can supply a record."""
        return cls(is_authenticated=False)

    @classmethod
    def from_record(
        cls, provider: str, record: CredentialRecord
    ) -> AuthenticationStatus:
        """Build an authenticated snapshot for ``record``."""
        return cls(
            is_authenticated=True,
            provider=provider,
            token_kind=record.token_kind,
            scope=record.scope,
            expires_at=record.expires_at,
        )


class DeviceCodeResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Payload returned by ``POST /login/device/code``."""

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int = 5


class TokenResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Payload returned by ``POST /login/oauth/access_token``.

    GitHub answers polling requests with HTTP 200 and reports progress through
    ``error``; only a completed authorisation carries ``access_token``.
    """

    access_token: str | None = None
    token_type: str | None = None
    scope: str | None = None
    error: str | None = None
    error_description: str | None = None
    interval: int | None = None


def encode_record(record: CredentialRecord) -> bytes:
    """Serialise ``record`` to JSON for a token store."""
    return msgspec.json.encode(record)


def decode_record(payload: bytes | str) -> CredentialRecord:
    """Deserialise a record written by :func:`encode_record`.

    Raises
    ------
    msgspec.DecodeError
        If ``payload`` is not a valid encoded record.

    """
    return msgspec.json.decode(payload, type=CredentialRecord)
