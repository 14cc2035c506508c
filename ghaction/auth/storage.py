"""Persistence for credential records, keyed by fixed string keys."""

from __future__ import annotations

import asyncio
import threading
import typing as typ

import keyring
import msgspec
from keyring.errors import KeyringError, PasswordDeleteError

from ghaction.logging import get_logger, log_debug

from .errors import TokenStorageError
from .models import CredentialRecord, decode_record, encode_record

if typ.TYPE_CHECKING:
    from keyring.backend import KeyringBackend

logger = get_logger(__name__)

OAUTH_TOKEN_KEY = "github-oauth-token"
PAT_TOKEN_KEY = "github-pat-token"
DEFAULT_SERVICE_NAME = "ghaction.auth"


@typ.runtime_checkable
class TokenStore(typ.Protocol):
    """Keyed storage for :class:`CredentialRecord` values.

    Implementations must make ``save`` and ``delete`` atomic with respect to
    concurrent ``retrieve`` calls for the same key.
    """

    async def save(self, record: CredentialRecord, key: str) -> None:
        """Store ``record`` under ``key``, replacing any previous record."""
        ...

    async def retrieve(self, key: str) -> CredentialRecord | None:
        """Return the record stored under ``key``, or ``None``."""
        ...

    async def delete(self, key: str) -> None:
        """Remove the record under ``key``; a missing record is not an error."""
        ...

    async def exists(self, key: str) -> bool:
        """Return ``True`` when a readable record is stored under ``key``."""
        ...


class KeyringTokenStore:
    """Token store backed by the operating system keyring.

    Records are stored as msgspec JSON under ``service_name`` with the store
    key as the keyring username. Keyring calls block, so they run in a worker
    thread while a process-wide lock keeps each operation atomic.

    Parameters
    ----------
    service_name
        Keyring service under which all records are filed.
    backend
        Explicit keyring backend. Defaults to :func:`keyring.get_keyring`.

    """

    def __init__(
        self,
        service_name: str = DEFAULT_SERVICE_NAME,
        *,
        backend: KeyringBackend | None = None,
    ) -> None:
        """Bind the store to a keyring service and backend."""
        self._service_name = service_name
        self._backend = backend
        self._lock = threading.Lock()

    @property
    def service_name(self) -> str:
        """Keyring service name used for every record."""
        return self._service_name

    def _keyring(self) -> KeyringBackend:
        return self._backend if self._backend is not None else keyring.get_keyring()

    def _save_sync(self, record: CredentialRecord, key: str) -> None:
        payload = encode_record(record).decode("utf-8")
        with self._lock:
            try:
                self._keyring().set_password(self._service_name, key, payload)
            except KeyringError as exc:
                raise TokenStorageError("save", str(exc)) from exc

    def _retrieve_sync(self, key: str) -> CredentialRecord | None:
        with self._lock:
            try:
                raw = self._keyring().get_password(self._service_name, key)
            except KeyringError as exc:
                raise TokenStorageError("retrieve", str(exc)) from exc
        if raw is None:
            return None
        try:
            return decode_record(raw)
        except msgspec.DecodeError as exc:
            raise TokenStorageError("retrieve", "stored record is corrupt") from exc

    def _delete_sync(self, key: str) -> None:
        with self._lock:
            try:
                self._keyring().delete_password(self._service_name, key)
            except PasswordDeleteError:
                log_debug(logger, "No keyring entry to delete for key=%s", key)
            except KeyringError as exc:
                raise TokenStorageError("delete", str(exc)) from exc

    async def save(self, record: CredentialRecord, key: str) -> None:
        """Store ``record`` under ``key``."""
        await asyncio.to_thread(self._save_sync, record, key)

    async def retrieve(self, key: str) -> CredentialRecord | None:
        """Return the record stored under ``key``, or ``None``."""
        return await asyncio.to_thread(self._retrieve_sync, key)

    async def delete(self, key: str) -> None:
        """Delete the record under ``key``, ignoring a missing entry."""
        await asyncio.to_thread(self._delete_sync, key)

    async def exists(self, key: str) -> bool:
        """Return ``True`` when a readable record exists for ``key``."""
        try:
            return await self.retrieve(key) is not None
        except TokenStorageError:
            return False


class MemoryTokenStore:
    """Process-local token store.

    Records are kept in their encoded form so that reads go through the same
    decoding path as persistent stores. Useful for tests and for hosts that
    must not touch the OS keyring.
    """

    def __init__(self) -> None:
        """Start with an empty store."""
        self._entries: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: CredentialRecord, key: str) -> None:
        """Store ``record`` under ``key``."""
        async with self._lock:
            self._entries[key] = encode_record(record)

    async def retrieve(self, key: str) -> CredentialRecord | None:
        """Return the record stored under ``key``, or ``None``."""
        async with self._lock:
            raw = self._entries.get(key)
        return None if raw is None else decode_record(raw)

    async def delete(self, key: str) -> None:
        """Forget ``key`` if present."""
        async with self._lock:
            self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        """Return ``True`` when ``key`` holds a record."""
        async with self._lock:
            return key in self._entries

    def keys(self) -> frozenset[str]:
        """Return the keys currently held."""
        return frozenset(self._entries)
