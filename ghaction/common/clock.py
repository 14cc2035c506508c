"""Clock abstraction for deadlines, timestamps and polling sleeps.

Polling loops take their notion of time from a :class:`Clock` so deadlines
are computed from a monotonic source and tests can substitute a fake clock
that advances instantly.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import time
import typing as typ


@typ.runtime_checkable
class Clock(typ.Protocol):
    """Time source used by the polling loops."""

    def now(self) -> dt.datetime:
        """Return the current wall-clock time as an aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Return a monotonic reading in seconds for deadline arithmetic."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for ``seconds``."""
        ...


class SystemClock:
    """:class:`Clock` backed by the running event loop and the OS clocks."""

    def now(self) -> dt.datetime:
        """Return ``datetime.now`` in UTC."""
        return utcnow()

    def monotonic(self) -> float:
        """Return :func:`time.monotonic`."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        """Delegate to :func:`asyncio.sleep`."""
        await asyncio.sleep(max(seconds, 0.0))


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def check_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise :class:`asyncio.CancelledError` when ``cancel_event`` is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError
