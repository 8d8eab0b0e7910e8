"""Deadlines and cancellation for adapter I/O.

Every I/O call an adapter makes runs under the invocation's
:class:`Deadline`: a wall-clock limit (``DEFAULT_QUERY_AND_EXEC_TIMEOUT``
unless the adapter picks another) plus an optional external cancellation
signal.

Manifesto:
    Operations without timeouts are a reliability anti-pattern:
    - **Resource exhaustion:** A hung query pins a connection forever
    - **Cascading failures:** Slow data sources hang the builder

    Whichever fires first, deadline or cancel signal, the awaited work is
    cancelled and awaited so its ``finally``/``async with`` blocks release
    the transport before the error propagates.

Architecture:
    ::

        dispatcher                        adapter
        ──────────                        ───────
        deadline = Deadline(30.0, cancel_event)
        async with deadline.activate():
            await connector.run(...)  ─►  rows = await run_with_deadline(
                                              conn.fetch(sql, *args),
                                              operation="postgresql.fetch")
                                          │
                                          ▼
                              ┌───────────────────────────────┐
                              │ race: work │ timer │ cancel   │
                              └───────────────────────────────┘
                                 │          │        │
                               result  ActionTimeout ActionCancelled

Examples:
    >>> async def main():
    ...     async with Deadline(5.0).activate():
    ...         return await run_with_deadline(asyncio.sleep(0, "done"))

Tags:
    timeout, deadline, cancellation, asyncio, action-runtime
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TypeVar

from actionruntime.core.errors import ActionCancelledError, ActionTimeoutError
from actionruntime.core.settings import DEFAULT_QUERY_AND_EXEC_TIMEOUT

T = TypeVar("T")

_current_deadline: ContextVar[Deadline | None] = ContextVar("actionruntime_deadline", default=None)


class Deadline:
    """Per-invocation cancellation token with a wall-clock deadline.

    Attributes:
        timeout_seconds: Original timeout value in seconds
        cancel_event: Event that signals external cancellation
        start_time: Monotonic time the deadline started
    """

    def __init__(
        self,
        seconds: float = DEFAULT_QUERY_AND_EXEC_TIMEOUT,
        cancel_event: asyncio.Event | None = None,
    ):
        if seconds <= 0:
            raise ValueError(f"Timeout must be positive, got {seconds}")
        self.timeout_seconds = seconds
        self.cancel_event = cancel_event or asyncio.Event()
        self.start_time = time.monotonic()
        self.deadline = self.start_time + seconds

    def remaining(self) -> float:
        """Remaining seconds; negative once expired."""
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def is_expired(self) -> bool:
        return time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Signal cancellation to every operation running under this token."""
        self.cancel_event.set()

    def check(self, operation: str = "operation") -> None:
        """Raise if the token is already cancelled or expired."""
        if self.cancelled:
            raise ActionCancelledError(operation)
        if self.is_expired():
            raise ActionTimeoutError(self.timeout_seconds, self.elapsed, operation)

    async def run(
        self,
        awaitable: Awaitable[T],
        operation: str = "operation",
        seconds: float | None = None,
    ) -> T:
        """Await ``awaitable`` under this deadline.

        Args:
            awaitable: Coroutine or future doing the I/O
            operation: Name for error messages
            seconds: Tighter per-call limit; never extends the invocation deadline

        Raises:
            ActionTimeoutError: If the deadline fires first
            ActionCancelledError: If the cancel signal arrives first
        """
        work = asyncio.ensure_future(awaitable)
        try:
            self.check(operation)
        except BaseException:
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
            raise

        budget = self.remaining() if seconds is None else min(seconds, self.remaining())
        cancel_wait = asyncio.ensure_future(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, cancel_wait},
                timeout=max(budget, 0),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except BaseException:
            work.cancel()
            raise
        finally:
            cancel_wait.cancel()

        if work in done:
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        if self.cancelled:
            raise ActionCancelledError(operation)
        limit = self.timeout_seconds if seconds is None else min(seconds, self.timeout_seconds)
        raise ActionTimeoutError(limit, self.elapsed, operation)

    @asynccontextmanager
    async def activate(self) -> AsyncIterator[Deadline]:
        """Make this the current deadline for the enclosed code."""
        token = _current_deadline.set(self)
        try:
            yield self
        finally:
            _current_deadline.reset(token)

    def __repr__(self) -> str:
        return f"Deadline(timeout={self.timeout_seconds}, remaining={self.remaining():.2f})"


def current_deadline() -> Deadline | None:
    """The deadline activated by the enclosing invocation, if any."""
    return _current_deadline.get()


async def run_with_deadline(
    awaitable: Awaitable[T],
    operation: str = "operation",
    seconds: float | None = None,
) -> T:
    """Await ``awaitable`` under the current deadline.

    Outside an invocation a fresh default deadline is used, so adapter I/O
    is never unbounded.
    """
    deadline = current_deadline()
    if deadline is None:
        deadline = Deadline(seconds or DEFAULT_QUERY_AND_EXEC_TIMEOUT)
    return await deadline.run(awaitable, operation=operation, seconds=seconds)


__all__ = [
    "Deadline",
    "current_deadline",
    "run_with_deadline",
]
