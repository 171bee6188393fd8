"""
Deadline handling for ResourceDB operations.

A Deadline is the point in time after which an operation must no longer
proceed or block. Every store operation accepts one.

Invariants:
    - Deadlines live on the monotonic clock, never wall time
    - An expired deadline fails the operation before any mutation
    - remaining() is never negative

How to change safely:
    - Keep check() side-effect free so it can be called anywhere
    - Any new wait inside the store must go through run_with_deadline()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from .errors import DeadlineExceededError

T = TypeVar("T")


@dataclass(frozen=True)
class Deadline:
    """A point on the monotonic clock.

    Attributes:
        at: time.monotonic() value at which the deadline fires

    Example:
        >>> deadline = Deadline.after(0.5)
        >>> entity = await store.get(1, deadline=deadline)
    """

    at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        """Deadline that fires `seconds` from now."""
        return cls(at=time.monotonic() + seconds)

    @classmethod
    def after_ms(cls, ms: int) -> Deadline:
        """Deadline that fires `ms` milliseconds from now."""
        return cls.after(ms / 1000.0)

    @classmethod
    def expired_now(cls) -> Deadline:
        """Deadline that has already passed."""
        return cls(at=time.monotonic() - 1.0)

    @property
    def expired(self) -> bool:
        """Whether the deadline has passed."""
        return time.monotonic() >= self.at

    def remaining(self) -> float:
        """Seconds left before the deadline fires (0.0 once expired)."""
        return max(0.0, self.at - time.monotonic())

    def earliest(self, other: Optional[Deadline]) -> Deadline:
        """Return whichever of the two deadlines fires first."""
        if other is None or self.at <= other.at:
            return self
        return other

    def check(self, operation: str) -> None:
        """Raise DeadlineExceededError if the deadline has passed.

        Args:
            operation: Name of the operation being attempted
        """
        if self.expired:
            raise DeadlineExceededError(operation)


def check_deadline(deadline: Optional[Deadline], operation: str) -> None:
    """check() that treats a missing deadline as 'no limit'."""
    if deadline is not None:
        deadline.check(operation)


async def run_with_deadline(
    awaitable: Awaitable[T],
    deadline: Optional[Deadline],
    operation: str,
) -> T:
    """Await something, giving up when the deadline fires.

    Args:
        awaitable: Coroutine or future to wait on
        deadline: Deadline bounding the wait (None waits forever)
        operation: Operation name for the error

    Returns:
        The awaitable's result

    Raises:
        DeadlineExceededError: If the deadline is already past or fires
            before the awaitable completes
    """
    if deadline is None:
        return await awaitable

    if deadline.expired:
        # Don't leak an un-awaited coroutine
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise DeadlineExceededError(operation)

    try:
        return await asyncio.wait_for(awaitable, timeout=deadline.remaining())
    except asyncio.TimeoutError:
        raise DeadlineExceededError(operation) from None


@asynccontextmanager
async def locked(
    lock: asyncio.Lock,
    deadline: Optional[Deadline],
    operation: str,
) -> AsyncIterator[None]:
    """Hold `lock` for the duration of the block, bounded by a deadline.

    The deadline is checked before waiting, bounds the wait, and is checked
    once more after the lock is acquired. The lock is released on every exit
    path, including errors raised inside the block.

    Example:
        >>> async with locked(self._lock, deadline, "update"):
        ...     self._table[resource_id] = entity
    """
    check_deadline(deadline, operation)
    await run_with_deadline(lock.acquire(), deadline, operation)
    try:
        check_deadline(deadline, operation)
        yield
    finally:
        lock.release()
