"""
Unit tests for deadlines.

Tests cover:
- Expiry and remaining time
- check() and check_deadline()
- run_with_deadline() fail-fast and timeout
- locked() acquisition bounded by a deadline
"""

import asyncio
import time

import pytest

from resourcedb.deadline import Deadline, check_deadline, locked, run_with_deadline
from resourcedb.errors import DeadlineExceededError


class TestDeadline:
    """Tests for Deadline."""

    def test_future_deadline_not_expired(self):
        """Deadline in the future is not expired."""
        deadline = Deadline.after(60)
        assert not deadline.expired
        assert 59 < deadline.remaining() <= 60

    def test_expired_now(self):
        """expired_now() is already past."""
        deadline = Deadline.expired_now()
        assert deadline.expired
        assert deadline.remaining() == 0.0

    def test_after_ms(self):
        """after_ms() converts milliseconds."""
        deadline = Deadline.after_ms(1500)
        assert 1.4 < deadline.remaining() <= 1.5

    def test_deadline_fires(self):
        """Short deadline expires after sleeping past it."""
        deadline = Deadline.after(0.01)
        time.sleep(0.02)
        assert deadline.expired

    def test_check_raises_when_expired(self):
        """check() raises with the operation name."""
        with pytest.raises(DeadlineExceededError) as exc_info:
            Deadline.expired_now().check("update")
        assert exc_info.value.operation == "update"
        assert exc_info.value.code == "DEADLINE_EXCEEDED"

    def test_check_passes_when_live(self):
        """check() is silent before the deadline."""
        Deadline.after(60).check("get")

    def test_check_deadline_none_means_no_limit(self):
        """A missing deadline never fails."""
        check_deadline(None, "get")

    def test_earliest(self):
        """earliest() picks the sooner deadline."""
        soon = Deadline.after(1)
        later = Deadline.after(10)
        assert soon.earliest(later) is soon
        assert later.earliest(soon) is soon
        assert later.earliest(None) is later


class TestRunWithDeadline:
    """Tests for run_with_deadline."""

    @pytest.mark.asyncio
    async def test_completes_before_deadline(self):
        """Fast work returns its result."""

        async def work():
            await asyncio.sleep(0.01)
            return "done"

        result = await run_with_deadline(work(), Deadline.after(1), "call")
        assert result == "done"

    @pytest.mark.asyncio
    async def test_times_out(self):
        """Slow work is abandoned when the deadline fires."""

        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(DeadlineExceededError):
            await run_with_deadline(slow(), Deadline.after(0.05), "call")

    @pytest.mark.asyncio
    async def test_expired_fails_without_running(self):
        """Already-expired deadline never starts the work."""
        started = False

        async def work():
            nonlocal started
            started = True

        with pytest.raises(DeadlineExceededError):
            await run_with_deadline(work(), Deadline.expired_now(), "call")
        assert started is False

    @pytest.mark.asyncio
    async def test_no_deadline_waits(self):
        """None deadline simply awaits."""

        async def work():
            return 42

        assert await run_with_deadline(work(), None, "call") == 42


class TestLocked:
    """Tests for locked()."""

    @pytest.mark.asyncio
    async def test_releases_on_success(self):
        """Lock is free after the block."""
        lock = asyncio.Lock()
        async with locked(lock, Deadline.after(1), "op"):
            assert lock.locked()
        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_releases_on_error(self):
        """Lock is free after an exception inside the block."""
        lock = asyncio.Lock()
        with pytest.raises(RuntimeError):
            async with locked(lock, None, "op"):
                raise RuntimeError("boom")
        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_deadline_while_waiting(self):
        """Deadline firing while the lock is held elsewhere fails the caller."""
        lock = asyncio.Lock()
        await lock.acquire()
        try:
            with pytest.raises(DeadlineExceededError):
                async with locked(lock, Deadline.after(0.05), "op"):
                    pytest.fail("should not enter block")
        finally:
            lock.release()
        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_expired_never_acquires(self):
        """Expired deadline fails before touching the lock."""
        lock = asyncio.Lock()
        with pytest.raises(DeadlineExceededError):
            async with locked(lock, Deadline.expired_now(), "op"):
                pass
        assert not lock.locked()
