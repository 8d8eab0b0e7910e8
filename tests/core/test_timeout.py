"""Tests for actionruntime.core.timeout -- deadlines and cancellation."""

from __future__ import annotations

import asyncio

import pytest

from actionruntime.core.errors import ActionCancelledError, ActionTimeoutError
from actionruntime.core.timeout import Deadline, current_deadline, run_with_deadline


async def _value(value, delay: float = 0.0):
    await asyncio.sleep(delay)
    return value


class TestDeadline:
    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError):
            Deadline(0)

    def test_fresh_deadline_not_expired(self) -> None:
        deadline = Deadline(10.0)
        assert not deadline.is_expired()
        assert 0 < deadline.remaining() <= 10.0
        deadline.check("noop")

    def test_check_after_cancel(self) -> None:
        deadline = Deadline(10.0)
        deadline.cancel()
        assert deadline.cancelled
        with pytest.raises(ActionCancelledError):
            deadline.check("mysql.fetch")

    @pytest.mark.asyncio
    async def test_run_returns_result(self) -> None:
        assert await Deadline(1.0).run(_value("done")) == "done"

    @pytest.mark.asyncio
    async def test_run_times_out(self) -> None:
        with pytest.raises(ActionTimeoutError) as exc_info:
            await Deadline(0.05).run(_value("late", delay=1.0), operation="postgresql.fetch")
        assert exc_info.value.operation == "postgresql.fetch"
        assert exc_info.value.http_status == 504

    @pytest.mark.asyncio
    async def test_per_call_limit_is_tighter(self) -> None:
        with pytest.raises(ActionTimeoutError) as exc_info:
            await Deadline(10.0).run(_value("late", delay=1.0), seconds=0.05)
        assert exc_info.value.timeout == 0.05

    @pytest.mark.asyncio
    async def test_cancel_signal_interrupts(self) -> None:
        event = asyncio.Event()
        deadline = Deadline(10.0, event)
        asyncio.get_running_loop().call_later(0.02, event.set)
        with pytest.raises(ActionCancelledError) as exc_info:
            await deadline.run(_value("late", delay=1.0), operation="restapi.request")
        assert exc_info.value.http_status == 499

    @pytest.mark.asyncio
    async def test_work_is_cancelled_and_cleaned_up(self) -> None:
        released = asyncio.Event()

        async def hold_connection():
            try:
                await asyncio.sleep(10)
            finally:
                released.set()

        with pytest.raises(ActionTimeoutError):
            await Deadline(0.05).run(hold_connection())
        assert released.is_set()

    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts_work(self) -> None:
        deadline = Deadline(10.0)
        deadline.cancel()
        with pytest.raises(ActionCancelledError):
            await deadline.run(_value("x"))

    @pytest.mark.asyncio
    async def test_work_exception_propagates(self) -> None:
        async def boom():
            raise RuntimeError("driver exploded")

        with pytest.raises(RuntimeError, match="driver exploded"):
            await Deadline(1.0).run(boom())


class TestCurrentDeadline:
    @pytest.mark.asyncio
    async def test_activate_scopes_deadline(self) -> None:
        deadline = Deadline(5.0)
        assert current_deadline() is None
        async with deadline.activate():
            assert current_deadline() is deadline
        assert current_deadline() is None

    @pytest.mark.asyncio
    async def test_run_with_deadline_uses_active_deadline(self) -> None:
        async with Deadline(0.05).activate():
            with pytest.raises(ActionTimeoutError):
                await run_with_deadline(_value("late", delay=1.0), operation="graphql.post")

    @pytest.mark.asyncio
    async def test_run_with_deadline_without_invocation(self) -> None:
        assert await run_with_deadline(_value(3)) == 3
