"""Tests for the parallel (racing) combinator."""

from __future__ import annotations

import asyncio
import random
import time

import pytest

from oneresponse import (
    WINNER_SELECTED,
    EmptyOperationsError,
    JoinedError,
    Ok,
    Scope,
    ScopeCancelledError,
    parallel,
)

err2 = ValueError("some error")
err3 = RuntimeError("another error")


async def success_after_jitter(scope: Scope) -> bool:
    """Succeeds after a random delay unless the scope is cancelled first."""
    sleeper = asyncio.create_task(asyncio.sleep(random.uniform(0, 0.1)))
    cancelled = asyncio.create_task(scope.wait_cancelled())
    try:
        await asyncio.wait({sleeper, cancelled}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        sleeper.cancel()
        cancelled.cancel()
    scope.raise_if_cancelled()
    return True


async def fail_err2(scope: Scope) -> bool:
    raise err2


async def fail_err3(scope: Scope) -> bool:
    raise err3


async def respects_cancel(scope: Scope) -> bool:
    await scope.wait_cancelled()
    scope.raise_if_cancelled()
    return True


class TestParallelScenarios:
    @pytest.mark.asyncio
    async def test_one_failure_three_successes(self) -> None:
        result = await parallel(
            Scope(),
            [fail_err2, success_after_jitter, success_after_jitter, success_after_jitter],
        )

        assert result == Ok(True)

    @pytest.mark.asyncio
    async def test_all_fail_joins_errors(self) -> None:
        result = await parallel(Scope(), [fail_err2, fail_err3])

        assert result.is_err()
        assert result.ok() is None
        err = result.unwrap_err()
        assert isinstance(err, JoinedError)
        assert err2 in err and err3 in err
        assert len(err.exceptions) == 2

    @pytest.mark.asyncio
    async def test_single_failure_does_not_end_the_race(self) -> None:
        async def sleep_then_succeed(scope: Scope) -> bool:
            await asyncio.sleep(0.05)
            return True

        start = time.perf_counter()
        result = await parallel(Scope(), [sleep_then_succeed, fail_err2])

        assert result == Ok(True)
        assert time.perf_counter() - start >= 0.04

    @pytest.mark.asyncio
    async def test_cancelled_scope_joins_cancellation_errors(self) -> None:
        outer = Scope()
        outer.cancel()

        result = await asyncio.wait_for(parallel(outer, [respects_cancel, respects_cancel]), timeout=1.0)

        err = result.unwrap_err()
        assert result.ok() is None
        assert len(err.exceptions) == 2
        assert all(isinstance(e, ScopeCancelledError) for e in err.exceptions)


class TestParallelRace:
    @pytest.mark.asyncio
    async def test_fastest_success_wins(self) -> None:
        def after(delay: float, value: str) -> object:
            async def op(scope: Scope) -> str:
                await asyncio.sleep(delay)
                return value
            return op

        result = await parallel(Scope(), [after(0.2, "slow"), after(0.01, "fast"), after(0.1, "medium")])

        assert result == Ok("fast")

    @pytest.mark.asyncio
    async def test_each_operation_invoked_once(self) -> None:
        calls = [0, 0, 0]

        def counted(i: int, fails: bool) -> object:
            async def op(scope: Scope) -> int:
                calls[i] += 1
                await asyncio.sleep(0.01 * i)
                if fails:
                    raise ValueError(i)
                return i
            return op

        result = await parallel(Scope(), [counted(0, True), counted(1, False), counted(2, True)])
        await asyncio.sleep(0.05)

        assert result == Ok(1)
        assert calls == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_errors_follow_arrival_order(self) -> None:
        late = ValueError("late")
        early = ValueError("early")

        async def fail_late(scope: Scope) -> int:
            await asyncio.sleep(0.05)
            raise late

        async def fail_early(scope: Scope) -> int:
            raise early

        result = await parallel(Scope(), [fail_late, fail_early])

        assert result.unwrap_err().exceptions == (early, late)

    @pytest.mark.asyncio
    async def test_winner_cancels_child_scope_and_losers(self) -> None:
        outer = Scope()
        seen: list[Scope] = []
        loser_cancelled = asyncio.Event()

        async def winner(scope: Scope) -> str:
            seen.append(scope)
            return "won"

        async def loser(scope: Scope) -> str:
            seen.append(scope)
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                loser_cancelled.set()
                raise
            return "lost"

        result = await parallel(outer, [winner, loser])

        assert result == Ok("won")
        assert seen[0] is seen[1]
        assert seen[0].cancelled
        assert seen[0].reason == WINNER_SELECTED
        assert not outer.cancelled
        await asyncio.wait_for(loser_cancelled.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_does_not_wait_for_uncooperative_losers(self) -> None:
        release = asyncio.Event()
        finished = asyncio.Event()

        async def quick(scope: Scope) -> str:
            return "quick"

        async def stubborn(scope: Scope) -> str:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                await release.wait()
            finished.set()
            return "stubborn"

        start = time.perf_counter()
        result = await parallel(Scope(), [stubborn, quick])
        elapsed = time.perf_counter() - start

        assert result == Ok("quick")
        assert elapsed < 1.0
        assert not finished.is_set()

        # the late success lands in the abandoned outcome queue without blocking
        release.set()
        await asyncio.wait_for(finished.wait(), timeout=1.0)
        await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_child_scope_cancelled_after_total_failure(self) -> None:
        seen: list[Scope] = []

        async def record_then_fail(scope: Scope) -> int:
            seen.append(scope)
            raise ValueError("nope")

        await parallel(Scope(), [record_then_fail, record_then_fail])

        assert seen[0].cancelled
        assert seen[0].reason is None

    @pytest.mark.asyncio
    async def test_sync_operations_race_in_threads(self) -> None:
        def blocking_slow(scope: Scope) -> str:
            time.sleep(0.2)
            return "slow"

        def blocking_fast(scope: Scope) -> str:
            time.sleep(0.01)
            return "fast"

        result = await parallel(Scope(), [blocking_slow, blocking_fast, fail_err2])

        assert result == Ok("fast")


class TestParallelCancellation:
    @pytest.mark.asyncio
    async def test_outer_cancel_reaches_every_operation(self) -> None:
        outer = Scope()
        asyncio.get_running_loop().call_later(0.02, outer.cancel, "caller gave up")

        result = await asyncio.wait_for(parallel(outer, [respects_cancel, respects_cancel, respects_cancel]), timeout=1.0)

        err = result.unwrap_err()
        assert len(err.exceptions) == 3
        assert all(isinstance(e, ScopeCancelledError) for e in err.exceptions)
        assert all(e.reason == "caller gave up" for e in err.exceptions)

    @pytest.mark.asyncio
    async def test_outer_cancel_interrupts_non_polling_operations(self) -> None:
        async def sleeps(scope: Scope) -> bool:
            await asyncio.sleep(10)
            return True

        outer = Scope()
        asyncio.get_running_loop().call_later(0.02, outer.cancel, "stop")

        result = await asyncio.wait_for(parallel(outer, [sleeps, sleeps]), timeout=1.0)

        err = result.unwrap_err()
        assert [type(e) for e in err.exceptions] == [ScopeCancelledError, ScopeCancelledError]

    @pytest.mark.asyncio
    async def test_timeout_composed_into_scope(self) -> None:
        result = await asyncio.wait_for(
            parallel(Scope().with_timeout(0.02), [respects_cancel, respects_cancel]),
            timeout=1.0,
        )

        err = result.unwrap_err()
        assert err.find(ScopeCancelledError).reason == "timed out after 0.02s"

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_child_scope(self) -> None:
        seen: list[Scope] = []

        async def slow(scope: Scope) -> int:
            seen.append(scope)
            await asyncio.sleep(10)
            return 1

        task = asyncio.create_task(parallel(Scope(), [slow, slow]))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert seen and seen[0].cancelled

    @pytest.mark.asyncio
    async def test_base_exceptions_propagate(self) -> None:
        class Fatal(BaseException):
            pass

        async def fatal(scope: Scope) -> int:
            raise Fatal()

        async def slow(scope: Scope) -> int:
            await asyncio.sleep(10)
            return 1

        with pytest.raises(Fatal):
            await parallel(Scope(), [slow, fatal])


class TestParallelEmpty:
    @pytest.mark.asyncio
    async def test_empty_returns_ok_none(self) -> None:
        assert await parallel(Scope(), []) == Ok(None)

    @pytest.mark.asyncio
    async def test_empty_error_policy(self) -> None:
        result = await parallel(Scope(), [], empty="error")

        assert result.unwrap_err().find(EmptyOperationsError).combinator == "parallel"
