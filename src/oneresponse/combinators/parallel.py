"""Parallel one-response: race operations, first success wins.

Runs every operation concurrently under a shared child scope and returns as
soon as one succeeds. The child scope is then cancelled so losers can stop;
they are never awaited. If every operation fails, the failures are joined
in the order they arrived.

Useful for:
- Provider redundancy (fastest healthy replica wins)
- Speculative execution (try several approaches at once)
- Latency hedging

Example:
    >>> result = await parallel(scope, [query_replica_a, query_replica_b])
    >>> if result.is_ok():
    ...     rows = result.unwrap()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Generic, TypeVar

from oneresponse.concurrency import call_operation
from oneresponse.errors import Err, JoinedError, Ok, Result, ScopeCancelledError
from oneresponse.observability import get_logger

from .types import EmptyPolicy, Operation, Response, empty_response

if TYPE_CHECKING:
    from collections.abc import Iterable

    from oneresponse.concurrency import Scope

T = TypeVar("T")

log = get_logger("oneresponse.parallel")

WINNER_SELECTED = "winner selected"

# Strong references to racing tasks until they finish; losers outlive the call
_running: set[asyncio.Task[object]] = set()


class _Race(Generic[T]):
    """Per-call state: the child scope, the outcome stream and the success flag.

    Every task publishes exactly one outcome from its done callback, including
    tasks cancelled before they ever ran. The queue holds ``n`` entries, so
    publishing never blocks and never fails, even after the consumer is gone.
    """

    __slots__ = ("scope", "outcomes", "succeeded", "settled")

    def __init__(self, scope: Scope, n: int) -> None:
        self.scope = scope
        self.outcomes: asyncio.Queue[tuple[int, Result[T, BaseException]]] = asyncio.Queue(maxsize=n)
        self.succeeded = False
        self.settled = False

    def spawn(self, index: int, op: Operation[T]) -> asyncio.Task[T]:
        task = asyncio.create_task(call_operation(op, self.scope), name=f"oneresponse-parallel-{index}")
        _running.add(task)  # type: ignore[arg-type]
        task.add_done_callback(_running.discard)  # type: ignore[arg-type]
        task.add_done_callback(lambda t: self._publish(index, t))
        self.scope.attach(task)  # type: ignore[arg-type]
        return task

    def _publish(self, index: int, task: asyncio.Task[T]) -> None:
        if task.cancelled():
            outcome: Result[T, BaseException] = Err(ScopeCancelledError(self.scope.reason))
        elif (exc := task.exception()) is not None:
            if self.settled and not isinstance(exc, Exception):
                _report_late(index, exc)
            outcome = Err(exc)
        else:
            self.succeeded = True
            outcome = Ok(task.result())
        self.outcomes.put_nowait((index, outcome))

    def settle(self) -> None:
        """Stop reading; fatal outcomes already queued or still to come get logged."""
        self.settled = True
        while not self.outcomes.empty():
            index, outcome = self.outcomes.get_nowait()
            if outcome.is_err() and not isinstance(exc := outcome.unwrap_err(), Exception):
                _report_late(index, exc)


def _report_late(index: int, exc: BaseException) -> None:
    log.error("late operation raised", index=index, error=repr(exc), error_type=type(exc).__name__)


async def parallel(
    scope: Scope,
    ops: Iterable[Operation[T]],
    *,
    empty: EmptyPolicy | None = None,
) -> Response[T]:
    """Race ops concurrently and return the first success.

    Each operation runs once, in its own task, under one child scope of
    ``scope``. The first success cancels the child scope; losers are left to
    wind down on their own and their outcomes are dropped. Which of several
    near-simultaneous successes wins is up to the event loop.

    Args:
        scope: Caller's cancellation scope; cancelling it interrupts every
            in-flight operation
        ops: Operations to race
        empty: Empty-input policy override ("ok" or "error"); defaults to
            the ONERESPONSE_EMPTY_OPS setting

    Returns:
        Ok(value) from the winning operation, or Err(JoinedError) holding
        every failure in arrival order

    Raises:
        asyncio.CancelledError: If the awaiting task is cancelled
        BaseException: Non-Exception errors raised by an operation propagate

    Example:
        >>> async with Scope() as scope:
        ...     result = await parallel(scope.with_timeout(2.0), [dns_a, dns_b, dns_c])
    """
    ops = list(ops)
    if not ops:
        return empty_response("parallel", empty)

    n = len(ops)
    debug = log.is_enabled_for(logging.DEBUG)
    start = time.perf_counter() if debug else 0.0
    race: _Race[T] = _Race(scope.child(), n)
    errors: list[Exception] = []
    result: T | None = None

    log.debug("race started", operations=n, scope_cancelled=race.scope.cancelled)
    try:
        for index, op in enumerate(ops):
            race.spawn(index, op)

        while True:
            index, outcome = await race.outcomes.get()
            if outcome.is_ok():
                result = outcome.unwrap()
                race.scope.cancel(WINNER_SELECTED)
                if debug:
                    log.debug("race won", index=index, failures=len(errors),
                              elapsed_ms=round((time.perf_counter() - start) * 1000, 2))
                break
            exc = outcome.unwrap_err()
            if not isinstance(exc, Exception):
                raise exc
            if debug:
                log.debug("race outcome failed", index=index, error=str(exc), error_type=type(exc).__name__)
            errors.append(exc)
            if len(errors) == n:
                break
    finally:
        race.settle()
        race.scope.cancel()

    if race.succeeded:
        return Ok(result)  # type: ignore[arg-type]
    if debug:
        log.debug("race exhausted", operations=n, elapsed_ms=round((time.perf_counter() - start) * 1000, 2))
    return Err(JoinedError(f"all {n} operations failed", errors))
