"""Sync/async bridging for operations and the sync facade.

    - run_sync: Run a coroutine from synchronous code
    - call_operation: Invoke an operation that may be sync or async

Handles the awkward cases:
    - Running when an event loop is already active in this thread
      (Jupyter, async frameworks): the coroutine gets its own loop in a
      helper thread
    - Blocking sync operations: dispatched to a worker thread so they do not
      stall the loop while racing
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from typing import TYPE_CHECKING, Callable, Coroutine, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from .scope import Scope

T = TypeVar("T")


def run_sync(coro: Coroutine[object, object, T]) -> T:
    """Run a coroutine to completion from synchronous code.

    Uses asyncio.run() when no loop is running in this thread, otherwise a
    fresh loop in a helper thread.

    Example:
        >>> run_sync(parallel(Scope(), [fetch_a, fetch_b]))
        Ok(...)
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    return _run_in_thread_loop(coro)


def _run_in_thread_loop(coro: Coroutine[object, object, T]) -> T:
    result: T | None = None
    error: BaseException | None = None

    def runner() -> None:
        nonlocal result, error
        try:
            result = asyncio.run(coro)
        except BaseException as e:  # re-raised in the calling thread
            error = e

    thread = threading.Thread(target=runner, name="oneresponse-run-sync", daemon=True)
    thread.start()
    thread.join()

    if error is not None:
        raise error
    return result  # type: ignore[return-value]


async def call_operation(op: Callable[[Scope], Awaitable[T] | T], scope: Scope) -> T:
    """Invoke op under scope and return its value.

    Coroutine functions are awaited directly. Anything else runs in a worker
    thread; if it hands back an awaitable (a lambda wrapping a coroutine, say)
    that is awaited too.
    """
    if inspect.iscoroutinefunction(op) or inspect.iscoroutinefunction(getattr(op, "__call__", None)):
        return await op(scope)  # type: ignore[misc]
    value = await asyncio.to_thread(op, scope)
    if inspect.isawaitable(value):
        return await value  # type: ignore[no-any-return]
    return value  # type: ignore[return-value]
