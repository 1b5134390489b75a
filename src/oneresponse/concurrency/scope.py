"""Cancellation scopes shared between a combinator and its operations.

A Scope is a tree node: cancelling it cancels every descendant, and a child
derived from an already cancelled scope starts out cancelled. Operations
observe cancellation by polling ``cancelled`` / ``raise_if_cancelled()`` or by
awaiting ``wait_cancelled()``. Tasks attached to a scope are also cancelled
at their next await when the scope is.

Key Features:
    - Derivation: child() scopes follow their parent's cancellation
    - Idempotent cancel: only the first cancel() has any effect
    - Deadlines: with_timeout() derives a child that cancels itself
    - Thread-safe: cancel() may be called from worker threads

Example:
    >>> async with Scope() as scope:
    ...     worker = scope.child()
    ...     await do_work(worker)
    ... # scope and worker are cancelled on exit
"""

from __future__ import annotations

import asyncio
import threading
import weakref
from typing import TYPE_CHECKING

from oneresponse.errors import ScopeCancelledError
from oneresponse.observability import get_logger

if TYPE_CHECKING:
    from types import TracebackType

log = get_logger("oneresponse.scope")


class Scope:
    """Cancellation handle that can be observed, derived and cancelled.

    Example:
        >>> root = Scope()
        >>> child = root.child()
        >>> root.cancel("shutting down")
        True
        >>> child.cancelled, child.reason
        (True, 'shutting down')
    """

    __slots__ = ("_lock", "_cancelled", "_reason", "_children", "_tasks", "_waiters", "_timer", "_parent", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._reason: str | None = None
        self._children: weakref.WeakSet[Scope] = weakref.WeakSet()
        self._tasks: set[asyncio.Future[object]] = set()
        self._waiters: set[asyncio.Future[None]] = set()
        self._timer: tuple[asyncio.AbstractEventLoop, asyncio.TimerHandle] | None = None
        self._parent: Scope | None = None

    @classmethod
    def background(cls) -> Scope:
        """Fresh root scope that nothing else cancels."""
        return cls()

    # ─── Observation ─────────────────────────────────────────────────

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested on this scope or an ancestor."""
        return self._cancelled

    @property
    def reason(self) -> str | None:
        """Reason given to the cancel() call that cancelled this scope."""
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise ScopeCancelledError if the scope is cancelled."""
        if self._cancelled:
            raise ScopeCancelledError(self._reason)

    async def wait_cancelled(self) -> None:
        """Suspend until the scope is cancelled."""
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        with self._lock:
            if self._cancelled:
                return
            self._waiters.add(fut)
        try:
            await fut
        finally:
            with self._lock:
                self._waiters.discard(fut)

    # ─── Derivation ──────────────────────────────────────────────────

    def child(self) -> Scope:
        """Derive a scope cancelled whenever this one is."""
        scope = Scope()
        scope._parent = self
        with self._lock:
            if self._cancelled:
                scope._cancelled, scope._reason = True, self._reason
            else:
                self._children.add(scope)
        return scope

    def with_timeout(self, seconds: float) -> Scope:
        """Derive a child that cancels itself after ``seconds`` on the running loop.

        Raises:
            RuntimeError: If called outside a running event loop
        """
        scope = self.child()
        if not scope._cancelled:
            loop = asyncio.get_running_loop()
            scope._timer = (loop, loop.call_later(seconds, scope.cancel, f"timed out after {seconds}s"))
        return scope

    def attach(self, task: asyncio.Future[object]) -> None:
        """Cancel ``task`` when this scope is cancelled.

        Attaching to an already cancelled scope does not interrupt the task;
        the work is expected to notice the scope itself.
        """
        with self._lock:
            if self._cancelled or task.done():
                return
            self._tasks.add(task)
        task.add_done_callback(self._detach)

    def _detach(self, task: asyncio.Future[object]) -> None:
        with self._lock:
            self._tasks.discard(task)

    # ─── Cancellation ────────────────────────────────────────────────

    def cancel(self, reason: str | None = None) -> bool:
        """Cancel this scope and all of its descendants.

        Returns:
            True if this call cancelled the scope, False if it already was
        """
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled, self._reason = True, reason
            children, self._children = list(self._children), weakref.WeakSet()
            tasks, self._tasks = list(self._tasks), set()
            waiters, self._waiters = list(self._waiters), set()
            timer, self._timer = self._timer, None

        if timer is not None:
            timer_loop, handle = timer
            _call_in_loop(timer_loop, handle.cancel)
        for scope in children:
            scope.cancel(reason)
        for task in tasks:
            _call_in_loop(task.get_loop(), task.cancel, reason)
        for fut in waiters:
            _call_in_loop(fut.get_loop(), _resolve, fut)
        if (parent := self._parent) is not None:
            with parent._lock:
                parent._children.discard(self)

        log.debug("scope cancelled", reason=reason, children=len(children), tasks=len(tasks))
        return True

    # ─── Context Manager ─────────────────────────────────────────────

    def __enter__(self) -> Scope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cancel()

    async def __aenter__(self) -> Scope:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "active"
        return f"Scope({state})"


def _resolve(fut: asyncio.Future[None]) -> None:
    if not fut.done():
        fut.set_result(None)


def _call_in_loop(loop: asyncio.AbstractEventLoop, func: object, *args: object) -> None:
    """Run func on loop, hopping threads when called from elsewhere."""
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        func(*args)  # type: ignore[operator]
    elif not loop.is_closed():
        loop.call_soon_threadsafe(func, *args)  # type: ignore[arg-type]
