"""Blocking entry points for callers without an event loop."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from oneresponse.concurrency import Scope, run_sync

from .parallel import parallel
from .serial import serial

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .types import EmptyPolicy, Operation, Response

T = TypeVar("T")


def serial_sync(
    ops: Iterable[Operation[T]],
    scope: Scope | None = None,
    *,
    empty: EmptyPolicy | None = None,
) -> Response[T]:
    """Blocking serial(). Scope defaults to a fresh root."""
    return run_sync(serial(scope or Scope.background(), ops, empty=empty))


def parallel_sync(
    ops: Iterable[Operation[T]],
    scope: Scope | None = None,
    *,
    empty: EmptyPolicy | None = None,
) -> Response[T]:
    """Blocking parallel(). Scope defaults to a fresh root.

    Example:
        >>> value, err = parallel_sync([lambda s: fetch("a"), lambda s: fetch("b")]).to_tuple()
    """
    return run_sync(parallel(scope or Scope.background(), ops, empty=empty))
