"""Serial one-response: try operations in order until one succeeds.

Useful for:
- Provider redundancy (primary, then backup)
- Graceful degradation (expensive first, cheap last)

Example:
    >>> result = await serial(scope, [primary_lookup, backup_lookup, cache_lookup])
    >>> value, err = result.to_tuple()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, TypeVar

from oneresponse.concurrency import call_operation
from oneresponse.errors import Err, JoinedError, Ok, ScopeCancelledError
from oneresponse.observability import get_logger

from .types import EmptyPolicy, Operation, Response, empty_response

if TYPE_CHECKING:
    from collections.abc import Iterable

    from oneresponse.concurrency import Scope

T = TypeVar("T")

log = get_logger("oneresponse.serial")


async def serial(
    scope: Scope,
    ops: Iterable[Operation[T]],
    *,
    empty: EmptyPolicy | None = None,
) -> Response[T]:
    """Return the first success, evaluating ops left to right.

    All operations share one child scope of ``scope``; it is cancelled when
    the call returns. Operations after the first success are never invoked.

    Args:
        scope: Caller's cancellation scope
        ops: Operations in the order to try them
        empty: Empty-input policy override ("ok" or "error"); defaults to
            the ONERESPONSE_EMPTY_OPS setting

    Returns:
        Ok(value) from the first operation that returned, or
        Err(JoinedError) holding every failure in call order

    Raises:
        asyncio.CancelledError: If the awaiting task is cancelled
        BaseException: Non-Exception errors raised by an operation propagate
    """
    ops = list(ops)
    if not ops:
        return empty_response("serial", empty)

    errors: list[Exception] = []
    debug = log.is_enabled_for(logging.DEBUG)
    start = time.perf_counter() if debug else 0.0
    sub = scope.child()
    try:
        for index, op in enumerate(ops):
            try:
                value = await call_operation(op, sub)
            except Exception as e:
                if debug:
                    log.debug("serial attempt failed", index=index, error=str(e), error_type=type(e).__name__)
                errors.append(e)
                continue
            except asyncio.CancelledError:
                # Only the caller's own cancellation ends the fold
                task = asyncio.current_task()
                if task is not None and task.cancelling():
                    raise
                if debug:
                    log.debug("serial attempt cancelled", index=index, reason=sub.reason)
                errors.append(ScopeCancelledError(sub.reason))
                continue
            if debug:
                log.debug("serial succeeded", index=index, failures=len(errors),
                          elapsed_ms=round((time.perf_counter() - start) * 1000, 2))
            return Ok(value)
    finally:
        sub.cancel()

    log.debug("serial exhausted", operations=len(ops))
    return Err(JoinedError(f"all {len(ops)} operations failed", errors))
