"""oneresponse: first successful result from a list of fallible operations.

Two strategies over the same operation contract:

    >>> from oneresponse import Scope, parallel, serial
    >>>
    >>> async def primary(scope: Scope) -> str: ...
    >>> async def replica(scope: Scope) -> str: ...
    >>>
    >>> result = await serial(Scope(), [primary, replica])    # in order
    >>> result = await parallel(Scope(), [primary, replica])  # race
    >>> value, err = result.to_tuple()

On total failure the error is a JoinedError (an ExceptionGroup) holding every
operation's exception:

    >>> err = result.unwrap_err()
    >>> timeout = err.find(TimeoutError)
"""

from __future__ import annotations

from .combinators import (
    WINNER_SELECTED,
    EmptyPolicy,
    Operation,
    Response,
    parallel,
    parallel_sync,
    serial,
    serial_sync,
)
from .concurrency import Scope, run_sync
from .config import OneResponseSettings, clear_settings_cache, get_settings
from .errors import (
    EmptyOperationsError,
    Err,
    JoinedError,
    Ok,
    OneResponseError,
    Result,
    ScopeCancelledError,
    join,
)
from .observability import configure_logging, get_logger, log_context

__version__ = "0.1.0"

__all__ = [
    # Combinators
    "serial", "parallel", "serial_sync", "parallel_sync",
    "Operation", "Response", "EmptyPolicy", "WINNER_SELECTED",
    # Scope
    "Scope", "run_sync",
    # Errors
    "Result", "Ok", "Err", "JoinedError", "join",
    "OneResponseError", "ScopeCancelledError", "EmptyOperationsError",
    # Config & logging
    "OneResponseSettings", "get_settings", "clear_settings_cache",
    "configure_logging", "get_logger", "log_context",
]
