"""Error handling for oneresponse.

- Result/Ok/Err: per-operation outcomes and combinator return values
- JoinedError/join: composite error with member lookup
- OneResponseError, ScopeCancelledError, EmptyOperationsError: library errors
"""

from .errors import (
    DEFAULT_JOIN_MESSAGE,
    EmptyOperationsError,
    JoinedError,
    OneResponseError,
    ScopeCancelledError,
    join,
)
from .result import Err, Ok, Result

__all__ = [
    # Result
    "Result", "Ok", "Err",
    # Composite
    "JoinedError", "join", "DEFAULT_JOIN_MESSAGE",
    # Library errors
    "OneResponseError", "ScopeCancelledError", "EmptyOperationsError",
]
