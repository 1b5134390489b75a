"""Error types raised and aggregated by the combinators.

The combinators fabricate very little: a composite JoinedError on total
failure, a ScopeCancelledError for work interrupted by its scope, and an
optional EmptyOperationsError. Everything else is the operations' own
exceptions, passed through untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

X = TypeVar("X", bound=BaseException)

DEFAULT_JOIN_MESSAGE = "all operations failed"


class OneResponseError(Exception):
    """Base class for errors originating in this library."""


class ScopeCancelledError(OneResponseError):
    """The scope an operation ran under was cancelled."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(f"scope cancelled: {reason}" if reason else "scope cancelled")


class EmptyOperationsError(OneResponseError, ValueError):
    """A combinator was called with no operations and the empty policy is 'error'."""

    def __init__(self, combinator: str) -> None:
        self.combinator = combinator
        super().__init__(f"{combinator}() requires at least one operation")


class JoinedError(ExceptionGroup):
    """Composite of operation failures, in the order they were collected.

    Being an ExceptionGroup, it works with ``except*`` and ``split()``. On top
    of that it supports identity membership (``err in joined``) and typed
    lookup (``joined.find(TimeoutError)``), both searching nested groups.
    Its text is the members' messages, one per line.

    Example:
        >>> e = JoinedError("all operations failed", [ValueError("a"), KeyError("b")])
        >>> str(e)
        "a\\n'b'"
        >>> isinstance(e.find(KeyError), KeyError)
        True
    """

    def derive(self, excs: Sequence[Exception]) -> JoinedError:  # type: ignore[override]
        return JoinedError(self.message, excs)

    def leaves(self) -> Iterator[BaseException]:
        """Yield members depth-first, flattening nested exception groups."""
        for exc in self.exceptions:
            if isinstance(exc, BaseExceptionGroup):
                if isinstance(exc, JoinedError):
                    yield from exc.leaves()
                else:
                    yield from _flatten(exc)
            else:
                yield exc

    def find(self, exc_type: type[X]) -> X | None:
        """First member that is an instance of exc_type, or None."""
        return next((e for e in self.leaves() if isinstance(e, exc_type)), None)

    def __contains__(self, err: object) -> bool:
        return any(e is err for e in self.leaves())

    def __len__(self) -> int:
        return len(self.exceptions)

    def __str__(self) -> str:
        return "\n".join(str(e) for e in self.exceptions)


def _flatten(group: BaseExceptionGroup) -> Iterator[BaseException]:
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            yield from _flatten(exc)
        else:
            yield exc


def join(*errors: Exception | None, message: str = DEFAULT_JOIN_MESSAGE) -> JoinedError | None:
    """Join errors into one JoinedError, skipping None. Returns None if nothing is left.

    Example:
        >>> join(None, None) is None
        True
        >>> err = ValueError("x")
        >>> err in join(err, None)
        True
    """
    members = [e for e in errors if e is not None]
    return JoinedError(message, members) if members else None
