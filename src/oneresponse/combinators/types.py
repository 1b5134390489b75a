"""Shared types for the one-response combinators."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Callable, Literal, TypeAlias, TypeVar, Union

from oneresponse.concurrency import Scope
from oneresponse.config import get_settings
from oneresponse.errors import EmptyOperationsError, Err, JoinedError, Ok, Result

T = TypeVar("T")

# A callable taking the combinator's child scope. Returning a value is a
# success; raising an Exception is a failure. Sync callables run in a thread.
Operation: TypeAlias = Callable[[Scope], Union[Awaitable[T], T]]

# What a combinator call resolves to: Ok(winner's value) or Err(JoinedError).
Response: TypeAlias = Result[T, JoinedError]

EmptyPolicy: TypeAlias = Literal["ok", "error"]


def empty_response(combinator: str, policy: EmptyPolicy | None) -> Response[None]:
    """Result for a call with no operations, per the empty-input policy."""
    if (policy or get_settings().empty_ops) == "error":
        return Err(JoinedError("no operations to run", [EmptyOperationsError(combinator)]))
    return Ok(None)
