"""Cancellation scopes and sync/async interop."""

from __future__ import annotations

from .interop import call_operation, run_sync
from .scope import Scope

__all__ = ["Scope", "call_operation", "run_sync"]
