"""One-response combinators: first success from a list of fallible operations.

    - serial: try in order, stop at the first success
    - parallel: race all at once, first success wins
    - serial_sync / parallel_sync: blocking wrappers
"""

from __future__ import annotations

from .blocking import parallel_sync, serial_sync
from .parallel import WINNER_SELECTED, parallel
from .serial import serial
from .types import EmptyPolicy, Operation, Response

__all__ = [
    "serial",
    "parallel",
    "serial_sync",
    "parallel_sync",
    "Operation",
    "Response",
    "EmptyPolicy",
    "WINNER_SELECTED",
]
