"""
Exceptions raised by lwwset.
"""

from __future__ import annotations

from typing import Any


class PreconditionViolation(ValueError):
    """
    Raised when an operation's precondition does not hold.

    The only case today is removing a value that is not currently
    present in the set. It signals a caller logic error and is never
    retried internally.
    """

    def __init__(self, value: Any, message: str | None = None):
        self.value = value
        super().__init__(message or f"Value {value!r} is not in the set, thus cannot be removed")
