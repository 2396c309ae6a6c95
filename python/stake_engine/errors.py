"""Error taxonomy.

Only malformed input is an exception. Business conditions (minimum stake,
zero balances, missing share price) come back as structured results.
"""

from __future__ import annotations


class StakeEngineError(Exception):
    """Base class for engine faults."""


class InvalidNumericInput(StakeEngineError, ValueError):
    """A numeric string is not a well-formed non-negative integer."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a non-negative integer string, got {value!r}")
