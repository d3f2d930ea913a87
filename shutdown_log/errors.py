"""
Error kinds raised by the store and the log contract.
"""

from __future__ import annotations


class ShutdownLogError(Exception):
    """Base class for every error this package raises."""


class NotAuthenticated(ShutdownLogError):
    """No identity could be resolved for the session."""


class NotFound(ShutdownLogError):
    """The requested log does not exist (or is not visible to the caller)."""


class StoreFailure(ShutdownLogError):
    """The store could not be reached or rejected the operation."""


class Conflict(ShutdownLogError):
    """The log changed since the caller last read it."""

    def __init__(self, log_id: str, expected: int, actual: int):
        super().__init__(
            f"log {log_id} is at revision {actual}, expected {expected}"
        )
        self.log_id = log_id
        self.expected = expected
        self.actual = actual
