"""Custom exception hierarchy for pyboredom."""

from __future__ import annotations


class BoredomError(Exception):
    """Base exception for all pyboredom errors."""


class BoredomConfigError(BoredomError):
    """Invalid or missing configuration."""


class StoreError(BoredomError):
    """Durable store operation failed."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class StateNotFoundError(StoreError):
    """The singleton state record does not exist (cold start)."""


class StoreUnavailableError(StoreError):
    """The store could not be reached (connection lost, no server selectable)."""


class WriteTimeoutError(StoreError):
    """A write did not complete within its deadline.

    The outcome of the write is unknown: it may or may not have been
    applied.  Callers must treat any cached copy of the state as stale.
    """


class InvalidArgumentError(BoredomError, ValueError):
    """Caller supplied an invalid value; no state was changed."""


class AuthFailureError(BoredomError):
    """Credentials were missing or did not match."""

    def __init__(self, message: str, *, missing: bool = False) -> None:
        self.missing = missing
        super().__init__(message)
