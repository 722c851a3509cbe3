# analytics_store/errors.py
"""Exceptions raised by the retention engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from analytics_store.models import CleanupResult


class AnalyticsStoreError(Exception):
    """Base class for retention engine errors."""

    pass


class StoreUnavailableError(AnalyticsStoreError):
    """Raised when the analytics store cannot be reached."""

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        message = f"Analytics store unavailable during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CleanupAbortedError(AnalyticsStoreError):
    """
    Raised when a deletion fails part-way through a cleanup pass.

    The passes completed before the failure are kept on `result`, so callers
    can report the partial deleted count alongside the error.
    """

    def __init__(self, collection: str, result: CleanupResult):
        self.collection = collection
        self.result = result
        super().__init__(
            f"Cleanup aborted on {collection} after deleting {result.total_deleted} documents: {result.error}"
        )


class CleanupInProgressError(AnalyticsStoreError):
    """Raised when another cleanup pass already holds the cleanup lock."""

    def __init__(self, holder: str | None = None):
        self.holder = holder
        message = "Cleanup already running"
        if holder:
            message = f"{message} (held by {holder})"
        super().__init__(message)
