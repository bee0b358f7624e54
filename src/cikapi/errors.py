"""
Error taxonomy for storage and resolver failures.

Not-found is never an error: lookups return None or an empty list instead.
"""


class StoreError(Exception):
    """Base class for storage failures. ``cause`` holds the underlying exception."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class StorageUnavailable(StoreError):
    """The pool could not be created, failed its liveness check, or timed out on acquisition."""


class QueryError(StoreError):
    """A single statement failed (bad SQL, constraint violation, connection loss, timeout)."""


class MutationFailed(QueryError):
    """The lookup or write step of an upsert failed."""
