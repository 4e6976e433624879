"""
Exception hierarchy for the sync engine.
"""

from typing import Any, Optional


class SyncError(Exception):
    """Base exception for sync engine errors."""
    pass


class LocalStoreError(SyncError):
    """Raised when the local embedded store fails. Never swallowed."""

    def __init__(self, message: str, collection: Optional[str] = None):
        self.message = message
        self.collection = collection
        super().__init__(self.message)

    def __str__(self):
        if self.collection:
            return f"Local store error ({self.collection}): {self.message}"
        return f"Local store error: {self.message}"


class RemoteStoreError(SyncError):
    """Raised when the remote document store fails."""
    pass


class RemoteRequestError(RemoteStoreError):
    """Raised when a remote store HTTP request fails."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        self.message = message
        self.status = status
        self.url = url
        super().__init__(self.message)

    def __str__(self):
        if self.status is not None:
            return f"Remote request failed ({self.status}): {self.message}"
        return f"Remote request failed: {self.message}"


class BatchCeilingExceededError(RemoteStoreError):
    """Raised when a write batch would exceed the remote per-commit ceiling."""

    def __init__(self, operations: int, ceiling: int):
        self.operations = operations
        self.ceiling = ceiling
        super().__init__(
            f"Write batch holds {operations} operations, ceiling is {ceiling}"
        )


class IdentityMismatchError(SyncError):
    """Raised when a remote write targets a key other than the local identity."""

    def __init__(self, collection: str, identity: Any, payload_identity: Any):
        self.collection = collection
        self.identity = identity
        self.payload_identity = payload_identity
        super().__init__(
            f"{collection}: document key {identity!r} does not match "
            f"record id {payload_identity!r}"
        )


__all__ = [
    "SyncError",
    "LocalStoreError",
    "RemoteStoreError",
    "RemoteRequestError",
    "BatchCeilingExceededError",
    "IdentityMismatchError",
]
