"""
Base Store Module.

Provides the abstract local and remote store adapters the sync engine is
written against, plus the batched-write handle of the remote store.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from lineageweaver.sync.exceptions import BatchCeilingExceededError, IdentityMismatchError
from lineageweaver.sync.models import (
    BatchOperationType,
    EntityKind,
    Identity,
    MAX_BATCH_OPERATIONS,
    Record,
    coerce_identity,
)

logger = logging.getLogger(__name__)


def check_identity(kind: EntityKind, identity: Identity, data: Optional[Record]) -> None:
    """
    Enforce the 1:1 local/remote identity mapping.

    A record written under a document key must carry that same key as its
    ``id`` (when it carries one at all).

    Raises:
        IdentityMismatchError: If the payload id differs from the document key
    """
    if not data or "id" not in data or data["id"] is None:
        return
    if coerce_identity(data["id"]) != coerce_identity(identity):
        raise IdentityMismatchError(kind.value, identity, data["id"])


@dataclass
class BatchOperation:
    """A single staged remote write."""
    op: BatchOperationType
    kind: EntityKind
    identity: Identity
    data: Optional[Record] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op.value,
            "collection": self.kind.value,
            "id": str(self.identity),
            "data": self.data,
        }


class WriteBatch(ABC):
    """
    Batched-write handle of a remote store.

    Operations are staged locally and sent in one round trip on commit.
    The remote store rejects commits above ``max_operations``.
    """

    def __init__(self, tenant_id: str, max_operations: int = MAX_BATCH_OPERATIONS):
        self.tenant_id = tenant_id
        self.max_operations = max_operations
        self._operations: List[BatchOperation] = []
        self._committed = False

    @property
    def operations(self) -> List[BatchOperation]:
        return list(self._operations)

    @property
    def committed(self) -> bool:
        return self._committed

    def __len__(self) -> int:
        return len(self._operations)

    def stage(self, operation: BatchOperation) -> None:
        """Stage an operation for the next commit."""
        if self._committed:
            raise RuntimeError("Write batch already committed")
        if operation.op == BatchOperationType.SET:
            check_identity(operation.kind, operation.identity, operation.data)
        self._operations.append(operation)

    def stage_set(self, kind: EntityKind, identity: Identity, data: Record) -> None:
        self.stage(BatchOperation(BatchOperationType.SET, kind, identity, data))

    def stage_delete(self, kind: EntityKind, identity: Identity) -> None:
        self.stage(BatchOperation(BatchOperationType.DELETE, kind, identity))

    async def commit(self) -> int:
        """
        Commit all staged operations atomically.

        Returns:
            Number of operations committed

        Raises:
            BatchCeilingExceededError: If more operations are staged than allowed
        """
        if self._committed:
            raise RuntimeError("Write batch already committed")
        if len(self._operations) > self.max_operations:
            raise BatchCeilingExceededError(len(self._operations), self.max_operations)

        await self._commit(list(self._operations))
        self._committed = True
        logger.debug(f"Committed batch of {len(self._operations)} operations")
        return len(self._operations)

    @abstractmethod
    async def _commit(self, operations: List[BatchOperation]) -> None:
        pass


class LocalStore(ABC):
    """
    Abstract on-device embedded store.

    The local store is the authority while offline. Errors raised here are
    fatal to the calling operation and are never swallowed by the engine.
    """

    @abstractmethod
    async def list_all(self, kind: EntityKind) -> List[Record]:
        """List all records of a kind, each including its ``id``."""
        pass

    @abstractmethod
    async def get(self, kind: EntityKind, identity: Identity) -> Optional[Record]:
        pass

    @abstractmethod
    async def add(self, kind: EntityKind, payload: Record) -> int:
        """
        Insert a new record and assign its identity.

        Returns:
            The integer identity assigned by the store
        """
        pass

    @abstractmethod
    async def put(self, kind: EntityKind, identity: Identity, payload: Record) -> None:
        """Insert or replace a record under an explicit identity."""
        pass

    @abstractmethod
    async def update(self, kind: EntityKind, identity: Identity, patch: Record) -> None:
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, identity: Identity) -> None:
        pass

    @abstractmethod
    async def delete_all(self) -> None:
        """Clear every synchronized kind."""
        pass

    async def close(self) -> None:
        """Release store resources."""
        return None


class RemoteStore(ABC):
    """
    Abstract network-accessible per-tenant document store.

    Every call is scoped to one tenant. Document keys are the string form of
    the local identity.
    """

    max_batch_operations: int = MAX_BATCH_OPERATIONS

    def __init__(self):
        self._last_error: Optional[Exception] = None
        self._opened_at = datetime.utcnow()
        self._stats = {
            "total_reads": 0,
            "total_writes": 0,
            "total_commits": 0,
            "total_errors": 0,
        }

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    @property
    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            **self._stats,
            "opened_at": self._opened_at,
            "uptime_seconds": (datetime.utcnow() - self._opened_at).total_seconds(),
        }

    @abstractmethod
    async def get(self, tenant_id: str, kind: EntityKind, identity: Identity) -> Optional[Record]:
        pass

    @abstractmethod
    async def list_all(self, tenant_id: str, kind: EntityKind) -> List[Record]:
        pass

    @abstractmethod
    async def set(self, tenant_id: str, kind: EntityKind, identity: Identity, data: Record) -> None:
        """Upsert a document keyed by identity."""
        pass

    @abstractmethod
    async def update(self, tenant_id: str, kind: EntityKind, identity: Identity, patch: Record) -> None:
        pass

    @abstractmethod
    async def delete(self, tenant_id: str, kind: EntityKind, identity: Identity) -> None:
        pass

    @abstractmethod
    async def exists_any(self, tenant_id: str, kind: EntityKind) -> bool:
        """Cheap probe: does the tenant's collection hold at least one document."""
        pass

    @abstractmethod
    def batch(self, tenant_id: str) -> WriteBatch:
        """Open a new write batch for a tenant."""
        pass

    async def close(self) -> None:
        """Release store resources."""
        return None

    def _record_error(self, error: Exception) -> None:
        self._last_error = error
        self._stats["total_errors"] += 1
        logger.error(f"Remote store error: {error}")

    def _record_read(self, record_count: int = 1) -> None:
        self._stats["total_reads"] += record_count

    def _record_write(self, record_count: int = 1) -> None:
        self._stats["total_writes"] += record_count

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


__all__ = [
    "check_identity",
    "BatchOperation",
    "WriteBatch",
    "LocalStore",
    "RemoteStore",
]
