"""
In-memory store adapters.

Dict-backed local and remote stores used for offline sessions, demos and
tests. The remote store mimics the document store's behavior: string
document keys, metadata timestamps attached on write and an atomic write
batch capped at the per-commit ceiling.
"""

import copy
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from lineageweaver.sync.exceptions import LocalStoreError
from lineageweaver.sync.models import (
    BatchOperationType,
    DEPENDENCY_ORDER,
    EntityKind,
    Identity,
    MAX_BATCH_OPERATIONS,
    Record,
)
from lineageweaver.sync.stores.base import (
    BatchOperation,
    LocalStore,
    RemoteStore,
    WriteBatch,
    check_identity,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLocalStore(LocalStore):
    """Local store keeping one auto-increment table per entity kind."""

    def __init__(self):
        self._tables: Dict[EntityKind, Dict[int, Record]] = {kind: {} for kind in DEPENDENCY_ORDER}
        self._sequences: Dict[EntityKind, int] = {kind: 0 for kind in DEPENDENCY_ORDER}

    def _table(self, kind: EntityKind) -> Dict[int, Record]:
        try:
            return self._tables[kind]
        except KeyError:
            raise LocalStoreError(f"Unknown entity kind: {kind}")

    async def list_all(self, kind: EntityKind) -> List[Record]:
        table = self._table(kind)
        return [{**copy.deepcopy(payload), "id": identity} for identity, payload in sorted(table.items())]

    async def get(self, kind: EntityKind, identity: Identity) -> Optional[Record]:
        payload = self._table(kind).get(identity)
        if payload is None:
            return None
        return {**copy.deepcopy(payload), "id": identity}

    async def add(self, kind: EntityKind, payload: Record) -> int:
        table = self._table(kind)
        self._sequences[kind] += 1
        identity = self._sequences[kind]
        data = {k: v for k, v in copy.deepcopy(payload).items() if k != "id"}
        table[identity] = data
        return identity

    async def put(self, kind: EntityKind, identity: Identity, payload: Record) -> None:
        table = self._table(kind)
        data = {k: v for k, v in copy.deepcopy(payload).items() if k != "id"}
        table[identity] = data
        if isinstance(identity, int) and identity > self._sequences[kind]:
            self._sequences[kind] = identity

    async def update(self, kind: EntityKind, identity: Identity, patch: Record) -> None:
        table = self._table(kind)
        if identity not in table:
            raise LocalStoreError(f"No record with id {identity!r}", kind.value)
        table[identity].update({k: v for k, v in copy.deepcopy(patch).items() if k != "id"})

    async def delete(self, kind: EntityKind, identity: Identity) -> None:
        self._table(kind).pop(identity, None)

    async def delete_all(self) -> None:
        for table in self._tables.values():
            table.clear()


class InMemoryWriteBatch(WriteBatch):
    """Write batch applied atomically to an InMemoryRemoteStore."""

    def __init__(self, store: "InMemoryRemoteStore", tenant_id: str, max_operations: int):
        super().__init__(tenant_id, max_operations)
        self._store = store

    async def _commit(self, operations: List[BatchOperation]) -> None:
        await self._store._apply_batch(self.tenant_id, operations)


class InMemoryRemoteStore(RemoteStore):
    """Per-tenant document store held in process memory."""

    def __init__(self, max_batch_operations: int = MAX_BATCH_OPERATIONS):
        super().__init__()
        self.max_batch_operations = max_batch_operations
        # tenant -> collection -> document key -> document
        self._documents: Dict[str, Dict[str, Dict[str, Record]]] = defaultdict(lambda: defaultdict(dict))
        self.request_log: List[Tuple[str, str, str, Optional[str]]] = []

    def _collection(self, tenant_id: str, kind: EntityKind) -> Dict[str, Record]:
        return self._documents[tenant_id][kind.value]

    def _log(self, method: str, tenant_id: str, kind: EntityKind, identity: Optional[Identity] = None) -> None:
        self.request_log.append((method, tenant_id, kind.value, None if identity is None else str(identity)))

    def documents(self, tenant_id: str, kind: EntityKind) -> Dict[str, Record]:
        """Raw stored documents for inspection."""
        return copy.deepcopy(dict(self._collection(tenant_id, kind)))

    async def get(self, tenant_id: str, kind: EntityKind, identity: Identity) -> Optional[Record]:
        self._log("get", tenant_id, kind, identity)
        document = self._collection(tenant_id, kind).get(str(identity))
        self._record_read()
        if document is None:
            return None
        return {"id": str(identity), **copy.deepcopy(document)}

    async def list_all(self, tenant_id: str, kind: EntityKind) -> List[Record]:
        self._log("list", tenant_id, kind)
        collection = self._collection(tenant_id, kind)
        self._record_read(len(collection))
        return [{"id": key, **copy.deepcopy(document)} for key, document in collection.items()]

    async def set(self, tenant_id: str, kind: EntityKind, identity: Identity, data: Record) -> None:
        check_identity(kind, identity, data)
        self._log("set", tenant_id, kind, identity)
        now = _utcnow()
        self._collection(tenant_id, kind)[str(identity)] = {
            **copy.deepcopy(data),
            "localId": identity,
            "createdAt": now,
            "updatedAt": now,
        }
        self._record_write()

    async def update(self, tenant_id: str, kind: EntityKind, identity: Identity, patch: Record) -> None:
        self._log("update", tenant_id, kind, identity)
        collection = self._collection(tenant_id, kind)
        key = str(identity)
        if key not in collection:
            error = KeyError(f"No document {kind.value}/{key} for tenant {tenant_id}")
            self._record_error(error)
            raise error
        collection[key].update({**copy.deepcopy(patch), "updatedAt": _utcnow()})
        self._record_write()

    async def delete(self, tenant_id: str, kind: EntityKind, identity: Identity) -> None:
        self._log("delete", tenant_id, kind, identity)
        self._collection(tenant_id, kind).pop(str(identity), None)
        self._record_write()

    async def exists_any(self, tenant_id: str, kind: EntityKind) -> bool:
        self._log("exists", tenant_id, kind)
        self._record_read()
        return len(self._collection(tenant_id, kind)) > 0

    def batch(self, tenant_id: str) -> WriteBatch:
        return InMemoryWriteBatch(self, tenant_id, self.max_batch_operations)

    async def _apply_batch(self, tenant_id: str, operations: List[BatchOperation]) -> None:
        self.request_log.append(("commit", tenant_id, "*", str(len(operations))))
        for operation in operations:
            collection = self._collection(tenant_id, operation.kind)
            key = str(operation.identity)
            if operation.op == BatchOperationType.SET:
                collection[key] = copy.deepcopy(operation.data or {})
            else:
                collection.pop(key, None)
        self._stats["total_commits"] += 1
        self._record_write(len(operations))


__all__ = [
    "InMemoryLocalStore",
    "InMemoryRemoteStore",
    "InMemoryWriteBatch",
]
