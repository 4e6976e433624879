"""
SQLAlchemy-backed local store.

Persists every synchronized kind in the embedded SQLite database. Sessions
are synchronous; each call runs on the default executor so the event loop
is never blocked.
"""

import asyncio
import copy
import logging
import threading
from typing import Any, Callable, List, Optional, TypeVar

from sqlalchemy import delete as sa_delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from lineageweaver.database.connection import DatabaseManager
from lineageweaver.database.models import EntityRecordModel
from lineageweaver.sync.exceptions import LocalStoreError
from lineageweaver.sync.models import DEPENDENCY_ORDER, EntityKind, Identity, Record
from lineageweaver.sync.stores.base import LocalStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _payload_of(record: Record) -> Record:
    return {key: value for key, value in copy.deepcopy(record).items() if key != "id"}


class SQLAlchemyLocalStore(LocalStore):
    """Local store persisting records in the ``entity_records`` table."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db_manager = db_manager or DatabaseManager()
        # Identity assignment reads max(id) then inserts; one writer at a time
        self._add_lock = threading.Lock()

    async def _run(self, kind: Optional[EntityKind], fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except SQLAlchemyError as e:
            raise LocalStoreError(str(e), kind.value if kind else None) from e

    @staticmethod
    def _identity(kind: EntityKind, identity: Identity) -> int:
        try:
            return int(identity)
        except (TypeError, ValueError):
            raise LocalStoreError(f"Identity must be an integer, got {identity!r}", kind.value)

    async def list_all(self, kind: EntityKind) -> List[Record]:
        def _list():
            with self.db_manager.get_session() as session:
                rows = session.execute(
                    select(EntityRecordModel)
                    .where(EntityRecordModel.kind == kind.value)
                    .order_by(EntityRecordModel.id)
                ).scalars().all()
                return [row.to_record() for row in rows]

        return await self._run(kind, _list)

    async def get(self, kind: EntityKind, identity: Identity) -> Optional[Record]:
        key = self._identity(kind, identity)

        def _get():
            with self.db_manager.get_session() as session:
                row = session.get(EntityRecordModel, (kind.value, key))
                return row.to_record() if row else None

        return await self._run(kind, _get)

    async def add(self, kind: EntityKind, payload: Record) -> int:
        data = _payload_of(payload)

        def _add():
            with self._add_lock, self.db_manager.get_session() as session:
                current = session.execute(
                    select(func.max(EntityRecordModel.id)).where(EntityRecordModel.kind == kind.value)
                ).scalar()
                identity = (current or 0) + 1
                session.add(EntityRecordModel(kind=kind.value, id=identity, payload=data))
                return identity

        identity = await self._run(kind, _add)
        logger.debug(f"Added {kind.value}/{identity}")
        return identity

    async def put(self, kind: EntityKind, identity: Identity, payload: Record) -> None:
        key = self._identity(kind, identity)
        data = _payload_of(payload)

        def _put():
            with self.db_manager.get_session() as session:
                row = session.get(EntityRecordModel, (kind.value, key))
                if row is None:
                    session.add(EntityRecordModel(kind=kind.value, id=key, payload=data))
                else:
                    row.payload = data

        await self._run(kind, _put)

    async def update(self, kind: EntityKind, identity: Identity, patch: Record) -> None:
        key = self._identity(kind, identity)
        changes = _payload_of(patch)

        def _update():
            with self.db_manager.get_session() as session:
                row = session.get(EntityRecordModel, (kind.value, key))
                if row is None:
                    raise LocalStoreError(f"No record with id {key}", kind.value)
                # Reassign so the JSON column registers the change
                row.payload = {**(row.payload or {}), **changes}

        await self._run(kind, _update)

    async def delete(self, kind: EntityKind, identity: Identity) -> None:
        key = self._identity(kind, identity)

        def _delete():
            with self.db_manager.get_session() as session:
                session.execute(
                    sa_delete(EntityRecordModel).where(
                        EntityRecordModel.kind == kind.value,
                        EntityRecordModel.id == key,
                    )
                )

        await self._run(kind, _delete)

    async def delete_all(self) -> None:
        collections: List[Any] = [kind.value for kind in DEPENDENCY_ORDER]

        def _delete_all():
            with self.db_manager.get_session() as session:
                session.execute(
                    sa_delete(EntityRecordModel).where(EntityRecordModel.kind.in_(collections))
                )

        await self._run(None, _delete_all)
        logger.info("Cleared all synchronized local collections")

    async def close(self) -> None:
        self.db_manager.close()


__all__ = ["SQLAlchemyLocalStore"]
