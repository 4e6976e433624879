"""
Synced Repository Module.

Local-first write path used by the application layer. Every mutation is
committed to the local store first; once that succeeds the matching remote
mirror is dispatched in the background when a tenant is signed in. Local
failures propagate to the caller and no mirror is attempted.
"""

import logging
from typing import List, Optional

from lineageweaver.sync.models import EntityKind, Identity, Record
from lineageweaver.sync.propagator import MutationPropagator
from lineageweaver.sync.stores.base import LocalStore

logger = logging.getLogger(__name__)


class SyncedRepository:
    """Local store wrapper that mirrors each committed mutation."""

    def __init__(
        self,
        local: LocalStore,
        propagator: MutationPropagator,
        tenant_id: Optional[str] = None,
    ):
        self._local = local
        self._propagator = propagator
        self.tenant_id = tenant_id

    async def list_all(self, kind: EntityKind) -> List[Record]:
        return await self._local.list_all(kind)

    async def get(self, kind: EntityKind, identity: Identity) -> Optional[Record]:
        return await self._local.get(kind, identity)

    async def add(self, kind: EntityKind, payload: Record) -> int:
        """
        Create a record locally and mirror it.

        Returns:
            The identity assigned by the local store, reused as the remote key
        """
        data = {key: value for key, value in payload.items() if key != "id"}
        identity = await self._local.add(kind, data)
        logger.debug(f"Added {kind.value} {identity}")

        if self.tenant_id:
            self._propagator.dispatch_add(self.tenant_id, kind, identity, data)
        return identity

    async def update(self, kind: EntityKind, identity: Identity, patch: Record) -> None:
        await self._local.update(kind, identity, patch)
        logger.debug(f"Updated {kind.value} {identity}")

        if self.tenant_id:
            self._propagator.dispatch_update(self.tenant_id, kind, identity, patch)

    async def delete(self, kind: EntityKind, identity: Identity) -> None:
        await self._local.delete(kind, identity)
        logger.debug(f"Deleted {kind.value} {identity}")

        if self.tenant_id:
            self._propagator.dispatch_delete(self.tenant_id, kind, identity)

    async def delete_all_local(self) -> None:
        """Clear local data only; the remote copy is kept for a later restore."""
        await self._local.delete_all()
        logger.info("All local data deleted")


__all__ = ["SyncedRepository"]
