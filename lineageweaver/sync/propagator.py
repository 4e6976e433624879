"""
Mutation Propagator Module.

Mirrors single, already-committed local mutations to the remote store on a
best-effort basis. Mirroring never blocks or fails the local-first path:

- no tenant, or offline: silent no-op, nothing is queued for later
- otherwise: exactly one remote call
- any failure: logged and swallowed, never retried, never undone locally

A mirror dropped here is only recovered by the next bootstrap or a forced
resync.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.models import EntityKind, Identity, MutationType, Record
from lineageweaver.sync.status import StatusBroadcaster
from lineageweaver.sync.stores.base import RemoteStore, check_identity

logger = logging.getLogger(__name__)


class MutationPropagator:
    """Best-effort remote mirror of local add/update/delete mutations."""

    def __init__(
        self,
        remote: RemoteStore,
        connectivity: ConnectivityMonitor,
        broadcaster: Optional[StatusBroadcaster] = None,
    ):
        self._remote = remote
        self._connectivity = connectivity
        self._broadcaster = broadcaster
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def should_mirror(self, tenant_id: Optional[str]) -> bool:
        return bool(tenant_id) and self._connectivity.is_online()

    # === Awaitable mirrors ===

    async def mirror_add(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity, payload: Record) -> None:
        async def _call():
            check_identity(kind, identity, payload)
            await self._remote.set(tenant_id, kind, identity, {**payload, "id": identity})

        await self._mirror(MutationType.ADD, tenant_id, kind, identity, _call)

    async def mirror_update(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity, patch: Record) -> None:
        async def _call():
            check_identity(kind, identity, patch)
            await self._remote.update(tenant_id, kind, identity, patch)

        await self._mirror(MutationType.UPDATE, tenant_id, kind, identity, _call)

    async def mirror_delete(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity) -> None:
        async def _call():
            await self._remote.delete(tenant_id, kind, identity)

        await self._mirror(MutationType.DELETE, tenant_id, kind, identity, _call)

    async def _mirror(
        self,
        mutation: MutationType,
        tenant_id: Optional[str],
        kind: EntityKind,
        identity: Identity,
        call: Callable[[], Awaitable[None]],
    ) -> None:
        if not self.should_mirror(tenant_id):
            return

        try:
            await call()
            logger.debug(f"Mirrored {kind.value} {mutation.value} {identity}")
        except Exception as e:
            # Local state is already correct; the remote copy just lags
            logger.error(
                f"Failed to mirror {kind.value} {mutation.value} {identity}: {e}",
                extra={"tenant_id": tenant_id},
            )

    # === Fire-and-forget dispatch ===

    def dispatch_add(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity, payload: Record) -> Optional[asyncio.Task]:
        return self._dispatch(tenant_id, self.mirror_add(tenant_id, kind, identity, payload))

    def dispatch_update(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity, patch: Record) -> Optional[asyncio.Task]:
        return self._dispatch(tenant_id, self.mirror_update(tenant_id, kind, identity, patch))

    def dispatch_delete(self, tenant_id: Optional[str], kind: EntityKind, identity: Identity) -> Optional[asyncio.Task]:
        return self._dispatch(tenant_id, self.mirror_delete(tenant_id, kind, identity))

    def _dispatch(self, tenant_id: Optional[str], coro) -> Optional[asyncio.Task]:
        """Schedule a mirror without awaiting it."""
        if not self.should_mirror(tenant_id):
            coro.close()
            return None

        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        self._publish_pending()
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        self._publish_pending()

    def _publish_pending(self) -> None:
        if self._broadcaster is not None:
            self._broadcaster.publish(pending_changes=len(self._pending))

    async def drain(self) -> None:
        """Wait for every in-flight mirror to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def for_kind(self, kind: EntityKind) -> "KindMirror":
        return KindMirror(self, kind)


class KindMirror:
    """Mirror operations bound to one entity kind."""

    def __init__(self, propagator: MutationPropagator, kind: EntityKind):
        self._propagator = propagator
        self.kind = kind

    async def add(self, tenant_id: Optional[str], identity: Identity, payload: Record) -> None:
        await self._propagator.mirror_add(tenant_id, self.kind, identity, payload)

    async def update(self, tenant_id: Optional[str], identity: Identity, patch: Record) -> None:
        await self._propagator.mirror_update(tenant_id, self.kind, identity, patch)

    async def delete(self, tenant_id: Optional[str], identity: Identity) -> None:
        await self._propagator.mirror_delete(tenant_id, self.kind, identity)


__all__ = ["MutationPropagator", "KindMirror"]
