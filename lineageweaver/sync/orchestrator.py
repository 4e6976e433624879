"""
Sync Orchestrator Module.

Runs the sign-in bootstrap that reconciles the device with the tenant's
remote store, and the explicit "restore from remote" resync.

Bootstrap decision table:

    local data | remote data | outcome
    -----------+-------------+-----------------------------------------
    no         | no          | FRESH       nothing moves
    yes        | no          | UPLOADED    local pushed to remote
    any        | yes         | DOWNLOADED  remote wins, local replaced

Local data means at least one person or one house. Relationships alone do
not count.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from lineageweaver.sync.bulk import BulkTransferEngine
from lineageweaver.sync.models import (
    ANCHOR_KINDS,
    BootstrapStatus,
    EntityKind,
    Record,
    SYNC_MANIFEST,
    SyncOutcome,
    order_by_dependency,
    strip_remote_metadata,
)
from lineageweaver.sync.status import StatusBroadcaster
from lineageweaver.sync.stores.base import LocalStore, RemoteStore

logger = logging.getLogger(__name__)

# Probed on the remote side to decide whether the tenant has any data.
PROBE_KIND = EntityKind.HOUSES

# Anchor kinds whose presence counts as local data.
LOCAL_DATA_KINDS = (EntityKind.PEOPLE, EntityKind.HOUSES)


class SyncOrchestrator:
    """
    Bootstrap reconciliation between the local and remote stores.

    Neither entry point raises: failures are published to the status
    broadcaster and returned as an ERROR outcome.
    """

    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStore,
        bulk: BulkTransferEngine,
        broadcaster: StatusBroadcaster,
    ):
        self._local = local
        self._remote = remote
        self._bulk = bulk
        self._broadcaster = broadcaster

    async def initialize_sync(self, tenant_id: Optional[str]) -> SyncOutcome:
        """
        Reconcile local and remote data for a freshly signed-in tenant.

        Args:
            tenant_id: Signed-in tenant, or None when nobody is signed in

        Returns:
            SyncOutcome with the terminal status and the data that moved
        """
        if not tenant_id:
            return SyncOutcome(status=BootstrapStatus.NO_USER)

        self._broadcaster.publish(is_syncing=True, error=None)
        logger.info(f"Starting sync bootstrap for tenant {tenant_id}")

        try:
            anchors, has_remote = await asyncio.gather(
                self._read_anchors(),
                self._remote.exists_any(tenant_id, PROBE_KIND),
            )
            has_local = any(anchors[kind] for kind in LOCAL_DATA_KINDS)

            if not has_local and not has_remote:
                self._finish()
                logger.info(f"Fresh start for tenant {tenant_id}: no data on either side")
                return SyncOutcome(status=BootstrapStatus.FRESH)

            if has_local and not has_remote:
                collections = await self._gather_local(anchors)
                await self._bulk.upload(tenant_id, order_by_dependency(collections))
                self._finish()
                logger.info(f"Uploaded local data for tenant {tenant_id}")
                return SyncOutcome(
                    status=BootstrapStatus.UPLOADED,
                    data={kind.value: records for kind, records in anchors.items()},
                )

            data = await self._replace_local(tenant_id)
            self._finish()
            logger.info(f"Downloaded remote data for tenant {tenant_id}")
            return SyncOutcome(status=BootstrapStatus.DOWNLOADED, data=data)

        except Exception as e:
            return self._fail(tenant_id, "Sync bootstrap", e)

    async def force_full_resync(self, tenant_id: Optional[str]) -> SyncOutcome:
        """Replace local data with the remote copy, regardless of local state."""
        if not tenant_id:
            return SyncOutcome(status=BootstrapStatus.NO_USER)

        self._broadcaster.publish(is_syncing=True, error=None)
        logger.info(f"Starting forced resync for tenant {tenant_id}")

        try:
            data = await self._replace_local(tenant_id)
            self._finish()
            return SyncOutcome(status=BootstrapStatus.DOWNLOADED, data=data)
        except Exception as e:
            return self._fail(tenant_id, "Forced resync", e)

    # === Internals ===

    async def _read_anchors(self) -> Dict[EntityKind, List[Record]]:
        results = await asyncio.gather(*(self._local.list_all(kind) for kind in ANCHOR_KINDS))
        return dict(zip(ANCHOR_KINDS, results))

    async def _gather_local(self, anchors: Dict[EntityKind, List[Record]]) -> Dict[EntityKind, List[Record]]:
        """Read every manifest kind, reusing anchor reads already made."""
        pending = [spec for spec in SYNC_MANIFEST if spec.kind not in anchors]
        results = await asyncio.gather(*(
            self._read_kind(spec.kind) if spec.required else self._read_optional(spec.kind)
            for spec in pending
        ))

        collections = dict(anchors)
        for spec, records in zip(pending, results):
            collections[spec.kind] = records
        return collections

    async def _read_kind(self, kind: EntityKind) -> List[Record]:
        return await self._local.list_all(kind)

    async def _read_optional(self, kind: EntityKind) -> List[Record]:
        try:
            return await self._local.list_all(kind)
        except Exception as e:
            logger.warning(f"Could not read optional {kind.value} records, skipping: {e}")
            return []

    async def _replace_local(self, tenant_id: str) -> Dict[str, List[Record]]:
        """Wipe local data and write the remote copy back in dependency order."""
        await self._local.delete_all()
        collections = await self._bulk.download(tenant_id)

        data: Dict[str, List[Record]] = {}
        for spec in SYNC_MANIFEST:
            records = collections.get(spec.kind, [])
            data[spec.kind.value] = records
            written = 0
            for document in records:
                identity = document.get("id")
                try:
                    record = strip_remote_metadata(document)
                    identity = record.pop("id", None)
                    if identity is None:
                        logger.warning(f"Skipping {spec.kind.value} document without an id")
                        continue
                    await self._local.put(spec.kind, identity, record)
                    written += 1
                except Exception as e:
                    if spec.required:
                        raise
                    logger.warning(f"Skipping {spec.kind.value} record {identity}: {e}")
            if records:
                logger.debug(f"Restored {written}/{len(records)} {spec.kind.value} records")

        return data

    def _finish(self) -> None:
        self._broadcaster.publish(is_syncing=False, last_sync_time=datetime.now(timezone.utc))

    def _fail(self, tenant_id: str, operation: str, error: Exception) -> SyncOutcome:
        logger.exception(f"{operation} failed for tenant {tenant_id}: {error}")
        self._broadcaster.publish(is_syncing=False, error=str(error))
        return SyncOutcome(status=BootstrapStatus.ERROR, error=str(error))


__all__ = ["SyncOrchestrator", "PROBE_KIND"]
