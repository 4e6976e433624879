"""
Sync Session Module.

Composition root for one signed-in tenant: wires the connectivity monitor,
status broadcaster, mutation propagator, bulk transfer engine, orchestrator
and local-first repository around a pair of store adapters.
"""

import logging
from typing import Optional

from lineageweaver.sync.bulk import BulkTransferEngine
from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.models import SyncOutcome
from lineageweaver.sync.orchestrator import SyncOrchestrator
from lineageweaver.sync.propagator import MutationPropagator
from lineageweaver.sync.repository import SyncedRepository
from lineageweaver.sync.status import StatusBroadcaster
from lineageweaver.sync.stores.base import LocalStore, RemoteStore

logger = logging.getLogger(__name__)


class SyncSession:
    """
    Everything the sync engine needs for one tenant, built once at sign-in
    and torn down by close() at sign-out.
    """

    def __init__(
        self,
        tenant_id: str,
        local: LocalStore,
        remote: RemoteStore,
        connectivity: Optional[ConnectivityMonitor] = None,
        batch_threshold: Optional[int] = None,
    ):
        self.tenant_id = tenant_id
        self.local = local
        self.remote = remote

        self.connectivity = connectivity or ConnectivityMonitor()
        self.broadcaster = StatusBroadcaster(self.connectivity)
        self.propagator = MutationPropagator(remote, self.connectivity, self.broadcaster)
        self.bulk = BulkTransferEngine(remote, threshold=batch_threshold)
        self.orchestrator = SyncOrchestrator(local, remote, self.bulk, self.broadcaster)
        self.repository = SyncedRepository(local, self.propagator, tenant_id)

        self._closed = False

    @classmethod
    def from_settings(cls, tenant_id: str, connectivity: Optional[ConnectivityMonitor] = None) -> "SyncSession":
        """Build a session over the configured SQLite store and REST remote."""
        from lineageweaver.sync.stores.http_remote import HTTPRemoteStore
        from lineageweaver.sync.stores.sql_local import SQLAlchemyLocalStore

        return cls(tenant_id, SQLAlchemyLocalStore(), HTTPRemoteStore(), connectivity=connectivity)

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self, watch_connectivity: bool = False) -> SyncOutcome:
        """Start the session and run the sign-in bootstrap."""
        if watch_connectivity:
            await self.connectivity.start()
        elif self.connectivity.needs_probe:
            await self.connectivity.check_now()
        return await self.orchestrator.initialize_sync(self.tenant_id)

    async def resync(self) -> SyncOutcome:
        return await self.orchestrator.force_full_resync(self.tenant_id)

    async def close(self) -> None:
        """Drain in-flight mirrors and release every resource."""
        if self._closed:
            return
        self._closed = True

        await self.propagator.drain()
        self.repository.tenant_id = None

        if self.connectivity.is_watching:
            await self.connectivity.stop()

        self.broadcaster.clear()
        await self.remote.close()
        await self.local.close()
        logger.info(f"Sync session closed for tenant {self.tenant_id}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


__all__ = ["SyncSession"]
