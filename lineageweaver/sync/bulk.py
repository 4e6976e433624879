"""
Bulk Transfer Engine Module.

Moves whole collections between a tenant's remote store and the device:

- upload: stage every record in dependency order into write batches, each
  committed before it reaches the remote per-commit ceiling
- download: read every kind concurrently and hand them back in dependency order
- purge: delete every remote document of the tenant under the same batching rules

There is no cross-kind transaction. A failure aborts the loop and leaves
whatever was already committed in place.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from lineageweaver.config.settings import settings
from lineageweaver.sync.models import (
    DEPENDENCY_ORDER,
    EntityKind,
    Record,
    UploadReport,
)
from lineageweaver.sync.stores.base import RemoteStore, WriteBatch
from lineageweaver.system.logging_config import log_transfer_event

logger = logging.getLogger(__name__)


class _BatchWriter:
    """Running write batch that commits itself at the threshold."""

    def __init__(self, remote: RemoteStore, tenant_id: str, threshold: int, report: UploadReport):
        self._remote = remote
        self._tenant_id = tenant_id
        self._threshold = threshold
        self._report = report
        self._batch: WriteBatch = remote.batch(tenant_id)
        self._count = 0

    async def staged(self) -> None:
        self._count += 1
        if self._count >= self._threshold:
            await self.flush()

    @property
    def batch(self) -> WriteBatch:
        return self._batch

    async def flush(self) -> None:
        if self._count == 0:
            return
        committed = await self._batch.commit()
        self._report.commits += 1
        logger.info(f"Committed batch of {committed} operations for tenant {self._tenant_id}")
        self._batch = self._remote.batch(self._tenant_id)
        self._count = 0


class BulkTransferEngine:
    """Threshold-batched upload, download and purge of whole collections."""

    def __init__(
        self,
        remote: RemoteStore,
        threshold: Optional[int] = None,
        ceiling: Optional[int] = None,
    ):
        self._remote = remote
        self.threshold = threshold if threshold is not None else settings.sync.batch_threshold
        self.ceiling = ceiling if ceiling is not None else min(
            settings.sync.batch_ceiling, remote.max_batch_operations
        )

        if not 0 < self.threshold < self.ceiling:
            raise ValueError(
                f"Batch threshold must be positive and below the ceiling "
                f"(threshold={self.threshold}, ceiling={self.ceiling})"
            )

    async def upload(
        self,
        tenant_id: str,
        ordered: Sequence[Tuple[EntityKind, List[Record]]],
    ) -> UploadReport:
        """
        Upload local records to the remote store.

        Args:
            tenant_id: Tenant whose remote collections receive the records
            ordered: (kind, records) pairs already in dependency order

        Returns:
            UploadReport with per-kind counts and the number of commits
        """
        report = UploadReport(started_at=datetime.now(timezone.utc))
        writer = _BatchWriter(self._remote, tenant_id, self.threshold, report)

        for kind, records in ordered:
            for record in records:
                if record.get("id") is None:
                    raise ValueError(f"Cannot upload {kind.value} record without an id")
                identity = record["id"]
                writer.batch.stage_set(kind, identity, {
                    **record,
                    "localId": identity,
                    "syncedAt": datetime.now(timezone.utc),
                })
                await writer.staged()

            report.records_by_kind[kind.value] = len(records)
            if records:
                log_transfer_event(tenant_id, "upload", kind.value, len(records))

        await writer.flush()
        report.completed_at = datetime.now(timezone.utc)

        logger.info(
            f"Uploaded {report.total_records} records in {report.commits} commits "
            f"for tenant {tenant_id}"
        )
        return report

    async def download(self, tenant_id: str) -> Dict[EntityKind, List[Record]]:
        """Read every synchronized kind of a tenant, keyed in dependency order."""
        results = await asyncio.gather(
            *(self._remote.list_all(tenant_id, kind) for kind in DEPENDENCY_ORDER)
        )
        collections = dict(zip(DEPENDENCY_ORDER, results))

        for kind, records in collections.items():
            if records:
                log_transfer_event(tenant_id, "download", kind.value, len(records))

        logger.info(
            f"Downloaded {sum(len(r) for r in results)} records for tenant {tenant_id}"
        )
        return collections

    async def purge(self, tenant_id: str) -> UploadReport:
        """Delete every remote document of a tenant."""
        report = UploadReport(started_at=datetime.now(timezone.utc))
        writer = _BatchWriter(self._remote, tenant_id, self.threshold, report)

        for kind in DEPENDENCY_ORDER:
            documents = await self._remote.list_all(tenant_id, kind)
            for document in documents:
                writer.batch.stage_delete(kind, document["id"])
                await writer.staged()

            report.records_by_kind[kind.value] = len(documents)
            if documents:
                log_transfer_event(tenant_id, "purge", kind.value, len(documents))

        await writer.flush()
        report.completed_at = datetime.now(timezone.utc)

        logger.warning(f"Purged {report.total_records} remote records for tenant {tenant_id}")
        return report


__all__ = ["BulkTransferEngine"]
