"""
Lineageweaver Data Sync System.

Keeps an on-device store and a per-tenant remote document store in step:
- Sign-in bootstrap reconciliation (fresh, upload or download)
- Best-effort mirroring of single local mutations while online
- Threshold-batched bulk upload, download and purge
- Observable sync status for UI indicators
"""

from lineageweaver.sync.models import (
    # Enumerations
    EntityKind,
    BootstrapStatus,
    MutationType,
    BatchOperationType,
    # Manifest
    KindSpec,
    SYNC_MANIFEST,
    DEPENDENCY_ORDER,
    ANCHOR_KINDS,
    REMOTE_METADATA_FIELDS,
    MAX_BATCH_OPERATIONS,
    DEFAULT_BATCH_THRESHOLD,
    # Records and results
    SyncStatus,
    SyncOutcome,
    UploadReport,
    coerce_identity,
    strip_remote_metadata,
)
from lineageweaver.sync.exceptions import (
    SyncError,
    LocalStoreError,
    RemoteStoreError,
    RemoteRequestError,
    BatchCeilingExceededError,
    IdentityMismatchError,
)
from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.status import StatusBroadcaster
from lineageweaver.sync.propagator import MutationPropagator, KindMirror
from lineageweaver.sync.bulk import BulkTransferEngine
from lineageweaver.sync.orchestrator import SyncOrchestrator
from lineageweaver.sync.repository import SyncedRepository
from lineageweaver.sync.session import SyncSession

__all__ = [
    # Enumerations
    "EntityKind",
    "BootstrapStatus",
    "MutationType",
    "BatchOperationType",
    # Manifest
    "KindSpec",
    "SYNC_MANIFEST",
    "DEPENDENCY_ORDER",
    "ANCHOR_KINDS",
    "REMOTE_METADATA_FIELDS",
    "MAX_BATCH_OPERATIONS",
    "DEFAULT_BATCH_THRESHOLD",
    # Records and results
    "SyncStatus",
    "SyncOutcome",
    "UploadReport",
    "coerce_identity",
    "strip_remote_metadata",
    # Exceptions
    "SyncError",
    "LocalStoreError",
    "RemoteStoreError",
    "RemoteRequestError",
    "BatchCeilingExceededError",
    "IdentityMismatchError",
    # Components
    "ConnectivityMonitor",
    "StatusBroadcaster",
    "MutationPropagator",
    "KindMirror",
    "BulkTransferEngine",
    "SyncOrchestrator",
    "SyncedRepository",
    "SyncSession",
]
