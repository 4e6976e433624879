"""
Core models for the Lineageweaver sync engine.

Defines the synchronized entity kinds and their dependency manifest, the
bootstrap outcome states, the published sync status record and the helpers
that translate records between the local and remote stores.
"""

import enum
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


# ============================================================================
# Enumerations
# ============================================================================

class EntityKind(str, enum.Enum):
    """Synchronized entity kinds, keyed by their remote collection name."""
    HOUSES = "houses"
    PEOPLE = "people"
    RELATIONSHIPS = "relationships"
    CODEX_ENTRIES = "codexEntries"
    HERALDRY = "heraldry"
    HERALDRY_LINKS = "heraldryLinks"
    DIGNITIES = "dignities"
    DIGNITY_TENURES = "dignityTenures"
    DIGNITY_LINKS = "dignityLinks"
    HOUSEHOLD_ROLES = "householdRoles"

    @property
    def collection(self) -> str:
        return self.value


class BootstrapStatus(str, enum.Enum):
    """Terminal states of a bootstrap reconciliation."""
    NO_USER = "no-user"
    FRESH = "fresh"
    UPLOADED = "uploaded"
    DOWNLOADED = "downloaded"
    ERROR = "error"


class MutationType(str, enum.Enum):
    """Single-entity mutation types mirrored to the remote store."""
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class BatchOperationType(str, enum.Enum):
    """Operations accepted by a remote write batch."""
    SET = "set"
    DELETE = "delete"


# ============================================================================
# Manifest
# ============================================================================

@dataclass(frozen=True)
class KindSpec:
    """Sync manifest entry for one entity kind."""
    kind: EntityKind
    required: bool
    anchor: bool = False
    depends_on: Tuple[EntityKind, ...] = ()


# Order matters: bulk write-back walks this tuple front to back.
SYNC_MANIFEST: Tuple[KindSpec, ...] = (
    KindSpec(EntityKind.HOUSES, required=True, anchor=True),
    KindSpec(EntityKind.PEOPLE, required=True, anchor=True,
             depends_on=(EntityKind.HOUSES,)),
    KindSpec(EntityKind.RELATIONSHIPS, required=True, anchor=True,
             depends_on=(EntityKind.PEOPLE,)),
    KindSpec(EntityKind.CODEX_ENTRIES, required=False),
    KindSpec(EntityKind.HERALDRY, required=False),
    KindSpec(EntityKind.HERALDRY_LINKS, required=False,
             depends_on=(EntityKind.HERALDRY,)),
    KindSpec(EntityKind.DIGNITIES, required=False),
    KindSpec(EntityKind.DIGNITY_TENURES, required=False,
             depends_on=(EntityKind.DIGNITIES, EntityKind.PEOPLE)),
    KindSpec(EntityKind.DIGNITY_LINKS, required=False,
             depends_on=(EntityKind.DIGNITIES,)),
    KindSpec(EntityKind.HOUSEHOLD_ROLES, required=False,
             depends_on=(EntityKind.HOUSES, EntityKind.PEOPLE)),
)

DEPENDENCY_ORDER: Tuple[EntityKind, ...] = tuple(spec.kind for spec in SYNC_MANIFEST)

ANCHOR_KINDS: Tuple[EntityKind, ...] = tuple(
    spec.kind for spec in SYNC_MANIFEST if spec.anchor
)

# Attached by the remote store, never written back locally.
REMOTE_METADATA_FIELDS = frozenset({"createdAt", "updatedAt", "syncedAt", "localId"})

# Hard per-commit ceiling of the remote document store.
MAX_BATCH_OPERATIONS = 500

DEFAULT_BATCH_THRESHOLD = 450


def validate_manifest(manifest: Iterable[KindSpec] = SYNC_MANIFEST) -> None:
    """Raise ValueError if any kind appears before a kind it depends on."""
    seen = set()
    for spec in manifest:
        missing = [dep for dep in spec.depends_on if dep not in seen]
        if missing:
            raise ValueError(
                f"{spec.kind.value} is ordered before its dependencies: "
                f"{', '.join(dep.value for dep in missing)}"
            )
        seen.add(spec.kind)


validate_manifest()


# ============================================================================
# Record helpers
# ============================================================================

Identity = Union[int, str]
Record = Dict[str, Any]

_INTEGER_KEY = re.compile(r"-?[0-9]+")


def coerce_identity(value: Any) -> Identity:
    """
    Restore a local identity from a remote document key.

    Remote document keys are strings; numeric keys map back to the integer
    identity the local store assigned. Anything else, including keys made of
    non-ASCII digits, is returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if _INTEGER_KEY.fullmatch(stripped):
            return int(stripped)
    return value


def strip_remote_metadata(record: Mapping[str, Any]) -> Record:
    """Drop remote-only metadata fields and restore the local identity."""
    cleaned = {
        key: value for key, value in record.items()
        if key not in REMOTE_METADATA_FIELDS
    }
    if "id" in cleaned:
        cleaned["id"] = coerce_identity(cleaned["id"])
    return cleaned


def order_by_dependency(
    collections: Mapping[EntityKind, List[Record]]
) -> List[Tuple[EntityKind, List[Record]]]:
    """Arrange per-kind record lists in dependency order."""
    return [
        (kind, list(collections.get(kind) or []))
        for kind in DEPENDENCY_ORDER
        if kind in collections
    ]


# ============================================================================
# Status and results
# ============================================================================

@dataclass
class SyncStatus:
    """Sync status published to observers."""
    is_syncing: bool = False
    last_sync_time: Optional[datetime] = None
    error: Optional[str] = None
    pending_changes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isSyncing": self.is_syncing,
            "lastSyncTime": self.last_sync_time,
            "error": self.error,
            "pendingChanges": self.pending_changes,
        }


@dataclass
class SyncOutcome:
    """Result of a bootstrap or forced resync."""
    status: BootstrapStatus
    data: Optional[Dict[str, List[Record]]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "data": self.data,
            "error": self.error,
        }


@dataclass
class UploadReport:
    """Accounting for one bulk upload or purge."""
    records_by_kind: Dict[str, int] = field(default_factory=dict)
    commits: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_records(self) -> int:
        return sum(self.records_by_kind.values())

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_records"] = self.total_records
        return data


__all__ = [
    "EntityKind",
    "BootstrapStatus",
    "MutationType",
    "BatchOperationType",
    "KindSpec",
    "SYNC_MANIFEST",
    "DEPENDENCY_ORDER",
    "ANCHOR_KINDS",
    "REMOTE_METADATA_FIELDS",
    "MAX_BATCH_OPERATIONS",
    "DEFAULT_BATCH_THRESHOLD",
    "Identity",
    "Record",
    "validate_manifest",
    "coerce_identity",
    "strip_remote_metadata",
    "order_by_dependency",
    "SyncStatus",
    "SyncOutcome",
    "UploadReport",
]
