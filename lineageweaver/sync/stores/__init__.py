"""
Store Adapters Module.

Provides the local and remote store adapters the sync engine runs against.
"""

from lineageweaver.sync.stores.base import (
    BatchOperation,
    LocalStore,
    RemoteStore,
    WriteBatch,
    check_identity,
)
from lineageweaver.sync.stores.memory import InMemoryLocalStore, InMemoryRemoteStore

__all__ = [
    "BatchOperation",
    "LocalStore",
    "RemoteStore",
    "WriteBatch",
    "check_identity",
    "InMemoryLocalStore",
    "InMemoryRemoteStore",
]
