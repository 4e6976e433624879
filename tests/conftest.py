"""
Shared fixtures for the sync engine tests.
"""

import pytest

from lineageweaver.sync.bulk import BulkTransferEngine
from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.models import EntityKind
from lineageweaver.sync.orchestrator import SyncOrchestrator
from lineageweaver.sync.propagator import MutationPropagator
from lineageweaver.sync.status import StatusBroadcaster
from lineageweaver.sync.stores.memory import InMemoryLocalStore, InMemoryRemoteStore

TENANT = "tenant_alpha"


def always_online() -> bool:
    return True


def always_offline() -> bool:
    return False


@pytest.fixture
def local_store():
    return InMemoryLocalStore()


@pytest.fixture
def remote_store():
    return InMemoryRemoteStore()


@pytest.fixture
def online():
    return ConnectivityMonitor(initial_online=True, probe=always_online, poll_interval=0.01)


@pytest.fixture
def offline():
    return ConnectivityMonitor(initial_online=False, probe=always_offline, poll_interval=0.01)


@pytest.fixture
def broadcaster(online):
    return StatusBroadcaster(online)


@pytest.fixture
def propagator(remote_store, online, broadcaster):
    return MutationPropagator(remote_store, online, broadcaster)


@pytest.fixture
def bulk(remote_store):
    return BulkTransferEngine(remote_store, threshold=450, ceiling=500)


@pytest.fixture
def orchestrator(local_store, remote_store, bulk, broadcaster):
    return SyncOrchestrator(local_store, remote_store, bulk, broadcaster)


async def seed_local(local, houses: int = 0, people: int = 0):
    """Add houses and people to a local store; people point at the first house."""
    house_ids = []
    for i in range(houses):
        house_ids.append(await local.add(EntityKind.HOUSES, {"houseName": f"House {i}"}))
    person_ids = []
    for i in range(people):
        person_ids.append(await local.add(EntityKind.PEOPLE, {
            "firstName": f"Person{i}",
            "lastName": "Ashford",
            "houseId": house_ids[0] if house_ids else None,
        }))
    return house_ids, person_ids
