"""
Unit tests for the local-first repository and the sync session.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.exceptions import LocalStoreError
from lineageweaver.sync.models import BootstrapStatus, EntityKind
from lineageweaver.sync.propagator import MutationPropagator
from lineageweaver.sync.repository import SyncedRepository
from lineageweaver.sync.session import SyncSession
from lineageweaver.sync.stores.memory import InMemoryLocalStore, InMemoryRemoteStore

from conftest import TENANT, seed_local


class TestSyncedRepository:
    """Tests for the local-first write path."""

    @pytest.fixture
    def repository(self, local_store, propagator):
        return SyncedRepository(local_store, propagator, TENANT)

    @pytest.mark.asyncio
    async def test_add_commits_locally_then_mirrors(self, repository, local_store, remote_store, propagator):
        """Test a new record lands locally and remotely under one identity."""
        identity = await repository.add(EntityKind.PEOPLE, {"firstName": "Aldric", "houseId": None})
        await propagator.drain()

        assert await local_store.get(EntityKind.PEOPLE, identity) == {
            "id": identity, "firstName": "Aldric", "houseId": None
        }
        document = remote_store.documents(TENANT, EntityKind.PEOPLE)[str(identity)]
        assert document["id"] == identity
        assert document["localId"] == identity

    @pytest.mark.asyncio
    async def test_update_and_delete_mirror(self, repository, remote_store, propagator):
        identity = await repository.add(EntityKind.HOUSES, {"houseName": "Ashford"})
        await propagator.drain()

        await repository.update(EntityKind.HOUSES, identity, {"houseName": "Ashford Major"})
        await propagator.drain()
        assert remote_store.documents(TENANT, EntityKind.HOUSES)[str(identity)]["houseName"] == "Ashford Major"

        await repository.delete(EntityKind.HOUSES, identity)
        await propagator.drain()
        assert remote_store.documents(TENANT, EntityKind.HOUSES) == {}

    @pytest.mark.asyncio
    async def test_local_failure_propagates_without_mirror(self, local_store):
        propagator = MagicMock(spec=MutationPropagator)
        repository = SyncedRepository(local_store, propagator, TENANT)

        with pytest.raises(LocalStoreError):
            await repository.update(EntityKind.PEOPLE, 404, {"firstName": "Nobody"})

        propagator.dispatch_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_signed_out_writes_stay_local(self, local_store):
        propagator = MagicMock(spec=MutationPropagator)
        repository = SyncedRepository(local_store, propagator)

        identity = await repository.add(EntityKind.HOUSES, {"houseName": "Ashford"})

        assert await repository.get(EntityKind.HOUSES, identity) is not None
        propagator.dispatch_add.assert_not_called()

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_write(self, local_store, online):
        """Test a failing mirror never undoes the local mutation."""
        remote = InMemoryRemoteStore()
        propagator = MutationPropagator(remote, online)
        repository = SyncedRepository(local_store, propagator, TENANT)

        with patch.object(remote, "set", AsyncMock(side_effect=ConnectionError("down"))):
            identity = await repository.add(EntityKind.PEOPLE, {"firstName": "Aldric"})
            await propagator.drain()

        assert len(await repository.list_all(EntityKind.PEOPLE)) == 1
        assert remote.documents(TENANT, EntityKind.PEOPLE) == {}
        assert identity == 1

    @pytest.mark.asyncio
    async def test_delete_all_local_keeps_remote(self, repository, remote_store, propagator, local_store):
        await repository.add(EntityKind.HOUSES, {"houseName": "Ashford"})
        await propagator.drain()

        await repository.delete_all_local()

        assert await local_store.list_all(EntityKind.HOUSES) == []
        assert len(remote_store.documents(TENANT, EntityKind.HOUSES)) == 1


class TestSyncSession:
    """Tests for the session composition root."""

    @pytest.fixture
    def session(self, online):
        return SyncSession(TENANT, InMemoryLocalStore(), InMemoryRemoteStore(), connectivity=online)

    @pytest.mark.asyncio
    async def test_open_runs_bootstrap(self, session):
        await seed_local(session.local, houses=1, people=2)

        outcome = await session.open()

        assert outcome.status == BootstrapStatus.UPLOADED
        assert session.broadcaster.get_status()["isOnline"] is True
        await session.close()

    @pytest.mark.asyncio
    async def test_session_round_trip(self, session):
        """Test writes made in one session are restored by another device."""
        await session.open()
        identity = await session.repository.add(EntityKind.HOUSES, {"houseName": "Ashford"})
        await session.close()

        device_b = SyncSession(
            TENANT,
            InMemoryLocalStore(),
            session.remote,
            connectivity=ConnectivityMonitor(initial_online=True, probe=lambda: True),
        )
        outcome = await device_b.open()

        assert outcome.status == BootstrapStatus.DOWNLOADED
        assert await device_b.local.list_all(EntityKind.HOUSES) == [{"id": identity, "houseName": "Ashford"}]
        await device_b.close()

    @pytest.mark.asyncio
    async def test_close_tears_down(self, session):
        """Test close drains mirrors, clears observers and closes stores."""
        session.broadcaster.subscribe(lambda status: None)
        session.remote.close = AsyncMock()
        session.local.close = AsyncMock()
        await session.open(watch_connectivity=True)
        assert session.connectivity.is_watching is True

        await session.repository.add(EntityKind.PEOPLE, {"firstName": "Aldric"})
        await session.close()
        await session.close()

        assert session.closed is True
        assert session.propagator.pending_count == 0
        assert session.broadcaster.observer_count == 0
        assert session.connectivity.is_watching is False
        assert session.repository.tenant_id is None
        session.remote.close.assert_awaited_once()
        session.local.close.assert_awaited_once()
        assert len(session.remote.documents(TENANT, EntityKind.PEOPLE)) == 1

    @pytest.mark.asyncio
    async def test_context_manager(self, online):
        async with SyncSession(TENANT, InMemoryLocalStore(), InMemoryRemoteStore(), connectivity=online) as session:
            outcome = await session.resync()
            assert outcome.status == BootstrapStatus.DOWNLOADED

        assert session.closed is True

    @pytest.mark.asyncio
    async def test_default_monitor_probes_on_open(self):
        """Test a session built inside the loop probes on open, not in the constructor."""
        probe = MagicMock(return_value=True)

        with patch("lineageweaver.sync.connectivity.default_probe", return_value=probe):
            session = SyncSession(TENANT, InMemoryLocalStore(), InMemoryRemoteStore())

        probe.assert_not_called()
        assert session.connectivity.needs_probe is True

        outcome = await session.open()

        probe.assert_called_once_with()
        assert outcome.status == BootstrapStatus.FRESH
        assert session.broadcaster.get_status()["isOnline"] is True
        await session.close()
