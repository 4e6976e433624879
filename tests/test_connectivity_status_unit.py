"""
Unit tests for the connectivity monitor and the status broadcaster.
"""

import asyncio
import socket
from unittest.mock import MagicMock, patch

import pytest

from lineageweaver.sync.connectivity import ConnectivityMonitor, socket_probe
from lineageweaver.sync.models import SyncStatus
from lineageweaver.sync.status import StatusBroadcaster


class TestConnectivityMonitor:
    """Tests for online/offline tracking."""

    def test_initial_state_from_probe(self):
        assert ConnectivityMonitor(probe=lambda: True).is_online() is True
        assert ConnectivityMonitor(probe=lambda: False).is_online() is False

    def test_no_deferral_outside_a_loop(self):
        assert ConnectivityMonitor(probe=lambda: True).needs_probe is False

    def test_explicit_initial_state_skips_probe(self):
        probe = MagicMock(return_value=True)

        monitor = ConnectivityMonitor(initial_online=False, probe=probe)

        assert monitor.is_online() is False
        probe.assert_not_called()

    def test_raising_probe_means_offline(self):
        def broken():
            raise RuntimeError("no network stack")

        assert ConnectivityMonitor(probe=broken).is_online() is False

    def test_transitions_notify_listeners(self):
        """Test listeners fire only on actual state changes."""
        monitor = ConnectivityMonitor(initial_online=True, probe=lambda: True)
        events = []
        remove = monitor.add_listener(events.append)

        monitor.handle_online()
        monitor.handle_offline()
        monitor.handle_offline()
        monitor.handle_online()
        remove()
        monitor.handle_offline()

        assert events == [False, True]
        assert monitor.is_online() is False

    def test_listener_error_does_not_block_others(self):
        monitor = ConnectivityMonitor(initial_online=True, probe=lambda: True)
        events = []

        def broken(online):
            raise RuntimeError("listener failed")

        monitor.add_listener(broken)
        monitor.add_listener(events.append)
        monitor.handle_offline()

        assert events == [False]

    @pytest.mark.asyncio
    async def test_check_now_applies_probe(self):
        state = {"online": True}
        monitor = ConnectivityMonitor(initial_online=True, probe=lambda: state["online"])

        state["online"] = False
        assert await monitor.check_now() is False
        assert monitor.is_online() is False

    @pytest.mark.asyncio
    async def test_probe_deferred_inside_running_loop(self):
        """Test a monitor built inside a loop does not probe until check_now."""
        probe = MagicMock(return_value=True)

        monitor = ConnectivityMonitor(probe=probe)

        assert monitor.needs_probe is True
        assert monitor.is_online() is False
        probe.assert_not_called()

        assert await monitor.check_now() is True
        assert monitor.needs_probe is False
        assert monitor.is_online() is True
        probe.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_host_event_settles_deferred_probe(self):
        monitor = ConnectivityMonitor(probe=lambda: False)

        monitor.handle_online()

        assert monitor.needs_probe is False
        assert monitor.is_online() is True

    @pytest.mark.asyncio
    async def test_polling_loop(self):
        """Test the polling loop picks up a change and stops cleanly."""
        state = {"online": False}
        monitor = ConnectivityMonitor(initial_online=False, probe=lambda: state["online"], poll_interval=0.01)

        await monitor.start()
        assert monitor.is_watching is True
        state["online"] = True
        for _ in range(100):
            if monitor.is_online():
                break
            await asyncio.sleep(0.01)
        await monitor.stop()

        assert monitor.is_online() is True
        assert monitor.is_watching is False


class TestSocketProbe:
    """Tests for the TCP reachability probe."""

    def test_probe_success(self):
        with patch("lineageweaver.sync.connectivity.socket.create_connection") as create:
            create.return_value.__enter__.return_value = MagicMock()
            assert socket_probe("example.com", 53, 1.0) is True

        create.assert_called_once_with(("example.com", 53), timeout=1.0)

    def test_probe_failure(self):
        with patch(
            "lineageweaver.sync.connectivity.socket.create_connection",
            side_effect=socket.timeout("timed out"),
        ):
            assert socket_probe("example.com", 53, 1.0) is False


class TestStatusBroadcaster:
    """Tests for status publish/subscribe."""

    def test_subscribe_replays_current_status(self, broadcaster):
        received = []

        broadcaster.subscribe(received.append)

        assert received == [SyncStatus()]

    def test_publish_merges_and_notifies(self, broadcaster):
        """Test a patch is merged and every observer sees it."""
        first, second = [], []
        broadcaster.subscribe(first.append)
        broadcaster.subscribe(second.append)

        broadcaster.publish(is_syncing=True)
        broadcaster.publish(error="boom")

        assert first[-1] == SyncStatus(is_syncing=True, error="boom")
        assert second[-1] == first[-1]
        assert len(first) == 3

    def test_publish_rejects_unknown_field(self, broadcaster):
        with pytest.raises(ValueError, match="bogus"):
            broadcaster.publish(bogus=True)

    def test_unsubscribe(self, broadcaster):
        received = []
        unsubscribe = broadcaster.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        broadcaster.publish(is_syncing=True)

        assert len(received) == 1
        assert broadcaster.observer_count == 0

    def test_observer_error_is_isolated(self, broadcaster):
        received = []

        def broken(status):
            raise RuntimeError("observer failed")

        broadcaster.subscribe(broken)
        broadcaster.subscribe(received.append)
        broadcaster.publish(pending_changes=3)

        assert received[-1].pending_changes == 3

    def test_status_is_a_copy(self, broadcaster):
        snapshot = broadcaster.status
        snapshot.is_syncing = True

        assert broadcaster.status.is_syncing is False

    def test_get_status_includes_connectivity(self, broadcaster, online):
        """Test get_status reports the monitor's current flag."""
        status = broadcaster.get_status()
        assert status == {
            "isSyncing": False,
            "lastSyncTime": None,
            "error": None,
            "pendingChanges": 0,
            "isOnline": True,
        }

        online.handle_offline()
        assert broadcaster.get_status()["isOnline"] is False

    def test_get_status_without_monitor(self):
        assert StatusBroadcaster().get_status()["isOnline"] is False

    def test_clear_drops_observers(self, broadcaster):
        broadcaster.subscribe(lambda status: None)
        broadcaster.subscribe(lambda status: None)

        broadcaster.clear()

        assert broadcaster.observer_count == 0
