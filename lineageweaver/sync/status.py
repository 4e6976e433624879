"""
Status Broadcaster Module.

Publish/subscribe channel exposing the current sync status to observers
such as a UI indicator. One broadcaster is owned per signed-in session.
"""

import dataclasses
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.models import SyncStatus

logger = logging.getLogger(__name__)

StatusObserver = Callable[[SyncStatus], None]

_STATUS_FIELDS = frozenset(f.name for f in dataclasses.fields(SyncStatus))


class StatusBroadcaster:
    """
    Owns the mutable sync status record and its observers.

    Observers are invoked synchronously, in subscription order, on the same
    turn as the change. They are expected to be cheap; there is no queue.
    """

    def __init__(self, connectivity: Optional[ConnectivityMonitor] = None):
        self._status = SyncStatus()
        self._observers: Dict[str, StatusObserver] = {}
        self._connectivity = connectivity

    @property
    def status(self) -> SyncStatus:
        return dataclasses.replace(self._status)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """
        Register an observer and replay the current status to it immediately.

        Returns:
            Function removing the observer
        """
        sub_id = f"sub_{uuid.uuid4().hex[:8]}"
        self._observers[sub_id] = observer
        logger.debug(f"Status subscription created: {sub_id}")

        self._notify(observer, self.status)

        def _unsubscribe() -> None:
            if self._observers.pop(sub_id, None) is not None:
                logger.debug(f"Status subscription removed: {sub_id}")

        return _unsubscribe

    def publish(self, **patch: Any) -> SyncStatus:
        """Merge a patch into the status and notify every observer."""
        unknown = set(patch) - _STATUS_FIELDS
        if unknown:
            raise ValueError(f"Unknown status fields: {', '.join(sorted(unknown))}")

        self._status = dataclasses.replace(self._status, **patch)
        snapshot = self.status
        for observer in list(self._observers.values()):
            self._notify(observer, snapshot)
        return snapshot

    def get_status(self) -> Dict[str, Any]:
        """Current status plus the connectivity flag."""
        status = self._status.to_dict()
        status["isOnline"] = self._connectivity.is_online() if self._connectivity else False
        return status

    def clear(self) -> None:
        """Drop every observer."""
        self._observers.clear()

    @staticmethod
    def _notify(observer: StatusObserver, status: SyncStatus) -> None:
        try:
            observer(status)
        except Exception as e:
            logger.error(f"Status observer error: {e}")


__all__ = ["StatusBroadcaster", "StatusObserver"]
