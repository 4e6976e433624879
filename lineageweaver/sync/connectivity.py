"""
Connectivity Monitor Module.

Tracks online/offline transitions of the host and gates every remote call
made by the mutation propagator. The monitor only records state: coming back
online does not replay missed mirror calls or start a re-sync.
"""

import asyncio
import logging
import socket
import uuid
from functools import partial
from typing import Callable, Dict, Optional

from lineageweaver.config.settings import settings

logger = logging.getLogger(__name__)

ProbeFn = Callable[[], bool]
TransitionListener = Callable[[bool], None]


def socket_probe(host: str, port: int, timeout: float) -> bool:
    """Return True if a TCP connection to host:port can be opened."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        logger.debug(f"Connectivity probe to {host}:{port} failed: {e}")
        return False


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def default_probe() -> ProbeFn:
    return partial(
        socket_probe,
        settings.sync.connectivity_probe_host,
        settings.sync.connectivity_probe_port,
        settings.sync.connectivity_probe_timeout,
    )


class ConnectivityMonitor:
    """
    Online/offline flag with transition handlers.

    Hosts with native network events wire them to handle_online() and
    handle_offline(). Hosts without them can start() a polling loop that
    re-probes reachability and fires the same handlers on change.
    """

    def __init__(
        self,
        initial_online: Optional[bool] = None,
        probe: Optional[ProbeFn] = None,
        poll_interval: Optional[float] = None,
    ):
        self._probe = probe or default_probe()
        self._poll_interval = poll_interval or settings.sync.connectivity_poll_interval
        self._listeners: Dict[str, TransitionListener] = {}
        self._task: Optional[asyncio.Task] = None
        self._running = False

        self._needs_probe = False
        if initial_online is None:
            if _loop_running():
                # Probing blocks; inside a loop it waits for check_now()
                self._needs_probe = True
                initial_online = False
            else:
                initial_online = self._safe_probe()
        self._online = bool(initial_online)

        if self._needs_probe:
            logger.info("Connectivity monitor created, initial probe deferred")
        else:
            logger.info(f"Connectivity monitor started {'online' if self._online else 'offline'}")

    def is_online(self) -> bool:
        return self._online

    @property
    def is_watching(self) -> bool:
        return self._running

    @property
    def needs_probe(self) -> bool:
        """True until the first probe of a monitor created inside a running loop."""
        return self._needs_probe

    def handle_online(self) -> None:
        self._transition(True)

    def handle_offline(self) -> None:
        self._transition(False)

    def add_listener(self, listener: TransitionListener) -> Callable[[], None]:
        """
        Register a callback invoked with the new state on every transition.

        Returns:
            Function removing the listener
        """
        listener_id = f"conn_{uuid.uuid4().hex[:8]}"
        self._listeners[listener_id] = listener

        def _remove() -> None:
            self._listeners.pop(listener_id, None)

        return _remove

    def _transition(self, online: bool) -> None:
        self._needs_probe = False
        if online == self._online:
            return

        self._online = online
        if online:
            logger.info("Back online")
        else:
            logger.info("Gone offline")

        for listener in list(self._listeners.values()):
            try:
                listener(online)
            except Exception as e:
                logger.error(f"Connectivity listener error: {e}")

    def _safe_probe(self) -> bool:
        try:
            return bool(self._probe())
        except Exception as e:
            logger.warning(f"Connectivity probe raised: {e}")
            return False

    async def check_now(self) -> bool:
        """Probe reachability once and apply any transition."""
        loop = asyncio.get_running_loop()
        online = await loop.run_in_executor(None, self._safe_probe)
        self._transition(online)
        return online

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            return

        if self._needs_probe:
            await self.check_now()

        self._running = True
        self._task = asyncio.create_task(self._watch())
        logger.info(f"Connectivity polling started (every {self._poll_interval}s)")

    async def stop(self) -> None:
        """Stop the background polling loop."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Connectivity polling stopped")

    async def _watch(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._poll_interval)
                await self.check_now()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Connectivity polling error: {e}")


__all__ = [
    "ConnectivityMonitor",
    "socket_probe",
    "default_probe",
]
