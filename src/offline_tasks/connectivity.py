from __future__ import annotations

import asyncio
import logging
from threading import RLock
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]
Probe = Callable[[], Awaitable[bool]]


# PUBLIC_INTERFACE
class ConnectivityMonitor:
    """
    Source of edge-triggered online/offline events.

    Subscribers are called with the new state only when it actually changes;
    reporting the current state again is a no-op.
    """

    def __init__(self, initially_online: bool = True) -> None:
        self._lock = RLock()
        self._online = initially_online
        self._subscribers: List[ConnectivityCallback] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, callback: ConnectivityCallback) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Record a reachability report and notify subscribers on a transition."""
        with self._lock:
            if online == self._online:
                return
            self._online = online
            subscribers = list(self._subscribers)

        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for callback in subscribers:
            try:
                callback(online)
            except Exception:
                logger.exception("Connectivity subscriber %r failed", callback)


class PollingConnectivityMonitor(ConnectivityMonitor):
    """
    ConnectivityMonitor fed by periodically awaiting a reachability probe.

    A probe that raises counts as offline.
    """

    def __init__(self, probe: Probe, interval: float = 15.0, initially_online: bool = True) -> None:
        super().__init__(initially_online=initially_online)
        self._probe = probe
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def check_now(self) -> bool:
        try:
            online = bool(await self._probe())
        except Exception as e:
            logger.debug("Reachability probe failed: %s", e)
            online = False
        self.set_online(online)
        return online

    async def _run(self) -> None:
        while True:
            await self.check_now()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
