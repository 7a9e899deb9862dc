from __future__ import annotations

import logging
from typing import Optional

from .connectivity import ConnectivityMonitor, PollingConnectivityMonitor
from .logging_config import configure_logging
from .remote import HttpRemoteAuthority, RemoteAuthority, get_remote
from .repositories import TaskRepository, get_repository
from .service import TaskService
from .settings import Settings, get_settings
from .sync_engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskApp:
    """
    Owns the collaborators of one running application.

    The store, remote client, connectivity monitor, sync engine and task
    service are plain instances created together and torn down together:

        async with TaskApp.from_settings() as app:
            await app.tasks.create("Buy milk")
            await app.sync()
    """

    def __init__(
        self,
        store: TaskRepository,
        remote: RemoteAuthority,
        monitor: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.monitor = monitor or ConnectivityMonitor()
        self.engine = SyncEngine(store, remote)
        self.tasks = TaskService(store)
        self._started = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TaskApp":
        settings = settings or get_settings()
        configure_logging(settings.log_level)
        store = get_repository(settings)
        remote = get_remote(settings)

        monitor: ConnectivityMonitor
        if isinstance(remote, HttpRemoteAuthority) and settings.connectivity_poll_seconds > 0:
            monitor = PollingConnectivityMonitor(remote.health_check, interval=settings.connectivity_poll_seconds)
        else:
            monitor = ConnectivityMonitor()
        return cls(store, remote, monitor)

    async def start(self) -> None:
        if self._started:
            return
        self.engine.attach(self.monitor)
        if isinstance(self.monitor, PollingConnectivityMonitor):
            self.monitor.start()
        self._started = True
        logger.info("Task app started (online=%s)", self.monitor.is_online)

    async def stop(self) -> None:
        if not self._started:
            return
        if isinstance(self.monitor, PollingConnectivityMonitor):
            await self.monitor.stop()
        await self.engine.close()
        await self.remote.close()
        await self.store.close()
        self._started = False
        logger.info("Task app stopped")

    async def sync(self) -> SyncResult:
        return await self.engine.sync_tasks()

    async def __aenter__(self) -> "TaskApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
