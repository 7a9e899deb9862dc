"""
Offline synchronization engine.

A reconciliation pass runs three phases in a fixed order, each finishing
before the next begins:

1. delete propagation: pending deletes are removed remotely, then locally
2. local -> remote push: unsynced records are created or updated remotely
   when the local revision is strictly newer
3. remote -> local pull: remote tasks missing locally are inserted, and
   strictly newer remote revisions overwrite local ones

Conflicts are resolved per whole record by last_updated (last-write-wins).
Equal timestamps leave both sides untouched.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .connectivity import ConnectivityMonitor
from .errors import RemoteError
from .models import from_remote, to_remote
from .remote import RemoteAuthority
from .repositories import TaskRepository

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED_IN_PROGRESS = "skipped_in_progress"
    SKIPPED_OFFLINE = "skipped_offline"


@dataclass(frozen=True)
class SyncFailure:
    """A per-record remote failure; the record is retried on the next pass."""

    phase: str
    task_id: str
    error: str


# PUBLIC_INTERFACE
@dataclass
class SyncResult:
    """
    Outcome of one sync_tasks() call.

    Per-record failures leave status COMPLETED and are listed in `failures`.
    Only a failed bulk fetch in the pull phase yields FAILED.
    """

    status: SyncStatus
    deleted: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    pulled_inserted: int = 0
    pulled_updated: int = 0
    failures: List[SyncFailure] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.COMPLETED

    @property
    def ran(self) -> bool:
        return self.status in (SyncStatus.COMPLETED, SyncStatus.FAILED)

    def record_failure(self, phase: str, task_id: str, exc: Exception) -> None:
        self.failures.append(SyncFailure(phase=phase, task_id=task_id, error=str(exc)))


# PUBLIC_INTERFACE
class SyncEngine:
    """
    Reconciles the local record store with the remote authority.

    At most one pass runs at a time: a call made while a pass is in flight
    returns immediately with SKIPPED_IN_PROGRESS. While the cached
    connectivity flag is offline, calls return SKIPPED_OFFLINE without any
    remote I/O.
    """

    def __init__(
        self,
        store: TaskRepository,
        remote: RemoteAuthority,
        monitor: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.is_syncing = False
        self.is_online = True
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._auto_sync: Optional[asyncio.Task] = None
        if monitor is not None:
            self.attach(monitor)

    # Connectivity

    def attach(self, monitor: ConnectivityMonitor) -> None:
        """Follow a connectivity monitor; an offline->online edge triggers one sync."""
        self.detach()
        self.is_online = monitor.is_online
        self._unsubscribe = monitor.subscribe(self._on_connectivity_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def set_online(self, online: bool) -> None:
        """Update the cached connectivity flag without triggering a sync."""
        self.is_online = online

    def _on_connectivity_change(self, online: bool) -> None:
        was_offline = not self.is_online
        self.is_online = online
        if was_offline and online:
            logger.info("Network restored - triggering sync")
            self._schedule_auto_sync()

    def _schedule_auto_sync(self) -> None:
        if self._auto_sync is not None and not self._auto_sync.done():
            logger.debug("Automatic sync already pending, not scheduling another")
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; automatic sync not scheduled")
            return
        self._auto_sync = loop.create_task(self._run_auto_sync())

    async def _run_auto_sync(self) -> None:
        try:
            result = await self.sync_tasks()
        except Exception:
            logger.exception("Automatic sync failed")
            return
        if result.status is SyncStatus.FAILED:
            logger.warning("Automatic sync failed: %s", result.error)

    async def wait_for_auto_sync(self) -> None:
        """Await the automatic pass scheduled by the last reconnect, if any."""
        if self._auto_sync is not None:
            await asyncio.shield(self._auto_sync)

    async def close(self) -> None:
        self.detach()
        if self._auto_sync is not None and not self._auto_sync.done():
            await self._auto_sync
        self._auto_sync = None

    # Reconciliation

    async def sync_tasks(self) -> SyncResult:
        """
        Run one reconciliation pass.

        Never raises for remote failures: per-record failures are collected in
        the result and retried on the next call; a failed bulk fetch returns a
        FAILED result. Store errors propagate.
        """
        if self.is_syncing:
            logger.info("Sync already in progress, skipping")
            return SyncResult(status=SyncStatus.SKIPPED_IN_PROGRESS)
        if not self.is_online:
            logger.info("Offline - sync deferred")
            return SyncResult(status=SyncStatus.SKIPPED_OFFLINE)

        self.is_syncing = True
        result = SyncResult(status=SyncStatus.COMPLETED)
        try:
            await self._sync_deletes(result)
            await self._sync_local_to_remote(result)
            await self._sync_remote_to_local(result)
        except RemoteError as e:
            # Per-record calls handle their own errors; only the bulk fetch gets here.
            result.status = SyncStatus.FAILED
            result.error = str(e)
            logger.error("Sync aborted, could not fetch remote tasks: %s", e)
            return result
        finally:
            self.is_syncing = False

        logger.info(
            "Sync completed: deleted=%d created=%d updated=%d pulled_inserted=%d pulled_updated=%d failures=%d",
            result.deleted,
            result.created,
            result.updated,
            result.pulled_inserted,
            result.pulled_updated,
            len(result.failures),
        )
        return result

    async def _sync_deletes(self, result: SyncResult) -> None:
        for task in await self.store.get_pending_deletes():
            try:
                await self.remote.delete(task["id"])
            except RemoteError as e:
                logger.warning("Failed to delete task %s from remote: %s", task["id"], e)
                result.record_failure("delete", task["id"], e)
                continue
            await self.store.delete_permanently(task["id"])
            result.deleted += 1

    async def _sync_local_to_remote(self, result: SyncResult) -> None:
        for task in await self.store.get_unsynced():
            if task["pending_delete"]:
                continue
            try:
                remote_task = await self.remote.get(task["id"])
                if remote_task is None:
                    await self.remote.create(to_remote(task))
                    result.created += 1
                elif task["last_updated"] > remote_task["last_updated"]:
                    await self.remote.update(to_remote(task))
                    result.updated += 1
                else:
                    # Remote newer is handled by the pull phase; a tie is left alone.
                    logger.debug(
                        "Remote copy of %s is not older (%d >= %d), not pushing",
                        task["id"],
                        remote_task["last_updated"],
                        task["last_updated"],
                    )
                    result.skipped += 1
                    continue
            except RemoteError as e:
                logger.warning("Failed to sync task %s: %s", task["id"], e)
                result.record_failure("push", task["id"], e)
                continue
            await self.store.mark_synced(task["id"], if_last_updated=task["last_updated"])

    async def _sync_remote_to_local(self, result: SyncResult) -> None:
        remote_tasks = await self.remote.list_all()
        if not remote_tasks:
            return

        local_by_id = {t["id"]: t for t in await self.store.get_all()}
        pending_delete_ids = {t["id"] for t in await self.store.get_pending_deletes()}

        for remote_task in remote_tasks:
            local = local_by_id.get(remote_task["id"])
            if local is None:
                if remote_task["id"] in pending_delete_ids:
                    continue
                logger.debug("Adding missing task from remote: %s", remote_task["id"])
                await self.store.insert(from_remote(remote_task, is_synced=True))
                result.pulled_inserted += 1
            elif local["last_updated"] < remote_task["last_updated"]:
                written = await self.store.update(
                    from_remote(remote_task, is_synced=True),
                    if_last_updated=local["last_updated"],
                )
                if written:
                    logger.debug("Updated local task with newer remote version: %s", remote_task["id"])
                    result.pulled_updated += 1
                else:
                    logger.debug("Local task %s changed during the pass, not overwriting", remote_task["id"])
                    result.skipped += 1
