from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional

from .errors import StoreError
from .models import TaskRecord
from .settings import Settings, get_settings


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract record store contract for local tasks.

    Every method is a coroutine: each store call is a suspension point for
    the caller. Implementations serialize their own reads and writes; callers
    never hold a store-wide lock across several calls.
    """

    @abstractmethod
    async def get_all(self) -> List[TaskRecord]:
        """Return live tasks (pending_delete=False) ordered by last_updated desc."""

    @abstractmethod
    async def get_by_id(self, task_id: str) -> Optional[TaskRecord]:
        """Return the live task with this id, or None if absent or pending delete."""

    @abstractmethod
    async def get_unsynced(self) -> List[TaskRecord]:
        """Return every task with is_synced=False, pending deletes included."""

    @abstractmethod
    async def get_pending_deletes(self) -> List[TaskRecord]:
        """Return every task with pending_delete=True."""

    @abstractmethod
    async def insert(self, task: TaskRecord) -> None:
        """Insert a new task. Raise StoreError if the id already exists."""

    @abstractmethod
    async def update(self, task: TaskRecord, if_last_updated: Optional[int] = None) -> bool:
        """
        Overwrite title, description, status, last_updated and is_synced of an
        existing task. pending_delete is left untouched.

        When if_last_updated is given, only a record still at that revision is
        written. Returns whether a record was written.
        """

    @abstractmethod
    async def mark_synced(self, task_id: str, if_last_updated: Optional[int] = None) -> None:
        """
        Set is_synced=True. When if_last_updated is given, only a record still
        at that revision is marked, so an edit made meanwhile stays dirty.
        """

    @abstractmethod
    async def mark_pending_delete(self, task_id: str, last_updated: Optional[int] = None) -> None:
        """Set pending_delete=True and is_synced=False, stamping last_updated when given."""

    @abstractmethod
    async def delete_permanently(self, task_id: str) -> None:
        """Physically remove the task."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every task."""

    async def close(self) -> None:
        """Release any resources held by the store."""


class InMemoryRepository(TaskRepository):
    """
    Thread-safe in-memory record store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskRecord] = {}

    async def get_all(self) -> List[TaskRecord]:
        with self._lock:
            live = [t for t in self._items.values() if not t["pending_delete"]]
            live.sort(key=lambda t: t["last_updated"], reverse=True)
            # Return copies to avoid external mutation
            return [t.copy() for t in live]

    async def get_by_id(self, task_id: str) -> Optional[TaskRecord]:
        with self._lock:
            item = self._items.get(task_id)
            if item is None or item["pending_delete"]:
                return None
            return item.copy()

    async def get_unsynced(self) -> List[TaskRecord]:
        with self._lock:
            return [t.copy() for t in self._items.values() if not t["is_synced"]]

    async def get_pending_deletes(self) -> List[TaskRecord]:
        with self._lock:
            return [t.copy() for t in self._items.values() if t["pending_delete"]]

    async def insert(self, task: TaskRecord) -> None:
        with self._lock:
            if task["id"] in self._items:
                raise StoreError(f"Task already exists: {task['id']}")
            self._items[task["id"]] = task.copy()

    async def update(self, task: TaskRecord, if_last_updated: Optional[int] = None) -> bool:
        with self._lock:
            existing = self._items.get(task["id"])
            if existing is None:
                return False
            if if_last_updated is not None and existing["last_updated"] != if_last_updated:
                return False
            updated = existing.copy()
            updated["title"] = task["title"]
            updated["description"] = task["description"]
            updated["status"] = task["status"]
            updated["last_updated"] = task["last_updated"]
            updated["is_synced"] = task["is_synced"]
            self._items[task["id"]] = updated
            return True

    async def mark_synced(self, task_id: str, if_last_updated: Optional[int] = None) -> None:
        with self._lock:
            item = self._items.get(task_id)
            if item is None:
                return
            if if_last_updated is None or item["last_updated"] == if_last_updated:
                item["is_synced"] = True

    async def mark_pending_delete(self, task_id: str, last_updated: Optional[int] = None) -> None:
        with self._lock:
            item = self._items.get(task_id)
            if item is None:
                return
            item["pending_delete"] = True
            item["is_synced"] = False
            if last_updated is not None:
                item["last_updated"] = last_updated

    async def delete_permanently(self, task_id: str) -> None:
        with self._lock:
            self._items.pop(task_id, None)

    async def clear_all(self) -> None:
        with self._lock:
            self._items.clear()


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> TaskRepository:
    """
    Factory to return the configured record store based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
