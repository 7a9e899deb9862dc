from __future__ import annotations

from threading import RLock
from typing import Dict, Iterable, List, Optional

from ..models import RemoteTask, TaskStatus
from ..utils import now_ms


class TaskAuthorityStore:
    """
    Thread-safe in-memory task table of the authority service.

    Ids and last_updated timestamps are stored exactly as the client sent
    them; the authority never assigns its own.
    """

    def __init__(self, tasks: Optional[Iterable[RemoteTask]] = None) -> None:
        self._lock = RLock()
        self._items: Dict[str, RemoteTask] = {}
        for task in tasks or ():
            self._items[task["id"]] = task.copy()

    def list(self) -> List[RemoteTask]:
        with self._lock:
            items = sorted(self._items.values(), key=lambda t: t["last_updated"], reverse=True)
            return [t.copy() for t in items]

    def get(self, task_id: str) -> Optional[RemoteTask]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def create(self, task: RemoteTask) -> bool:
        """Store a new task. Return False if the id is already taken."""
        with self._lock:
            if task["id"] in self._items:
                return False
            self._items[task["id"]] = task.copy()
            return True

    def replace(self, task: RemoteTask) -> bool:
        """Overwrite an existing task. Return False if it does not exist."""
        with self._lock:
            if task["id"] not in self._items:
                return False
            self._items[task["id"]] = task.copy()
            return True

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def demo_tasks() -> List[RemoteTask]:
    """Two welcome tasks used to preload a demo authority."""
    now = now_ms()
    return [
        {
            "id": "initial-task-1",
            "title": "Welcome Task",
            "description": "This task was fetched from the task authority.",
            "status": TaskStatus.PENDING.value,
            "last_updated": now - 1_000_000,
        },
        {
            "id": "initial-task-2",
            "title": "Review Documentation",
            "description": "Ensure all requirements are met before submission.",
            "status": TaskStatus.COMPLETED.value,
            "last_updated": now - 500_000,
        },
    ]
