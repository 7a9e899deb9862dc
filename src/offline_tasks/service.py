from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .errors import TaskNotFoundError
from .models import TaskRecord, TaskStatus
from .repositories import TaskRepository
from .schemas import TaskCreate, TaskUpdate
from .utils import MonotonicClock, new_task_id

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskService:
    """
    Local CRUD facade over the record store.

    Every mutation is local only: it never waits on the network, stamps
    last_updated from the clock and marks the record unsynced so the sync
    engine picks it up on its next pass.
    """

    def __init__(self, store: TaskRepository, clock: Optional[Callable[[], int]] = None) -> None:
        self.store = store
        self._clock = clock or MonotonicClock()

    async def _require(self, task_id: str) -> TaskRecord:
        task = await self.store.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(self) -> List[TaskRecord]:
        """Live tasks, most recently updated first."""
        return await self.store.get_all()

    async def get_task(self, task_id: str) -> TaskRecord:
        return await self._require(task_id)

    async def create(self, title: str, description: Optional[str] = None) -> TaskRecord:
        data = TaskCreate(title=title, description=description)
        task: TaskRecord = {
            "id": new_task_id(),
            "title": data.title,
            "description": data.description,
            "status": TaskStatus.PENDING.value,
            "last_updated": self._clock(),
            "is_synced": False,
            "pending_delete": False,
        }
        await self.store.insert(task)
        logger.debug("Created task %s", task["id"])
        return task

    async def update(self, task_id: str, **fields) -> TaskRecord:
        """
        Apply a partial edit. Accepted fields: title, description, status.
        Only fields passed explicitly are changed; description may be set to None.
        """
        data = TaskUpdate(**fields)
        task = await self._require(task_id)

        updated = task.copy()
        if data.title is not None:
            updated["title"] = data.title
        if "description" in data.model_fields_set:
            updated["description"] = data.description
        if data.status is not None:
            updated["status"] = data.status.value
        updated["last_updated"] = self._clock()
        updated["is_synced"] = False

        await self.store.update(updated)
        return updated

    async def toggle_status(self, task_id: str) -> TaskRecord:
        task = await self._require(task_id)
        updated = task.copy()
        updated["status"] = TaskStatus(task["status"]).toggled().value
        updated["last_updated"] = self._clock()
        updated["is_synced"] = False
        await self.store.update(updated)
        return updated

    async def request_delete(self, task_id: str) -> None:
        """Soft-delete: the row stays until the remote authority confirms the delete."""
        await self._require(task_id)
        await self.store.mark_pending_delete(task_id, last_updated=self._clock())
        logger.debug("Task %s marked for deletion", task_id)

    async def clear_all(self) -> None:
        await self.store.clear_all()
