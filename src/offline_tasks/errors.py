from __future__ import annotations

from typing import Optional


class OfflineTasksError(Exception):
    """Base class for all errors raised by the offline_tasks package."""


# PUBLIC_INTERFACE
class TaskNotFoundError(OfflineTasksError):
    """Raised when a mutation or lookup targets an id with no live task."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


# PUBLIC_INTERFACE
class StoreError(OfflineTasksError):
    """Raised when the record store cannot complete an operation."""


# PUBLIC_INTERFACE
class RemoteError(OfflineTasksError):
    """Base class for failures talking to the remote task authority."""


class RemoteUnavailableError(RemoteError):
    """The remote authority could not be reached (network error, timeout)."""


class RemoteRequestError(RemoteError):
    """The remote authority answered with an unexpected status code."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
