from __future__ import annotations

from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Completion state of a task."""

    PENDING = "Pending"
    COMPLETED = "Completed"

    def toggled(self) -> "TaskStatus":
        return TaskStatus.COMPLETED if self is TaskStatus.PENDING else TaskStatus.PENDING


# PUBLIC_INTERFACE
class RemoteTask(TypedDict):
    """
    A task as held by the remote authority.

    Fields:
    - id: Stable identifier assigned by the client that created the task
    - title: Short title
    - description: Optional detailed description
    - status: 'Pending' or 'Completed'
    - last_updated: Milliseconds timestamp of the revision
    """

    id: str
    title: str
    description: Optional[str]
    status: str
    last_updated: int


# PUBLIC_INTERFACE
class TaskRecord(TypedDict):
    """
    A task as held by the local record store.

    Mirrors RemoteTask and adds the two local sync markers:
    - is_synced: True iff the remote copy is known to match this exact revision
    - pending_delete: True iff deletion was requested but not yet confirmed remotely
    """

    id: str
    title: str
    description: Optional[str]
    status: str
    last_updated: int
    is_synced: bool
    pending_delete: bool


def to_remote(record: TaskRecord) -> RemoteTask:
    """Strip the local sync markers from a record."""
    return {
        "id": record["id"],
        "title": record["title"],
        "description": record["description"],
        "status": record["status"],
        "last_updated": int(record["last_updated"]),
    }


def from_remote(remote: RemoteTask, is_synced: bool = True) -> TaskRecord:
    """Build a live local record from a remote task."""
    return {
        "id": remote["id"],
        "title": remote["title"],
        "description": remote.get("description"),
        "status": remote["status"],
        "last_updated": int(remote["last_updated"]),
        "is_synced": is_synced,
        "pending_delete": False,
    }
