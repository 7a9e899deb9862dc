"""
Offline-first task list manager.

Tasks are edited against a local record store and reconciled with a remote
task authority by the sync engine whenever connectivity allows.
"""
from .container import TaskApp
from .errors import RemoteError, StoreError, TaskNotFoundError
from .models import RemoteTask, TaskRecord, TaskStatus
from .service import TaskService
from .sync_engine import SyncEngine, SyncResult, SyncStatus

__all__ = [
    "RemoteError",
    "RemoteTask",
    "StoreError",
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "TaskApp",
    "TaskNotFoundError",
    "TaskRecord",
    "TaskService",
    "TaskStatus",
]

__version__ = "0.1.0"
