import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest

from offline_tasks.errors import RemoteUnavailableError
from offline_tasks.models import RemoteTask, TaskRecord, TaskStatus
from offline_tasks.remote import InMemoryRemoteAuthority, RemoteAuthority
from offline_tasks.repositories import InMemoryRepository
from offline_tasks.service import TaskService
from offline_tasks.sync_engine import SyncEngine

MUTATING = {"create", "update", "delete"}


class FakeClock:
    """Clock returning a settable millisecond value."""

    def __init__(self, start: int = 1000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1) -> int:
        self.now += ms
        return self.now


class RecordingRemote(RemoteAuthority):
    """
    Wraps InMemoryRemoteAuthority, recording every call.

    failures: set of (method, task_id) pairs to fail; a task_id of None fails
    every call to that method.
    gates: method -> asyncio.Event the call waits on before proceeding.
    entered: method -> asyncio.Event set as soon as the method is called.
    """

    def __init__(self, seed: Optional[List[RemoteTask]] = None):
        self.inner = InMemoryRemoteAuthority(seed_tasks=seed)
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.failures: Set[Tuple[str, Optional[str]]] = set()
        self.gates: Dict[str, asyncio.Event] = {}
        self.entered: Dict[str, asyncio.Event] = {}

    async def _call(self, method: str, key: Optional[str]):
        self.calls.append((method, key))
        if method in self.entered:
            self.entered[method].set()
        if method in self.gates:
            await self.gates[method].wait()
        if (method, key) in self.failures or (method, None) in self.failures:
            raise RemoteUnavailableError("Network error")

    async def create(self, task):
        await self._call("create", task["id"])
        await self.inner.create(task)

    async def update(self, task):
        await self._call("update", task["id"])
        await self.inner.update(task)

    async def delete(self, task_id):
        await self._call("delete", task_id)
        await self.inner.delete(task_id)

    async def list_all(self):
        await self._call("list_all", None)
        return await self.inner.list_all()

    async def get(self, task_id):
        await self._call("get", task_id)
        return await self.inner.get(task_id)

    @property
    def tasks(self) -> Dict[str, RemoteTask]:
        return self.inner.snapshot()

    def mutating_calls(self):
        return [c for c in self.calls if c[0] in MUTATING]


def make_record(
    task_id: str,
    last_updated: int,
    title: str = "Local",
    description: Optional[str] = None,
    status: str = TaskStatus.PENDING.value,
    is_synced: bool = False,
    pending_delete: bool = False,
) -> TaskRecord:
    return {
        "id": task_id,
        "title": title,
        "description": description,
        "status": status,
        "last_updated": last_updated,
        "is_synced": is_synced,
        "pending_delete": pending_delete,
    }


def make_remote(
    task_id: str,
    last_updated: int,
    title: str = "Remote",
    description: Optional[str] = None,
    status: str = TaskStatus.PENDING.value,
) -> RemoteTask:
    return {
        "id": task_id,
        "title": title,
        "description": description,
        "status": status,
        "last_updated": last_updated,
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryRepository()


@pytest.fixture
def remote():
    return RecordingRemote()


@pytest.fixture
def service(store, clock):
    return TaskService(store, clock=clock)


@pytest.fixture
def engine(store, remote):
    return SyncEngine(store, remote)
