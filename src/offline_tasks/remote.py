"""
Remote task authority clients.

The sync engine only depends on the RemoteAuthority contract. Two
implementations ship with the package:
- InMemoryRemoteAuthority: simulated server with latency and random failure
  injection, used for local runs, demos and tests
- HttpRemoteAuthority: httpx client for the REST API served by
  offline_tasks.authority
"""
from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from .errors import RemoteError, RemoteRequestError, RemoteUnavailableError
from .models import RemoteTask
from .schemas import RemoteTaskOut, TaskListEnvelope
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

TASKS_PATH = "/api/v1/tasks"


# PUBLIC_INTERFACE
class RemoteAuthority(ABC):
    """
    Contract of the remote task authority.

    Mutating calls return None on success and raise RemoteError on failure.
    Each call is independent; callers may retry any of them on a later pass.
    """

    @abstractmethod
    async def create(self, task: RemoteTask) -> None:
        """Create a task under its client-assigned id."""

    @abstractmethod
    async def update(self, task: RemoteTask) -> None:
        """Replace the remote copy of a task."""

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        """Remove a task. Deleting an absent task succeeds."""

    @abstractmethod
    async def list_all(self) -> List[RemoteTask]:
        """Return every task held by the authority."""

    @abstractmethod
    async def get(self, task_id: str) -> Optional[RemoteTask]:
        """Return one task, or None when the authority does not hold it."""

    async def close(self) -> None:
        """Release any resources held by the client."""


class InMemoryRemoteAuthority(RemoteAuthority):
    """
    Simulated remote authority backed by a dict.

    Every call sleeps for `latency` seconds and then fails with
    RemoteUnavailableError with probability `failure_rate`.
    """

    def __init__(
        self,
        latency: float = 0.0,
        failure_rate: float = 0.0,
        rng: Optional[random.Random] = None,
        seed_tasks: Optional[Iterable[RemoteTask]] = None,
    ) -> None:
        self.latency = latency
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._lock = RLock()
        self._tasks: Dict[str, RemoteTask] = {}
        for task in seed_tasks or ():
            self._tasks[task["id"]] = dict(task)  # type: ignore[assignment]

    async def _simulate_network(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        if self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            raise RemoteUnavailableError("Network error")

    async def create(self, task: RemoteTask) -> None:
        await self._simulate_network()
        with self._lock:
            self._tasks[task["id"]] = dict(task)  # type: ignore[assignment]

    async def update(self, task: RemoteTask) -> None:
        await self._simulate_network()
        with self._lock:
            self._tasks[task["id"]] = dict(task)  # type: ignore[assignment]

    async def delete(self, task_id: str) -> None:
        await self._simulate_network()
        with self._lock:
            self._tasks.pop(task_id, None)

    async def list_all(self) -> List[RemoteTask]:
        await self._simulate_network()
        with self._lock:
            return [dict(t) for t in self._tasks.values()]  # type: ignore[misc]

    async def get(self, task_id: str) -> Optional[RemoteTask]:
        await self._simulate_network()
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else dict(task)  # type: ignore[return-value]

    def snapshot(self) -> Dict[str, RemoteTask]:
        """Current server state, bypassing latency and failure injection."""
        with self._lock:
            return {k: dict(v) for k, v in self._tasks.items()}  # type: ignore[misc]

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()


class HttpRemoteAuthority(RemoteAuthority):
    """
    REST client for the task authority service.

    Transport failures and timeouts raise RemoteUnavailableError; unexpected
    status codes raise RemoteRequestError carrying the status.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    def _url(self, task_id: Optional[str] = None) -> str:
        if task_id is None:
            return f"{TASKS_PATH}/"
        return f"{TASKS_PATH}/{task_id}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"Timed out calling {method} {url}") from e
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"Network error calling {method} {url}: {e}") from e

    @staticmethod
    def _check(response: httpx.Response, *expected: int) -> None:
        if response.status_code not in expected:
            raise RemoteRequestError(
                f"{response.request.method} {response.request.url.path} returned {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _parse_task(response: httpx.Response) -> RemoteTask:
        try:
            return RemoteTaskOut.model_validate(response.json()).to_task()
        except (ValueError, ValidationError) as e:
            raise RemoteRequestError(f"Malformed task in authority response: {e}") from e

    async def create(self, task: RemoteTask) -> None:
        response = await self._request("POST", self._url(), json=dict(task))
        self._check(response, 200, 201)

    async def update(self, task: RemoteTask) -> None:
        response = await self._request("PUT", self._url(task["id"]), json=dict(task))
        self._check(response, 200)

    async def delete(self, task_id: str) -> None:
        response = await self._request("DELETE", self._url(task_id))
        # Already absent counts as deleted
        self._check(response, 200, 204, 404)

    async def list_all(self) -> List[RemoteTask]:
        response = await self._request("GET", self._url())
        self._check(response, 200)
        try:
            envelope = TaskListEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteRequestError(f"Malformed task listing: {e}") from e
        return [item.to_task() for item in envelope.items]

    async def get(self, task_id: str) -> Optional[RemoteTask]:
        response = await self._request("GET", self._url(task_id))
        if response.status_code == 404:
            return None
        self._check(response, 200)
        return self._parse_task(response)

    async def health_check(self) -> bool:
        """True when the authority answers its health endpoint."""
        try:
            response = await self._request("GET", "/")
        except RemoteError as e:
            logger.debug("Authority health check failed: %s", e)
            return False
        return response.status_code == 200

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# PUBLIC_INTERFACE
def get_remote(settings: Optional[Settings] = None) -> RemoteAuthority:
    """
    Factory to return the configured remote authority client.
    - memory: InMemoryRemoteAuthority with the configured latency/failure rate
    - http: HttpRemoteAuthority against REMOTE_BASE_URL
    """
    settings = settings or get_settings()
    if settings.remote_backend == "http":
        return HttpRemoteAuthority(settings.remote_base_url, timeout=settings.remote_timeout_seconds)
    return InMemoryRemoteAuthority(
        latency=settings.remote_latency_ms / 1000.0,
        failure_rate=settings.remote_failure_rate,
    )
