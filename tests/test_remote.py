import random

import httpx
import pytest

from offline_tasks.authority.main import create_app
from offline_tasks.authority.store import TaskAuthorityStore
from offline_tasks.errors import RemoteRequestError, RemoteUnavailableError
from offline_tasks.remote import HttpRemoteAuthority, InMemoryRemoteAuthority, get_remote
from offline_tasks.repositories import InMemoryRepository
from offline_tasks.settings import get_settings
from offline_tasks.sync_engine import SyncEngine, SyncStatus

from conftest import make_record, make_remote


def http_remote(store=None, failure_rate=0.0):
    app = create_app(store=store or TaskAuthorityStore(), failure_rate=failure_rate, rng=random.Random(7))
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://authority")
    return HttpRemoteAuthority("http://authority", client=client)


class TestInMemoryRemoteAuthority:
    @pytest.mark.asyncio
    async def test_crud_round(self):
        remote = InMemoryRemoteAuthority()
        await remote.create(make_remote("a", 100))
        await remote.update(make_remote("a", 200, title="Edited"))

        assert (await remote.get("a"))["title"] == "Edited"
        assert [t["id"] for t in await remote.list_all()] == ["a"]

        await remote.delete("a")
        await remote.delete("a")
        assert await remote.get("a") is None

    @pytest.mark.asyncio
    async def test_failure_injection(self):
        remote = InMemoryRemoteAuthority(failure_rate=1.0, seed_tasks=[make_remote("a", 1)])
        with pytest.raises(RemoteUnavailableError):
            await remote.list_all()
        with pytest.raises(RemoteUnavailableError):
            await remote.create(make_remote("b", 1))
        assert list(remote.snapshot()) == ["a"]

    @pytest.mark.asyncio
    async def test_returned_tasks_are_copies(self):
        remote = InMemoryRemoteAuthority(seed_tasks=[make_remote("a", 1)])
        task = await remote.get("a")
        task["title"] = "mutated"
        assert remote.snapshot()["a"]["title"] == "Remote"
        remote.clear()
        assert remote.snapshot() == {}


class TestHttpRemoteAuthority:
    @pytest.mark.asyncio
    async def test_create_get_update_list_delete(self):
        table = TaskAuthorityStore()
        remote = http_remote(table)

        await remote.create(make_remote("a", 100, description="d"))
        assert await remote.get("a") == make_remote("a", 100, description="d")

        await remote.update(make_remote("a", 200, title="Edited", status="Completed"))
        assert table.get("a")["status"] == "Completed"

        listed = await remote.list_all()
        assert listed == [make_remote("a", 200, title="Edited", status="Completed")]

        await remote.delete("a")
        assert table.get("a") is None
        await remote.close()

    @pytest.mark.asyncio
    async def test_absent_task_semantics(self):
        remote = http_remote()
        assert await remote.get("missing") is None
        # Deleting something already gone is a success
        await remote.delete("missing")
        with pytest.raises(RemoteRequestError) as exc_info:
            await remote.update(make_remote("missing", 1))
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_create_is_a_request_error(self):
        remote = http_remote(TaskAuthorityStore([make_remote("a", 1)]))
        with pytest.raises(RemoteRequestError) as exc_info:
            await remote.create(make_remote("a", 2))
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_service_unavailable_surfaces_status(self):
        remote = http_remote(failure_rate=1.0)
        with pytest.raises(RemoteRequestError) as exc_info:
            await remote.list_all()
        assert exc_info.value.status_code == 503
        assert await remote.health_check() is True

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://authority")
        remote = HttpRemoteAuthority("http://authority", client=client)

        with pytest.raises(RemoteUnavailableError):
            await remote.create(make_remote("a", 1))
        assert await remote.health_check() is False

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(slow), base_url="http://authority")
        remote = HttpRemoteAuthority("http://authority", client=client)

        with pytest.raises(RemoteUnavailableError):
            await remote.get("a")

    @pytest.mark.asyncio
    async def test_malformed_listing_is_request_error(self):
        def garbage(request):
            return httpx.Response(200, json={"unexpected": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(garbage), base_url="http://authority")
        remote = HttpRemoteAuthority("http://authority", client=client)

        with pytest.raises(RemoteRequestError):
            await remote.list_all()


class TestSyncOverHttp:
    @pytest.mark.asyncio
    async def test_engine_converges_against_authority_service(self):
        table = TaskAuthorityStore([make_remote("server-only", 10), make_remote("stale", 20, title="Old")])
        remote = http_remote(table)
        local = InMemoryRepository()
        await local.insert(make_record("local-only", 30))
        await local.insert(make_record("stale", 40, title="Fresh"))
        engine = SyncEngine(local, remote)

        result = await engine.sync_tasks()

        assert result.status is SyncStatus.COMPLETED
        assert (result.created, result.updated, result.pulled_inserted) == (1, 1, 1)
        assert {t["id"] for t in table.list()} == {"server-only", "stale", "local-only"}
        assert table.get("stale")["title"] == "Fresh"
        assert all(t["is_synced"] for t in await local.get_all())

    @pytest.mark.asyncio
    async def test_unavailable_authority_fails_pass_without_losing_state(self):
        remote = http_remote(failure_rate=1.0)
        local = InMemoryRepository()
        await local.insert(make_record("a", 30))
        engine = SyncEngine(local, remote)

        result = await engine.sync_tasks()

        assert result.status is SyncStatus.FAILED
        assert [f.task_id for f in result.failures] == ["a"]
        assert (await local.get_by_id("a"))["is_synced"] is False


class TestFactory:
    def test_memory_backend_uses_configured_injection(self, monkeypatch):
        monkeypatch.setenv("REMOTE_BACKEND", "memory")
        monkeypatch.setenv("REMOTE_LATENCY_MS", "100")
        monkeypatch.setenv("REMOTE_FAILURE_RATE", "0.05")
        remote = get_remote(get_settings())
        assert isinstance(remote, InMemoryRemoteAuthority)
        assert remote.latency == pytest.approx(0.1)
        assert remote.failure_rate == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_http_backend(self, monkeypatch):
        monkeypatch.setenv("REMOTE_BACKEND", "http")
        monkeypatch.setenv("REMOTE_BASE_URL", "http://tasks.example:9000/")
        remote = get_remote(get_settings())
        assert isinstance(remote, HttpRemoteAuthority)
        assert remote.base_url == "http://tasks.example:9000"
        await remote.close()
