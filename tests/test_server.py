from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from pyboredom._cache import TtlStateCache
from pyboredom.config import BoredomConfig
from pyboredom.exceptions import StoreUnavailableError
from pyboredom.models.state import BoredomState
from pyboredom.server import create_app
from pyboredom.service import BoredomService
from pyboredom.store import MemoryStateStore

T0 = 1_760_000_000_000


class _BrokenStore(MemoryStateStore):
    """Boots fine, then loses the connection for every later call."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    async def load(self) -> BoredomState:
        if self.broken:
            raise StoreUnavailableError("no primary available", operation="load")
        return await super().load()

    async def atomic_update(
        self,
        set_fields: Mapping[str, Any] | None = None,
        inc_fields: Mapping[str, int] | None = None,
        *,
        max_fields: Mapping[str, Any] | None = None,
        expect: Mapping[str, Any] | None = None,
    ) -> BoredomState | None:
        if self.broken:
            raise StoreUnavailableError("no primary available", operation="atomic_update")
        return await super().atomic_update(set_fields, inc_fields, max_fields=max_fields, expect=expect)


def _config() -> BoredomConfig:
    return BoredomConfig(
        store_backend="memory",
        admin_username="keeper",
        admin_password="s3cret",
        alone_since=datetime(2025, 10, 13, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def store() -> _BrokenStore:
    return _BrokenStore()


@pytest_asyncio.fixture
async def client(store: _BrokenStore) -> AsyncIterator[TestClient]:
    config = _config()
    service = BoredomService(config, store, TtlStateCache(0), clock=lambda: T0)
    async with TestClient(TestServer(create_app(config, service=service))) as test_client:
        yield test_client


@pytest.mark.asyncio
async def test_get_boredom_shape(client: TestClient) -> None:
    resp = await client.get("/api/boredom")

    assert resp.status == 200
    body = await resp.json()
    assert body == {
        "level": 0,
        "lastUpdateTime": T0,
        "boredomSpikes": 0,
        "timeAlone": (T0 - int(datetime(2025, 10, 13, 9, 0, tzinfo=UTC).timestamp() * 1000)) // 1000,
        "serverTime": T0,
    }


@pytest.mark.asyncio
async def test_set_then_get(client: TestClient) -> None:
    resp = await client.post("/api/boredom/set", json={"level": 42.6})

    assert resp.status == 200
    assert await resp.json() == {"success": True, "newLevel": 43}

    body = await (await client.get("/api/boredom")).json()
    assert body["level"] == 43
    assert body["boredomSpikes"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"level": 150}, {"level": -3}, {"level": "50"}, {}, {"level": None}])
async def test_set_rejects_invalid_level(client: TestClient, payload: dict[str, Any]) -> None:
    resp = await client.post("/api/boredom/set", json=payload)

    assert resp.status == 400
    body = await resp.json()
    assert body["success"] is False
    assert body["message"]

    state = await (await client.get("/api/boredom")).json()
    assert state["level"] == 0
    assert state["boredomSpikes"] == 0


@pytest.mark.asyncio
async def test_set_rejects_malformed_body(client: TestClient) -> None:
    resp = await client.post("/api/boredom/set", data="{not json", headers={"Content-Type": "application/json"})

    assert resp.status == 400
    assert (await resp.json())["success"] is False


@pytest.mark.asyncio
async def test_reset(client: TestClient) -> None:
    await client.post("/api/boredom/set", json={"level": 80})

    resp = await client.post("/api/boredom/reset")

    assert resp.status == 200
    assert await resp.json() == {"success": True, "newLevel": 0}
    state = await (await client.get("/api/boredom")).json()
    assert state["level"] == 0
    assert state["boredomSpikes"] == 0


@pytest.mark.asyncio
async def test_store_failures_are_500(client: TestClient, store: _BrokenStore) -> None:
    store.broken = True

    get_resp = await client.get("/api/boredom")
    set_resp = await client.post("/api/boredom/set", json={"level": 10})
    reset_resp = await client.post("/api/boredom/reset")

    assert get_resp.status == 500
    assert await get_resp.json() == {"error": "Failed to fetch boredom state"}
    assert set_resp.status == 500
    assert await set_resp.json() == {"success": False, "message": "Failed to update boredom level"}
    assert reset_resp.status == 500
    assert await reset_resp.json() == {"success": False, "message": "Failed to reset boredom state"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "status", "authenticated"),
    [
        ({"username": "keeper", "password": "s3cret"}, 200, True),
        ({"username": "keeper", "password": "wrong"}, 401, False),
        ({"username": "admin", "password": "s3cret"}, 401, False),
        ({"username": "keeper"}, 400, False),
        ({"password": "s3cret"}, 400, False),
        ({"username": "", "password": ""}, 400, False),
        ({"username": 7, "password": "s3cret"}, 401, False),
    ],
)
async def test_auth_check(client: TestClient, payload: dict[str, Any], status: int, authenticated: bool) -> None:
    resp = await client.post("/api/auth/check", json=payload)

    assert resp.status == status
    assert (await resp.json())["authenticated"] is authenticated


@pytest.mark.asyncio
async def test_healthz_does_not_touch_store(client: TestClient, store: _BrokenStore) -> None:
    store.broken = True

    resp = await client.get("/healthz")

    assert resp.status == 200
    assert await resp.json() == {"status": "ok", "cache": "ttl"}
