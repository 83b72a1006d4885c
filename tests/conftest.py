"""Shared fixtures for KidPoints tests.

Every app is built with in-memory stores, so no data directory or Redis
server is required.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from kidpoints.config import Settings
from kidpoints.core.store import MemoryStore
from kidpoints.main import create_app

ADMIN = {"username": "parent", "password": "parent-pass", "role": "admin", "childView": None}
ADRIAN = {"username": "adrian", "password": "adrian-pass", "role": "viewer", "childView": "adrian"}
EMMA = {"username": "emma", "password": "emma-pass", "role": "viewer", "childView": "emma"}
FAMILY = {"username": "grandma", "password": "grandma-pass", "role": "viewer", "childView": None}


# ---------------------------------------------------------------------------
# Redis double
# ---------------------------------------------------------------------------

class FakeRedis:
    """Records the calls RedisStore makes; optionally fails every call."""

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self._check()
        self.data.pop(key, None)


# ---------------------------------------------------------------------------
# Reset rate-limit counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from kidpoints.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# Stores and application
# ---------------------------------------------------------------------------

@pytest.fixture()
def settings():
    return Settings(DATA_DIR="unused", SESSION_BACKEND="memory", REDIS_URL=None)


@pytest.fixture()
def data_store():
    return MemoryStore({"credentials": {"users": [ADMIN, ADRIAN, EMMA, FAMILY]}})


@pytest.fixture()
def session_store():
    return MemoryStore()


@pytest.fixture()
def app(settings, data_store, session_store):
    return create_app(settings=settings, data_store=data_store, session_store=session_store)


# ---------------------------------------------------------------------------
# HTTP test clients
# ---------------------------------------------------------------------------

def _client_for(app):
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture()
async def client(app):
    async with _client_for(app) as ac:
        yield ac


async def login(ac, user):
    resp = await ac.post("/api/login", json={"username": user["username"], "password": user["password"]})
    assert resp.status_code == 200, resp.text
    return resp


@pytest_asyncio.fixture()
async def admin_client(app):
    async with _client_for(app) as ac:
        await login(ac, ADMIN)
        yield ac


@pytest_asyncio.fixture()
async def adrian_client(app):
    async with _client_for(app) as ac:
        await login(ac, ADRIAN)
        yield ac


@pytest_asyncio.fixture()
async def family_client(app):
    async with _client_for(app) as ac:
        await login(ac, FAMILY)
        yield ac
