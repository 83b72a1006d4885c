"""Startup behaviour of the application factory."""

from httpx import ASGITransport, AsyncClient

from kidpoints.config import Settings
from kidpoints.core.store import MemoryStore, RedisStore
from kidpoints.main import create_app
from tests.conftest import ADMIN, FakeRedis, login


class TestLifespan:
    async def test_startup_loads_credentials_and_creates_board(self):
        store = MemoryStore({"credentials": {"users": []}})
        app = create_app(settings=Settings(DATA_DIR="unused"), data_store=store)
        async with app.router.lifespan_context(app):
            assert app.state.credentials.loaded
            assert await store.read("points") == {
                "adrian": [],
                "emma": [],
                "goals": {"adrian": 0.0, "emma": 0.0},
                "savings": {"adrian": 0.0, "emma": 0.0},
            }
            assert app.state.session_backend == "memory"

    async def test_redis_backend_falls_back_to_memory(self):
        settings = Settings(DATA_DIR="unused", SESSION_BACKEND="redis", REDIS_URL=None)
        app = create_app(settings=settings, data_store=MemoryStore())
        async with app.router.lifespan_context(app):
            assert app.state.session_backend == "memory"

    async def test_bad_credentials_do_not_block_startup(self):
        store = MemoryStore({"credentials": {"users": [{"username": "x"}]}})
        app = create_app(settings=Settings(DATA_DIR="unused"), data_store=store)
        async with app.router.lifespan_context(app):
            assert not app.state.credentials.loaded

    async def test_redis_backend_holds_sessions(self, monkeypatch):
        import kidpoints.core.redis_client as redis_client

        fake = FakeRedis()

        async def _fake_get_redis(url=None):
            return fake

        monkeypatch.setattr(redis_client, "get_redis", _fake_get_redis)
        settings = Settings(DATA_DIR="unused", SESSION_BACKEND="redis", REDIS_URL="redis://fake:6379/0")
        app = create_app(settings=settings, data_store=MemoryStore({"credentials": {"users": [ADMIN]}}))

        async with app.router.lifespan_context(app):
            assert app.state.session_backend == "redis"
            assert isinstance(app.state.sessions.store, RedisStore)

            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                await login(ac, ADMIN)
                session_keys = [key for key in fake.data if key.startswith("kidpoints:session:")]
                assert len(session_keys) == 1

                resp = await ac.get("/api/session")
                assert resp.json()["username"] == "parent"

                await ac.post("/api/logout")
                assert fake.data == {}
