"""Unit tests for the Redis-backed store, using a recording client double."""

import pytest

from kidpoints.core.exceptions import StorageError
from kidpoints.core.store import RedisStore
from tests.conftest import FakeRedis


class TestRedisStore:
    async def test_round_trip_with_prefix_and_ttl(self):
        client = FakeRedis()
        store = RedisStore(client, prefix="kp:")
        await store.write("session:abc", {"identity": {"username": "emma"}}, ttl=300)
        assert "kp:session:abc" in client.data
        assert client.expiry["kp:session:abc"] == 300
        assert await store.read("session:abc") == {"identity": {"username": "emma"}}

    async def test_delete(self):
        client = FakeRedis()
        store = RedisStore(client)
        await store.write("session:abc", {"x": 1})
        await store.delete("session:abc")
        assert await store.read("session:abc") is None

    async def test_corrupt_value(self):
        client = FakeRedis()
        client.data["kidpoints:session:abc"] = "{oops"
        with pytest.raises(StorageError):
            await RedisStore(client).read("session:abc")

    @pytest.mark.parametrize("operation", ["read", "write", "delete"])
    async def test_connection_errors_become_storage_errors(self, operation):
        store = RedisStore(FakeRedis(fail=True))
        args = ("session:abc", {"x": 1}) if operation == "write" else ("session:abc",)
        with pytest.raises(StorageError):
            await getattr(store, operation)(*args)
