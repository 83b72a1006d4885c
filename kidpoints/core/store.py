"""Key-value stores for JSON-compatible records.

Every store offers the same async capability set (``read``, ``write``,
``delete``) so services can be handed a file-backed store in production
and an in-memory one in tests.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from kidpoints.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Keyed record storage used by the points, credential and session layers."""

    async def read(self, key: str) -> Any | None: ...

    async def write(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# JSON files on disk
# ---------------------------------------------------------------------------
class JsonFileStore:
    """One ``<key>.json`` file per key inside ``directory``.

    Writes are atomic: the payload goes to a temporary file in the same
    directory which then replaces the target. File I/O runs in a worker
    thread so the event loop is never blocked. ``ttl`` is ignored.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid store key: {key!r}")
        return self._dir / f"{key}.json"

    async def read(self, key: str) -> Any | None:
        return await asyncio.to_thread(self._read_sync, self.path_for(key))

    async def write(self, key: str, value: Any, ttl: int | None = None) -> None:
        await asyncio.to_thread(self._write_sync, self.path_for(key), value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, self.path_for(key))

    @staticmethod
    def _read_sync(path: Path) -> Any | None:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read {path.name}") from exc

    def _write_sync(self, path: Path, value: Any) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Cannot write {path.name}") from exc

    @staticmethod
    def _delete_sync(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot delete {path.name}") from exc


# ---------------------------------------------------------------------------
# In-process dictionary
# ---------------------------------------------------------------------------
class MemoryStore:
    """Dictionary-backed store with optional per-key expiry.

    Values are round-tripped through JSON so callers never share mutable
    state with the store.
    """

    def __init__(self, initial: dict[str, Any] | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        for key, value in (initial or {}).items():
            self._data[key] = (json.dumps(value), None)

    async def read(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return json.loads(raw)

    async def write(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key!r} is not JSON serialisable") from exc
        now = self._clock()
        self._purge_expired(now)
        self._data[key] = (raw, now + ttl if ttl else None)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._data.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._data[key]

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------
class RedisStore:
    """JSON values in Redis under ``<prefix><key>``, TTL via ``SET ... EX``."""

    def __init__(self, client: aioredis.Redis, prefix: str = "kidpoints:") -> None:
        self._client = client
        self._prefix = prefix

    async def read(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(self._prefix + key)
        except RedisError as exc:
            raise StorageError(f"Redis read failed for {key!r}") from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageError(f"Corrupt Redis value for {key!r}") from exc

    async def write(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await self._client.set(self._prefix + key, json.dumps(value), ex=ttl)
        except RedisError as exc:
            raise StorageError(f"Redis write failed for {key!r}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._prefix + key)
        except RedisError as exc:
            raise StorageError(f"Redis delete failed for {key!r}") from exc
