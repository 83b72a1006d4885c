"""Shared async Redis connection for the session backend.

The connection is opened on first use and reused afterwards. When no URL
is configured or the server does not answer, callers get None and keep
sessions in process memory.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from kidpoints.config import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis(url: str | None = None) -> aioredis.Redis | None:
    """Connect once to ``url`` (default ``REDIS_URL``) and return the client."""
    global _client
    if _client is not None:
        return _client

    url = url or settings.REDIS_URL
    if not url:
        return None

    candidate = aioredis.from_url(url, decode_responses=True)
    try:
        await candidate.ping()
    except (RedisError, OSError):
        logger.warning("No Redis server answering at %s", url)
        await candidate.aclose()
        return None
    _client = candidate
    logger.info("Session backend connected to Redis")
    return _client


async def close_redis() -> None:
    global _client
    if _client is None:
        return
    await _client.aclose()
    _client = None
