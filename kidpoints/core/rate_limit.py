"""Login throttling.

One process-wide limiter keyed by client address. Counters live in Redis
when ``REDIS_URL`` answers a ping at import time, so several workers share
them; otherwise they are kept per process.
"""

import logging

import redis as sync_redis
from redis.exceptions import RedisError
from slowapi import Limiter
from slowapi.util import get_remote_address

from kidpoints.config import settings

logger = logging.getLogger(__name__)


def _counter_storage(url: str | None) -> str:
    """Return the limits storage URI for ``url``, or in-process memory."""
    if not url:
        return "memory://"
    try:
        client = sync_redis.from_url(url, socket_connect_timeout=1)
        try:
            client.ping()
        finally:
            client.close()
    except RedisError:
        logger.warning("Login throttling keeps counters in memory, %s did not answer", url)
        return "memory://"
    logger.info("Login throttling counters stored in Redis")
    return url


limiter = Limiter(key_func=get_remote_address, storage_uri=_counter_storage(settings.REDIS_URL))
