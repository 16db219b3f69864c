"""
Shared Redis connection for the cache adapter and the session store.
The client is created lazily so importing the data-access layer never
requires a running Redis.
"""
import logging
from typing import Optional
import time
import redis

from config import settings
from errors import CacheUnavailable

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None
_retry_after = 0.0


def _connect() -> redis.Redis:
    client = redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        username=settings.REDIS_USERNAME,
        password=settings.REDIS_PASSWORD,
        db=settings.REDIS_DB,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
        max_connections=50,  # Connection pool size
        socket_keepalive=True
    )
    try:
        client.ping()
    except redis.AuthenticationError as e:
        logger.error(f"Redis authentication failed: {e}")
        raise CacheUnavailable(str(e)) from e
    except redis.RedisError as e:
        logger.error(f"Redis connection failed: {e}")
        raise CacheUnavailable(str(e)) from e
    logger.info(f"Connected to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
    return client


def get_redis_client() -> redis.Redis:
    """
    Return the shared client, connecting on first use.
    After a failed connect no new attempt is made for REDIS_RETRY_SECONDS.
    """
    global _redis_client, _retry_after
    if _redis_client is None:
        if time.monotonic() < _retry_after:
            raise CacheUnavailable("Redis connect backing off after a recent failure")
        try:
            _redis_client = _connect()
        except CacheUnavailable:
            _retry_after = time.monotonic() + settings.REDIS_RETRY_SECONDS
            raise
    return _redis_client


def set_redis_client(client: Optional[redis.Redis]) -> None:
    """Replace the shared client (None forces a reconnect on next use)."""
    global _redis_client, _retry_after
    _redis_client = client
    _retry_after = 0.0
