"""
Read-through cache for the member data-access layer.

Keys live under a group namespace (``db/sys/mod/user`` for member data).
Values are JSON wrapped in an envelope so that a cached ``None`` is told
apart from a miss. Every Redis failure is logged and degrades to uncached
behaviour: ``get`` returns ``MISS`` and writes become no-ops.

Usage::

    entry = cache_manager.start(USER_GROUP, member_key(realm, profile_id, "readProfile"))
    data = entry.get()
    if data is MISS:
        data = load_from_db()
        entry.put(data)
"""
import json
import logging
from typing import Any, Optional
import redis

from config import settings, CACHE_MAX_TTL_SECONDS
from errors import CacheUnavailable
from .redis_client import get_redis_client

logger = logging.getLogger(__name__)

USER_GROUP = "db/sys/mod/user"
SETTINGS_GROUP = "db/sys/core"


class _Miss:
    def __repr__(self):
        return "MISS"

    def __bool__(self):
        return False


MISS = _Miss()


def _full_key(group: str, key: str) -> str:
    return f"{group}:{key}"


def _client() -> Optional[redis.Redis]:
    if not settings.CACHE_ENABLED:
        return None
    try:
        return get_redis_client()
    except CacheUnavailable as e:
        logger.warning(f"Cache unavailable, continuing uncached: {e}")
        return None


def member_key(realm, profile_id: int, *parts) -> str:
    """
    Key of a value owned by one account, e.g. ``Members:42:readProfile``.
    All such keys share the prefix returned by ``member_prefix``.
    """
    realm_name = getattr(realm, "value", realm)
    tail = ":".join(str(p) for p in parts)
    return f"{member_prefix(realm_name, profile_id)}{tail}"


def member_prefix(realm, profile_id: int) -> str:
    realm_name = getattr(realm, "value", realm)
    return f"{realm_name}:{int(profile_id)}:"


class CacheEntry:
    """One cache slot opened with ``start``."""

    def __init__(self, group: str, key: str, ttl: int):
        self.group = group
        self.key = key
        self.ttl = max(1, min(int(ttl), CACHE_MAX_TTL_SECONDS))

    @property
    def full_key(self) -> str:
        return _full_key(self.group, self.key)

    def get(self) -> Any:
        """Cached value, or ``MISS`` when absent or when the cache is down."""
        client = _client()
        if client is None:
            return MISS
        try:
            raw = client.get(self.full_key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {self.full_key}: {e}")
            return MISS
        if raw is None:
            return MISS
        try:
            return json.loads(raw)["v"]
        except (ValueError, KeyError, TypeError):
            logger.warning(f"Discarding undecodable cache entry {self.full_key}")
            return MISS

    def put(self, value: Any) -> None:
        client = _client()
        if client is None:
            return
        try:
            client.set(self.full_key, json.dumps({"v": value}, default=str), ex=self.ttl)
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache write failed for {self.full_key}: {e}")


def start(group: str, key: str, ttl: Optional[int] = None) -> CacheEntry:
    return CacheEntry(group, key, ttl if ttl is not None else settings.CACHE_TTL_SECONDS)


def clear(group: str, key: str) -> None:
    client = _client()
    if client is None:
        return
    try:
        client.delete(_full_key(group, key))
    except redis.RedisError as e:
        logger.warning(f"Cache invalidation failed for {group}:{key}: {e}")


def clear_prefix(group: str, prefix: str) -> int:
    """Delete every key of `group` starting with `prefix`. Returns the number removed."""
    client = _client()
    if client is None:
        return 0
    removed = 0
    try:
        keys = list(client.scan_iter(match=f"{_full_key(group, prefix)}*", count=500))
        if keys:
            removed = client.delete(*keys)
    except redis.RedisError as e:
        logger.warning(f"Cache prefix invalidation failed for {group}:{prefix}: {e}")
    return removed
