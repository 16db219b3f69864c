"""
Redis-backed session store.
Each session is a hash at ``session:{session_id}`` that expires after
SESSION_TTL_SECONDS of inactivity.
"""
import json
import logging
import secrets
from typing import Any, Optional
import redis

from config import settings
from Cache_module.redis_client import get_redis_client

logger = logging.getLogger(__name__)


def _session_key(session_id: str) -> str:
    return f"session:{session_id}"


class RedisSessionStore:

    def __init__(self, session_id: Optional[str] = None, client: Optional[redis.Redis] = None):
        self._client = client
        self.session_id = session_id or secrets.token_urlsafe(32)

    @property
    def client(self) -> redis.Redis:
        return self._client or get_redis_client()

    @property
    def key(self) -> str:
        return _session_key(self.session_id)

    def get(self, name: str, default: Any = None) -> Any:
        raw = self.client.hget(self.key, name)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, name: str, value: Any) -> None:
        pipe = self.client.pipeline()
        pipe.hset(self.key, name, json.dumps(value))
        pipe.expire(self.key, settings.SESSION_TTL_SECONDS)
        pipe.execute()

    def exists(self, name: str) -> bool:
        return bool(self.client.hexists(self.key, name))

    def regenerate_id(self) -> str:
        """
        Move the session data under a fresh random id (session fixation guard).
        Returns the new id.
        """
        old_key = self.key
        new_id = secrets.token_urlsafe(32)
        new_key = _session_key(new_id)
        if self.client.exists(old_key):
            self.client.rename(old_key, new_key)
            self.client.expire(new_key, settings.SESSION_TTL_SECONDS)
        self.session_id = new_id
        logger.info("Session id regenerated")
        return new_id
