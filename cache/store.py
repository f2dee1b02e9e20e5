"""
cache/store.py -- Redis-backed snapshot cache for the user list.

Holds one JSON-serialized array under the key "users" with a TTL (default
5 minutes). The service layer reads through it on GET /users and deletes the
key after every committed write to the user table.

Usage:
    cache = UsersCache.from_url("redis://localhost:6379/0", ttl=300)
    records = cache.get_users()      # list[dict] or None on miss
    cache.set_users(records)
    cache.invalidate()

Every Redis failure (connection refused, socket timeout, protocol error) is
re-raised as CacheError. Nothing here retries.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis

from core.errors import CacheError

logger = logging.getLogger("userapi.cache")

USERS_KEY = "users"
_DEFAULT_TTL = 5 * 60  # 5 minutes in seconds


class UsersCache:
    """Thin wrapper over a redis client.

    The client is thread safe and connections are checked out per command,
    so one instance is shared by every request.
    """

    def __init__(self, client: redis.Redis, ttl: int = _DEFAULT_TTL) -> None:
        self._client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = _DEFAULT_TTL, socket_timeout: float = 2.0) -> "UsersCache":
        logger.debug("New Redis connection at %s", url)
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client, ttl=ttl)

    def get_users(self) -> Optional[list[dict]]:
        """Return the cached user records, or None on a miss."""
        try:
            raw = self._client.get(USERS_KEY)
        except redis.exceptions.RedisError as e:
            raise CacheError() from e
        if raw is None:
            return None
        return json.loads(raw)

    def set_users(self, records: list[dict]) -> None:
        """Store records under the users key with the configured TTL."""
        try:
            self._client.set(USERS_KEY, json.dumps(records), ex=self.ttl)
        except redis.exceptions.RedisError as e:
            raise CacheError() from e

    def invalidate(self) -> None:
        """Delete the users key. Missing keys are not an error."""
        try:
            self._client.delete(USERS_KEY)
        except redis.exceptions.RedisError as e:
            raise CacheError() from e

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.exceptions.RedisError:
            return False

    def close(self) -> None:
        self._client.close()
