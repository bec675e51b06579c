"""Redis-backed session store."""

from __future__ import annotations

import json
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from ..domain.errors import SessionStoreError


class RedisSessionStore:
    """Session records serialised as JSON strings with a Redis TTL.

    Each record is written with a single ``SET ... EX`` so readers never
    observe a partially established session.
    """

    def __init__(self, client: Redis, *, key_prefix: str = "session") -> None:
        """Keep the Redis client and the namespace used for session keys."""
        self._client = client
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored record for ``key`` or ``None`` when absent or expired."""
        try:
            raw = self._client.get(self._key(key))
        except RedisError as exc:
            raise SessionStoreError(f"session read failed: {exc}") from exc
        if raw is None:
            return None
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except ValueError as exc:
            raise SessionStoreError(f"session record is not valid JSON: {exc}") from exc

    def set(self, key: str, data: dict[str, Any], ttl_seconds: int) -> None:
        try:
            self._client.set(self._key(key), json.dumps(data), ex=ttl_seconds)
        except RedisError as exc:
            raise SessionStoreError(f"session write failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except RedisError as exc:
            raise SessionStoreError(f"session delete failed: {exc}") from exc
