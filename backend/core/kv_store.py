"""Key-value storage backends shared by every read and write path.

The store offers plain get/put/delete with per-key expiry and nothing else:
no atomic increment, no transactions. Callers doing read-modify-write accept
last-writer-wins semantics.
"""

from __future__ import annotations

import abc
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from backend.core.redis_factory import create_redis_client

logger = logging.getLogger(__name__)


class KVStore(abc.ABC):
    """Abstract durable string store with TTL support."""

    def __init__(self, *, namespace: str = "") -> None:
        self.namespace = namespace.rstrip(":")
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _key(self, key: str) -> str:
        if not self.namespace:
            return key
        return f"{self.namespace}:{key}"

    # Abstract API --------------------------------------------------------

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the raw value or None when missing or expired."""

    @abc.abstractmethod
    async def put(self, key: str, value: str, *, ttl_seconds: Optional[int] = None) -> None:
        """Store value, expiring after ttl_seconds when given."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present."""

    async def close(self) -> None:  # pragma: no cover - optional override
        return None

    # JSON helpers --------------------------------------------------------

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Decode a stored JSON document; malformed payloads read as missing."""
        raw = await self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            self._logger.debug("Malformed JSON under key %s; treating as missing", key)
            return default

    async def put_json(self, key: str, value: Any, *, ttl_seconds: Optional[int] = None) -> None:
        await self.put(key, json.dumps(value, ensure_ascii=False), ttl_seconds=ttl_seconds)


class InMemoryKVStore(KVStore):
    """In-process store with TTL semantics, used for development and tests."""

    @dataclass
    class _Entry:
        value: str
        expires_at: Optional[float]

    def __init__(
        self,
        *,
        namespace: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(namespace=namespace)
        self._data: Dict[str, InMemoryKVStore._Entry] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        full_key = self._key(key)
        entry = self._data.get(full_key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            self._data.pop(full_key, None)
            return None
        return entry.value

    async def put(self, key: str, value: str, *, ttl_seconds: Optional[int] = None) -> None:
        expires_at = None
        if ttl_seconds is not None and ttl_seconds > 0:
            expires_at = self._clock() + float(ttl_seconds)
        self._data[self._key(key)] = InMemoryKVStore._Entry(str(value), expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(self._key(key), None)

    def ttl_of(self, key: str) -> Optional[float]:
        """Remaining lifetime in seconds (None when the key never expires or is missing)."""
        entry = self._data.get(self._key(key))
        if entry is None or entry.expires_at is None:
            return None
        return entry.expires_at - self._clock()

    def keys(self) -> list[str]:
        prefix = f"{self.namespace}:" if self.namespace else ""
        return sorted(k[len(prefix):] for k in self._data if k.startswith(prefix))


class RedisKVStore(KVStore):
    """Redis-backed store; read errors degrade to misses."""

    def __init__(self, redis: Redis, *, namespace: str = "fleet") -> None:
        super().__init__(namespace=namespace)
        self._redis = redis

    @classmethod
    def from_url(cls, url: str, *, namespace: str = "fleet", **kwargs: Any) -> "RedisKVStore":
        client = create_redis_client(url, component="kv", decode_responses=True, **kwargs)
        return cls(client, namespace=namespace)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._redis.get(self._key(key))
        except RedisError as exc:
            self._logger.warning("Redis GET failed for %s: %s", key, exc)
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def put(self, key: str, value: str, *, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds is not None and ttl_seconds > 0:
            await self._redis.set(self._key(key), value, ex=int(ttl_seconds))
        else:
            await self._redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()


def build_kv_store(settings) -> KVStore:
    """Pick Redis when REDIS_URL is configured, otherwise an in-process store."""
    redis_url = getattr(settings, "redis_url", "") or ""
    if redis_url:
        return RedisKVStore.from_url(redis_url)
    if getattr(settings, "environment", "development") == "production":
        logger.warning("REDIS_URL not set in production - state is process-local")
    else:
        logger.info("KV store: in-memory (no REDIS_URL)")
    return InMemoryKVStore()


__all__ = ["InMemoryKVStore", "KVStore", "RedisKVStore", "build_kv_store"]
