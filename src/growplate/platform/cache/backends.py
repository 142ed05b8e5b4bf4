"""
Cache backends: in-process LRU, Redis, and a no-op backend.

All backends store JSON so a value read back is never the same object that
was written; callers cannot mutate cached state by accident.
"""

import time
from typing import Any

import structlog
from cachetools import LRUCache  # type: ignore[import-untyped]
from redis.asyncio import Redis
from redis.exceptions import RedisError

from growplate.platform.cache.config import CacheConfig
from growplate.platform.cache.exceptions import CacheConnectionError, CacheError
from growplate.platform.cache.interfaces import CacheBackend

logger = structlog.get_logger(__name__)


class InMemoryCache(CacheBackend):
    """Bounded LRU cache held in process memory.

    Expiry uses wall-clock ``time.time()`` and is checked on read.
    """

    def __init__(self, config: CacheConfig | None = None) -> None:
        self.config = config or CacheConfig()
        self._store: LRUCache = LRUCache(maxsize=self.config.max_size)
        self._connected = False
        self._hits = 0
        self._misses = 0

    @property
    def key_prefix(self) -> str:  # type: ignore[override]
        return self.config.key_prefix

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> bool:
        self._connected = False
        return True

    def is_connected(self) -> bool:
        return self._connected

    async def get(self, key: str) -> Any | None:
        entry = self._store.get(self.full_key(key))
        if entry is None:
            self._misses += 1
            return None

        payload, expires_at = entry
        if expires_at is not None and time.time() >= expires_at:
            self._store.pop(self.full_key(key), None)
            self._misses += 1
            return None

        self._hits += 1
        return self.decode(payload)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        ttl = ttl if ttl is not None else self.config.default_ttl
        expires_at = time.time() + ttl if ttl > 0 else None
        self._store[self.full_key(key)] = (self.encode(value), expires_at)
        return True

    async def delete(self, key: str) -> bool:
        return self._store.pop(self.full_key(key), None) is not None

    async def clear(self) -> bool:
        self._store.clear()
        return True

    async def get_stats(self) -> dict[str, Any]:
        return {
            "backend": "memory",
            "size": len(self._store),
            "max_size": self.config.max_size,
            "hits": self._hits,
            "misses": self._misses,
        }


class RedisCache(CacheBackend):
    """Redis-backed cache. Redis failures surface as ``CacheError``."""

    def __init__(self, config: CacheConfig | None = None, client: Redis | None = None) -> None:
        self.config = config or CacheConfig(backend="redis")
        self._client = client
        self._owns_client = client is None

    @property
    def key_prefix(self) -> str:  # type: ignore[override]
        return self.config.key_prefix

    def _require_client(self) -> Redis:
        if self._client is None:
            raise CacheConnectionError("Redis cache is not connected")
        return self._client

    async def connect(self) -> bool:
        if self._client is None:
            self._client = Redis.from_url(
                self.config.redis_url,
                decode_responses=True,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.connection_timeout,
                socket_connect_timeout=self.config.connection_timeout,
            )
        try:
            await self._client.ping()
        except RedisError as e:
            logger.error("cache.redis.connect_failed", error=str(e))
            raise CacheConnectionError(str(e)) from e
        logger.info("cache.redis.connected")
        return True

    async def disconnect(self) -> bool:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        return True

    def is_connected(self) -> bool:
        return self._client is not None

    async def get(self, key: str) -> Any | None:
        client = self._require_client()
        try:
            payload = await client.get(self.full_key(key))
        except RedisError as e:
            raise CacheError(f"Redis GET failed: {e}") from e
        if payload is None:
            return None
        return self.decode(payload)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        client = self._require_client()
        ttl = ttl if ttl is not None else self.config.default_ttl
        try:
            if ttl > 0:
                await client.set(self.full_key(key), self.encode(value), ex=ttl)
            else:
                await client.set(self.full_key(key), self.encode(value))
        except RedisError as e:
            raise CacheError(f"Redis SET failed: {e}") from e
        return True

    async def delete(self, key: str) -> bool:
        client = self._require_client()
        try:
            return bool(await client.delete(self.full_key(key)))
        except RedisError as e:
            raise CacheError(f"Redis DEL failed: {e}") from e

    async def exists(self, key: str) -> bool:
        client = self._require_client()
        try:
            return bool(await client.exists(self.full_key(key)))
        except RedisError as e:
            raise CacheError(f"Redis EXISTS failed: {e}") from e

    async def clear(self) -> bool:
        client = self._require_client()
        try:
            if not self.config.key_prefix:
                await client.flushdb()
                return True
            async for key in client.scan_iter(match=f"{self.config.key_prefix}*"):
                await client.delete(key)
        except RedisError as e:
            raise CacheError(f"Redis clear failed: {e}") from e
        return True

    async def get_stats(self) -> dict[str, Any]:
        client = self._require_client()
        try:
            info = await client.info()
        except RedisError as e:
            raise CacheError(f"Redis INFO failed: {e}") from e
        return {
            "backend": "redis",
            "keyspace_hits": info.get("keyspace_hits"),
            "keyspace_misses": info.get("keyspace_misses"),
        }


class NullCache(CacheBackend):
    """Backend that stores nothing; every read is a miss."""

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> bool:
        return True

    def is_connected(self) -> bool:
        return True

    async def get(self, key: str) -> Any | None:
        return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return False

    async def clear(self) -> bool:
        return True

    async def get_stats(self) -> dict[str, Any]:
        return {"backend": "null"}


def create_cache_backend(config: CacheConfig, client: Redis | None = None) -> CacheBackend:
    """Build the backend named by ``config.backend``."""
    if config.backend == "redis":
        return RedisCache(config, client=client)
    if config.backend == "null":
        return NullCache()
    return InMemoryCache(config)
