"""
Redis client lifecycle.

One pooled client per process, created during application startup and shared
by the tenant and feature caches.
"""

from typing import Any

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from growplate.platform.settings import settings

logger = structlog.get_logger(__name__)

type RedisClientType = Redis
type RedisPoolType = ConnectionPool


class RedisClientManager:
    """Owns the connection pool and the client built on it."""

    def __init__(self) -> None:
        self._pool: RedisPoolType | None = None
        self._client: RedisClientType | None = None

    @property
    def initialized(self) -> bool:
        return self._client is not None

    async def initialize(
        self,
        url: str | None = None,
        max_connections: int | None = None,
        socket_timeout: int = 5,
        **kwargs: Any,
    ) -> None:
        """
        Create the pool and verify the server answers.

        Args:
            url: Redis URL (defaults to settings.redis.redis_url)
            max_connections: Maximum pool connections
            socket_timeout: Socket and connect timeout in seconds
            **kwargs: Additional connection pool parameters
        """
        if self._pool is not None:
            logger.warning("redis.already_initialized")
            return

        url = url or settings.redis.redis_url
        max_connections = max_connections or settings.redis.max_connections

        try:
            self._pool = ConnectionPool.from_url(
                url,
                decode_responses=True,
                max_connections=max_connections,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                **kwargs,
            )
            self._client = Redis(connection_pool=self._pool)
            await self._client.ping()
            logger.info("redis.initialized", max_connections=max_connections)
        except RedisError as e:
            logger.error("redis.initialization_failed", error=str(e))
            await self.close()
            raise

    async def close(self) -> None:
        """Close the client and its pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        logger.info("redis.closed")

    def get_client(self) -> RedisClientType:
        """
        Get Redis client instance.

        Raises:
            RuntimeError: If client not initialized
        """
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")
        return self._client

    async def health_check(self) -> dict[str, Any]:
        if self._client is None:
            return {"status": "unhealthy", "message": "Redis client not initialized"}
        try:
            await self._client.ping()
        except RedisError as e:
            logger.error("redis.health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}


redis_manager = RedisClientManager()


async def init_redis() -> RedisClientType:
    """Initialize the shared client on application startup."""
    try:
        await redis_manager.initialize()
    except RedisError as e:
        logger.error("redis.startup_failed", error=str(e))
        raise RuntimeError("Redis initialization failed") from e
    logger.info("redis.startup_complete")
    return redis_manager.get_client()


async def shutdown_redis() -> None:
    """Close Redis connections on application shutdown."""
    try:
        await redis_manager.close()
        logger.info("redis.shutdown_complete")
    except RedisError as e:
        logger.error("redis.shutdown_failed", error=str(e))
