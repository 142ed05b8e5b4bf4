"""
Cache Module.

Pluggable key-value backends (Redis, in-memory, null) and the shared key layout.
"""

from growplate.platform.cache.backends import (
    InMemoryCache,
    NullCache,
    RedisCache,
    create_cache_backend,
)
from growplate.platform.cache.config import CacheConfig
from growplate.platform.cache.exceptions import (
    CacheConnectionError,
    CacheError,
    CacheSerializationError,
)
from growplate.platform.cache.interfaces import CacheBackend

__all__ = [
    "CacheBackend",
    "CacheConfig",
    "CacheConnectionError",
    "CacheError",
    "CacheSerializationError",
    "InMemoryCache",
    "NullCache",
    "RedisCache",
    "create_cache_backend",
]
