"""Cache-related exceptions."""


class CacheError(Exception):
    """Base exception for cache operations."""

    pass


class CacheConnectionError(CacheError):
    """Raised when cache backend connection fails."""

    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded for, or decoded from, the cache."""

    pass
