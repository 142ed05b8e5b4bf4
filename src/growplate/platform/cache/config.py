"""Cache configuration module."""

from pydantic import BaseModel, ConfigDict, Field


class CacheConfig(BaseModel):
    """Configuration for a cache backend."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|redis|null)$",
        description="Cache backend type: memory, redis, or null",
    )

    # Redis configuration
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    max_connections: int = Field(
        default=50,
        gt=0,
        description="Maximum connections in pool (Redis)",
    )
    connection_timeout: int = Field(
        default=5,
        gt=0,
        description="Socket timeout in seconds (Redis)",
    )

    # Memory backend configuration
    max_size: int = Field(
        default=10_000,
        gt=0,
        description="Maximum number of entries for memory backend",
    )

    default_ttl: int = Field(
        default=3600,
        gt=0,
        description="TTL applied when a caller passes none",
    )
    key_prefix: str = Field(
        default="",
        description="Global key prefix for all cache keys",
    )
