"""The contract every cache backend fulfils."""

import json
from abc import ABC, abstractmethod
from typing import Any

from growplate.platform.cache.exceptions import CacheSerializationError


class CacheBackend(ABC):
    """A JSON key-value store with per-key expiry.

    Reads return a freshly decoded value, never the object that was written.
    Backend failures raise ``CacheError`` (or a subclass); a missing or
    expired key reads as ``None``.
    """

    key_prefix: str = ""

    def full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def encode(value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"), default=str)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Value is not serializable: {e}") from e

    @staticmethod
    def decode(payload: str | bytes) -> Any:
        try:
            return json.loads(payload)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Corrupt cache payload: {e}") from e

    @abstractmethod
    async def connect(self) -> bool: ...

    @abstractmethod
    async def disconnect(self) -> bool: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    async def get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store ``value`` under ``key``.

        ``ttl=None`` applies the backend default; ``0`` keeps the entry
        until it is evicted or deleted.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """True when an entry was removed."""

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    @abstractmethod
    async def clear(self) -> bool:
        """Drop every entry this backend owns."""

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]: ...
