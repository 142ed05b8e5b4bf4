"""Cache-aside storage of resolved tenants."""

import time

import structlog
from pydantic import ValidationError

from growplate.platform.cache import CacheBackend
from growplate.platform.cache.keys import tenant_domain_key, tenant_id_key, tenant_subdomain_key
from growplate.platform.tenant.models import Tenant, TenantCacheEntry

logger = structlog.get_logger(__name__)


class TenantCache:
    """Tenants keyed by domain, subdomain and id.

    Entries carry their own write time and TTL so an entry older than its
    TTL is treated as absent even if the backend has not evicted it yet.
    Backend failures propagate as ``CacheError``.
    """

    def __init__(self, backend: CacheBackend, ttl_seconds: int = 3600) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Tenant | None:
        data = await self.backend.get(key)
        if data is None:
            return None

        try:
            entry = TenantCacheEntry.model_validate(data)
        except ValidationError:
            logger.warning("tenant.cache.corrupt_entry", key=key)
            await self.backend.delete(key)
            return None

        if not entry.is_fresh(time.time()):
            await self.backend.delete(key)
            return None
        return entry.tenant

    async def set(self, keys: list[str], tenant: Tenant, ttl: int | None = None) -> None:
        ttl = ttl or self.ttl_seconds
        entry = TenantCacheEntry(tenant=tenant, cached_at=time.time(), ttl_seconds=ttl)
        payload = entry.model_dump(mode="json", by_alias=True)
        for key in keys:
            await self.backend.set(key, payload, ttl=ttl)

    @staticmethod
    def keys_for(tenant: Tenant) -> list[str]:
        keys = [tenant_domain_key(tenant.domain), tenant_id_key(tenant.id)]
        if tenant.subdomain:
            keys.append(tenant_subdomain_key(tenant.subdomain))
        return keys

    async def invalidate(self, tenant: Tenant) -> None:
        for key in self.keys_for(tenant):
            await self.backend.delete(key)
        logger.info("tenant.cache.invalidated", tenant_id=tenant.id)

    async def invalidate_by_id(self, tenant_id: str) -> bool:
        """Drop every key of the tenant cached under ``tenant_id``.

        The id entry names the domain and subdomain keys to drop. Returns
        False when nothing usable was cached under the id.
        """
        id_key = tenant_id_key(tenant_id)
        data = await self.backend.get(id_key)
        try:
            entry = TenantCacheEntry.model_validate(data) if data is not None else None
        except ValidationError:
            entry = None

        if entry is None:
            await self.backend.delete(id_key)
            return False
        await self.invalidate(entry.tenant)
        return True
