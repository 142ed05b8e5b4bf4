"""
Tenant resolution: hostname to tenant, cache first, store second.

``resolve`` never raises. Every failure is reported as a typed
``TenantResolutionResult`` and negative results are never cached.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Literal

import structlog

from growplate.platform.cache import CacheError
from growplate.platform.cache.keys import tenant_domain_key, tenant_id_key, tenant_subdomain_key
from growplate.platform.settings import Settings, settings
from growplate.platform.store import StoreError, TenantStore
from growplate.platform.tenant.cache import TenantCache
from growplate.platform.tenant.domain import parse_domain, validate_domain
from growplate.platform.tenant.models import (
    DomainInfo,
    Tenant,
    TenantResolutionError,
    TenantResolutionErrorCode,
    TenantResolutionResult,
)

logger = structlog.get_logger(__name__)

type LookupKind = Literal["domain", "subdomain", "id"]


@dataclass(frozen=True, slots=True)
class _Lookup:
    kind: LookupKind
    value: str

    @property
    def cache_key(self) -> str:
        match self.kind:
            case "subdomain":
                return tenant_subdomain_key(self.value)
            case "domain":
                return tenant_domain_key(self.value)
            case "id":
                return tenant_id_key(self.value)


def _failure(
    code: TenantResolutionErrorCode, message: str, **details: object
) -> TenantResolutionResult:
    return TenantResolutionResult(
        success=False,
        error=TenantResolutionError(code=code, message=message, details=details or None),
    )


def path_matches(path: str, patterns: list[str]) -> bool:
    """Exact match, or prefix match for patterns ending in ``*``."""
    for pattern in patterns:
        if pattern.endswith("*"):
            if path.startswith(pattern[:-1]):
                return True
        elif path == pattern:
            return True
    return False


class TenantResolutionService:
    """Resolves the tenant that owns a hostname."""

    def __init__(
        self,
        store: TenantStore,
        cache: TenantCache | None = None,
        *,
        platform_domain: str = "growplate.com",
        skip_paths: list[str] | None = None,
        allow_localhost: bool = True,
        dev_tenant_id: str | None = None,
        cache_ttl_seconds: int = 3600,
        fail_on_cache_error: bool = False,
        single_flight: bool = True,
    ) -> None:
        self.store = store
        self.cache = cache
        self.platform_domain = platform_domain
        self.skip_paths = list(skip_paths or [])
        self.allow_localhost = allow_localhost
        self.dev_tenant_id = dev_tenant_id
        self.cache_ttl_seconds = cache_ttl_seconds
        self.fail_on_cache_error = fail_on_cache_error
        self.single_flight = single_flight
        self._inflight: dict[_Lookup, asyncio.Future[Tenant | None]] = {}

    @classmethod
    def from_settings(
        cls, store: TenantStore, cache: TenantCache | None, config: Settings = settings
    ) -> "TenantResolutionService":
        return cls(
            store,
            cache,
            platform_domain=config.tenant.platform_domain,
            skip_paths=config.tenant.skip_paths,
            allow_localhost=config.tenant.allow_localhost,
            dev_tenant_id=config.tenant.dev_tenant_id,
            cache_ttl_seconds=config.tenant.cache_ttl_seconds,
            fail_on_cache_error=config.tenant.fail_on_cache_error,
            single_flight=config.tenant.single_flight,
        )

    def is_skip_path(self, path: str) -> bool:
        return path_matches(path, self.skip_paths)

    async def resolve(
        self,
        hostname: str | None,
        path: str | None = None,
        use_cache: bool = True,
        cache_ttl: int | None = None,
    ) -> TenantResolutionResult:
        started = time.perf_counter()

        if path is not None and self.is_skip_path(path):
            result = TenantResolutionResult(success=True, tenant=None)
        else:
            info = parse_domain(hostname, self.platform_domain)
            result = await self._resolve_domain(info, use_cache, cache_ttl)
            result.domain_info = info

        result.response_time_ms = (time.perf_counter() - started) * 1000
        return result

    async def resolve_by_id(self, tenant_id: str, use_cache: bool = True) -> TenantResolutionResult:
        started = time.perf_counter()
        result = await self._lookup(_Lookup("id", tenant_id), use_cache, None)
        result.response_time_ms = (time.perf_counter() - started) * 1000
        return result

    async def invalidate(self, tenant: Tenant) -> None:
        """Drop every cache key pointing at ``tenant``."""
        if self.cache is not None:
            await self.cache.invalidate(tenant)

    async def invalidate_by_id(self, tenant_id: str) -> bool:
        if self.cache is None:
            return False
        return await self.cache.invalidate_by_id(tenant_id)

    async def _resolve_domain(
        self, info: DomainInfo, use_cache: bool, cache_ttl: int | None
    ) -> TenantResolutionResult:
        if not info.hostname:
            return _failure(
                TenantResolutionErrorCode.DOMAIN_PARSE_ERROR, "Could not determine request host"
            )

        if info.is_localhost:
            if not self.allow_localhost:
                return _failure(
                    TenantResolutionErrorCode.INVALID_DOMAIN,
                    "Localhost access is disabled",
                    hostname=info.hostname,
                )
            if not self.dev_tenant_id:
                return _failure(
                    TenantResolutionErrorCode.TENANT_NOT_FOUND,
                    "No development tenant configured for localhost",
                )
            return await self._lookup(_Lookup("id", self.dev_tenant_id), use_cache, cache_ttl)

        if not validate_domain(info.hostname):
            return _failure(
                TenantResolutionErrorCode.INVALID_DOMAIN,
                "Invalid domain format",
                hostname=info.hostname,
            )

        if not info.is_custom_domain and info.subdomain:
            lookup = _Lookup("subdomain", info.subdomain)
        else:
            lookup = _Lookup("domain", info.domain)
        return await self._lookup(lookup, use_cache, cache_ttl)

    async def _lookup(
        self, lookup: _Lookup, use_cache: bool, cache_ttl: int | None
    ) -> TenantResolutionResult:
        key = lookup.cache_key
        caching = use_cache and self.cache is not None

        if caching:
            try:
                cached = await self.cache.get(key)  # type: ignore[union-attr]
            except CacheError as e:
                logger.warning("tenant.resolution.cache_read_failed", key=key, error=str(e))
                if self.fail_on_cache_error:
                    return _failure(
                        TenantResolutionErrorCode.CACHE_ERROR, "Tenant cache unavailable"
                    )
                cached = None

            if cached is not None and cached.is_active:
                logger.debug("tenant.resolution.cache_hit", key=key, tenant_id=cached.id)
                return TenantResolutionResult(success=True, tenant=cached, source="cache")

        try:
            tenant = await self._load(lookup)
        except StoreError as e:
            logger.error("tenant.resolution.store_failed", key=key, error=str(e))
            return _failure(TenantResolutionErrorCode.DATABASE_ERROR, "Tenant lookup failed")

        if tenant is None:
            logger.info("tenant.resolution.not_found", lookup=lookup.kind, value=lookup.value)
            return _failure(
                TenantResolutionErrorCode.TENANT_NOT_FOUND,
                "No tenant is configured for this host",
            )

        if not tenant.is_active:
            logger.info("tenant.resolution.disabled", tenant_id=tenant.id)
            return _failure(TenantResolutionErrorCode.TENANT_DISABLED, "Tenant is disabled")

        if caching:
            keys = [key] if lookup.kind == "id" else [key, tenant_id_key(tenant.id)]
            try:
                await self.cache.set(keys, tenant, ttl=cache_ttl or self.cache_ttl_seconds)  # type: ignore[union-attr]
            except CacheError as e:
                logger.warning("tenant.resolution.cache_write_failed", key=key, error=str(e))

        logger.debug("tenant.resolution.store_hit", key=key, tenant_id=tenant.id)
        return TenantResolutionResult(success=True, tenant=tenant, source="store")

    async def _load(self, lookup: _Lookup) -> Tenant | None:
        if not self.single_flight:
            return await self._query(lookup)

        pending = self._inflight.get(lookup)
        if pending is None:
            pending = asyncio.ensure_future(self._query(lookup))
            self._inflight[lookup] = pending
            pending.add_done_callback(lambda fut: self._finish(lookup, fut))
        return await asyncio.shield(pending)

    def _finish(self, lookup: _Lookup, fut: asyncio.Future[Tenant | None]) -> None:
        self._inflight.pop(lookup, None)
        if not fut.cancelled():
            # mark retrieved so an abandoned failure is not reported as unhandled
            fut.exception()

    async def _query(self, lookup: _Lookup) -> Tenant | None:
        match lookup.kind:
            case "subdomain":
                return await self.store.find_by_subdomain(lookup.value)
            case "domain":
                return await self.store.find_by_domain(lookup.value)
            case "id":
                return await self.store.find_by_id(lookup.value)
