"""
Application factory.

Wires the tenant middleware, auth and feature routers, and the shared store
and cache into one FastAPI application.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI

from growplate.platform.auth.rate_limits import RateLimitHook
from growplate.platform.auth.router import auth_router
from growplate.platform.auth.service import AuthService
from growplate.platform.cache import CacheBackend, CacheConfig, InMemoryCache, RedisCache
from growplate.platform.core.exception_handlers import register_exception_handlers
from growplate.platform.db import dispose_engine, get_session_factory
from growplate.platform.feature_flags.router import feature_flags_router
from growplate.platform.feature_flags.service import FeatureFlagService
from growplate.platform.redis_client import init_redis, redis_manager, shutdown_redis
from growplate.platform.settings import Settings, settings
from growplate.platform.store import SQLAlchemyTenantStore, TenantStore
from growplate.platform.tenant.cache import TenantCache
from growplate.platform.tenant.middleware import TenantMiddleware
from growplate.platform.tenant.service import TenantResolutionService

logger = structlog.get_logger(__name__)


def wire_services(
    app: FastAPI,
    store: TenantStore,
    cache: CacheBackend,
    config: Settings,
    rate_limiter: RateLimitHook | None = None,
) -> None:
    """Build the request-time services on top of one store and one cache."""
    app.state.tenant_store = store
    app.state.cache_backend = cache
    app.state.tenant_resolver = TenantResolutionService.from_settings(
        store, TenantCache(cache, ttl_seconds=config.tenant.cache_ttl_seconds), config
    )
    app.state.auth_service = AuthService.from_settings(store, config, rate_limiter=rate_limiter)
    app.state.feature_service = FeatureFlagService.from_settings(store, cache, config)


async def _build_cache(config: Settings) -> CacheBackend:
    if not config.redis.enabled:
        logger.info("cache.backend.selected", backend="memory")
        backend: CacheBackend = InMemoryCache(CacheConfig(backend="memory"))
    else:
        client = await init_redis()
        backend = RedisCache(CacheConfig(backend="redis"), client=client)
        logger.info("cache.backend.selected", backend="redis")
    await backend.connect()
    return backend


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle events."""
    config: Settings = app.state.config

    try:
        config.validate_production_security()
    except ValueError as e:
        logger.critical("security.validation.failed", error=str(e))
        raise RuntimeError(str(e)) from e

    logger.info(
        "service.startup.begin",
        service=config.app_name,
        version=config.app_version,
        environment=config.environment.value,
    )

    owns_resources = getattr(app.state, "tenant_resolver", None) is None
    if owns_resources:
        cache = await _build_cache(config)
        store = SQLAlchemyTenantStore(get_session_factory())
        wire_services(app, store, cache, config)

    logger.info("service.startup.complete")
    yield

    if owns_resources:
        await app.state.cache_backend.disconnect()
        if redis_manager.initialized:
            await shutdown_redis()
        await dispose_engine()
    logger.info("service.shutdown.complete")


def create_app(
    config: Settings = settings,
    *,
    store: TenantStore | None = None,
    cache: CacheBackend | None = None,
    rate_limiter: RateLimitHook | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``store`` is given the services are wired immediately (an in-memory
    cache is used if ``cache`` is omitted); otherwise startup connects to
    the configured database and Redis.
    """
    app = FastAPI(
        title="GrowPlate Platform Services",
        description="Tenant resolution, authentication and feature flags",
        version=config.app_version,
        lifespan=lifespan,
        docs_url=None if config.is_production else "/docs",
        redoc_url=None,
    )
    app.state.config = config

    if store is not None:
        wire_services(app, store, cache or InMemoryCache(), config, rate_limiter)

    app.add_middleware(
        TenantMiddleware,
        required_paths=config.tenant.required_paths,
        request_id_header=config.observability.request_id_header,
    )
    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(feature_flags_router)

    @app.get("/health", include_in_schema=False)
    @app.get("/api/health", include_in_schema=False)
    async def health() -> dict[str, Any]:
        return {"status": "healthy", "version": config.app_version}

    return app
