"""
Feature flag service.

Reads go cache first, then the store; a cache outage only costs latency. A
store outage is an error, never a silent fall back to defaults.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from growplate.platform.cache import CacheBackend, CacheError
from growplate.platform.cache.keys import tenant_features_key
from growplate.platform.feature_flags.models import (
    DEFAULT_FEATURES,
    VALID_FEATURES,
    FeatureName,
    FeatureStoreError,
    FeatureValidationError,
)
from growplate.platform.settings import Settings, settings
from growplate.platform.store import StoreError, TenantStore

logger = structlog.get_logger(__name__)


def with_defaults(features: Mapping[str, Any]) -> dict[str, bool]:
    """Known features only, defaults filled in for anything missing."""
    merged = dict(DEFAULT_FEATURES)
    for name, enabled in features.items():
        if name in VALID_FEATURES and isinstance(enabled, bool):
            merged[name] = enabled
    return merged


def validate_feature_updates(updates: Mapping[str, Any]) -> dict[str, bool]:
    """Reject unknown names and non-boolean values; return the clean update."""
    if not updates:
        raise FeatureValidationError("No valid features provided")

    unknown = sorted(name for name in updates if name not in VALID_FEATURES)
    if unknown:
        raise FeatureValidationError(
            "Unknown feature names",
            {"invalidFeatures": unknown, "validFeatures": sorted(VALID_FEATURES)},
        )

    not_bool = sorted(name for name, value in updates.items() if not isinstance(value, bool))
    if not_bool:
        raise FeatureValidationError(
            "Feature values must be true or false", {"invalidValues": not_bool}
        )

    return {name: value for name, value in updates.items()}


class FeatureFlagService:
    """Per-tenant feature flags."""

    def __init__(
        self,
        store: TenantStore,
        cache: CacheBackend | None = None,
        ttl_seconds: int = 3600,
    ) -> None:
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(
        cls, store: TenantStore, cache: CacheBackend | None, config: Settings = settings
    ) -> "FeatureFlagService":
        return cls(store, cache, ttl_seconds=config.features.cache_ttl_seconds)

    async def get_tenant_features(self, tenant_id: str) -> dict[str, bool]:
        key = tenant_features_key(tenant_id)

        if self.cache is not None:
            try:
                cached = await self.cache.get(key)
            except CacheError as e:
                logger.warning("features.cache_read_failed", tenant_id=tenant_id, error=str(e))
                cached = None
            if isinstance(cached, dict):
                return with_defaults(cached)

        features = await self._load(tenant_id)
        await self._remember(tenant_id, features)
        return features

    async def update_tenant_features(
        self, tenant_id: str, updates: Mapping[str, Any]
    ) -> dict[str, bool]:
        """Apply a partial update and return the tenant's full feature map.

        Each flag is upserted independently; concurrent writers to the same
        flag resolve last-write-wins.
        """
        validated = validate_feature_updates(updates)

        for name, enabled in validated.items():
            try:
                await self.store.upsert_feature(tenant_id, name, enabled)
            except StoreError as e:
                logger.error(
                    "features.update_failed", tenant_id=tenant_id, feature=name, error=str(e)
                )
                raise FeatureStoreError(f"Could not update feature {name}") from e

        await self.clear_feature_cache(tenant_id)
        # read the store directly so a failed invalidation cannot serve stale flags
        features = await self._load(tenant_id)
        await self._remember(tenant_id, features)
        logger.info("features.updated", tenant_id=tenant_id, changes=validated)
        return features

    async def is_feature_enabled(self, tenant_id: str, feature: FeatureName | str) -> bool:
        name = feature.value if isinstance(feature, FeatureName) else feature
        features = await self.get_tenant_features(tenant_id)
        return features.get(name, False)

    async def initialize_tenant_features(self, tenant_id: str) -> dict[str, bool]:
        """Insert default rows for a new tenant, leaving existing rows alone."""
        for name, enabled in DEFAULT_FEATURES.items():
            try:
                await self.store.insert_feature_if_absent(tenant_id, name, enabled)
            except StoreError as e:
                raise FeatureStoreError("Could not initialize features") from e
        features = await self._load(tenant_id)
        await self._remember(tenant_id, features)
        return features

    async def clear_feature_cache(self, tenant_id: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.delete(tenant_features_key(tenant_id))
        except CacheError as e:
            logger.error("features.cache_invalidate_failed", tenant_id=tenant_id, error=str(e))

    async def _remember(self, tenant_id: str, features: dict[str, bool]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(tenant_features_key(tenant_id), features, ttl=self.ttl_seconds)
        except CacheError as e:
            logger.warning("features.cache_write_failed", tenant_id=tenant_id, error=str(e))

    async def _load(self, tenant_id: str) -> dict[str, bool]:
        try:
            rows = await self.store.list_features(tenant_id)
        except StoreError as e:
            logger.error("features.store_read_failed", tenant_id=tenant_id, error=str(e))
            raise FeatureStoreError("Could not read features") from e
        return with_defaults(rows)
