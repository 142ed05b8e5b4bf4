"""
Per-tenant feature flags.

Cache-aside reads over the tenant_features table, owner-only updates, and a
dependency for gating routes on a feature.
"""

from growplate.platform.feature_flags.models import (
    DEFAULT_FEATURES,
    VALID_FEATURES,
    FeatureFlagError,
    FeatureName,
    FeatureStoreError,
    FeatureValidationError,
)

__all__ = [
    "DEFAULT_FEATURES",
    "VALID_FEATURES",
    "FeatureFlagError",
    "FeatureName",
    "FeatureStoreError",
    "FeatureValidationError",
]
