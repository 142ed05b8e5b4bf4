"""
Feature flag management API.

Owners read and change the flags of their own restaurant.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, status

from growplate.platform.auth.dependencies import require_owner
from growplate.platform.auth.models import UserContext
from growplate.platform.core.exceptions import PlatformHTTPError, utc_timestamp
from growplate.platform.feature_flags.dependencies import get_feature_service, service_unavailable
from growplate.platform.feature_flags.models import FeatureStoreError, FeatureValidationError
from growplate.platform.feature_flags.service import FeatureFlagService

logger = structlog.get_logger(__name__)

feature_flags_router = APIRouter(prefix="/api/features", tags=["features"])


def _envelope(features: dict[str, bool]) -> dict[str, Any]:
    return {"success": True, "data": features, "timestamp": utc_timestamp()}


@feature_flags_router.get("")
async def get_features(
    user: UserContext = Depends(require_owner),
    service: FeatureFlagService = Depends(get_feature_service),
) -> dict[str, Any]:
    """Current feature map for the owner's restaurant."""
    try:
        features = await service.get_tenant_features(user.tenant_id)
    except FeatureStoreError as e:
        raise service_unavailable() from e
    return _envelope(features)


@feature_flags_router.put("")
async def update_features(
    updates: dict[str, Any] = Body(...),
    user: UserContext = Depends(require_owner),
    service: FeatureFlagService = Depends(get_feature_service),
) -> dict[str, Any]:
    """Partially update feature flags; returns the full map after the change."""
    try:
        features = await service.update_tenant_features(user.tenant_id, updates)
    except FeatureValidationError as e:
        raise PlatformHTTPError(
            status.HTTP_400_BAD_REQUEST, "validation_error", e.message, details=e.details
        ) from e
    except FeatureStoreError as e:
        raise service_unavailable() from e

    logger.info("features.updated_by_owner", tenant_id=user.tenant_id, user_id=user.id)
    return _envelope(features)
