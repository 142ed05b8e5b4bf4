"""FastAPI dependencies for feature flags."""

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request, status

from growplate.platform.core.exceptions import PlatformHTTPError
from growplate.platform.feature_flags.models import FeatureName, FeatureStoreError
from growplate.platform.feature_flags.service import FeatureFlagService
from growplate.platform.tenant.context import require_tenant
from growplate.platform.tenant.models import Tenant


def get_feature_service(request: Request) -> FeatureFlagService:
    return request.app.state.feature_service


def service_unavailable() -> PlatformHTTPError:
    return PlatformHTTPError(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "service_unavailable",
        "Service temporarily unavailable",
    )


def require_feature(feature: FeatureName | str) -> Callable[..., Awaitable[None]]:
    """Reject the request with 403 unless ``feature`` is enabled for the tenant."""
    name = feature.value if isinstance(feature, FeatureName) else feature

    async def dependency(
        tenant: Tenant = Depends(require_tenant),
        service: FeatureFlagService = Depends(get_feature_service),
    ) -> None:
        try:
            enabled = await service.is_feature_enabled(tenant.id, name)
        except FeatureStoreError as e:
            raise service_unavailable() from e
        if not enabled:
            raise PlatformHTTPError(
                status.HTTP_403_FORBIDDEN,
                "feature_disabled",
                f"The {name} feature is not enabled for this restaurant",
                details={"feature": name},
            )

    return dependency
