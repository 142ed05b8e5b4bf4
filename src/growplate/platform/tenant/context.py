"""
Per-request identity.

A fresh ``RequestIdentity`` is created by ``TenantMiddleware`` for every
inbound request and lives on ``request.state``; nothing about the current
tenant or user is kept at module level.
"""

from dataclasses import dataclass, field
from uuid import uuid4

from fastapi import Depends, Request, status

from growplate.platform.auth.models import UserContext
from growplate.platform.core.exceptions import NO_STORE_HEADERS, PlatformHTTPError
from growplate.platform.tenant.models import Tenant, TenantResolutionResult


@dataclass(slots=True)
class RequestIdentity:
    """Who and for which tenant the current request runs."""

    tenant: Tenant | None = None
    user: UserContext | None = None
    resolution: TenantResolutionResult | None = None
    request_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def tenant_id(self) -> str | None:
        return self.tenant.id if self.tenant else None


def get_request_identity(request: Request) -> RequestIdentity:
    """FastAPI dependency returning the identity of the current request.

    Routes mounted without ``TenantMiddleware`` get an empty identity.
    """
    identity = getattr(request.state, "identity", None)
    if identity is None:
        identity = RequestIdentity()
        request.state.identity = identity
    return identity


def require_tenant(identity: RequestIdentity = Depends(get_request_identity)) -> Tenant:
    """Dependency for routes that cannot run without a resolved tenant."""
    if identity.tenant is None:
        raise PlatformHTTPError(
            status.HTTP_404_NOT_FOUND,
            "tenant_not_found",
            "Restaurant not found",
            headers=NO_STORE_HEADERS,
        )
    return identity.tenant
