"""
Multi-tenant resolution.

Maps request hostnames to tenants and carries the result on each request.
The resolution service and middleware live in ``tenant.service`` and
``tenant.middleware``.
"""

from growplate.platform.tenant.cache import TenantCache
from growplate.platform.tenant.context import (
    RequestIdentity,
    get_request_identity,
    require_tenant,
)
from growplate.platform.tenant.domain import hostname_from_headers, parse_domain, validate_domain
from growplate.platform.tenant.models import (
    DomainInfo,
    Tenant,
    TenantCacheEntry,
    TenantResolutionError,
    TenantResolutionErrorCode,
    TenantResolutionResult,
)

__all__ = [
    "DomainInfo",
    "RequestIdentity",
    "Tenant",
    "TenantCache",
    "TenantCacheEntry",
    "TenantResolutionError",
    "TenantResolutionErrorCode",
    "TenantResolutionResult",
    "get_request_identity",
    "hostname_from_headers",
    "parse_domain",
    "require_tenant",
    "validate_domain",
]
