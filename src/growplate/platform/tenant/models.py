"""Tenant data types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Tenant(BaseModel):
    """A restaurant served by the platform.

    ``id`` and ``domain`` never change after creation. ``enabled_features``
    lists the enabled ``tenant_features`` rows as of the load and travels
    with the cached tenant; feature checks go through ``FeatureFlagService``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    name: str
    domain: str
    subdomain: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    enabled_features: list[str] = Field(default_factory=list)
    is_active: bool = True


class TenantCacheEntry(BaseModel):
    """What the tenant cache stores: the tenant plus when it was written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tenant: Tenant
    cached_at: float
    ttl_seconds: int

    def is_fresh(self, now: float) -> bool:
        return now - self.cached_at <= self.ttl_seconds


@dataclass(frozen=True, slots=True)
class DomainInfo:
    """Parsed view of a request hostname. Derived, never persisted."""

    hostname: str
    domain: str
    subdomain: str | None = None
    port: int | None = None
    is_custom_domain: bool = True
    is_localhost: bool = False


class TenantResolutionErrorCode(str, Enum):
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    INVALID_DOMAIN = "INVALID_DOMAIN"
    DATABASE_ERROR = "DATABASE_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    DOMAIN_PARSE_ERROR = "DOMAIN_PARSE_ERROR"
    TENANT_DISABLED = "TENANT_DISABLED"


@dataclass(frozen=True, slots=True)
class TenantResolutionError:
    code: TenantResolutionErrorCode
    message: str
    details: dict[str, Any] | None = None


type ResolutionSource = Literal["cache", "store"]


@dataclass(slots=True)
class TenantResolutionResult:
    """Outcome of one resolution. Built per lookup and never cached."""

    success: bool
    tenant: Tenant | None = None
    error: TenantResolutionError | None = None
    source: ResolutionSource = "store"
    response_time_ms: float = 0.0
    domain_info: DomainInfo | None = field(default=None, repr=False)
