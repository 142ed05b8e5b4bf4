"""
Tenant middleware.

Creates the request's ``RequestIdentity``, resolves the tenant from the host
and rejects tenant-scoped paths when no tenant can be resolved.
"""

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from growplate.platform.core.exceptions import PlatformHTTPError
from growplate.platform.settings import settings
from growplate.platform.tenant.context import RequestIdentity
from growplate.platform.tenant.domain import hostname_from_headers
from growplate.platform.tenant.models import TenantResolutionErrorCode
from growplate.platform.tenant.service import TenantResolutionService

logger = structlog.get_logger(__name__)

UNAVAILABLE_CODES = frozenset(
    {TenantResolutionErrorCode.DATABASE_ERROR, TenantResolutionErrorCode.CACHE_ERROR}
)


def is_required_path(path: str, prefixes: list[str]) -> bool:
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in prefixes)


class TenantMiddleware(BaseHTTPMiddleware):
    """Resolve the tenant for every request.

    The resolver is taken from ``app.state.tenant_resolver`` when not given
    explicitly, so it can be built during application startup.
    """

    def __init__(
        self,
        app: ASGIApp,
        resolver: TenantResolutionService | None = None,
        required_paths: list[str] | None = None,
        request_id_header: str | None = None,
    ) -> None:
        super().__init__(app)
        self.resolver = resolver
        self.required_paths = (
            required_paths if required_paths is not None else settings.tenant.required_paths
        )
        self.request_id_header = request_id_header or settings.observability.request_id_header

    def _get_resolver(self, request: Request) -> TenantResolutionService:
        resolver = self.resolver or getattr(request.app.state, "tenant_resolver", None)
        if resolver is None:
            raise RuntimeError("TenantMiddleware has no TenantResolutionService configured")
        return resolver

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        identity = RequestIdentity()
        incoming_id = request.headers.get(self.request_id_header)
        if incoming_id:
            identity.request_id = incoming_id[:128]
        request.state.identity = identity

        path = request.url.path
        resolver = self._get_resolver(request)

        if not resolver.is_skip_path(path):
            host = hostname_from_headers(request.headers, request.url.hostname)
            result = await resolver.resolve(host, path)
            identity.resolution = result

            if result.success:
                identity.tenant = result.tenant
            elif is_required_path(path, self.required_paths):
                return self._reject(request, identity, result.error.code)  # type: ignore[union-attr]
            else:
                logger.debug(
                    "tenant.middleware.unresolved",
                    path=path,
                    code=result.error.code.value if result.error else None,
                )

        with structlog.contextvars.bound_contextvars(
            request_id=identity.request_id, tenant_id=identity.tenant_id
        ):
            response = await call_next(request)

        response.headers[self.request_id_header] = identity.request_id
        return response

    def _reject(
        self, request: Request, identity: RequestIdentity, code: TenantResolutionErrorCode
    ) -> JSONResponse:
        if code in UNAVAILABLE_CODES:
            error = PlatformHTTPError(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "service_unavailable",
                "Service temporarily unavailable",
            )
        else:
            error = PlatformHTTPError(
                status.HTTP_404_NOT_FOUND, "tenant_not_found", "Restaurant not found"
            )

        logger.info(
            "tenant.middleware.rejected",
            path=request.url.path,
            code=code.value,
            status_code=error.status_code,
            request_id=identity.request_id,
        )
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_dict(request.url.path),
            headers={self.request_id_header: identity.request_id},
        )
