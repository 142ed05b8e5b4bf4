"""
Authentication router for FastAPI.

Login, self-registration and refresh are scoped to the tenant resolved from
the request host. Responses are never cacheable.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from growplate.platform.auth.dependencies import get_auth_service, optional_auth
from growplate.platform.auth.exceptions import to_http_error
from growplate.platform.auth.jwt_service import extract_bearer_token
from growplate.platform.auth.models import (
    AuthError,
    AuthErrorCode,
    LoginRequest,
    RefreshResponse,
    RegisterRequest,
    UserContext,
)
from growplate.platform.auth.service import AuthService
from growplate.platform.core.exceptions import NO_STORE_HEADERS
from growplate.platform.core.result import Err, Result
from growplate.platform.logging import client_ip, log_security_event
from growplate.platform.tenant.context import require_tenant
from growplate.platform.tenant.models import Tenant

logger = structlog.get_logger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


def _no_store(body: BaseModel | dict[str, Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    content = body.model_dump(mode="json", by_alias=True) if isinstance(body, BaseModel) else body
    return JSONResponse(status_code=status_code, content=content, headers=NO_STORE_HEADERS)


@auth_router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    tenant: Tenant = Depends(require_tenant),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Exchange email and password for an access token."""
    result = await service.login(tenant.id, payload, client_key=client_ip(request))
    if isinstance(result, Err):
        log_security_event(
            "auth.login_failed", request=request, tenant_id=tenant.id, code=result.error.code.value
        )
        raise to_http_error(result.error)
    return _no_store(result.value)


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    tenant: Tenant = Depends(require_tenant),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account in the current restaurant and sign it in."""
    result = await service.register(tenant, payload, client_key=client_ip(request))
    if isinstance(result, Err):
        raise to_http_error(result.error)
    return _no_store(result.value, status.HTTP_201_CREATED)


@auth_router.post("/refresh")
async def refresh(
    request: Request,
    tenant: Tenant = Depends(require_tenant),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Trade a current (or just-expired) token for a fresh one."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        result: Result[RefreshResponse, AuthError] = Err(
            AuthError(AuthErrorCode.MISSING_TOKEN, "Authentication required")
        )
    else:
        result = await service.refresh(token, tenant.id, client_key=client_ip(request))

    if isinstance(result, Err):
        log_security_event(
            "auth.refresh_failed",
            request=request,
            tenant_id=tenant.id,
            code=result.error.code.value,
        )
        raise to_http_error(result.error)
    return _no_store(result.value)


@auth_router.get("/me")
async def me(user: UserContext | None = Depends(optional_auth())) -> JSONResponse:
    """The signed-in user for this restaurant, if any."""
    return _no_store(
        {
            "authenticated": user is not None,
            "user": user.model_dump(mode="json", by_alias=True) if user else None,
        }
    )
