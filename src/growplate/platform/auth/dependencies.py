"""
Authorization dependencies for FastAPI routes.

``require_auth`` runs, in order: bearer token extraction, token
verification, user lookup, tenant match, role/permission checks. The
authenticated user is attached to the request identity before the handler
runs.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import NoReturn

import structlog
from fastapi import Depends, Request

from growplate.platform.auth.exceptions import to_http_error
from growplate.platform.auth.jwt_service import extract_bearer_token
from growplate.platform.auth.models import AuthError, AuthErrorCode, UserContext
from growplate.platform.auth.rbac import Action, Resource, Role, has_permission
from growplate.platform.auth.service import AuthService
from growplate.platform.core.result import Err, Ok, Result
from growplate.platform.logging import log_security_event
from growplate.platform.tenant.context import RequestIdentity, get_request_identity

logger = structlog.get_logger(__name__)

type AuthDependency = Callable[..., Awaitable[UserContext]]


def get_auth_service(request: Request) -> AuthService:
    """FastAPI dependency returning the application's ``AuthService``."""
    return request.app.state.auth_service


async def _authenticate(
    request: Request, identity: RequestIdentity, service: AuthService
) -> Result[UserContext, AuthError]:
    header = request.headers.get("authorization")
    token = extract_bearer_token(header)
    if token is None:
        if header and header.strip().lower().startswith("bearer "):
            return Err(AuthError(AuthErrorCode.MALFORMED_TOKEN, "Malformed token"))
        return Err(AuthError(AuthErrorCode.MISSING_TOKEN, "Authentication required"))

    verified = service.verify_access_token(token)
    if isinstance(verified, Err):
        return verified
    payload = verified.value

    user = await service.load_user(payload)
    if isinstance(user, Err):
        return user

    if identity.tenant is None or payload.tenant_id != identity.tenant.id:
        return Err(
            AuthError(
                AuthErrorCode.TENANT_MISMATCH,
                "Token does not belong to this restaurant",
                {"userId": payload.user_id},
            )
        )

    return user


def _deny(request: Request, identity: RequestIdentity, error: AuthError) -> NoReturn:
    log_security_event(
        f"auth.{error.code.value}",
        request=request,
        tenant_id=identity.tenant_id,
        request_id=identity.request_id,
        user_id=(error.details or {}).get("userId"),
    )
    http_error = to_http_error(error)
    if error.code == AuthErrorCode.TENANT_MISMATCH:
        # the other tenant's user id stays in the log only
        http_error.details = None
    raise http_error


def require_auth(
    roles: Iterable[Role | str] = (),
    permission: tuple[Action, Resource] | None = None,
) -> AuthDependency:
    """Build a dependency that authenticates and authorizes the caller.

    Args:
        roles: When given, the caller's role must be one of these.
        permission: When given, ``(action, resource)`` must be allowed for the caller's role.
    """
    required = frozenset(Role(r) for r in roles)

    async def dependency(
        request: Request,
        identity: RequestIdentity = Depends(get_request_identity),
        service: AuthService = Depends(get_auth_service),
    ) -> UserContext:
        result = await _authenticate(request, identity, service)
        if isinstance(result, Err):
            _deny(request, identity, result.error)
        user = result.value

        if required and user.role not in required:
            _deny(
                request,
                identity,
                AuthError(
                    AuthErrorCode.INSUFFICIENT_PERMISSIONS,
                    "Insufficient permissions",
                    {"userId": user.id},
                ),
            )
        if permission is not None and not has_permission(user.role, *permission):
            _deny(
                request,
                identity,
                AuthError(
                    AuthErrorCode.INSUFFICIENT_PERMISSIONS,
                    "Insufficient permissions",
                    {"userId": user.id},
                ),
            )

        identity.user = user
        return user

    return dependency


def optional_auth() -> Callable[..., Awaitable[UserContext | None]]:
    """Like ``require_auth`` but anonymous callers pass through as ``None``.

    A token from another tenant is never attached; it is logged and ignored.
    """

    async def dependency(
        request: Request,
        identity: RequestIdentity = Depends(get_request_identity),
        service: AuthService = Depends(get_auth_service),
    ) -> UserContext | None:
        result = await _authenticate(request, identity, service)
        if isinstance(result, Ok):
            identity.user = result.value
            return result.value

        if result.error.code == AuthErrorCode.TENANT_MISMATCH:
            logger.warning(
                "auth.optional.tenant_mismatch",
                tenant_id=identity.tenant_id,
                request_id=identity.request_id,
            )
        return None

    return dependency


require_owner = require_auth(roles=[Role.OWNER])
require_staff = require_auth(roles=[Role.OWNER, Role.STAFF])
require_customer = require_auth(roles=[Role.OWNER, Role.STAFF, Role.CUSTOMER])
