"""
Authentication errors and their HTTP translation.

Services return ``AuthError`` values; only routers and dependencies call
``to_http_error`` to turn them into responses.
"""

from fastapi import status

from growplate.platform.auth.models import AuthError, AuthErrorCode
from growplate.platform.core.exceptions import (
    BEARER_CHALLENGE,
    NO_STORE_HEADERS,
    PlatformHTTPError,
)


class ConfigurationError(Exception):
    """Auth components were configured with unusable values."""

    pass


AUTH_ERROR_STATUS: dict[AuthErrorCode, int] = {
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.MALFORMED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.MISSING_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.TOKEN_NOT_REFRESHABLE: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INSUFFICIENT_PERMISSIONS: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.TENANT_MISMATCH: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.EMAIL_ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.WEAK_PASSWORD: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.TENANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_http_status(error: AuthError) -> int:
    return AUTH_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST)


def to_http_error(error: AuthError) -> PlatformHTTPError:
    """Translate an ``AuthError`` into the error envelope with auth headers."""
    status_code = get_http_status(error)
    headers = dict(NO_STORE_HEADERS)
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = BEARER_CHALLENGE
    return PlatformHTTPError(
        status_code,
        error.code.value,
        error.message,
        details=error.details,
        headers=headers,
    )
