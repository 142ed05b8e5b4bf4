"""
Authentication service: login, self-registration and token refresh.

Every operation returns ``Ok`` or ``Err(AuthError)``. Store failures become
``SERVICE_UNAVAILABLE``; nothing here raises into the HTTP layer.
"""

import asyncio
import time
from datetime import UTC, datetime

import structlog

from growplate.platform.auth.jwt_service import (
    TokenClaims,
    TokenCodec,
    VerificationFailure,
    VerificationReason,
)
from growplate.platform.auth.models import (
    AuthError,
    AuthErrorCode,
    AuthResponse,
    JWTPayload,
    LoginRequest,
    NewUser,
    RefreshResponse,
    RegisterRequest,
    UserContext,
    UserRecord,
)
from growplate.platform.auth.password import PasswordHasher, validate_password_strength
from growplate.platform.auth.rate_limits import AllowAllRateLimiter, AuthAction, RateLimitHook
from growplate.platform.auth.rbac import parse_role
from growplate.platform.auth.validation import (
    normalize_email,
    registration_roles,
    validate_registration,
)
from growplate.platform.core.result import Err, Ok, Result
from growplate.platform.settings import Settings, settings
from growplate.platform.store import DuplicateEmailError, StoreError, TenantStore
from growplate.platform.tenant.models import Tenant

logger = structlog.get_logger(__name__)

REFRESH_GRACE_SECONDS = 300
REFRESH_MAX_AGE_SECONDS = 7 * 24 * 3600

INVALID_CREDENTIALS = AuthError(AuthErrorCode.INVALID_CREDENTIALS, "Invalid email or password")
SERVICE_UNAVAILABLE = AuthError(
    AuthErrorCode.SERVICE_UNAVAILABLE, "Authentication is temporarily unavailable"
)
RATE_LIMITED = AuthError(AuthErrorCode.RATE_LIMITED, "Too many attempts, please try again later")


def verification_error(failure: VerificationFailure) -> AuthError:
    """Map a codec failure to the error a protected route reports."""
    match failure.reason:
        case VerificationReason.MALFORMED:
            return AuthError(AuthErrorCode.MALFORMED_TOKEN, "Malformed token")
        case VerificationReason.EXPIRED:
            return AuthError(AuthErrorCode.TOKEN_EXPIRED, "Token has expired")
        case _:
            return AuthError(AuthErrorCode.TOKEN_INVALID, "Invalid token")


class AuthService:
    """Tenant-scoped authentication."""

    def __init__(
        self,
        store: TenantStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        *,
        rate_limiter: RateLimitHook | None = None,
        refresh_grace_seconds: int = REFRESH_GRACE_SECONDS,
        refresh_max_age_seconds: int = REFRESH_MAX_AGE_SECONDS,
    ) -> None:
        self.store = store
        self.codec = codec
        self.hasher = hasher
        self.rate_limiter = rate_limiter or AllowAllRateLimiter()
        self.refresh_grace_seconds = refresh_grace_seconds
        self.refresh_max_age_seconds = refresh_max_age_seconds

    @classmethod
    def from_settings(
        cls,
        store: TenantStore,
        config: Settings = settings,
        rate_limiter: RateLimitHook | None = None,
    ) -> "AuthService":
        return cls(
            store,
            TokenCodec.from_settings(config),
            PasswordHasher.from_settings(config),
            rate_limiter=rate_limiter,
            refresh_grace_seconds=config.jwt.refresh_grace_seconds,
            refresh_max_age_seconds=config.jwt.refresh_max_age_seconds,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def login(
        self, tenant_id: str, request: LoginRequest, client_key: str | None = None
    ) -> Result[AuthResponse, AuthError]:
        email = normalize_email(request.email)
        if not await self.rate_limiter.allow(AuthAction.LOGIN, client_key or f"{tenant_id}:{email}"):
            return Err(RATE_LIMITED)

        try:
            user = await self.store.find_user_by_email(tenant_id, email)
        except StoreError as e:
            logger.error("auth.login.store_failed", tenant_id=tenant_id, error=str(e))
            return Err(SERVICE_UNAVAILABLE)

        if user is None:
            await asyncio.to_thread(self.hasher.dummy_verify, request.password)
            logger.info("auth.login.failed", tenant_id=tenant_id, reason="unknown_user")
            return Err(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(self.hasher.verify, request.password, user.password_hash):
            logger.info("auth.login.failed", tenant_id=tenant_id, user_id=user.id, reason="password")
            return Err(INVALID_CREDENTIALS)

        logger.info("auth.login.succeeded", tenant_id=tenant_id, user_id=user.id)
        return Ok(self._auth_response(user))

    async def register(
        self, tenant: Tenant, request: RegisterRequest, client_key: str | None = None
    ) -> Result[AuthResponse, AuthError]:
        email = normalize_email(request.email)
        if not await self.rate_limiter.allow(AuthAction.REGISTER, client_key or f"{tenant.id}:{email}"):
            return Err(RATE_LIMITED)

        allowed_roles, default_role = registration_roles(tenant.settings)
        field_errors = validate_registration(request, allowed_roles)
        if field_errors:
            return Err(
                AuthError(
                    AuthErrorCode.VALIDATION_ERROR,
                    "Validation failed",
                    {"errors": [e.as_dict() for e in field_errors]},
                )
            )

        strength = validate_password_strength(request.password)
        if not strength.is_valid:
            return Err(
                AuthError(
                    AuthErrorCode.WEAK_PASSWORD,
                    "Password does not meet requirements",
                    {
                        "errors": strength.errors,
                        "score": strength.score,
                        "suggestions": strength.suggestions,
                    },
                )
            )

        role = parse_role(request.role) or default_role

        try:
            if await self.store.find_user_by_email(tenant.id, email) is not None:
                return Err(self._email_taken())
            password_hash = await asyncio.to_thread(self.hasher.hash, request.password)
            user = await self.store.create_user(
                NewUser(
                    tenant_id=tenant.id,
                    email=email,
                    password_hash=password_hash,
                    first_name=request.first_name.strip(),
                    last_name=request.last_name.strip(),
                    role=role,
                    phone=request.phone.strip() if request.phone else None,
                )
            )
        except DuplicateEmailError:
            return Err(self._email_taken())
        except StoreError as e:
            logger.error("auth.register.store_failed", tenant_id=tenant.id, error=str(e))
            return Err(SERVICE_UNAVAILABLE)

        logger.info("auth.register.succeeded", tenant_id=tenant.id, user_id=user.id, role=role.value)
        return Ok(self._auth_response(user))

    async def refresh(
        self, token: str, tenant_id: str, client_key: str | None = None
    ) -> Result[RefreshResponse, AuthError]:
        """Issue a new token for a recently valid one.

        Accepted up to ``refresh_grace_seconds`` past expiry and only while
        the token is younger than ``refresh_max_age_seconds``. The presented
        token is not revoked.
        """
        if not await self.rate_limiter.allow(AuthAction.REFRESH, client_key or tenant_id):
            return Err(RATE_LIMITED)

        now = int(time.time())
        verified = self.codec.verify(token, expiry_grace=self.refresh_grace_seconds, now=now)
        if isinstance(verified, VerificationFailure):
            logger.info("auth.refresh.rejected", reason=verified.reason.value)
            return Err(AuthError(AuthErrorCode.TOKEN_INVALID, "Invalid or expired token"))

        if verified.tenant_id != tenant_id:
            return Err(
                AuthError(AuthErrorCode.TENANT_MISMATCH, "Token does not belong to this restaurant")
            )

        if now - verified.iat > self.refresh_max_age_seconds:
            return Err(
                AuthError(
                    AuthErrorCode.TOKEN_NOT_REFRESHABLE,
                    "Token is too old to refresh, please sign in again",
                )
            )

        try:
            user = await self.store.find_user_by_id(verified.tenant_id, verified.user_id)
        except StoreError as e:
            logger.error("auth.refresh.store_failed", tenant_id=tenant_id, error=str(e))
            return Err(SERVICE_UNAVAILABLE)
        if user is None:
            return Err(AuthError(AuthErrorCode.TOKEN_INVALID, "Invalid or expired token"))

        claims = TokenClaims(
            user_id=verified.user_id,
            tenant_id=verified.tenant_id,
            email=verified.email,
            role=verified.role,
        )
        new_token = self.codec.sign(claims, now=now)
        logger.info("auth.refresh.succeeded", tenant_id=tenant_id, user_id=user.id)
        return Ok(RefreshResponse(token=new_token, expires_at=self._expiry(now)))

    # ------------------------------------------------------------------
    # Helpers used by the authorization dependency
    # ------------------------------------------------------------------

    def verify_access_token(self, token: str) -> Result[JWTPayload, AuthError]:
        verified = self.codec.verify(token)
        if isinstance(verified, VerificationFailure):
            return Err(verification_error(verified))
        return Ok(verified)

    async def load_user(self, payload: JWTPayload) -> Result[UserContext, AuthError]:
        """The user a verified token names, looked up inside the token's tenant."""
        try:
            user = await self.store.find_user_by_id(payload.tenant_id, payload.user_id)
        except StoreError as e:
            logger.error("auth.user_lookup.store_failed", tenant_id=payload.tenant_id, error=str(e))
            return Err(SERVICE_UNAVAILABLE)
        if user is None:
            return Err(AuthError(AuthErrorCode.USER_NOT_FOUND, "User not found"))
        return Ok(user.to_context())

    # ------------------------------------------------------------------

    def _expiry(self, issued_at: int) -> datetime:
        return datetime.fromtimestamp(issued_at + self.codec.ttl_seconds, UTC)

    def _auth_response(self, user: UserRecord) -> AuthResponse:
        now = int(time.time())
        token = self.codec.sign(
            TokenClaims(user_id=user.id, tenant_id=user.tenant_id, email=user.email, role=user.role),
            now=now,
        )
        return AuthResponse(token=token, user=user.to_profile(), expires_at=self._expiry(now))

    @staticmethod
    def _email_taken() -> AuthError:
        return AuthError(
            AuthErrorCode.EMAIL_ALREADY_EXISTS, "An account with this email already exists"
        )
