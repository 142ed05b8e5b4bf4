"""
Token codec.

HS256 access tokens via PyJWT. ``verify`` never raises for a bad token; it
returns a ``VerificationFailure`` naming the first check that failed, in the
order: structure, signature, issuer/audience, claims schema, expiry, iat.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import jwt
from pydantic import ValidationError

from growplate.platform.auth.exceptions import ConfigurationError
from growplate.platform.auth.models import JWTPayload
from growplate.platform.auth.rbac import Role
from growplate.platform.settings import Settings, settings

ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
DEFAULT_TOKEN_TTL_SECONDS = 24 * 3600
MAX_IAT_SKEW_SECONDS = 300


class VerificationReason(str, Enum):
    MALFORMED = "MALFORMED"
    BAD_SIGNATURE = "BAD_SIGNATURE"
    INVALID_CLAIMS = "INVALID_CLAIMS"
    EXPIRED = "EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"


@dataclass(frozen=True, slots=True)
class VerificationFailure:
    reason: VerificationReason
    message: str


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Identity claims placed into a token; time and audience claims are added on signing."""

    user_id: str
    tenant_id: str
    email: str
    role: Role


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from ``Authorization: Bearer <token>``, or None.

    The value must be exactly two space-separated parts and the token must
    have the three dot-separated JWT segments.
    """
    if not authorization:
        return None
    parts = authorization.strip().split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1]
    if not token or len(token.split(".")) != 3:
        return None
    return token


class TokenCodec:
    """Signs and verifies access tokens."""

    def __init__(
        self,
        secret: str,
        issuer: str = "growplate.com",
        audience: str = "api.growplate.com",
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
    ) -> None:
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"JWT secret must be at least {MIN_SECRET_LENGTH} characters long"
            )
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "TokenCodec":
        return cls(
            secret=config.jwt.secret_key,
            issuer=config.jwt.issuer,
            audience=config.jwt.audience,
            ttl_seconds=config.jwt.token_ttl_seconds,
        )

    def sign(self, claims: TokenClaims, ttl: int | None = None, now: int | None = None) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = {
            "userId": claims.user_id,
            "tenantId": claims.tenant_id,
            "email": claims.email,
            "role": claims.role.value,
            "iat": issued_at,
            "exp": issued_at + (ttl if ttl is not None else self.ttl_seconds),
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(
        self, token: str, *, expiry_grace: int = 0, now: int | None = None
    ) -> JWTPayload | VerificationFailure:
        if not isinstance(token, str) or token.count(".") != 2:
            return VerificationFailure(VerificationReason.MALFORMED, "Token is not a JWT")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError:
            return VerificationFailure(VerificationReason.MALFORMED, "Token header is unreadable")
        if header.get("alg") != ALGORITHM:
            return VerificationFailure(VerificationReason.MALFORMED, "Unsupported token algorithm")

        try:
            raw = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                    "verify_iss": False,
                },
            )
        except jwt.InvalidSignatureError:
            return VerificationFailure(VerificationReason.BAD_SIGNATURE, "Signature mismatch")
        except jwt.InvalidTokenError:
            return VerificationFailure(VerificationReason.MALFORMED, "Token payload is unreadable")

        if raw.get("iss") != self.issuer or raw.get("aud") != self.audience:
            return VerificationFailure(
                VerificationReason.INVALID_CLAIMS, "Token issuer or audience mismatch"
            )

        try:
            payload = JWTPayload.model_validate(raw)
        except ValidationError:
            return VerificationFailure(VerificationReason.MALFORMED, "Token claims are incomplete")

        current = int(now if now is not None else time.time())
        if current > payload.exp + expiry_grace:
            return VerificationFailure(VerificationReason.EXPIRED, "Token has expired")
        if payload.iat > current + MAX_IAT_SKEW_SECONDS:
            return VerificationFailure(VerificationReason.NOT_YET_VALID, "Token issued in the future")

        return payload

    def decode_unverified(self, token: str) -> dict[str, Any] | None:
        """Read claims without checking anything. Diagnostics only."""
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
