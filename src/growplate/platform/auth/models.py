"""Authentication data types and request/response bodies."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from growplate.platform.auth.rbac import Role


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthErrorCode(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    MALFORMED_TOKEN = "malformed_token"
    MISSING_TOKEN = "missing_token"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    TENANT_MISMATCH = "tenant_mismatch"
    USER_NOT_FOUND = "user_not_found"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    WEAK_PASSWORD = "weak_password"
    VALIDATION_ERROR = "validation_error"
    TOKEN_NOT_REFRESHABLE = "token_not_refreshable"
    TENANT_NOT_FOUND = "tenant_not_found"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"


@dataclass(frozen=True, slots=True)
class AuthError:
    code: AuthErrorCode
    message: str
    details: dict[str, Any] | None = None


class JWTPayload(CamelModel):
    """Claims carried by every access token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    user_id: str = Field(min_length=1)
    tenant_id: str = Field(min_length=1)
    email: str
    role: Role
    iat: int
    exp: int
    iss: str
    aud: str


class UserRecord(BaseModel):
    """A user row as the store returns it. Never sent over the wire."""

    id: str
    tenant_id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    phone: str | None = None
    loyalty_points: int = 0
    created_at: datetime

    def to_profile(self) -> "UserProfile":
        return UserProfile(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            phone=self.phone,
            loyalty_points=self.loyalty_points,
            created_at=self.created_at,
        )

    def to_context(self) -> "UserContext":
        return UserContext(
            id=self.id,
            tenant_id=self.tenant_id,
            email=self.email,
            role=self.role,
            first_name=self.first_name,
            last_name=self.last_name,
        )


class NewUser(BaseModel):
    """Values needed to insert a user."""

    tenant_id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    phone: str | None = None


class UserProfile(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    phone: str | None = None
    loyalty_points: int = 0
    created_at: datetime


class UserContext(CamelModel):
    """The authenticated caller, attached to the request identity."""

    id: str
    tenant_id: str
    email: str
    role: Role
    first_name: str | None = None
    last_name: str | None = None


class LoginRequest(CamelModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class RegisterRequest(CamelModel):
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    role: str | None = None


class AuthResponse(CamelModel):
    token: str
    user: UserProfile
    expires_at: datetime


class RefreshResponse(CamelModel):
    token: str
    expires_at: datetime
