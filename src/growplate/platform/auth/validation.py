"""Field checks for self-service registration."""

import re
from dataclasses import dataclass

import structlog

from growplate.platform.auth.models import RegisterRequest
from growplate.platform.auth.rbac import Role, parse_role

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[1-9][\d\s\-().]{7,15}$")
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100
MAX_PHONE_LENGTH = 20

DEFAULT_REGISTRATION_ROLES = ("customer",)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def registration_roles(tenant_settings: dict) -> tuple[set[Role], Role]:
    """Roles a tenant allows at self-registration, and the default one.

    Tenants opt in through ``allowedRegistrationRoles`` and
    ``defaultRegistrationRole``; without them only customers may register.
    """
    configured = tenant_settings.get("allowedRegistrationRoles", DEFAULT_REGISTRATION_ROLES)
    if not isinstance(configured, (list, tuple)):
        logger.warning(
            "auth.registration.invalid_role_setting", value_type=type(configured).__name__
        )
        configured = DEFAULT_REGISTRATION_ROLES
    allowed = {role for role in (parse_role(str(r)) for r in configured) if role is not None}
    default = parse_role(tenant_settings.get("defaultRegistrationRole")) or Role.CUSTOMER
    if not allowed:
        allowed = {Role.CUSTOMER}
    if default not in allowed:
        default = Role.CUSTOMER if Role.CUSTOMER in allowed else sorted(allowed)[0]
    return allowed, default


def validate_registration(
    request: RegisterRequest, allowed_roles: set[Role]
) -> list[FieldError]:
    """Everything wrong with the request except password strength."""
    errors: list[FieldError] = []

    email = normalize_email(request.email)
    if not email:
        errors.append(FieldError("email", "Email is required"))
    elif len(email) > MAX_EMAIL_LENGTH:
        errors.append(FieldError("email", f"Email must be at most {MAX_EMAIL_LENGTH} characters"))
    elif not EMAIL_RE.match(email):
        errors.append(FieldError("email", "Invalid email format"))

    for field_name, label, value in (
        ("firstName", "First name", request.first_name),
        ("lastName", "Last name", request.last_name),
    ):
        stripped = value.strip()
        if not stripped:
            errors.append(FieldError(field_name, f"{label} is required"))
        elif len(stripped) > MAX_NAME_LENGTH:
            errors.append(
                FieldError(field_name, f"{label} must be at most {MAX_NAME_LENGTH} characters")
            )

    if request.phone:
        phone = request.phone.strip()
        if len(phone) > MAX_PHONE_LENGTH:
            errors.append(
                FieldError("phone", f"Phone must be at most {MAX_PHONE_LENGTH} characters")
            )
        elif not PHONE_RE.match(phone):
            errors.append(FieldError("phone", "Invalid phone number format"))

    if request.role is not None:
        role = parse_role(request.role)
        if role is None:
            errors.append(FieldError("role", "Role must be one of owner, staff, customer"))
        elif role not in allowed_roles:
            errors.append(FieldError("role", "Role is not available for registration"))

    return errors
