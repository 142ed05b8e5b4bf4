"""
Structured logging setup using structlog directly.

Security events (failed authentication, tenant mismatches, permission
denials) are plain structured logs on the ``security`` logger.
"""

import logging
from typing import Any

import structlog
from starlette.requests import Request

from growplate.platform.settings import settings

SENSITIVE_KEYS = frozenset({"password", "token", "authorization", "secret", "password_hash"})


def _scrub_sensitive(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in list(event_dict):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = "[redacted]"
    return event_dict


def setup_logging() -> None:
    """
    Setup structured logging with structlog.

    Uses settings from centralized configuration.
    """
    logging.basicConfig(format="%(message)s", level=settings.observability.log_level.value)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _scrub_sensitive,
    ]

    if settings.observability.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)


def get_security_logger() -> structlog.BoundLogger:
    """Logger for security events."""
    return structlog.get_logger("security")


def client_ip(request: Request) -> str | None:
    """Best-effort client address, honouring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def log_security_event(event: str, request: Request | None = None, **details: Any) -> None:
    """
    Log a security event as a structured log entry.

    Request metadata (method, path, user agent, client address) is attached
    when a request is given. Tokens and passwords are never logged; keys
    with sensitive names are redacted by the processor chain.
    """
    context: dict[str, Any] = {}
    if request is not None:
        context = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent"),
            "ip_address": client_ip(request),
        }

    get_security_logger().warning(event, security_event=True, **context, **details)


# Initialize on import
setup_logging()

logger = get_logger(__name__)
