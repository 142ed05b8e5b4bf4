"""Exception handlers that render every failure as the error envelope."""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from growplate.platform.core.exceptions import NO_STORE_HEADERS, PlatformHTTPError, utc_timestamp

logger = structlog.get_logger(__name__)


async def platform_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render PlatformHTTPError with its status code and headers."""
    if not isinstance(exc, PlatformHTTPError):
        raise exc
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(request.url.path),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed request bodies become 400 validation_error."""
    errors: list[dict[str, Any]] = []
    if isinstance(exc, RequestValidationError):
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part != "body"]
            errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "invalid")})

    logger.info("request.validation_failed", path=request.url.path, error_count=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": errors},
            },
            "timestamp": utc_timestamp(),
            "path": request.url.path,
        },
        headers=NO_STORE_HEADERS if request.url.path.startswith("/api/auth") else None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlatformHTTPError, platform_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
