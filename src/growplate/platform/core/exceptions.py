"""HTTP boundary errors rendered as the platform error envelope."""

from datetime import UTC, datetime
from typing import Any

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}
BEARER_CHALLENGE = 'Bearer realm="api"'


class PlatformHTTPError(Exception):
    """Raised by routers and dependencies to produce an error response.

    Services never raise this; they return typed results which the HTTP
    layer translates.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.headers = dict(headers or {})

    def to_dict(self, path: str) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error, "timestamp": utc_timestamp(), "path": path}


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")
