"""
Rate limiting hook for authentication endpoints.

Limits are enforced by an external component; the auth service only asks
whether an attempt may proceed. The default limiter allows everything.
"""

from enum import Enum
from typing import Protocol


class AuthAction(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    REFRESH = "refresh"


class RateLimitHook(Protocol):
    async def allow(self, action: AuthAction, key: str) -> bool:
        """Whether an attempt identified by ``key`` may proceed."""
        ...


class AllowAllRateLimiter:
    async def allow(self, action: AuthAction, key: str) -> bool:
        return True
