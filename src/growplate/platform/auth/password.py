"""
Password hashing with passlib/bcrypt, plus the registration strength check.

Hashing is deliberately slow; async callers run these methods in a worker
thread. Plaintext passwords are never logged.
"""

import re
from dataclasses import dataclass, field
from functools import cached_property

from passlib.context import CryptContext

from growplate.platform.settings import Settings, settings

DEFAULT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

_COMMON_PATTERNS = (
    re.compile(r"(.)\1{2,}"),
    re.compile(r"123456"),
    re.compile(r"abcdef", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"login", re.IGNORECASE),
)


class PasswordHasher:
    """bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "PasswordHasher":
        return cls(rounds=config.password.bcrypt_rounds)

    def hash(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Password must not be empty")
        if len(plaintext) > MAX_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")
        return str(self._context.hash(plaintext))

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Constant-time comparison; malformed hashes simply do not match."""
        if not plaintext or not password_hash or len(plaintext) > MAX_PASSWORD_LENGTH:
            return False
        try:
            return bool(self._context.verify(plaintext, password_hash))
        except (ValueError, TypeError):
            return False

    @cached_property
    def _dummy_hash(self) -> str:
        return str(self._context.hash("growplate-timing-equalizer"))

    def dummy_verify(self, plaintext: str) -> bool:
        """Spend the same work as a real check when there is no user to check against."""
        self.verify(plaintext or "x", self._dummy_hash)
        return False

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return bool(self._context.needs_update(password_hash))
        except (ValueError, TypeError):
            return True


@dataclass
class PasswordStrength:
    is_valid: bool
    score: int
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def validate_password_strength(password: str) -> PasswordStrength:
    """Score a password from 0 to 100 and list what is missing.

    Only the length bounds make a password invalid; the score and
    suggestions are advisory.
    """
    errors: list[str] = []
    suggestions: list[str] = []
    score = 0

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    else:
        score += 20
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password must be at most {MAX_PASSWORD_LENGTH} characters long")

    checks = (
        (r"[a-z]", "Add lowercase letters"),
        (r"[A-Z]", "Add uppercase letters"),
        (r"\d", "Add numbers"),
        (r"[^A-Za-z0-9]", "Add special characters"),
    )
    for pattern, suggestion in checks:
        if re.search(pattern, password):
            score += 15
        else:
            suggestions.append(suggestion)

    if len(password) >= 12:
        score += 10
    else:
        suggestions.append("Use at least 12 characters")
    if len(password) >= 16:
        score += 10

    if any(p.search(password) for p in _COMMON_PATTERNS):
        score -= 20
        suggestions.append("Avoid common words and repeated characters")

    return PasswordStrength(
        is_valid=not errors,
        score=max(0, min(100, score)),
        errors=errors,
        suggestions=suggestions,
    )
