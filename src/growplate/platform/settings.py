from __future__ import annotations

"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
For nested settings, use double underscore: JWT__SECRET_KEY=...
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_DEFAULT_SECRET = "growplate-development-secret-change-me-now"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: TENANT__CACHE_TTL_SECONDS=600
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("growplate-platform", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")

    # ============================================================
    # Database Configuration
    # ============================================================

    class DatabaseSettings(BaseModel):
        """Database configuration."""

        url: str | None = Field(None, description="Full async database URL")
        host: str = Field("localhost", description="Database host")
        port: int = Field(5432, description="Database port")
        database: str = Field("growplate", description="Database name")
        username: str = Field("growplate", description="Database username")
        password: str = Field("", description="Database password")

        pool_size: int = Field(10, description="Connection pool size")
        max_overflow: int = Field(20, description="Max overflow connections")
        pool_pre_ping: bool = Field(True, description="Test connections before use")
        echo: bool = Field(False, description="Echo SQL statements")

        @property
        def sqlalchemy_url(self) -> str:
            """Build SQLAlchemy async database URL."""
            if self.url:
                return self.url
            return f"postgresql+asyncpg://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ============================================================
    # Redis Configuration
    # ============================================================

    class RedisSettings(BaseModel):
        """Redis configuration."""

        enabled: bool = Field(True, description="Use Redis as the shared cache backend")
        url: str | None = Field(None, description="Full Redis URL")
        host: str = Field("localhost", description="Redis host")
        port: int = Field(6379, description="Redis port")
        password: str = Field("", description="Redis password")
        db: int = Field(0, description="Redis database number")
        max_connections: int = Field(50, description="Max connections in pool")

        @property
        def redis_url(self) -> str:
            """Build Redis URL."""
            if self.url:
                return self.url
            if self.password:
                return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
            return f"redis://{self.host}:{self.port}/{self.db}"

    redis: RedisSettings = RedisSettings()  # type: ignore[call-arg]

    # ============================================================
    # JWT & Authentication
    # ============================================================

    class JWTSettings(BaseModel):
        """JWT configuration."""

        secret_key: str = Field(INSECURE_DEFAULT_SECRET, description="HS256 signing secret")
        algorithm: str = Field("HS256", description="JWT algorithm")
        token_ttl_seconds: int = Field(86400, description="Access token lifetime")
        issuer: str = Field("growplate.com", description="JWT issuer")
        audience: str = Field("api.growplate.com", description="JWT audience")
        refresh_grace_seconds: int = Field(
            300, description="How long after expiry a token may still be refreshed"
        )
        refresh_max_age_seconds: int = Field(
            7 * 24 * 3600, description="Maximum token age (from iat) accepted by refresh"
        )

        @field_validator("secret_key")
        @classmethod
        def _validate_secret(cls, v: str) -> str:
            if len(v) < 32:
                raise ValueError("JWT secret must be at least 32 characters long")
            return v

        @field_validator("algorithm")
        @classmethod
        def _validate_algorithm(cls, v: str) -> str:
            if v != "HS256":
                raise ValueError("Only HS256 is supported")
            return v

    jwt: JWTSettings = JWTSettings()  # type: ignore[call-arg]

    class PasswordSettings(BaseModel):
        """Password hashing policy."""

        bcrypt_rounds: int = Field(12, ge=4, le=31, description="bcrypt cost factor")
        min_length: int = Field(8, description="Minimum password length")
        max_length: int = Field(128, description="Maximum password length")

    password: PasswordSettings = PasswordSettings()  # type: ignore[call-arg]

    # ============================================================
    # Tenant Settings
    # ============================================================

    class TenantSettings(BaseModel):
        """Multi-tenant resolution configuration."""

        platform_domain: str = Field("growplate.com", description="Suffix for tenant subdomains")
        cache_ttl_seconds: int = Field(3600, description="Tenant cache entry lifetime")
        allow_localhost: bool = Field(True, description="Allow localhost hosts in development")
        dev_tenant_id: str | None = Field(
            None, description="Tenant served for localhost requests during development"
        )
        fail_on_cache_error: bool = Field(
            False, description="Return CACHE_ERROR instead of falling back to the store"
        )
        single_flight: bool = Field(
            True, description="Share one store lookup between concurrent misses"
        )
        skip_paths: list[str] = Field(
            default_factory=lambda: [
                "/health",
                "/favicon.ico",
                "/robots.txt",
                "/sitemap.xml",
                "/api/health",
            ],
            description="Paths that never resolve a tenant (trailing * for prefix)",
        )
        required_paths: list[str] = Field(
            default_factory=lambda: ["/admin", "/api", "/menu", "/order", "/loyalty"],
            description="Path prefixes that fail when no tenant resolves",
        )

    tenant: TenantSettings = TenantSettings()  # type: ignore[call-arg]

    class FeatureSettings(BaseModel):
        """Feature flag configuration."""

        cache_ttl_seconds: int = Field(3600, description="Feature map cache lifetime")

    features: FeatureSettings = FeatureSettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Observability configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or text)")
        request_id_header: str = Field("X-Request-ID", description="Request id header")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment in (Environment.DEVELOPMENT, Environment.TEST)

    def validate_production_security(self) -> None:
        """Refuse to boot production with development secrets or localhost access."""
        if not self.is_production:
            return
        problems = []
        if self.jwt.secret_key == INSECURE_DEFAULT_SECRET:
            problems.append("JWT__SECRET_KEY must be set in production")
        if self.tenant.dev_tenant_id:
            problems.append("TENANT__DEV_TENANT_ID must not be set in production")
        if problems:
            raise ValueError("; ".join(problems))


settings = Settings()
