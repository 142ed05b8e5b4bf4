"""
Global pytest configuration and fixtures for GrowPlate platform services tests.

Everything runs against the in-memory store and cache unless a test opts in
to fakeredis or SQLite.
"""

from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient

from growplate.platform.auth.jwt_service import TokenClaims, TokenCodec
from growplate.platform.auth.models import NewUser, UserRecord
from growplate.platform.auth.password import PasswordHasher
from growplate.platform.auth.rbac import Role
from growplate.platform.auth.service import AuthService
from growplate.platform.cache import InMemoryCache
from growplate.platform.main import create_app
from growplate.platform.settings import Settings
from growplate.platform.store import InMemoryTenantStore
from growplate.platform.tenant.models import Tenant

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
PASSWORD = "Str0ng!Passw0rd"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fast bcrypt cost and a known secret."""
    return Settings(
        _env_file=None,
        jwt=Settings.JWTSettings(secret_key=TEST_SECRET),
        password=Settings.PasswordSettings(bcrypt_rounds=4),
        redis=Settings.RedisSettings(enabled=False),
        tenant=Settings.TenantSettings(dev_tenant_id=None),
    )


@pytest.fixture
def tenant_a() -> Tenant:
    return Tenant(
        id="tenant-a",
        name="Pizzeria Uno",
        domain="pizzeria.growplate.com",
        subdomain="pizzeria",
        settings={"allowedRegistrationRoles": ["customer"]},
    )


@pytest.fixture
def tenant_b() -> Tenant:
    return Tenant(
        id="tenant-b",
        name="Sushi Bar",
        domain="order.sushibar.example",
        subdomain="sushi",
    )


@pytest.fixture
def disabled_tenant() -> Tenant:
    return Tenant(
        id="tenant-off",
        name="Closed Cafe",
        domain="closed.growplate.com",
        subdomain="closed",
        is_active=False,
    )


@pytest.fixture
def store(tenant_a, tenant_b, disabled_tenant) -> InMemoryTenantStore:
    return InMemoryTenantStore([tenant_a, tenant_b, disabled_tenant])


@pytest.fixture
def cache_backend() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret=TEST_SECRET)


@pytest.fixture
def auth_service(store, codec, hasher) -> AuthService:
    return AuthService(store, codec, hasher)


@pytest.fixture
def make_user(store, hasher):
    """Create a user directly in the store."""

    async def _make_user(
        tenant: Tenant,
        role: Role = Role.CUSTOMER,
        email: str | None = None,
        password: str = PASSWORD,
    ) -> UserRecord:
        return await store.create_user(
            NewUser(
                tenant_id=tenant.id,
                email=email or f"{role.value}-{uuid4().hex[:8]}@example.com",
                password_hash=hasher.hash(password),
                first_name="Test",
                last_name=role.value.title(),
                role=role,
            )
        )

    return _make_user


@pytest.fixture
def token_for(codec):
    """Sign a token for a user (or for arbitrary claims)."""

    def _token_for(user: UserRecord, tenant_id: str | None = None, **kwargs) -> str:
        claims = TokenClaims(
            user_id=user.id,
            tenant_id=tenant_id or user.tenant_id,
            email=user.email,
            role=user.role,
        )
        return codec.sign(claims, **kwargs)

    return _token_for


@pytest.fixture
def app(test_settings, store, cache_backend):
    return create_app(test_settings, store=store, cache=cache_backend)


@pytest.fixture
def client(app) -> TestClient:
    """Client whose requests arrive on tenant A's subdomain."""
    return TestClient(app, base_url="http://pizzeria.growplate.com")


@pytest.fixture
def client_b(app) -> TestClient:
    """Client whose requests arrive on tenant B's custom domain."""
    return TestClient(app, base_url="http://order.sushibar.example")


@pytest.fixture
async def api(app):
    """Async client on tenant A, for tests that also await store setup."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://pizzeria.growplate.com") as client:
        yield client


@pytest.fixture
async def api_b(app):
    """Async client on tenant B."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://order.sushibar.example") as client:
        yield client


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
