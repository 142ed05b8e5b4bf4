"""HTTP tests for /api/auth."""

import httpx
import pytest
from fastapi.testclient import TestClient
from freezegun import freeze_time
from structlog.testing import capture_logs

from growplate.platform.auth.rbac import Role
from tests.conftest import PASSWORD, bearer

DAY = 24 * 3600


def assert_no_store(response) -> None:
    assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate"
    assert response.headers["Pragma"] == "no-cache"


def assert_envelope(response, status_code: int, code: str) -> dict:
    assert response.status_code == status_code
    body = response.json()
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert body["path"] == response.request.url.path
    assert body["timestamp"].endswith("Z")
    return body


class TestLogin:
    @pytest.mark.asyncio
    async def test_token_names_resolved_tenant(self, api, make_user, codec, tenant_a):
        user = await make_user(tenant_a, Role.OWNER, email="owner@example.com")

        response = await api.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        assert_no_store(response)
        body = response.json()
        assert codec.verify(body["token"]).tenant_id == tenant_a.id
        assert body["user"]["id"] == user.id
        assert body["user"]["firstName"] == "Test"
        assert "passwordHash" not in body["user"]
        assert "expiresAt" in body

    @pytest.mark.asyncio
    async def test_wrong_password(self, api, make_user, tenant_a):
        await make_user(tenant_a, email="owner@example.com")

        response = await api.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": "not-it-at-all"}
        )

        assert_envelope(response, 401, "invalid_credentials")
        assert_no_store(response)
        assert response.headers["WWW-Authenticate"] == 'Bearer realm="api"'
        assert "not-it-at-all" not in response.text

    @pytest.mark.asyncio
    async def test_failure_is_a_security_event(self, api, make_user, tenant_a):
        await make_user(tenant_a, email="owner@example.com")

        with capture_logs() as logs:
            await api.post(
                "/api/auth/login",
                json={"email": "owner@example.com", "password": "not-it-at-all"},
            )

        events = [log for log in logs if log.get("security_event")]
        assert [e["event"] for e in events] == ["auth.login_failed"]
        assert events[0]["code"] == "invalid_credentials"
        assert events[0]["tenant_id"] == "tenant-a"
        assert "not-it-at-all" not in str(events[0])

    @pytest.mark.asyncio
    async def test_unknown_email_looks_identical(self, api, make_user, tenant_a):
        await make_user(tenant_a, email="owner@example.com")

        unknown = await api.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
        )
        wrong = await api.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": "bad-password"}
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json()["error"] == wrong.json()["error"]

    @pytest.mark.asyncio
    async def test_credentials_do_not_cross_tenants(self, api_b, make_user, tenant_a):
        await make_user(tenant_a, email="owner@example.com")

        response = await api_b.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": PASSWORD}
        )

        assert_envelope(response, 401, "invalid_credentials")

    @pytest.mark.asyncio
    async def test_missing_fields(self, api):
        response = await api.post("/api/auth/login", json={"email": "owner@example.com"})

        body = assert_envelope(response, 400, "validation_error")
        assert_no_store(response)
        assert {"field": "password", "message": "Field required"} in body["error"]["details"]["errors"]

    @pytest.mark.asyncio
    async def test_unknown_host(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(
            transport=transport, base_url="http://nowhere.growplate.com"
        ) as client:
            response = await client.post(
                "/api/auth/login", json={"email": "a@b.co", "password": PASSWORD}
            )

        assert_envelope(response, 404, "tenant_not_found")


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_then_login(self, api):
        payload = {
            "email": "guest@example.com",
            "password": PASSWORD,
            "firstName": "Ana",
            "lastName": "Lee",
        }

        registered = await api.post("/api/auth/register", json=payload)
        login = await api.post(
            "/api/auth/login", json={"email": "guest@example.com", "password": PASSWORD}
        )

        assert registered.status_code == 201
        assert_no_store(registered)
        assert registered.json()["user"]["role"] == "customer"
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_email(self, api):
        payload = {
            "email": "dup@x.com",
            "password": PASSWORD,
            "firstName": "Dup",
            "lastName": "Licate",
        }

        first = await api.post("/api/auth/register", json=payload)
        second = await api.post("/api/auth/register", json=payload)

        assert first.status_code == 201
        assert_envelope(second, 400, "email_already_exists")

    @pytest.mark.asyncio
    async def test_weak_password(self, api):
        response = await api.post(
            "/api/auth/register",
            json={"email": "w@x.com", "password": "short", "firstName": "W", "lastName": "X"},
        )

        body = assert_envelope(response, 400, "weak_password")
        assert "short" not in str(body)

    @pytest.mark.asyncio
    async def test_role_not_allowed(self, api):
        response = await api.post(
            "/api/auth/register",
            json={
                "email": "boss@x.com",
                "password": PASSWORD,
                "firstName": "B",
                "lastName": "Oss",
                "role": "owner",
            },
        )

        body = assert_envelope(response, 400, "validation_error")
        assert body["error"]["details"]["errors"][0]["field"] == "role"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_grace_window(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        with freeze_time("2026-03-01 12:00:00", real_asyncio=True) as frozen:
            token = token_for(user)

            frozen.tick(DAY + 180)
            inside = await api.post("/api/auth/refresh", headers=bearer(token))

            frozen.tick(420)
            outside = await api.post("/api/auth/refresh", headers=bearer(token))

        assert inside.status_code == 200
        assert_no_store(inside)
        assert inside.json()["token"] != token
        assert "expiresAt" in inside.json()
        assert_envelope(outside, 401, "token_invalid")

    @pytest.mark.asyncio
    async def test_missing_token(self, api):
        response = await api.post("/api/auth/refresh")

        assert_envelope(response, 401, "missing_token")

    @pytest.mark.asyncio
    async def test_other_tenant(self, api_b, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        response = await api_b.post("/api/auth/refresh", headers=bearer(token_for(user)))

        assert_envelope(response, 403, "tenant_mismatch")

    @pytest.mark.asyncio
    async def test_too_old(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        with freeze_time("2026-03-01 12:00:00", real_asyncio=True) as frozen:
            token = token_for(user, ttl=30 * DAY)
            frozen.tick(8 * DAY)
            response = await api.post("/api/auth/refresh", headers=bearer(token))

        assert_envelope(response, 401, "token_not_refreshable")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("headers", "code"),
        [
            ({"Authorization": "Bearer a.b.c"}, "token_invalid"),
            ({"Authorization": "Basic dXNlcjpwYXNz"}, "missing_token"),
            ({}, "missing_token"),
        ],
    )
    async def test_failures_are_security_events(self, api, headers, code):
        with capture_logs() as logs:
            response = await api.post(
                "/api/auth/refresh", headers={**headers, "User-Agent": "pytest-agent"}
            )

        assert_envelope(response, 401, code)
        events = [log for log in logs if log.get("security_event")]
        assert len(events) == 1
        event = events[0]
        assert event["event"] == "auth.refresh_failed"
        assert event["code"] == code
        assert event["tenant_id"] == "tenant-a"
        assert event["method"] == "POST"
        assert event["path"] == "/api/auth/refresh"
        assert event["user_agent"] == "pytest-agent"
        assert "a.b.c" not in str(event)

    @pytest.mark.asyncio
    async def test_too_old_is_a_security_event(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        with freeze_time("2026-03-01 12:00:00", real_asyncio=True) as frozen:
            token = token_for(user, ttl=30 * DAY)
            frozen.tick(8 * DAY)
            with capture_logs() as logs:
                await api.post("/api/auth/refresh", headers=bearer(token))

        codes = [log["code"] for log in logs if log.get("security_event")]
        assert codes == ["token_not_refreshable"]


class TestMe:
    @pytest.mark.asyncio
    async def test_anonymous(self, api):
        response = await api.get("/api/auth/me")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "user": None}

    @pytest.mark.asyncio
    async def test_signed_in(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a, Role.STAFF)

        response = await api.get("/api/auth/me", headers=bearer(token_for(user)))

        body = response.json()
        assert body["authenticated"] is True
        assert body["user"]["id"] == user.id
        assert body["user"]["tenantId"] == tenant_a.id
        assert body["user"]["role"] == "staff"


def test_health_skips_tenant_resolution(app):
    response = TestClient(app, base_url="http://unknown.example").get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
