"""
Tests for the authorization dependencies.

Protected routes are mounted on the application built by ``create_app`` so
they run behind the real tenant middleware and exception handlers.
"""

import pytest
from fastapi import Depends
from structlog.testing import capture_logs

from growplate.platform.auth.dependencies import (
    optional_auth,
    require_auth,
    require_customer,
    require_owner,
    require_staff,
)
from growplate.platform.auth.jwt_service import TokenClaims, TokenCodec
from growplate.platform.auth.models import UserContext
from growplate.platform.auth.rbac import Action, Resource, Role
from growplate.platform.tenant.context import RequestIdentity, get_request_identity
from tests.conftest import bearer


@pytest.fixture
def app(app):
    @app.get("/api/orders/queue")
    async def order_queue(user: UserContext = Depends(require_staff)):
        return {"userId": user.id, "role": user.role.value}

    @app.get("/api/settings")
    async def restaurant_settings(user: UserContext = Depends(require_owner)):
        return {"userId": user.id}

    @app.get("/api/profile")
    async def profile(
        user: UserContext = Depends(require_customer),
        identity: RequestIdentity = Depends(get_request_identity),
    ):
        return {"userId": user.id, "identityUserId": identity.user.id}

    @app.put("/api/menu/items")
    async def edit_menu(
        user: UserContext = Depends(require_auth(permission=(Action.UPDATE, Resource.MENU))),
    ):
        return {"userId": user.id}

    @app.get("/api/greeting")
    async def greeting(user: UserContext | None = Depends(optional_auth())):
        return {"userId": user.id if user else None}

    return app


def assert_unauthorized(response, code: str) -> None:
    assert response.status_code == 401
    assert response.json()["error"]["code"] == code
    assert response.headers["WWW-Authenticate"] == 'Bearer realm="api"'
    assert "no-store" in response.headers["Cache-Control"]


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token(self, api):
        response = await api.get("/api/orders/queue")

        assert_unauthorized(response, "missing_token")

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_is_missing(self, api):
        response = await api.get("/api/orders/queue", headers={"Authorization": "Basic dXNlcg=="})

        assert_unauthorized(response, "missing_token")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["Bearer garbage", "Bearer a.b", "Bearer a.b.c"])
    async def test_malformed_token(self, api, value):
        response = await api.get("/api/orders/queue", headers={"Authorization": value})

        assert_unauthorized(response, "malformed_token")

    @pytest.mark.asyncio
    async def test_expired_token(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a, Role.STAFF)

        response = await api.get(
            "/api/orders/queue", headers=bearer(token_for(user, now=1_000_000))
        )

        assert_unauthorized(response, "token_expired")

    @pytest.mark.asyncio
    async def test_foreign_signature(self, api, make_user, tenant_a):
        user = await make_user(tenant_a, Role.STAFF)
        forger = TokenCodec(secret="someone-elses-secret-that-is-long-enough")
        token = forger.sign(
            TokenClaims(user_id=user.id, tenant_id=tenant_a.id, email=user.email, role=Role.OWNER)
        )

        response = await api.get("/api/orders/queue", headers=bearer(token))

        assert_unauthorized(response, "token_invalid")

    @pytest.mark.asyncio
    async def test_unknown_user_is_401_not_404(self, api, codec, tenant_a):
        token = codec.sign(
            TokenClaims(user_id="gone", tenant_id=tenant_a.id, email="g@x.io", role=Role.OWNER)
        )

        response = await api.get("/api/orders/queue", headers=bearer(token))

        assert_unauthorized(response, "user_not_found")

    @pytest.mark.asyncio
    async def test_user_is_attached_to_identity(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a, Role.CUSTOMER)

        response = await api.get("/api/profile", headers=bearer(token_for(user)))

        assert response.status_code == 200
        assert response.json() == {"userId": user.id, "identityUserId": user.id}


class TestTenantIsolation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", list(Role))
    async def test_token_from_other_tenant_is_rejected(
        self, api_b, make_user, token_for, tenant_a, role
    ):
        user = await make_user(tenant_a, role)

        response = await api_b.get("/api/profile", headers=bearer(token_for(user)))

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "tenant_mismatch"
        assert "details" not in error

    @pytest.mark.asyncio
    async def test_mismatch_is_logged_as_security_event(
        self, api_b, make_user, token_for, tenant_a
    ):
        user = await make_user(tenant_a, Role.OWNER)
        token = token_for(user)

        with capture_logs() as logs:
            await api_b.get(
                "/api/settings", headers={**bearer(token), "User-Agent": "pytest-agent"}
            )

        events = [log for log in logs if log.get("security_event")]
        assert events
        event = events[-1]
        assert event["event"] == "auth.tenant_mismatch"
        assert event["tenant_id"] == "tenant-b"
        assert event["user_id"] == user.id
        assert event["path"] == "/api/settings"
        assert event["user_agent"] == "pytest-agent"
        assert token not in str(event)

    @pytest.mark.asyncio
    async def test_forged_tenant_claim_cannot_reach_other_users(
        self, api_b, make_user, codec, tenant_a, tenant_b
    ):
        user = await make_user(tenant_a, Role.OWNER)
        # signed correctly but naming tenant B while the user lives in tenant A
        token = codec.sign(
            TokenClaims(user_id=user.id, tenant_id=tenant_b.id, email=user.email, role=Role.OWNER)
        )

        response = await api_b.get("/api/settings", headers=bearer(token))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "user_not_found"


class TestRoles:
    @pytest.mark.asyncio
    async def test_customer_on_staff_route(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a, Role.CUSTOMER)

        response = await api.get("/api/orders/queue", headers=bearer(token_for(user)))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "insufficient_permissions"
        assert "WWW-Authenticate" not in response.headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [Role.STAFF, Role.OWNER])
    async def test_staff_route_allows_staff_and_owner(
        self, api, make_user, token_for, tenant_a, role
    ):
        user = await make_user(tenant_a, role)

        response = await api.get("/api/orders/queue", headers=bearer(token_for(user)))

        assert response.status_code == 200
        assert response.json()["role"] == role.value

    @pytest.mark.asyncio
    async def test_staff_on_owner_route(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a, Role.STAFF)

        response = await api.get("/api/settings", headers=bearer(token_for(user)))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_role_comes_from_store_not_token(self, api, make_user, codec, tenant_a):
        user = await make_user(tenant_a, Role.CUSTOMER)
        token = codec.sign(
            TokenClaims(user_id=user.id, tenant_id=tenant_a.id, email=user.email, role=Role.OWNER)
        )

        response = await api.get("/api/settings", headers=bearer(token))

        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("role", "status_code"), [(Role.OWNER, 200), (Role.STAFF, 200), (Role.CUSTOMER, 403)]
    )
    async def test_permission_check(self, api, make_user, token_for, tenant_a, role, status_code):
        user = await make_user(tenant_a, role)

        response = await api.put("/api/menu/items", headers=bearer(token_for(user)))

        assert response.status_code == status_code


class TestOptionalAuth:
    @pytest.mark.asyncio
    async def test_anonymous(self, api):
        response = await api.get("/api/greeting")

        assert response.status_code == 200
        assert response.json() == {"userId": None}

    @pytest.mark.asyncio
    async def test_signed_in(self, api, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        response = await api.get("/api/greeting", headers=bearer(token_for(user)))

        assert response.json() == {"userId": user.id}

    @pytest.mark.asyncio
    async def test_bad_token_is_ignored(self, api):
        response = await api.get("/api/greeting", headers={"Authorization": "Bearer junk"})

        assert response.status_code == 200
        assert response.json() == {"userId": None}

    @pytest.mark.asyncio
    async def test_other_tenant_token_is_ignored(self, api_b, make_user, token_for, tenant_a):
        user = await make_user(tenant_a)

        response = await api_b.get("/api/greeting", headers=bearer(token_for(user)))

        assert response.status_code == 200
        assert response.json() == {"userId": None}
