"""HTTP-level tests: error envelope, request IDs, auth and route wiring."""

from __future__ import annotations

import pytest
from fastapi.routing import APIRoute

from groupdesk.models.enums import UserRole
from groupdesk.models.user import User
from groupdesk.modules.auth.passwords import hash_password
from tests.factories import auth_headers, group_request_payload, make_user


@pytest.mark.asyncio
async def test_health(async_client):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client):
    resp = await async_client.get("/health", headers={"X-Request-ID": "req-abc"})
    assert resp.headers["X-Request-ID"] == "req-abc"


@pytest.mark.asyncio
async def test_request_id_is_generated(async_client):
    resp = await async_client.get("/health")
    assert len(resp.headers["X-Request-ID"]) == 32


@pytest.mark.asyncio
async def test_missing_token_uses_error_envelope(async_client):
    resp = await async_client.get("/api/v1/group-requests", headers={"X-Request-ID": "req-1"})

    assert resp.status_code == 401
    error = resp.json()["error"]
    assert error["code"] == "UNAUTHORIZED"
    assert error["requestId"] == "req-1"
    assert error["details"] == []


@pytest.mark.asyncio
async def test_validation_error_lists_fields(async_client):
    resp = await async_client.post(
        "/api/v1/public/group-requests", json=group_request_payload(from_airport="CM1")
    )

    assert resp.status_code == 422
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any(d["field"].endswith("from_airport") for d in error["details"])


@pytest.mark.asyncio
async def test_business_rule_error_from_intake(async_client):
    resp = await async_client.post(
        "/api/v1/public/group-requests", json=group_request_payload(pax_adult=3)
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_group_request_is_404(async_client):
    headers = auth_headers(make_user(UserRole.GROUP_DESK, "desk1"))
    resp = await async_client.get(
        "/api/v1/group-requests/00000000-0000-0000-0000-000000000000", headers=headers
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_route_controller_cannot_manage_users(async_client):
    headers = auth_headers(make_user(UserRole.ROUTE_CONTROLLER, "rc1"))
    resp = await async_client.get("/api/v1/admin/users", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


class TestLoginEndpoint:
    @pytest.mark.asyncio
    async def test_login_and_me(self, async_client, async_test_session):
        async_test_session.add(
            User(
                username="desk1",
                password_hash=hash_password("desk-pass-1"),
                role=UserRole.GROUP_DESK,
            )
        )
        await async_test_session.flush()

        resp = await async_client.post(
            "/api/v1/auth/login", json={"username": "desk1", "password": "desk-pass-1"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["role"] == "GROUP_DESK"

        me = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {body['token']}"}
        )
        assert me.json()["username"] == "desk1"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, async_client):
        resp = await async_client.post(
            "/api/v1/auth/login", json={"username": "ghost", "password": "nope"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid username or password"


def test_workflow_routes_are_registered():
    from groupdesk.app import app

    routes = {
        (method, route.path)
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
    }
    expected = {
        ("POST", "/api/v1/public/group-requests"),
        ("PATCH", "/api/v1/group-requests/{request_id}/send-to-rc"),
        ("PATCH", "/api/v1/group-requests/{request_id}/mark-ticketed"),
        ("PATCH", "/api/v1/group-requests/{request_id}/pnr"),
        ("PATCH", "/api/v1/group-requests/{request_id}/cancel"),
        ("DELETE", "/api/v1/group-requests/{request_id}"),
        ("PATCH", "/api/v1/group-requests/{request_id}/segments/{index}/date"),
        ("PATCH", "/api/v1/group-requests/{request_id}/segments/{index}/extras"),
        ("POST", "/api/v1/quotations"),
        ("PATCH", "/api/v1/quotations/{quotation_id}/send-to-agent"),
        ("PATCH", "/api/v1/quotations/{quotation_id}/accept"),
        ("PATCH", "/api/v1/quotations/{quotation_id}/resend"),
        ("PATCH", "/api/v1/quotations/{quotation_id}/resend-simple"),
        ("PATCH", "/api/v1/payments/{payment_id}/mark-paid"),
        ("POST", "/api/v1/payments/{payment_id}/attachments"),
        ("GET", "/api/v1/dashboard"),
    }
    assert expected <= routes
