"""
tests/test_user_routes.py -- Integration tests for /api/v1/users and /api/v1/auth.

Coverage:
  - Registration always creates a standard user, whatever role is sent
  - No user payload ever carries the password hash or the role
  - Login issues a token that authenticates later requests
  - Wrong user name and wrong password fail the same way
  - Deleting an account removes its resources and invalidates its token
"""

from __future__ import annotations

import pytest

from conftest import ApiContext


def _h(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(ctx: ApiContext, name: str, password: str = "hunter22", **extra) -> dict:
    body = {"user_name": name, "email": f"{name}@example.com", "password": password}
    body.update(extra)
    resp = ctx.client.post("/api/v1/users", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _login(ctx: ApiContext, name: str, password: str = "hunter22") -> str:
    resp = ctx.client.post("/api/v1/auth/login", json={"user_name": name, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def _assert_redacted(record: dict) -> None:
    assert "password" not in record
    assert "hashed_password" not in record
    assert "role" not in record


class TestRegister:
    def test_role_in_body_is_ignored(self, api_client: ApiContext) -> None:
        data = _register(api_client, "mallory", role="admin")
        _assert_redacted(data)
        token = _login(api_client, "mallory")
        resp = api_client.client.delete("/api/v1/resources/admin/1", headers=_h(token))
        assert resp.status_code == 403

    def test_duplicate_name_conflict(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"user_name": "alice", "email": "other-alice@example.com", "password": "pw"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_password_limit_counts_bytes(self, api_client: ApiContext) -> None:
        # 72 characters, 144 bytes in UTF-8
        resp = api_client.client.post(
            "/api/v1/users",
            json={"user_name": "accent", "email": "accent@example.com", "password": "é" * 72},
        )
        assert resp.status_code == 400
        assert "72 bytes: password" in resp.json()["error"]["message"]

    def test_multibyte_password_within_limit(self, api_client: ApiContext) -> None:
        _register(api_client, "accent-ok", password="é" * 36)
        _login(api_client, "accent-ok", "é" * 36)

    def test_bad_email(self, api_client: ApiContext) -> None:
        resp = api_client.client.post(
            "/api/v1/users", json={"user_name": "nomail", "email": "not-an-email", "password": "pw"}
        )
        assert resp.status_code == 400
        assert ": email" in resp.json()["error"]["message"]


class TestRead:
    def test_list_is_redacted(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users")
        assert resp.status_code == 200
        users = resp.json()
        assert {"admin", "alice", "bob"} <= {u["user_name"] for u in users}
        for u in users:
            _assert_redacted(u)

    def test_get_one(self, api_client: ApiContext) -> None:
        resp = api_client.client.get(f"/api/v1/users/{api_client.admin_id}")
        assert resp.status_code == 200
        assert resp.json()["user_name"] == "admin"
        _assert_redacted(resp.json())

    def test_get_missing(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/999999")
        assert resp.status_code == 404

    def test_token_check(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/token", headers=_h(api_client.bob_token))
        assert resp.status_code == 200
        assert resp.json()["id"] == api_client.bob_id
        _assert_redacted(resp.json())

    def test_token_check_unauthenticated(self, api_client: ApiContext) -> None:
        resp = api_client.client.get("/api/v1/users/token")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"


class TestLogin:
    def test_success(self, api_client: ApiContext) -> None:
        resp = api_client.client.post("/api/v1/auth/login", json={"user_name": "alice", "password": "secret123"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] > 0
        assert body["user"]["id"] == api_client.alice_id
        _assert_redacted(body["user"])
        assert resp.headers["Cache-Control"] == "no-store"

    @pytest.mark.parametrize(
        "user_name, password",
        [("alice", "wrong-password"), ("nobody", "secret123")],
    )
    def test_failure_is_uniform(self, api_client: ApiContext, user_name: str, password: str) -> None:
        resp = api_client.client.post("/api/v1/auth/login", json={"user_name": user_name, "password": password})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"


class TestSelfService:
    def test_update_current_user(self, api_client: ApiContext) -> None:
        _register(api_client, "carol")
        token = _login(api_client, "carol")
        resp = api_client.client.put("/api/v1/users", json={"email": "carol@new.example.com"}, headers=_h(token))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "carol@new.example.com"
        _assert_redacted(resp.json()["data"])

    def test_password_change_takes_effect(self, api_client: ApiContext) -> None:
        _register(api_client, "dave")
        token = _login(api_client, "dave")
        resp = api_client.client.put("/api/v1/users", json={"password": "changed-pw"}, headers=_h(token))
        assert resp.status_code == 200
        _login(api_client, "dave", "changed-pw")

    def test_update_rejects_password_over_72_bytes(self, api_client: ApiContext) -> None:
        resp = api_client.client.put("/api/v1/users", json={"password": "ü" * 40}, headers=_h(api_client.bob_token))
        assert resp.status_code == 400
        _login(api_client, "bob", "secret123")

    def test_update_requires_token(self, api_client: ApiContext) -> None:
        assert api_client.client.put("/api/v1/users", json={"email": "x@example.com"}).status_code == 401

    def test_delete_removes_resources_and_invalidates_token(self, api_client: ApiContext) -> None:
        created = _register(api_client, "erin")
        token = _login(api_client, "erin")
        resp = api_client.client.post(
            "/api/v1/resources",
            data={"name": "Erin's cat", "weight": "3", "birthdate": "2019-09-09", "lat": "5", "lng": "5"},
            headers=_h(token),
        )
        resource_id = resp.json()["data"]["id"]

        resp = api_client.client.delete("/api/v1/users", headers=_h(token))
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == created["id"]

        assert api_client.client.get(f"/api/v1/resources/{resource_id}").status_code == 404
        assert api_client.client.get("/api/v1/users/token", headers=_h(token)).status_code == 401
        assert api_client.client.get(f"/api/v1/users/{created['id']}").status_code == 404
