"""
tests/test_api_routes.py -- Integration tests for the auth and user routes.

These tests run the full stack: FastAPI routing -> session dependency ->
services -> AccountStore -> response envelope. TestClient keeps cookies
between calls, so a register/login response's session cookie authenticates
the following requests exactly as a browser would.

Fixtures used (from conftest.py):
  - api_client: (client, mailer, clock) -- fresh store, FakeMailer, FakeClock
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.tokens import SESSION_COOKIE, create_session_token, decode_session_token

DAY = 24 * 3600


def _register(client: TestClient, email: str = "a@x.com", password: str = "p1", name: str = "A"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def _set_cookie_headers(resp) -> list[str]:
    return [v for k, v in resp.headers.multi_items() if k.lower() == "set-cookie"]


class TestRegisterRoute:
    def test_register_sets_session_cookie(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = _register(client)
        assert resp.status_code == 200, resp.text
        assert resp.json()["success"] is True
        assert resp.headers["Cache-Control"] == "no-store"
        cookie = next(h for h in _set_cookie_headers(resp) if h.startswith(f"{SESSION_COOKIE}="))
        assert "httponly" in cookie.lower()
        assert f"max-age={7 * DAY}" in cookie.lower()

    def test_register_sends_no_email(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        assert mailer.sent == []

    def test_register_duplicate(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        resp = _register(client, name="B", password="p2")
        assert resp.status_code == 409
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "conflict"
        assert body["message"]

    def test_register_missing_fields(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = client.post("/api/auth/register", json={"email": "a@x.com"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Missing details", "code": "validation_error"}

    def test_register_password_over_72_bytes(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = _register(client, password="x" * 100)
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"
        assert SESSION_COOKIE not in resp.cookies

    def test_register_malformed_body(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = client.post(
            "/api/auth/register", content="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"


class TestLoginRoute:
    def test_login_success(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        client.cookies.clear()
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "p1"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["success"] is True
        assert client.cookies.get(SESSION_COOKIE)

    def test_login_and_register_tokens_share_account_id(self, api_client) -> None:
        client, _mailer, _clock = api_client
        reg = _register(client)
        login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "p1"})
        reg_id = decode_session_token(reg.cookies[SESSION_COOKIE])["account_id"]
        login_id = decode_session_token(login.cookies[SESSION_COOKIE])["account_id"]
        assert reg_id == login_id

    def test_login_wrong_password(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        client.cookies.clear()
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "bad_credentials"
        assert SESSION_COOKIE not in resp.cookies

    def test_login_unknown_email(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = client.post("/api/auth/login", json={"email": "ghost@x.com", "password": "p1"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "bad_credentials"

    def test_login_missing_fields(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"


class TestSessionRequired:
    """Protected routes reject every kind of bad session before the handler runs."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/auth/is-auth"),
            ("post", "/api/auth/send-verify-otp"),
            ("post", "/api/auth/verify-account"),
            ("get", "/api/user/data"),
        ],
    )
    def test_no_cookie(self, api_client, method: str, path: str) -> None:
        client, mailer, _clock = api_client
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Not authorized. Login again.", "code": "unauthorized"}
        assert mailer.sent == []

    def test_malformed_cookie(self, api_client) -> None:
        client, _mailer, _clock = api_client
        client.cookies.set(SESSION_COOKIE, "garbage")
        assert client.get("/api/auth/is-auth").status_code == 401

    def test_forged_cookie(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        token = client.cookies.get(SESSION_COOKIE)
        client.cookies.clear()
        head, payload, signature = token.split(".")
        client.cookies.set(SESSION_COOKIE, f"{head}.{payload}.{signature[::-1]}")
        assert client.get("/api/auth/is-auth").status_code == 401

    def test_valid_cookie(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        resp = client.get("/api/auth/is-auth")
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_bearer_header(self, api_client) -> None:
        client, _mailer, _clock = api_client
        reg = _register(client)
        token = reg.cookies[SESSION_COOKIE]
        client.cookies.clear()
        resp = client.get("/api/auth/is-auth", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_logout_clears_cookie(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert client.get("/api/auth/is-auth").status_code == 401


class TestUserData:
    def test_returns_name_and_verification_state(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client, name="Alice")
        resp = client.get("/api/user/data")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "userData": {"name": "Alice", "isAccountVerified": False}}

    def test_token_for_missing_account(self, api_client) -> None:
        client, _mailer, _clock = api_client
        client.cookies.set(SESSION_COOKIE, create_session_token(9999))
        resp = client.get("/api/user/data")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"


class TestVerificationRoutes:
    def test_worked_example(self, api_client) -> None:
        """register -> login -> send-verify-otp -> wrong code -> right code after expiry."""
        client, mailer, clock = api_client

        assert _register(client).json()["success"] is True
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "p1"})
        assert resp.status_code == 200

        resp = client.post("/api/auth/send-verify-otp")
        assert resp.status_code == 200, resp.text
        code = mailer.last_code("verify", "a@x.com")
        assert len(code) == 6 and code.isdigit()

        wrong = "000000" if code != "000000" else "111111"
        resp = client.post("/api/auth/verify-account", json={"otp": wrong})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_code"

        clock.advance(DAY + 1)
        resp = client.post("/api/auth/verify-account", json={"otp": code})
        assert resp.status_code == 400
        assert resp.json()["code"] == "expired_code"
        assert client.get("/api/user/data").json()["userData"]["isAccountVerified"] is False

    def test_verify_success_then_reuse(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        client.post("/api/auth/send-verify-otp")
        code = mailer.last_code("verify", "a@x.com")

        resp = client.post("/api/auth/verify-account", json={"otp": code})
        assert resp.status_code == 200
        assert client.get("/api/user/data").json()["userData"]["isAccountVerified"] is True

        resp = client.post("/api/auth/verify-account", json={"otp": code})
        assert resp.json()["code"] == "invalid_code"

    def test_send_verify_when_already_verified(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        client.post("/api/auth/send-verify-otp")
        client.post("/api/auth/verify-account", json={"otp": mailer.last_code("verify", "a@x.com")})
        resp = client.post("/api/auth/send-verify-otp")
        assert resp.status_code == 409

    def test_verify_empty_otp(self, api_client) -> None:
        client, _mailer, _clock = api_client
        _register(client)
        resp = client.post("/api/auth/verify-account", json={"otp": ""})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_delivery_failure(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        mailer.fail = True
        resp = client.post("/api/auth/send-verify-otp")
        assert resp.status_code == 502
        assert resp.json()["code"] == "delivery_failed"


class TestPasswordResetRoutes:
    def test_reset_flow(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        client.cookies.clear()

        resp = client.post("/api/auth/send-reset-otp", json={"email": "a@x.com"})
        assert resp.status_code == 200, resp.text
        code = mailer.last_code("reset", "a@x.com")

        resp = client.post(
            "/api/auth/reset-password", json={"email": "a@x.com", "otp": code, "newPassword": "p2"}
        )
        assert resp.status_code == 200, resp.text

        old = client.post("/api/auth/login", json={"email": "a@x.com", "password": "p1"})
        assert old.status_code == 401
        new = client.post("/api/auth/login", json={"email": "a@x.com", "password": "p2"})
        assert new.status_code == 200

    def test_send_reset_unknown_email(self, api_client) -> None:
        client, mailer, _clock = api_client
        resp = client.post("/api/auth/send-reset-otp", json={"email": "ghost@x.com"})
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"
        assert mailer.sent == []

    def test_reset_expired_code(self, api_client) -> None:
        client, mailer, clock = api_client
        _register(client)
        client.post("/api/auth/send-reset-otp", json={"email": "a@x.com"})
        clock.advance(16 * 60)
        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "a@x.com", "otp": mailer.last_code("reset", "a@x.com"), "newPassword": "p2"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "expired_code"

    def test_reset_password_over_72_bytes(self, api_client) -> None:
        client, mailer, _clock = api_client
        _register(client)
        client.post("/api/auth/send-reset-otp", json={"email": "a@x.com"})
        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "a@x.com", "otp": mailer.last_code("reset", "a@x.com"), "newPassword": "x" * 100},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_reset_missing_fields(self, api_client) -> None:
        client, _mailer, _clock = api_client
        resp = client.post("/api/auth/reset-password", json={"email": "a@x.com"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"


def test_unknown_route_uses_error_envelope(api_client) -> None:
    client, _mailer, _clock = api_client
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
