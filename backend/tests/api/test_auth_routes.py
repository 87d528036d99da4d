"""Tests for the /api/auth endpoints."""

import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from tests.conftest import TEST_JWT_SECRET, create_test_token

DAY = 24 * 60 * 60


def _set_cookie_headers(response) -> list[str]:
    return response.headers.get_list("set-cookie")


class TestRegister:
    def test_register_success(self, client: TestClient, user_data: dict):
        """Registration should return the user, a token and set cookies."""
        response = client.post("/api/auth/register", json=user_data)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "ana@example.com"
        assert data["user"]["status"] == "active"
        assert "passwordHash" not in data["user"]
        assert "password" not in data["user"]
        assert data["expiresIn"] == 7 * DAY
        assert data["token"]

        assert client.cookies.get("auth-token") == data["token"]
        assert client.cookies.get("user-logged-in") == "true"
        assert "no-store" in response.headers["cache-control"]

    def test_auth_cookie_is_http_only(self, client: TestClient, user_data: dict):
        """The token cookie should be HTTP-only; the flag cookie readable."""
        response = client.post("/api/auth/register", json=user_data)
        cookies = _set_cookie_headers(response)

        token_cookie = next(c for c in cookies if c.startswith("auth-token="))
        flag_cookie = next(c for c in cookies if c.startswith("user-logged-in="))
        assert "httponly" in token_cookie.lower()
        assert "samesite=lax" in token_cookie.lower()
        assert "httponly" not in flag_cookie.lower()

    def test_register_duplicate_is_generic_409(self, client: TestClient, registered: dict, user_data: dict):
        """A taken email should give a 409 that does not echo the email."""
        response = client.post(
            "/api/auth/register", json={**user_data, "email": " ANA@Example.com "}
        )
        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "email_conflict"
        assert "ana@example.com" not in data["message"].lower()

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Ana", "email": "bad-email", "password": "secret123"},
            {"name": "Ana", "email": "ana@example.com", "password": "123"},
            {"name": "", "email": "ana@example.com", "password": "secret123"},
            {},
        ],
    )
    def test_register_invalid(self, client: TestClient, payload: dict):
        """Invalid input should return 400 with the uniform error body."""
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "invalid_user_data"
        assert data["message"]

    def test_register_malformed_body(self, client: TestClient):
        """A body that is not an object should be a 400."""
        response = client.post("/api/auth/register", json=["not", "an", "object"])
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"


class TestLogin:
    def test_login_success(self, client: TestClient, registered: dict):
        """Valid credentials should return the same user and a 1-day token."""
        response = client.post(
            "/api/auth/login", json={"email": " ANA@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == registered["user"]["id"]
        assert data["expiresIn"] == DAY
        assert client.cookies.get("auth-token") == data["token"]

    def test_login_remember(self, client: TestClient, registered: dict):
        """remember should extend the session to 30 days."""
        response = client.post(
            "/api/auth/login",
            json={"email": "ana@example.com", "password": "secret123", "remember": True},
        )
        assert response.json()["expiresIn"] == 30 * DAY
        claims = jwt.decode(response.json()["token"], TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["exp"] - claims["iat"] == 30 * DAY

    def test_login_records_bookkeeping(self, client: TestClient, registered: dict):
        """Each login should bump loginCount, and the response should show it."""
        client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        response = client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "secret123"}
        )
        assert response.json()["user"]["loginCount"] == 2
        assert response.json()["user"]["lastLoginAt"] is not None

    def test_wrong_password_and_unknown_email_identical(self, client: TestClient, registered: dict):
        """Both failures should return byte-identical 401 bodies."""
        wrong = client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"}
        )
        unknown = client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["message"] == "Invalid email or password"
        assert "auth-token" not in client.cookies

    def test_login_missing_fields(self, client: TestClient):
        """Missing fields should be a 400."""
        response = client.post("/api/auth/login", json={"email": "ana@example.com"})
        assert response.status_code == 400


class TestMe:
    def test_no_token(self, client: TestClient):
        """No credential at all should be 401 no_token."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Not authenticated",
            "code": "no_token",
        }
        assert response.headers["www-authenticate"].startswith("Bearer")

    def test_invalid_token(self, client: TestClient):
        """A bad token should be 401 token_invalid."""
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["code"] == "token_invalid"

    def test_expired_token(self, client: TestClient, registered: dict):
        """An expired token should be 401 token_invalid."""
        token = create_test_token(
            user_id=registered["user"]["id"], email="ana@example.com", expired=True
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["code"] == "token_invalid"

    def test_cookie_session(self, client: TestClient, user_data: dict):
        """The cookie set at registration should authenticate /me."""
        client.post("/api/auth/register", json=user_data)
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "ana@example.com"
        assert data["tokenRefreshed"] is False
        assert "no-store" in response.headers["cache-control"]

    def test_query_parameter_token(self, client: TestClient, registered: dict):
        """The token query parameter should work for streaming clients."""
        response = client.get("/api/auth/me", params={"token": registered["token"]})
        assert response.status_code == 200

    def test_cookie_takes_precedence(self, client: TestClient, user_data: dict):
        """A valid cookie should win over a bad Bearer header."""
        client.post("/api/auth/register", json=user_data)
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200

    def test_header_takes_precedence_over_query(self, client: TestClient, registered: dict):
        """A Bearer header should win over the query parameter."""
        response = client.get(
            "/api/auth/me",
            params={"token": "garbage"},
            headers={"Authorization": f"Bearer {registered['token']}"},
        )
        assert response.status_code == 200

    def test_near_expiry_token_rotated(self, client: TestClient, registered: dict):
        """A token inside the refresh window should be replaced."""
        token = create_test_token(
            user_id=registered["user"]["id"],
            email="ana@example.com",
            name="Ana",
            lifetime=timedelta(minutes=5),
            issued_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["tokenRefreshed"] is True
        assert data["token"] and data["token"] != token
        assert data["expiresIn"] == 300
        assert client.cookies.get("auth-token") == data["token"]

        claims = jwt.decode(data["token"], TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == registered["user"]["id"]
        assert claims["email"] == "ana@example.com"

    def test_deleted_user(self, client: TestClient, container, registered: dict):
        """A token for a deleted account should be 404."""
        asyncio.run(container.store.delete(registered["user"]["id"]))
        response = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {registered['token']}"}
        )
        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"

    def test_disabled_user(self, client: TestClient, container, registered: dict):
        """A token for a disabled account should be 403."""
        asyncio.run(container.store.set_status(registered["user"]["id"], "disabled"))
        response = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {registered['token']}"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "account_inactive"


class TestLogout:
    def test_logout_clears_cookies(self, client: TestClient, user_data: dict):
        """Logout should expire both cookies."""
        client.post("/api/auth/register", json=user_data)
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out"}
        cookies = _set_cookie_headers(response)
        assert any(c.startswith("auth-token=") and "Max-Age=0" in c for c in cookies)
        assert any(c.startswith("user-logged-in=") and "Max-Age=0" in c for c in cookies)
        assert client.get("/api/auth/me").status_code == 401

    def test_logout_without_session(self, client: TestClient):
        """Logout should succeed even when not logged in."""
        response = client.post("/api/auth/logout")
        assert response.status_code == 200

    def test_token_survives_logout(self, client: TestClient, registered: dict):
        """Tokens are stateless: a copy kept elsewhere still works after logout."""
        client.post("/api/auth/logout")
        response = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {registered['token']}"}
        )
        assert response.status_code == 200


UNUSUAL_EMAILS = ["a..b@example.com", ".ana@example.com", "ana@host.local"]


class TestLooseEmailAccounts:
    """Addresses the store accepts but strict RFC validators reject."""

    @pytest.mark.parametrize("email", UNUSUAL_EMAILS)
    def test_profile_available(self, client: TestClient, email: str):
        """Token-authenticated routes should serve these accounts."""
        register = client.post(
            "/api/auth/register", json={"name": "Ana", "email": email, "password": "secret123"}
        )
        assert register.status_code == 201
        client.cookies.clear()

        response = client.get(
            "/api/users/me", headers={"Authorization": f"Bearer {register.json()['token']}"}
        )
        assert response.status_code == 200
        assert response.json()["email"] == email

    @pytest.mark.parametrize("email", UNUSUAL_EMAILS)
    def test_logout_clears_cookies(self, client: TestClient, email: str):
        """Logout should still expire the session cookies."""
        client.post(
            "/api/auth/register", json={"name": "Ana", "email": email, "password": "secret123"}
        )
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        cookies = _set_cookie_headers(response)
        assert any(c.startswith("auth-token=") and "Max-Age=0" in c for c in cookies)
        assert client.get("/api/auth/me").status_code == 401
