"""Tests for the /api/users endpoints."""

from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestGetProfile:
    def test_requires_auth(self, client: TestClient):
        """Profile should require a session."""
        response = client.get("/api/users/me")
        assert response.status_code == 401
        assert response.json()["code"] == "no_token"

    def test_returns_sanitized_profile(self, client: TestClient, registered: dict):
        """The profile should not include password material."""
        response = client.get("/api/users/me", headers=_auth(registered["token"]))
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == registered["user"]["id"]
        assert data["email"] == "ana@example.com"
        assert "createdAt" in data
        assert "passwordHash" not in data


class TestUpdateProfile:
    def test_update_name(self, client: TestClient, registered: dict):
        """The owner should be able to rename the account."""
        response = client.patch(
            "/api/users/me", json={"name": "Ana Maria"}, headers=_auth(registered["token"])
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Ana Maria"
        assert response.json()["email"] == "ana@example.com"

    def test_update_email_conflict(self, client: TestClient, registered: dict):
        """Taking another account's email should be a 409."""
        client.post(
            "/api/auth/register",
            json={"name": "Bob", "email": "bob@example.com", "password": "secret123"},
        )
        client.cookies.clear()
        response = client.patch(
            "/api/users/me", json={"email": "BOB@example.com"}, headers=_auth(registered["token"])
        )
        assert response.status_code == 409
        assert response.json()["code"] == "email_conflict"

    def test_update_password_then_login(self, client: TestClient, registered: dict):
        """A changed password should be the one that logs in."""
        client.patch(
            "/api/users/me", json={"password": "changed99"}, headers=_auth(registered["token"])
        )
        old = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        new = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "changed99"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_empty_update_rejected(self, client: TestClient, registered: dict):
        """An update with no fields should be a 400."""
        response = client.patch("/api/users/me", json={}, headers=_auth(registered["token"]))
        assert response.status_code == 400
