"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import pytest
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt  # PyJWT
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import ServiceContainer, reset_container
from modules.auth.backends import MemoryBackend
from modules.auth.passwords import PasswordHasher
from modules.auth.store import UserStore
from modules.auth.tokens import TokenService
from shared.config import Settings


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

# Lowest cost bcrypt accepts; keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "store_backend": "memory",
        "jwt_secret": TEST_JWT_SECRET,
        "bcrypt_rounds": TEST_BCRYPT_ROUNDS,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    name: str = "Test User",
    expired: bool = False,
    lifetime: timedelta = timedelta(hours=1),
    secret: str = TEST_JWT_SECRET,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Create a test session token.

    Args:
        user_id: Subject claim
        email: Email claim
        name: Display name claim
        expired: If True, the token expired an hour ago
        lifetime: exp - iat for a non-expired token
        secret: Signing secret
        issued_at: Issue time (defaults to now)

    Returns:
        JWT token string
    """
    now = issued_at or datetime.now(timezone.utc)
    if expired:
        iat = now - lifetime - timedelta(hours=1)
        exp = now - timedelta(hours=1)
    else:
        iat = now
        exp = now + lifetime

    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(autouse=True)
def reset_service_container():
    """Reset the service container singleton before and after each test."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=TEST_JWT_SECRET)


@pytest.fixture
def store(hasher: PasswordHasher) -> UserStore:
    """A credential store over a fresh in-memory backend."""
    return UserStore(backend=MemoryBackend(), hasher=hasher)


@pytest.fixture
def container(settings: Settings) -> ServiceContainer:
    return ServiceContainer(settings=settings)


@pytest.fixture
def app(container: ServiceContainer):
    return create_app(container)


@pytest.fixture
def client(app) -> TestClient:
    """Test client over an app backed by an in-memory store."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_data() -> dict[str, str]:
    return {"name": "Ana", "email": "ana@example.com", "password": "secret123"}


@pytest.fixture
def registered(client: TestClient, user_data: dict[str, str]) -> dict:
    """Register ``user_data`` through the API and return the response body."""
    response = client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201
    client.cookies.clear()
    return response.json()
