"""
Centralized configuration for the Parley backend.

All settings are loaded from environment variables with sensible defaults.
Auth-specific settings are namespaced (e.g., JWT_*, TOKEN_*, STORE_*).
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Parley API"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Session tokens
    jwt_secret: str = "parley-dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 60 * 60 * 24  # 1 day
    remember_token_ttl_seconds: int = 60 * 60 * 24 * 30  # 30 days
    register_token_ttl_seconds: int = 60 * 60 * 24 * 7  # 7 days
    token_refresh_window_seconds: int = 15 * 60

    # Cookies
    auth_cookie_name: str = "auth-token"
    logged_in_cookie_name: str = "user-logged-in"

    # Credential store
    store_backend: Literal["file", "memory", "sqlite", "redis"] = "file"
    users_file: str = "data/users.json"
    sqlite_path: str = "data/users.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_key: str = "parley:users"
    user_cache_ttl_seconds: float = 60.0

    # Password hashing
    bcrypt_rounds: int = 10

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies are only set in production."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
