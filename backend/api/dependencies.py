"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Swapping the credential store medium only requires changing the
``store_backend`` setting; nothing here reaches for module-level data.
"""

from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IPasswordHasher, IStorageBackend, ITokenService
    from modules.auth.service import AuthService
    from modules.auth.store import UserStore


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings
        self._backend: "IStorageBackend | None" = None
        self._hasher: "IPasswordHasher | None" = None
        self._store: "UserStore | None" = None
        self._tokens: "ITokenService | None" = None
        self._auth_service: "AuthService | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def backend(self) -> "IStorageBackend":
        """Get the storage backend selected by configuration."""
        if self._backend is None:
            from modules.auth.backends import create_backend
            self._backend = create_backend(self.settings)
        return self._backend

    @property
    def hasher(self) -> "IPasswordHasher":
        if self._hasher is None:
            from modules.auth.passwords import PasswordHasher
            self._hasher = PasswordHasher(rounds=self.settings.bcrypt_rounds)
        return self._hasher

    @property
    def store(self) -> "UserStore":
        """Get the credential store instance."""
        if self._store is None:
            from modules.auth.store import UserStore
            self._store = UserStore(
                backend=self.backend,
                hasher=self.hasher,
                cache_ttl=self.settings.user_cache_ttl_seconds,
            )
        return self._store

    @property
    def tokens(self) -> "ITokenService":
        """Get the token service instance."""
        if self._tokens is None:
            from modules.auth.tokens import TokenService
            self._tokens = TokenService(
                secret=self.settings.jwt_secret,
                algorithm=self.settings.jwt_algorithm,
                refresh_window=self.settings.token_refresh_window_seconds,
            )
        return self._tokens

    @property
    def auth(self) -> "AuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(
                store=self.store,
                tokens=self.tokens,
                settings=self.settings,
            )
        return self._auth_service

    async def startup(self) -> None:
        await self.store.init()

    async def shutdown(self) -> None:
        if self._store is not None:
            await self._store.close()

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different dependencies.
        """
        self._backend = None
        self._hasher = None
        self._store = None
        self._tokens = None
        self._auth_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a container (tests and alternate entrypoints)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_app_settings() -> Settings:
    """FastAPI dependency for settings."""
    return get_container().settings


def get_auth_service() -> "AuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_user_store() -> "UserStore":
    """FastAPI dependency for the credential store."""
    return get_container().store
