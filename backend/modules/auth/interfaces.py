"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with fakes and swapping storage
backends through configuration.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from .models import IssuedToken, PublicUser, TokenClaims, UserStatus


@runtime_checkable
class IStorageBackend(Protocol):
    """
    Persistence medium for user records.

    Backends move whole collections of serialized records; uniqueness,
    caching and validation live in the credential store above them.
    """

    name: str

    async def init(self) -> None:
        """Prepare the medium (create files, tables, connections)."""
        ...

    async def load_all(self) -> list[dict[str, Any]]:
        """
        Read every stored record.

        Returns:
            List of serialized user records (may be empty)

        Raises:
            StorageError: If the medium cannot be read
        """
        ...

    async def save_all(self, records: list[dict[str, Any]]) -> None:
        """
        Replace the stored collection.

        Raises:
            StorageError: If the medium cannot be written
            ConflictError: If the medium rejects a duplicate email
        """
        ...

    async def close(self) -> None:
        """Release connections or handles."""
        ...


@runtime_checkable
class IPasswordHasher(Protocol):
    """One-way password transform with a matching verify."""

    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, plaintext: str, digest: str) -> bool:
        ...


@runtime_checkable
class ITokenService(Protocol):
    """Issue/verify/rotate signed session tokens."""

    def issue(self, user: PublicUser | TokenClaims, ttl: int) -> IssuedToken:
        ...

    def verify(self, token: Optional[str]) -> TokenClaims:
        ...

    def maybe_refresh(
        self, claims: TokenClaims, now: Optional[int] = None
    ) -> Optional[IssuedToken]:
        ...


@runtime_checkable
class IUserStore(Protocol):
    """
    Interface for credential store operations.

    All read operations return sanitized users.
    """

    async def exists(self, email: str) -> bool:
        ...

    async def get_by_email(self, email: str) -> Optional[PublicUser]:
        ...

    async def get_by_id(self, user_id: str) -> Optional[PublicUser]:
        ...

    async def create(self, data: dict[str, Any]) -> PublicUser:
        """
        Create a user.

        Raises:
            ValidationError: malformed email, blank name or short password
            ConflictError: normalized email already registered
        """
        ...

    async def update(self, user_id: str, patch: dict[str, Any]) -> PublicUser:
        ...

    async def delete(self, user_id: str) -> None:
        ...

    async def verify_credentials(self, email: str, password: str) -> Optional[PublicUser]:
        """
        Check credentials.

        Returns:
            The user on success; None for unknown email, inactive account
            or wrong password alike
        """
        ...

    async def reset_password(self, email: str, new_password: str) -> None:
        ...

    async def set_status(self, user_id: str, status: UserStatus | str) -> PublicUser:
        ...
