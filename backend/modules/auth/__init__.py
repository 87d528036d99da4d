"""
Authentication module.

Handles the credential store, password hashing, session tokens, cookie
propagation and the client-side auth facade.

Public API:
- IUserStore / IStorageBackend / ITokenService: interfaces
- UserStore, TokenService, PasswordHasher, AuthService: implementations
- PublicUser, UserRecord, TokenClaims: models
- Auth exceptions: InvalidTokenError, DuplicateEmailError, etc.
"""

from .interfaces import IPasswordHasher, IStorageBackend, ITokenService, IUserStore
from .models import (
    IssuedToken,
    PublicUser,
    TokenClaims,
    UserRecord,
    UserStatus,
)
from .passwords import PasswordHasher
from .service import AuthService
from .store import UserStore, normalize_email
from .tokens import TokenService
from .exceptions import (
    AccountInactiveError,
    DuplicateEmailError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidUserDataError,
    MissingTokenError,
    SessionExpiredError,
    UserNotFoundError,
)

__all__ = [
    # Interfaces
    "IPasswordHasher",
    "IStorageBackend",
    "ITokenService",
    "IUserStore",
    # Implementations
    "AuthService",
    "PasswordHasher",
    "TokenService",
    "UserStore",
    "normalize_email",
    # Models
    "IssuedToken",
    "PublicUser",
    "TokenClaims",
    "UserRecord",
    "UserStatus",
    # Exceptions
    "AccountInactiveError",
    "DuplicateEmailError",
    "ExpiredTokenError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "InvalidUserDataError",
    "MissingTokenError",
    "SessionExpiredError",
    "UserNotFoundError",
]
