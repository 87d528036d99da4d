"""
Authentication service implementation.

Orchestrates the credential store and the token service for the
register / login / status / logout flows.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from shared.config import Settings
from shared.models import AuthenticatedUser

from .exceptions import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidUserDataError,
    UserNotFoundError,
)
from .interfaces import ITokenService, IUserStore
from .models import (
    IssuedToken,
    LoginRequest,
    PublicUser,
    RegisterRequest,
    TokenClaims,
    UpdateProfileRequest,
    UserStatus,
)
from .store import EMAIL_PATTERN, normalize_email

logger = logging.getLogger(__name__)


class AuthService:
    """
    Server-side auth flows.

    Stateless apart from its collaborators: tokens are never tracked,
    so logout has nothing to revoke.
    """

    def __init__(self, store: IUserStore, tokens: ITokenService, settings: Settings):
        self._store = store
        self._tokens = tokens
        self._settings = settings

    @property
    def store(self) -> IUserStore:
        return self._store

    @property
    def tokens(self) -> ITokenService:
        return self._tokens

    async def register(self, request: RegisterRequest) -> tuple[PublicUser, IssuedToken]:
        """Create the account and sign a token for it."""
        user = await self._store.create(request.model_dump())
        issued = self._tokens.issue(user, self._settings.register_token_ttl_seconds)
        logger.info(f"Registered user {user.id}")
        return user, issued

    async def login(self, request: LoginRequest) -> tuple[PublicUser, IssuedToken]:
        """
        Check credentials and sign a token.

        Unknown email, wrong password and inactive accounts all raise the
        same InvalidCredentialsError.
        """
        email = normalize_email(request.email)
        if not email or not request.password:
            raise InvalidUserDataError("Email and password are required")
        if not EMAIL_PATTERN.match(email):
            raise InvalidUserDataError("Email format is invalid", field="email")

        user = await self._store.verify_credentials(email, request.password)
        if user is None:
            raise InvalidCredentialsError()

        ttl = (
            self._settings.remember_token_ttl_seconds
            if request.remember
            else self._settings.token_ttl_seconds
        )
        issued = self._tokens.issue(user, ttl)
        logger.info(f"User {user.id} logged in")
        return user, issued

    async def _load_active_user(self, claims: TokenClaims) -> PublicUser:
        user = await self._store.get_by_id(claims.sub)
        if user is None:
            raise UserNotFoundError(claims.sub)
        if user.status != UserStatus.ACTIVE:
            raise AccountInactiveError(user.id, user.status.value)
        return user

    async def resolve_session(
        self, token: Optional[str]
    ) -> tuple[PublicUser, Optional[IssuedToken]]:
        """
        Resolve a token to its user, rotating the token when near expiry.

        A failed rotation is logged and the current session kept.
        """
        claims = self._tokens.verify(token)
        user = await self._load_active_user(claims)

        refreshed: Optional[IssuedToken] = None
        try:
            refreshed = self._tokens.maybe_refresh(claims)
        except Exception:
            logger.exception(f"Token refresh failed for user {user.id}")

        return user, refreshed

    async def authenticate(self, token: Optional[str]) -> AuthenticatedUser:
        """Verify a token for a protected route; no rotation."""
        claims = self._tokens.verify(token)
        user = await self._load_active_user(claims)
        return AuthenticatedUser(
            id=user.id,
            email=user.email,
            name=user.name,
            issued_at=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims.exp, tz=timezone.utc),
        )

    async def update_profile(
        self, user_id: str, request: UpdateProfileRequest
    ) -> PublicUser:
        return await self._store.update(user_id, request.model_dump(exclude_none=True))

    async def logout(self, user_id: Optional[str] = None) -> None:
        if user_id:
            logger.info(f"User {user_id} logged out")
