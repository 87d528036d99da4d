"""
Session token issuance and verification.

Tokens are compact HS256 JWTs carrying the user's id, email and name.
Nothing is stored server-side: a token is valid while its signature
matches the server secret and its expiry has not been reached.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import jwt

from .exceptions import ExpiredTokenError, InvalidTokenError, MissingTokenError
from .models import IssuedToken, PublicUser, TokenClaims

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


class TokenService:
    """
    Issues, verifies and rotates session tokens.

    Implements ITokenService.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        refresh_window: int = 15 * 60,
    ):
        if not secret:
            raise ValueError("A token signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._refresh_window = refresh_window

    @property
    def refresh_window(self) -> int:
        return self._refresh_window

    def issue(self, user: PublicUser | TokenClaims, ttl: int) -> IssuedToken:
        """Sign a token for a user (or re-sign existing claims) valid for ``ttl`` seconds."""
        if ttl <= 0:
            raise ValueError("Token ttl must be positive")

        if isinstance(user, TokenClaims):
            subject, email, name = user.sub, user.email, user.name
        else:
            subject, email, name = user.id, user.email, user.name

        issued_at = _now()
        claims = TokenClaims(
            sub=subject,
            email=email,
            name=name,
            iat=issued_at,
            exp=issued_at + ttl,
        )
        token = jwt.encode(claims.model_dump(), self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, claims=claims)

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            MissingTokenError: token is empty
            InvalidTokenError: bad signature or malformed token
            ExpiredTokenError: current time is at or past ``exp``
        """
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidSignatureError:
            logger.warning("Rejected token with invalid signature")
            raise InvalidTokenError()
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected malformed token: {e}")
            raise InvalidTokenError()

        try:
            return TokenClaims(**payload)
        except ValueError:
            raise InvalidTokenError()

    def needs_refresh(self, claims: TokenClaims, now: Optional[int] = None) -> bool:
        """Whether the token is inside the refresh window."""
        current = _now() if now is None else now
        return claims.exp - current < self._refresh_window

    def maybe_refresh(
        self,
        claims: TokenClaims,
        now: Optional[int] = None,
    ) -> Optional[IssuedToken]:
        """
        Reissue a token that is close to expiry.

        The new token keeps the subject claims and the original lifetime,
        with fresh ``iat``/``exp``. Returns None when no refresh is due.
        """
        if not self.needs_refresh(claims, now):
            return None
        logger.debug(f"Reissuing token for user {claims.sub}")
        return self.issue(claims, claims.lifetime)
