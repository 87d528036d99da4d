"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ParleyError,
    ValidationError,
)


class InvalidTokenError(AuthenticationError):
    """Raised when a token is malformed or its signature does not match."""

    def __init__(self, message: str = "Invalid token. Please log in again."):
        super().__init__(message, code="token_invalid")


class ExpiredTokenError(AuthenticationError):
    """Raised when a token has reached its expiry instant."""

    def __init__(self, message: str = "Your session has expired. Please log in again."):
        super().__init__(message, code="token_invalid")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="no_token")


class InvalidCredentialsError(AuthenticationError):
    """Raised when email/password do not match an active account.

    The message is identical for unknown emails and wrong passwords.
    """

    def __init__(self):
        super().__init__("Invalid email or password", code="invalid_credentials")


class InvalidUserDataError(ValidationError):
    """Raised when user input fails validation."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message,
            code="invalid_user_data",
            details={"field": field} if field else None,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user id or email does not resolve to a record."""

    def __init__(self, user_ref: str):
        super().__init__(
            "User not found",
            code="user_not_found",
            details={"user_ref": user_ref},
        )


class DuplicateEmailError(ConflictError):
    """Raised when a normalized email is already taken.

    The client-facing message stays generic so it cannot be used to probe
    which emails are registered.
    """

    def __init__(self, email: str):
        super().__init__(
            "Unable to complete the request with the provided details",
            code="email_conflict",
            details={"email": email},
        )


class AccountInactiveError(AuthorizationError):
    """Raised when a disabled or suspended account is used."""

    def __init__(self, user_id: str, status: str):
        super().__init__(
            "Account is not active",
            code="account_inactive",
            details={"user_id": user_id, "status": status},
        )


class SessionExpiredError(ParleyError):
    """Raised client-side when a silent refresh could not restore the session."""

    status_code = 401

    def __init__(self, message: str = "Your session has ended. Please log in again."):
        super().__init__(message, code="session_expired")
