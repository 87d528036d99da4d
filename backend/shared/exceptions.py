"""
Base exception classes for the Parley backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class ParleyError(Exception):
    """
    Base exception for all Parley errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "success": False,
            "message": self.message,
            "code": self.code,
        }


class NotFoundError(ParleyError):
    """Resource not found."""

    status_code = 404


class ValidationError(ParleyError):
    """Input validation failed."""

    status_code = 400


class AuthenticationError(ParleyError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(ParleyError):
    """Authorization failed (account not allowed to proceed)."""

    status_code = 403


class ConflictError(ParleyError):
    """Resource already exists."""

    status_code = 409


class StorageError(ParleyError):
    """Error reading from or writing to a storage backend."""

    def __init__(
        self,
        message: str,
        backend: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code or "STORAGE_ERROR", details)
        self.backend = backend
        self.details["backend"] = backend
