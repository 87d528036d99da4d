"""
Shared infrastructure for Parley backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- exceptions: Base exception classes
- repository: Base repository over a storage backend

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .exceptions import (
    ParleyError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    StorageError,
)
from .models import AuthenticatedUser

__all__ = [
    "Settings",
    "get_settings",
    "ParleyError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "StorageError",
    "AuthenticatedUser",
]
