"""
Session authentication dependencies.

Extracts the session token from cookie, Bearer header or query
parameter and resolves it to the current user.
"""

from typing import Optional
from fastapi import Depends, Request

from modules.auth.cookies import extract_token
from modules.auth.service import AuthService
from shared.config import Settings
from shared.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from shared.models import AuthenticatedUser

from ..dependencies import get_app_settings, get_auth_service


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    token = extract_token(request, settings)
    return await service.authenticate(token)


async def get_optional_user(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> Optional[AuthenticatedUser]:
    """
    Dependency that optionally extracts user if authenticated.

    Use this for endpoints that work with or without authentication.
    """
    token = extract_token(request, settings)
    if not token:
        return None

    try:
        return await service.authenticate(token)
    except (AuthenticationError, AuthorizationError, NotFoundError):
        return None


# Type aliases for cleaner route definitions
RequireAuth = Depends(get_current_user)
OptionalAuth = Depends(get_optional_user)
