"""
User-related endpoints.

Provides endpoints for the current user's profile.
"""

from fastapi import APIRouter, Depends

from modules.auth.exceptions import UserNotFoundError
from modules.auth.models import PublicUser, UpdateProfileRequest
from modules.auth.service import AuthService
from shared.models import AuthenticatedUser

from ..dependencies import get_auth_service
from ..middleware.auth import get_current_user

router = APIRouter()


@router.get("/me", response_model=PublicUser)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Get the current user's profile.

    Requires authentication.
    """
    profile = await service.store.get_by_id(user.id)
    if profile is None:
        raise UserNotFoundError(user.id)
    return profile


@router.patch("/me", response_model=PublicUser)
async def update_current_user_profile(
    request: UpdateProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Update the current user's name, email or password.

    A new email must not belong to another account.
    """
    return await service.update_profile(user.id, request)
