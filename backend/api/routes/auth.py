"""
Authentication endpoints.

Register, log in, check the current session and log out. Successful
register/login responses set the session cookies and also return the
token in the body for clients that keep their own copy.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from modules.auth.cookies import (
    apply_no_store,
    clear_session_cookies,
    extract_token,
    set_session_cookies,
)
from modules.auth.models import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SessionStatusResponse,
)
from modules.auth.service import AuthService
from shared.config import Settings
from shared.models import AuthenticatedUser

from ..dependencies import get_app_settings, get_auth_service
from ..middleware.auth import get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Create an account and start a session for it.

    400 on invalid input, 409 (generic message) when the email is taken.
    """
    user, issued = await service.register(request)
    set_session_cookies(response, issued.token, issued.expires_in, settings)
    apply_no_store(response)
    return AuthResponse(
        message="Registration successful",
        user=user,
        token=issued.token,
        expires_in=issued.expires_in,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Log in with email and password.

    ``remember`` extends the session lifetime. 401 responses are
    identical for unknown emails and wrong passwords.
    """
    user, issued = await service.login(request)
    set_session_cookies(response, issued.token, issued.expires_in, settings)
    apply_no_store(response)
    return AuthResponse(
        message="Login successful",
        user=user,
        token=issued.token,
        expires_in=issued.expires_in,
    )


@router.get("/me", response_model=SessionStatusResponse)
async def me(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> SessionStatusResponse:
    """
    Return the user behind the current session.

    The token is read from the cookie, Bearer header or ``token`` query
    parameter. When it is close to expiry a fresh token is issued, set
    as the cookie and returned in the body.
    """
    apply_no_store(response)
    token = extract_token(request, settings)
    user, refreshed = await service.resolve_session(token)

    if refreshed is None:
        return SessionStatusResponse(user=user, token_refreshed=False)

    set_session_cookies(response, refreshed.token, refreshed.expires_in, settings)
    return SessionStatusResponse(
        user=user,
        token_refreshed=True,
        token=refreshed.token,
        expires_in=refreshed.expires_in,
    )


@router.post("/logout")
async def logout(
    response: Response,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """
    Clear the session cookies.

    Tokens are stateless, so a copy held elsewhere stays valid until it
    expires.
    """
    await service.logout(user.id if user else None)
    clear_session_cookies(response, settings)
    apply_no_store(response)
    return {"success": True, "message": "Logged out"}
