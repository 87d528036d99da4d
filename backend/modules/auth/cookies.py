"""
Session propagation over HTTP.

The token travels in an HTTP-only cookie set by the server and, as a
fallback for clients that cannot rely on cookies, in the response body.
"""

from typing import Optional

from fastapi import Request, Response

from shared.config import Settings

TOKEN_QUERY_PARAM = "token"
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, must-revalidate",
    "Pragma": "no-cache",
}


def extract_token(request: Request, settings: Settings) -> Optional[str]:
    """
    Find the session token on a request.

    Precedence, first match wins: auth cookie, ``Authorization: Bearer``
    header, ``token`` query parameter (for streaming connections that
    cannot send headers or cookies).
    """
    cookie = request.cookies.get(settings.auth_cookie_name)
    if cookie:
        return cookie

    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        bearer = header[len("Bearer "):].strip()
        if bearer:
            return bearer

    return request.query_params.get(TOKEN_QUERY_PARAM) or None


def set_session_cookies(
    response: Response, token: str, max_age: int, settings: Settings
) -> None:
    """Set the HTTP-only token cookie and the readable logged-in flag."""
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    response.set_cookie(
        settings.logged_in_cookie_name,
        "true",
        max_age=max_age,
        path="/",
        httponly=False,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (settings.auth_cookie_name, settings.logged_in_cookie_name):
        response.delete_cookie(
            name,
            path="/",
            samesite="lax",
            secure=settings.cookie_secure,
        )


def apply_no_store(response: Response) -> None:
    for key, value in NO_STORE_HEADERS.items():
        response.headers[key] = value
