"""
Client-side auth facade.

Wraps the auth endpoints for an application front end: login, register,
logout and status checks, an authenticated request helper that recovers
once from an expired session, a view gate, and a timer that re-validates
the session shortly before the token expires.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import BaseModel

from shared.exceptions import ParleyError

from .exceptions import SessionExpiredError
from .session_state import SessionState

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
REGISTER_PATH = "/api/auth/register"
LOGOUT_PATH = "/api/auth/logout"
STATUS_PATH = "/api/auth/me"

CLIENT_REFRESH_WINDOW = 5 * 60
STATUS_TIMEOUT = 10.0

# Expiry assumed when the server does not send expiresIn
DAY = 24 * 60 * 60
LOGIN_DEFAULT_TTL = DAY
REMEMBER_DEFAULT_TTL = 30 * DAY
REGISTER_DEFAULT_TTL = 7 * DAY
STATUS_DEFAULT_TTL = DAY


class AuthResult(BaseModel):
    """Outcome of login/register; failures are reported, not raised."""

    success: bool
    user: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class RefreshScheduler:
    """Single pending event-loop timer; arming it again replaces the old one."""

    def __init__(
        self,
        window: float = CLIENT_REFRESH_WINDOW,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window = window
        self._clock = clock
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(
        self,
        expires_at: float,
        callback: Callable[[], Awaitable[Any]],
    ) -> Optional[float]:
        """
        Run ``callback`` ``window`` seconds before ``expires_at``.

        Returns the delay in seconds, or None when already expired.
        """
        self.cancel()
        remaining = expires_at - self._clock()
        if remaining <= 0:
            return None

        delay = max(0.0, remaining - self._window)
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)
        logger.debug(f"Session refresh scheduled in {int(delay // 60)} minutes")
        return delay

    def _fire(self, callback: Callable[[], Awaitable[Any]]) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(callback())
        self._task.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Scheduled session refresh failed: {task.exception()}")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def close(self) -> None:
        """Cancel the timer and any refresh still in flight."""
        self.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class AuthClient:
    """
    Auth facade over an ``httpx.AsyncClient``.

    The HTTP client keeps the server's session cookies; ``state`` keeps a
    mirrored copy of user, token and expiry so the session can be shown
    optimistically while the authoritative status check is in flight.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = "",
        state: Optional[SessionState] = None,
        navigate: Optional[Callable[[str], Any]] = None,
        current_location: Optional[Callable[[], Optional[str]]] = None,
        refresh_window: float = CLIENT_REFRESH_WINDOW,
        status_timeout: float = STATUS_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url)
        self.state = state or SessionState()
        self._navigate_to = navigate
        self._current_location = current_location
        self._status_timeout = status_timeout
        self._clock = clock
        self._scheduler = RefreshScheduler(window=refresh_window, clock=clock)
        self._initial_check_done = False

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._scheduler.close()
        if self._owns_http:
            await self._http.aclose()

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def initial_check_done(self) -> bool:
        return self._initial_check_done

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _headers(
        self,
        extra: Optional[dict[str, str]] = None,
        include_token: bool = True,
    ) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Requested-With": "XMLHttpRequest",
            "Cache-Control": "no-cache, no-store",
            **(extra or {}),
        }
        if include_token and self.state.token:
            headers["Authorization"] = f"Bearer {self.state.token}"
        return headers

    @staticmethod
    def _read_json(response: httpx.Response) -> dict[str, Any]:
        """Parse a JSON object body, raising ParleyError with the server's message on failure."""
        if not response.is_success:
            message = f"Server error ({response.status_code})"
            if "application/json" in response.headers.get("content-type", ""):
                try:
                    body = response.json()
                except ValueError:
                    body = None
                if isinstance(body, dict):
                    message = body.get("message") or message
            raise ParleyError(message, code="request_failed")
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise ParleyError("Could not read the server response", code="bad_response")
        return data

    def _expiry_from(self, data: dict[str, Any], default_ttl: int) -> float:
        expires_in = data.get("expiresIn")
        try:
            ttl = int(expires_in) if expires_in else default_ttl
        except (TypeError, ValueError):
            ttl = default_ttl
        return self._clock() + ttl

    def _arm(self, expires_at: float) -> None:
        self._scheduler.schedule(expires_at, lambda: self.check_status(force_refresh=True))

    def _reset(self) -> None:
        self._scheduler.cancel()
        self.state.clear()

    def _navigate(self, path: str) -> None:
        if self._navigate_to is not None:
            self._navigate_to(path)
        else:
            logger.debug(f"No navigator configured; would navigate to {path}")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str, remember: bool = False) -> AuthResult:
        body = {
            "email": (email or "").strip().lower(),
            "password": password,
            "remember": bool(remember),
        }
        try:
            response = await self._http.post(
                LOGIN_PATH, json=body, headers=self._headers(include_token=False)
            )
            data = self._read_json(response)
            if not data.get("success"):
                raise ParleyError(data.get("message") or "Login failed")
        except (httpx.HTTPError, ParleyError) as e:
            message = getattr(e, "message", None) or "Login failed"
            logger.warning(f"Login failed: {message}")
            return AuthResult(success=False, error=message)

        default_ttl = REMEMBER_DEFAULT_TTL if remember else LOGIN_DEFAULT_TTL
        expires_at = self._expiry_from(data, default_ttl)
        if data.get("token"):
            self.state.save(data.get("user"), data["token"], expires_at)
            self._arm(expires_at)
        else:
            self.state.save(data.get("user"), None, expires_at)
        return AuthResult(success=True, user=self.state.user)

    async def register(self, user_data: dict[str, Any]) -> AuthResult:
        body = {
            "name": (user_data.get("name") or "").strip(),
            "email": (user_data.get("email") or "").strip().lower(),
            "password": user_data.get("password"),
        }
        logger.info(f"Registering account for {body['email']}")
        try:
            response = await self._http.post(
                REGISTER_PATH, json=body, headers=self._headers(include_token=False)
            )
            data = self._read_json(response)
            if not data.get("success"):
                raise ParleyError(data.get("message") or "Registration failed")
        except (httpx.HTTPError, ParleyError) as e:
            message = getattr(e, "message", None) or "Registration failed"
            logger.warning(f"Registration failed: {message}")
            return AuthResult(success=False, error=message)

        if data.get("token"):
            expires_at = self._expiry_from(data, REGISTER_DEFAULT_TTL)
            self.state.save(data.get("user"), data["token"], expires_at)
            self._arm(expires_at)
        else:
            result = await self.login(body["email"], body["password"], remember=True)
            if not result.success:
                logger.warning(f"Auto-login after registration failed: {result.error}")

        return AuthResult(success=True, user=data.get("user"))

    async def logout(self, redirect: bool = True) -> bool:
        """Best-effort server logout; local state is cleared regardless."""
        try:
            await self._http.post(LOGOUT_PATH, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"Logout request failed, clearing local session anyway: {e}")

        self._reset()
        if redirect:
            self._navigate("/")
        return True

    async def check_status(self, force_refresh: bool = False) -> bool:
        """
        Ask the server whether the session is still valid.

        Any non-success clears local state. A network failure during a
        forced refresh keeps a previously-known user signed in.
        """
        self.state.load()
        saved_token = self.state.token
        had_user = self.state.user is not None

        try:
            request_kwargs: dict[str, Any] = {}
            if force_refresh:
                request_kwargs["timeout"] = self._status_timeout
            response = await self._http.get(
                STATUS_PATH,
                headers=self._headers({"Pragma": "no-cache"}, include_token=bool(saved_token)),
                **request_kwargs,
            )
            if not response.is_success:
                self._reset()
                return False

            data = response.json()
            if not (isinstance(data, dict) and data.get("success") and data.get("user")):
                self._reset()
                return False

            if data.get("token"):
                expires_at = self._expiry_from(data, STATUS_DEFAULT_TTL)
                self.state.save(data["user"], data["token"], expires_at)
                self._arm(expires_at)
            else:
                self.state.save(data["user"], saved_token)
            return True

        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Session status check failed: {e}")
            if force_refresh and had_user:
                logger.info("Keeping the saved session after a failed forced refresh")
                return True
            self._reset()
            return False

        finally:
            self._initial_check_done = True

    def is_authenticated(self) -> bool:
        return bool(self.state.user)

    def get_token(self) -> Optional[str]:
        return self.state.token

    async def auth_fetch(self, url: str, method: str = "GET", **options: Any) -> httpx.Response:
        """
        Send an authenticated request.

        On 401/403 the session is re-checked once; the request is retried
        once if that succeeds, otherwise SessionExpiredError is raised.
        """
        extra_headers = options.pop("headers", None)
        response = await self._http.request(
            method, url, headers=self._headers(extra_headers), **options
        )
        if response.status_code not in (401, 403):
            return response

        if not await self.check_status(force_refresh=True):
            raise SessionExpiredError()

        return await self._http.request(
            method, url, headers=self._headers(extra_headers), **options
        )

    def require_auth(
        self,
        callback: Optional[Callable[[], Any]] = None,
        redirect_path: str = "/login",
    ) -> Any:
        """
        Gate a protected view.

        Does nothing until the first status check has finished. When signed
        out, remembers the current location and navigates to the login path.
        """
        if not self._initial_check_done:
            return None

        if not self.is_authenticated():
            location = self._current_location() if self._current_location else None
            if location:
                self.state.remember_redirect(location)
            logger.info(f"Authentication required, redirecting to {redirect_path}")
            self._navigate(redirect_path)
            return None

        if callback is not None:
            return callback()
        return True

    def handle_auth_redirect(self) -> bool:
        """Navigate back to the location saved by require_auth, if any."""
        path = self.state.pop_redirect()
        if not path:
            return False
        self._navigate(path)
        return True
