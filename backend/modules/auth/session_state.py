"""
Client-side session state.

Holds the signed-in user, token and expiry, and mirrors them into every
configured SessionStorage (typically one durable and one session-scoped).
Storage failures are logged and ignored: the server cookie still carries
the session.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "parley-"
REDIRECT_KEY = "authRedirectUrl"
_SENSITIVE_FIELDS = ("password", "passwordHash", "password_hash")


@runtime_checkable
class SessionStorage(Protocol):
    """Minimal string key/value persistence adapter."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemorySessionStorage:
    """Session-scoped storage: lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileSessionStorage:
    """Durable storage backed by a small JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(self._path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(data, tf)
            temp_path = tf.name
        os.replace(temp_path, self._path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def sanitize_user(user: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in user.items() if k not in _SENSITIVE_FIELDS}


class SessionState:
    """
    In-memory auth state plus its persisted mirror.

    ``storages`` are written in order and read in order (first hit wins),
    so pass the durable store first.
    """

    def __init__(self, *storages: SessionStorage, prefix: str = DEFAULT_PREFIX) -> None:
        if not storages:
            storages = (MemorySessionStorage(),)
        self._storages = storages
        self._prefix = prefix
        self.user: Optional[dict[str, Any]] = None
        self.token: Optional[str] = None
        self.expires_at: Optional[float] = None

    @property
    def user_key(self) -> str:
        return f"{self._prefix}auth-user"

    @property
    def token_key(self) -> str:
        return f"{self._prefix}auth-token"

    @property
    def expiry_key(self) -> str:
        return f"{self._prefix}auth-expiry"

    @property
    def session_storage(self) -> SessionStorage:
        """The last (session-scoped) storage."""
        return self._storages[-1]

    def _set_all(self, key: str, value: str) -> None:
        for storage in self._storages:
            try:
                storage.set(key, value)
            except Exception as e:
                logger.warning(f"Could not persist {key}: {e}")

    def _get_first(self, key: str) -> Optional[str]:
        for storage in self._storages:
            try:
                value = storage.get(key)
            except Exception as e:
                logger.warning(f"Could not read {key}: {e}")
                continue
            if value:
                return value
        return None

    def save(
        self,
        user: Optional[dict[str, Any]] = None,
        token: Optional[str] = None,
        expires_at: Optional[float] = None,
    ) -> None:
        """Update memory and mirror every given value to all storages."""
        if user is not None:
            self.user = sanitize_user(user)
            self._set_all(self.user_key, json.dumps(self.user))
        if token:
            self.token = token
            self._set_all(self.token_key, token)
        if expires_at:
            self.expires_at = expires_at
            self._set_all(self.expiry_key, str(expires_at))

    def load(self) -> None:
        """Fill empty in-memory fields from storage (optimistic restore)."""
        if self.token is None:
            self.token = self._get_first(self.token_key)

        if self.user is None:
            raw = self._get_first(self.user_key)
            if raw:
                try:
                    self.user = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Ignoring unreadable saved user data")

        if self.expires_at is None:
            raw_expiry = self._get_first(self.expiry_key)
            if raw_expiry:
                try:
                    self.expires_at = float(raw_expiry)
                except ValueError:
                    logger.warning("Ignoring unreadable saved expiry")

    def clear(self) -> None:
        self.user = None
        self.token = None
        self.expires_at = None
        for storage in self._storages:
            for key in (self.user_key, self.token_key, self.expiry_key):
                try:
                    storage.remove(key)
                except Exception as e:
                    logger.warning(f"Could not clear {key}: {e}")

    def remember_redirect(self, path: str) -> None:
        try:
            self.session_storage.set(REDIRECT_KEY, path)
        except Exception as e:
            logger.warning(f"Could not save redirect location: {e}")

    def pop_redirect(self) -> Optional[str]:
        try:
            path = self.session_storage.get(REDIRECT_KEY)
            if path:
                self.session_storage.remove(REDIRECT_KEY)
            return path
        except Exception as e:
            logger.warning(f"Could not read redirect location: {e}")
            return None
