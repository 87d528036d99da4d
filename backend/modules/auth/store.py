"""
Credential store.

Owns user records on top of a pluggable storage backend:
- validation and email normalization
- a time-windowed read cache
- a single-writer lock serializing read-check-write mutations
- sanitized views on every read path
"""

import asyncio
import logging
import re
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from shared.repository import BaseRepository

from .exceptions import DuplicateEmailError, InvalidUserDataError, UserNotFoundError
from .interfaces import IPasswordHasher, IStorageBackend
from .models import PublicUser, UserRecord, UserStatus

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MIN_PASSWORD_LENGTH = 6
DEFAULT_CACHE_TTL = 60.0

# Fields a patch may set; id, timestamps and the hash are managed here
_UPDATABLE_FIELDS = {"name", "email", "status", "password"}
_STATUS_VALUES = {s.value for s in UserStatus}


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email; the result is the uniqueness key."""
    return (email or "").strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_user_id() -> str:
    return f"user_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _validate_email(email: str) -> None:
    if not email:
        raise InvalidUserDataError("Email is required", field="email")
    if not EMAIL_PATTERN.match(email):
        raise InvalidUserDataError("Email format is invalid", field="email")


def _validate_password(password: Optional[str]) -> None:
    if not password:
        raise InvalidUserDataError("Password is required", field="password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidUserDataError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )


def _coerce_status(status: UserStatus | str) -> UserStatus:
    value = status.value if isinstance(status, UserStatus) else str(status or "")
    if value not in _STATUS_VALUES:
        raise InvalidUserDataError(
            f"Status must be one of: {', '.join(sorted(_STATUS_VALUES))}",
            field="status",
        )
    return UserStatus(value)


class UserStore(BaseRepository[UserRecord]):
    """
    Credential store over an IStorageBackend.

    Instances are independent: the cache, lock and backend handle are
    per-store, so several stores can coexist in one process.
    """

    def __init__(
        self,
        backend: IStorageBackend,
        hasher: IPasswordHasher,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(backend)
        self._hasher = hasher
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Optional[list[UserRecord]] = None
        self._cache_time = 0.0
        self._write_lock = asyncio.Lock()
        self._initialized = False

    @property
    def backend(self) -> IStorageBackend:
        return self._backend

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def init(self) -> None:
        if self._initialized:
            return
        await self._backend.init()
        self._initialized = True

    async def close(self) -> None:
        self.clear_cache()
        if self._initialized:
            await self._backend.close()
            self._initialized = False

    def clear_cache(self) -> None:
        self._cache = None
        self._cache_time = 0.0

    async def health_check(self) -> bool:
        """Force a fresh read; False when the backend cannot be read."""
        try:
            await self._read(skip_cache=True)
            return True
        except Exception:
            logger.exception("Credential store health check failed")
            return False

    # -------------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------------

    async def _read(self, skip_cache: bool = False) -> list[UserRecord]:
        now = self._clock()
        if (
            not skip_cache
            and self._cache is not None
            and now - self._cache_time < self._cache_ttl
        ):
            return self._cache

        await self.init()
        rows = await self._backend.load_all()
        records = [UserRecord.model_validate(row) for row in rows]
        self._cache = records
        self._cache_time = now
        return records

    async def _write(self, records: list[UserRecord]) -> None:
        await self.init()
        await self._backend.save_all([r.to_storage() for r in records])
        self._cache = records
        self._cache_time = self._clock()

    @staticmethod
    def _find_email(records: list[UserRecord], email: str) -> Optional[UserRecord]:
        return next((r for r in records if r.email.lower() == email), None)

    @staticmethod
    def _index_of(records: list[UserRecord], user_id: str) -> int:
        return next((i for i, r in enumerate(records) if r.id == user_id), -1)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def exists(self, email: str) -> bool:
        key = normalize_email(email)
        if not key:
            return False
        return self._find_email(await self._read(), key) is not None

    async def get_by_email(self, email: str, skip_cache: bool = False) -> Optional[PublicUser]:
        key = normalize_email(email)
        if not key:
            return None
        record = self._find_email(await self._read(skip_cache), key)
        return record.to_public() if record else None

    async def get_by_id(self, user_id: str, skip_cache: bool = False) -> Optional[PublicUser]:
        if not user_id:
            return None
        record = next((r for r in await self._read(skip_cache) if r.id == user_id), None)
        return record.to_public() if record else None

    async def list_users(self) -> list[PublicUser]:
        return [r.to_public() for r in await self._read()]

    # -------------------------------------------------------------------------
    # Mutations (fresh read under the write lock)
    # -------------------------------------------------------------------------

    async def create(self, data: dict[str, Any]) -> PublicUser:
        if not data:
            raise InvalidUserDataError("User data is required")

        email = normalize_email(data.get("email"))
        _validate_email(email)
        name = (data.get("name") or "").strip()
        if not name:
            raise InvalidUserDataError("Name is required", field="name")
        password = data.get("password")
        _validate_password(password)

        password_hash = self._hasher.hash(password)

        async with self._write_lock:
            records = list(await self._read(skip_cache=True))
            if self._find_email(records, email):
                raise DuplicateEmailError(email)

            now = _utcnow()
            record = UserRecord(
                id=_new_user_id(),
                name=name,
                email=email,
                password_hash=password_hash,
                status=UserStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
            records.append(record)
            await self._write(records)

        logger.info(f"Created user {record.id}")
        return record.to_public()

    async def update(self, user_id: str, patch: dict[str, Any]) -> PublicUser:
        if not user_id or not patch:
            raise InvalidUserDataError("User id and update data are required")

        unknown = set(patch) - _UPDATABLE_FIELDS
        if unknown:
            raise InvalidUserDataError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        changes = {k: v for k, v in patch.items() if v is not None}
        if not changes:
            raise InvalidUserDataError("User id and update data are required")

        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
            _validate_email(changes["email"])
        if "name" in changes:
            changes["name"] = str(changes["name"]).strip()
            if not changes["name"]:
                raise InvalidUserDataError("Name is required", field="name")
        if "status" in changes:
            changes["status"] = _coerce_status(changes["status"])
        if "password" in changes:
            password = changes.pop("password")
            _validate_password(password)
            changes["password_hash"] = self._hasher.hash(password)

        async with self._write_lock:
            records = list(await self._read(skip_cache=True))
            index = self._index_of(records, user_id)
            if index == -1:
                raise UserNotFoundError(user_id)

            current = records[index]
            new_email = changes.get("email")
            if new_email and new_email != current.email:
                if any(r.id != user_id and r.email.lower() == new_email for r in records):
                    raise DuplicateEmailError(new_email)

            updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
            records[index] = updated
            await self._write(records)

        return updated.to_public()

    async def delete(self, user_id: str) -> None:
        if not user_id:
            raise InvalidUserDataError("User id is required")

        async with self._write_lock:
            records = await self._read(skip_cache=True)
            remaining = [r for r in records if r.id != user_id]
            if len(remaining) == len(records):
                raise UserNotFoundError(user_id)
            await self._write(remaining)

        logger.info(f"Deleted user {user_id}")

    async def set_status(self, user_id: str, status: UserStatus | str) -> PublicUser:
        return await self.update(user_id, {"status": _coerce_status(status)})

    async def reset_password(self, email: str, new_password: str) -> None:
        key = normalize_email(email)
        if not key:
            raise InvalidUserDataError("Email is required", field="email")
        _validate_password(new_password)
        password_hash = self._hasher.hash(new_password)

        async with self._write_lock:
            records = list(await self._read(skip_cache=True))
            record = self._find_email(records, key)
            if record is None:
                raise UserNotFoundError(key)
            now = _utcnow()
            records[self._index_of(records, record.id)] = record.model_copy(
                update={
                    "password_hash": password_hash,
                    "updated_at": now,
                    "password_reset_at": now,
                }
            )
            await self._write(records)

        logger.info(f"Password reset for user {record.id}")

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    async def verify_credentials(self, email: str, password: str) -> Optional[PublicUser]:
        key = normalize_email(email)
        if not key or not password:
            return None

        record = self._find_email(await self._read(), key)
        if record is None:
            return None

        if not record.is_active:
            logger.warning(f"Login attempt on inactive account {record.id}")
            return None

        if not self._hasher.verify(password, record.password_hash):
            return None

        try:
            updated = await self._record_login(record.id)
        except Exception as e:
            logger.warning(f"Could not update last login for user {record.id}: {e}")
            updated = None

        return updated or record.to_public()

    async def _record_login(self, user_id: str) -> Optional[PublicUser]:
        async with self._write_lock:
            records = list(await self._read(skip_cache=True))
            index = self._index_of(records, user_id)
            if index == -1:
                return None
            current = records[index]
            records[index] = current.model_copy(
                update={
                    "last_login_at": _utcnow(),
                    "login_count": current.login_count + 1,
                }
            )
            await self._write(records)
            return records[index].to_public()
