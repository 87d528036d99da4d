"""
Storage backends for the credential store.

All backends implement IStorageBackend and are interchangeable; the one
in use is selected by the ``store_backend`` setting:

- file: JSON document on local disk
- memory: process-local list (tests, ephemeral deployments)
- sqlite: embedded database with a UNIQUE email column
- redis: one JSON document in a remote key-value store
"""

import copy
import json
import logging
import os
import shutil
import sqlite3
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from shared.config import Settings
from shared.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)


class MemoryBackend:
    """Keeps records in process memory; every instance is independent."""

    name = "memory"

    def __init__(self, records: Optional[list[dict[str, Any]]] = None) -> None:
        self._records: list[dict[str, Any]] = copy.deepcopy(records or [])

    async def init(self) -> None:
        return None

    async def load_all(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._records)

    async def save_all(self, records: list[dict[str, Any]]) -> None:
        self._records = copy.deepcopy(records)

    async def close(self) -> None:
        return None


class JsonFileBackend:
    """
    Stores records as ``{"users": [...]}`` in a JSON file.

    Writes go through a temp file in the same directory followed by an
    atomic replace. A file that cannot be parsed is copied aside to
    ``<name>.corrupt-<timestamp>`` and the store starts over empty.
    """

    name = "file"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def init(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create data directory: {e}", backend=self.name
            ) from e
        if not self._path.exists():
            self._write({"users": []})

    async def load_all(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read users file: {e}", backend=self.name) from e

        if not text.strip():
            return []

        try:
            raw = json.loads(text)
            users = raw["users"] if isinstance(raw, dict) else raw
            if not isinstance(users, list):
                raise ValueError("users collection is not a list")
        except (ValueError, KeyError, TypeError) as e:
            self._recover_from_corruption(e)
            return []
        return users

    async def save_all(self, records: list[dict[str, Any]]) -> None:
        self._write({"users": records})

    async def close(self) -> None:
        return None

    def _write(self, payload: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", dir=str(self._path.parent), delete=False, encoding="utf-8"
            ) as tf:
                json.dump(payload, tf, indent=2, ensure_ascii=False)
                temp_path = Path(tf.name)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot write users file: {e}", backend=self.name) from e

        try:
            os.replace(temp_path, self._path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Cannot write users file: {e}", backend=self.name) from e

    def _recover_from_corruption(self, error: Exception) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        backup = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
        logger.error(
            f"Users file {self._path} is corrupted ({error}); "
            f"backing up to {backup} and resetting"
        )
        try:
            shutil.copyfile(self._path, backup)
        except OSError as e:
            raise StorageError(
                f"Cannot back up corrupted users file: {e}", backend=self.name
            ) from e
        self._write({"users": []})


class SqliteBackend:
    """
    Embedded key-value store on SQLite.

    Each row holds the serialized record; ``email`` carries a UNIQUE
    constraint so a duplicate that slips past the store is still rejected.
    """

    name = "sqlite"

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: Optional[sqlite3.Connection] = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
        return self._conn

    async def init(self) -> None:
        try:
            conn = self._connection()
            with conn:
                conn.execute(
                    "CREATE TABLE IF NOT EXISTS users ("
                    " id TEXT PRIMARY KEY,"
                    " email TEXT NOT NULL UNIQUE,"
                    " data TEXT NOT NULL)"
                )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize database: {e}", backend=self.name) from e

    async def load_all(self) -> list[dict[str, Any]]:
        try:
            rows = self._connection().execute(
                "SELECT data FROM users ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read users: {e}", backend=self.name) from e
        return [json.loads(data) for (data,) in rows]

    async def save_all(self, records: list[dict[str, Any]]) -> None:
        conn = self._connection()
        try:
            with conn:
                conn.execute("DELETE FROM users")
                conn.executemany(
                    "INSERT INTO users (id, email, data) VALUES (?, ?, ?)",
                    [(r["id"], r["email"], json.dumps(r)) for r in records],
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                "Unable to complete the request with the provided details",
                code="email_conflict",
            ) from e
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write users: {e}", backend=self.name) from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class RedisBackend:
    """Stores the collection as one JSON document under a single key."""

    name = "redis"

    def __init__(self, client: Redis, key: str = "parley:users") -> None:
        self._redis = client
        self._key = key

    @classmethod
    def from_url(cls, url: str, key: str = "parley:users") -> "RedisBackend":
        return cls(Redis.from_url(url), key=key)

    async def init(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as e:
            raise StorageError(f"Cannot reach Redis: {e}", backend=self.name) from e

    async def load_all(self) -> list[dict[str, Any]]:
        try:
            value = await self._redis.get(self._key)
        except RedisError as e:
            raise StorageError(f"Cannot read users: {e}", backend=self.name) from e
        if value is None:
            return []
        decoded = value.decode("utf-8") if isinstance(value, bytes) else value
        try:
            users = json.loads(decoded)
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Stored users document is not valid JSON: {e}", backend=self.name
            ) from e
        return users if isinstance(users, list) else []

    async def save_all(self, records: list[dict[str, Any]]) -> None:
        try:
            await self._redis.set(self._key, json.dumps(records))
        except RedisError as e:
            raise StorageError(f"Cannot write users: {e}", backend=self.name) from e

    async def close(self) -> None:
        await self._redis.aclose()


def create_backend(settings: Settings):
    """Build the storage backend named by ``settings.store_backend``."""
    kind = settings.store_backend
    logger.info(f"Using '{kind}' credential store backend")
    if kind == "memory":
        return MemoryBackend()
    if kind == "file":
        return JsonFileBackend(settings.users_file)
    if kind == "sqlite":
        return SqliteBackend(settings.sqlite_path)
    if kind == "redis":
        return RedisBackend.from_url(settings.redis_url, key=settings.redis_key)
    raise ValueError(f"Unknown store backend: {kind}")
