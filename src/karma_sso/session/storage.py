from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


_STORAGE_DDL = """
CREATE TABLE IF NOT EXISTS storage (
    origin TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (origin, key)
);
"""


class KeyValueStorage(Protocol):
    """Durable string store scoped to a single origin."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; share one instance to simulate several contexts."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class DisabledStorage:
    """Storage that is never available, like a sandboxed browser context."""

    def get(self, key: str) -> Optional[str]:
        raise StorageUnavailable("Durable storage is disabled", details={"key": key})

    def set(self, key: str, value: str) -> None:
        raise StorageUnavailable("Durable storage is disabled", details={"key": key})

    def remove(self, key: str) -> None:
        raise StorageUnavailable("Durable storage is disabled", details={"key": key})


def _ensure_pragmas(connection: sqlite3.Connection) -> None:
    connection.execute("PRAGMA journal_mode = WAL;")


class SQLiteStorage:
    """SQLite-backed key-value storage; last writer wins."""

    def __init__(self, db_path: str, origin: str = "default") -> None:
        path = Path(db_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.suffix != ".db":
            path = path.with_suffix(".db")
        self._db_path = str(path)
        self._origin = origin
        self._initialised = False

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def origin(self) -> str:
        return self._origin

    def init(self) -> None:
        """Create the storage table; raises ``StorageUnavailable`` if the file cannot be used."""
        if self._initialised:
            return
        try:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(
                f"Cannot create storage directory for {self._db_path}", details={"error": str(exc)}
            ) from exc
        self._execute(_STORAGE_DDL)
        self._initialised = True
        logger.info("Storage initialised at %s for origin %s", self._db_path, self._origin)

    def get(self, key: str) -> Optional[str]:
        self.init()
        row = self._fetchone(
            "SELECT value FROM storage WHERE origin = ? AND key = ?",
            (self._origin, key),
        )
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        self.init()
        self._execute(
            "INSERT INTO storage (origin, key, value, updated_at) VALUES (?, ?, ?, ?)"
            " ON CONFLICT(origin, key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (self._origin, key, value, _utc_now_str()),
        )

    def remove(self, key: str) -> None:
        self.init()
        self._execute(
            "DELETE FROM storage WHERE origin = ? AND key = ?",
            (self._origin, key),
        )

    def keys(self) -> list[str]:
        self.init()
        rows = self._fetchall(
            "SELECT key FROM storage WHERE origin = ? ORDER BY key",
            (self._origin,),
        )
        return [row["key"] for row in rows]

    def _connect(self) -> sqlite3.Connection:
        try:
            connection = sqlite3.connect(self._db_path)
            connection.row_factory = sqlite3.Row
            _ensure_pragmas(connection)
        except sqlite3.Error as exc:
            raise StorageUnavailable(
                f"Cannot open storage at {self._db_path}", details={"error": str(exc)}
            ) from exc
        return connection

    def _execute(self, query: str, params: tuple = ()) -> None:
        connection = self._connect()
        try:
            with connection:
                connection.execute(query, params)
        except sqlite3.Error as exc:
            raise StorageUnavailable("Storage write failed", details={"error": str(exc)}) from exc
        finally:
            connection.close()

    def _fetchall(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        connection = self._connect()
        try:
            return connection.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageUnavailable("Storage read failed", details={"error": str(exc)}) from exc
        finally:
            connection.close()

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        connection = self._connect()
        try:
            return connection.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailable("Storage read failed", details={"error": str(exc)}) from exc
        finally:
            connection.close()


def _utc_now_str() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()
