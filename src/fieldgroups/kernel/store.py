from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Union

from .errors import NotFound, StoreReadFailure, StoreWriteFailure

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Seconds a connection waits on a locked database before giving up.
DEFAULT_TIMEOUT = 30.0


class StateStore(ABC):
    """
    Durable string-to-string storage shared by independent build invocations.

    Contract:
    - write(key, value) replaces any earlier value (last write wins)
    - read(key) returns the stored value or raises NotFound
    - writes to different keys never affect each other
    """

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def read(self, key: str) -> str:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def close(self) -> None:
        pass

    def __enter__(self) -> "StateStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MemoryStateStore(StateStore):
    """In-process store. Only durable for the lifetime of the object."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def write(self, key: str, value: str) -> None:
        self._values[key] = value

    def read(self, key: str) -> str:
        try:
            return self._values[key]
        except KeyError:
            raise NotFound(key) from None

    def keys(self) -> List[str]:
        return sorted(self._values)


class SqliteStateStore(StateStore):
    """
    SQLite-backed store that survives process boundaries.

    Each write is a single upsert committed immediately, so a reader in another
    process sees either the previous value or the new one, never a mix. WAL mode
    lets parallel readers proceed while one writer holds the lock; other writers
    wait up to ``timeout`` seconds.
    """

    def __init__(self, path: Union[str, Path], timeout: float = DEFAULT_TIMEOUT) -> None:
        self._path = str(path)
        try:
            self._conn = sqlite3.connect(self._path, timeout=timeout)
        except sqlite3.Error as exc:
            raise StoreWriteFailure(None, f"cannot open store at {self._path}: {exc}") from exc
        try:
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._ensure_schema()
        except sqlite3.Error as exc:
            self._conn.close()
            raise StoreWriteFailure(None, f"cannot open store at {self._path}: {exc}") from exc

    @property
    def path(self) -> str:
        return self._path

    def _ensure_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS registrations (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def write(self, key: str, value: str) -> None:
        try:
            self._conn.execute(
                """
                INSERT INTO registrations (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StoreWriteFailure(key, f"write failed: {exc}") from exc
        logger.debug("stored %d bytes under %r in %s", len(value), key, self._path)

    def read(self, key: str) -> str:
        try:
            cur = self._conn.execute(
                "SELECT value FROM registrations WHERE key = ?", (key,)
            )
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StoreReadFailure(key, f"read failed: {exc}") from exc
        if row is None:
            raise NotFound(key)
        return row["value"]

    def keys(self) -> List[str]:
        try:
            cur = self._conn.execute("SELECT key FROM registrations ORDER BY key")
            return [row["key"] for row in cur.fetchall()]
        except sqlite3.Error as exc:
            raise StoreReadFailure(None, f"listing keys failed: {exc}") from exc

    def close(self) -> None:
        self._conn.close()


def open_store(path: Union[str, Path], timeout: float = DEFAULT_TIMEOUT) -> StateStore:
    """Open the store at ``path``; ``":memory:"`` gives a MemoryStateStore."""
    if str(path) == MEMORY_PATH:
        return MemoryStateStore()
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return SqliteStateStore(path, timeout=timeout)
