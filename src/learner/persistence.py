"""Key/value backends the learner persists its document to.

Every backend stores one string value per key. Failures surface as
OSError or sqlite3.Error; the learner turns them into a False return.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = [
    "FileBackend",
    "MemoryBackend",
    "SqliteBackend",
    "StorageBackend",
    "make_backend",
]


class StorageBackend(ABC):
    """Get/set over string keys. get() returns None when the key is absent."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class MemoryBackend(StorageBackend):
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


_SAFE_FILENAME = re.compile(r"[^A-Za-z0-9_.-]")


class FileBackend(StorageBackend):
    """One JSON file per key inside a directory."""

    def __init__(self, directory: str = "data"):
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / f"{_SAFE_FILENAME.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Write then rename so a failed write never leaves a truncated document
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)


SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SqliteBackend(StorageBackend):
    """Single-table SQLite key/value store. Use ':memory:' for a volatile store."""

    def __init__(self, db_path: str = "data/learner.db"):
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.executescript(SCHEMA)

    def close(self) -> None:
        self._conn.close()

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )


def make_backend(settings) -> StorageBackend:
    """Build the backend named by settings.storage_backend."""
    kind = settings.storage_backend
    if kind == "memory":
        return MemoryBackend()
    if kind == "sqlite":
        return SqliteBackend(settings.sqlite_path)
    if kind == "file":
        return FileBackend(settings.data_dir)
    raise ValueError(f"Unknown storage backend: {kind!r}")
