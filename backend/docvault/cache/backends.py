"""
Key/value persistence backends for the cache store.

Backends only move CacheEntry records in and out of durable storage.
Versioning, expiry and statistics live in CacheStore. Errors raised
here are left untouched; the store translates them into StorageFailure.

Two implementations:
- InMemoryBackend: process-local dict, used for tests and ephemeral runs
- SQLiteBackend: single-file database with secondary indexes on
  created_at (sweeps) and version (migration scans)
"""

import copy
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from threading import Lock
from typing import Iterable, Iterator, Optional

from docvault.cache.entry import CacheEntry

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Abstract interface for durable cache storage."""

    name: str = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry or None."""
        ...

    @abstractmethod
    def put(self, entry: CacheEntry) -> None:
        """Insert or overwrite the entry at entry.key."""
        ...

    @abstractmethod
    def put_many(self, entries: Iterable[CacheEntry]) -> None:
        """Write a group of entries atomically."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete an entry. Returns True if something was removed."""
        ...

    @abstractmethod
    def touch(self, key: str, timestamp: float) -> None:
        """Record an access time for an existing entry."""
        ...

    @abstractmethod
    def iter_entries(self) -> Iterator[CacheEntry]:
        """Iterate over all entries, oldest first."""
        ...

    @abstractmethod
    def keys_created_before(self, cutoff: float) -> list[str]:
        """Keys of entries whose created_at is strictly before cutoff."""
        ...

    @abstractmethod
    def keys_for_version(self, version: str) -> list[str]:
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def ping(self) -> bool:
        """Cheap reachability check used by health endpoints."""
        try:
            self.keys()
            return True
        except Exception as e:
            logger.error(f"Cache backend '{self.name}' unreachable: {e}")
            return False

    def close(self) -> None:
        """Release resources held by the backend."""


class InMemoryBackend(KeyValueBackend):
    """
    Thread-safe in-memory backend.

    Entries are deep-copied on the way in and out so callers never share
    mutable payloads with the store.
    """

    name = "memory"

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            return copy.deepcopy(entry) if entry is not None else None

    def put(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = copy.deepcopy(entry)

    def put_many(self, entries: Iterable[CacheEntry]) -> None:
        staged = {e.key: copy.deepcopy(e) for e in entries}
        with self._lock:
            self._entries.update(staged)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def touch(self, key: str, timestamp: float) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries[key] = replace(entry, last_accessed=timestamp)

    def iter_entries(self) -> Iterator[CacheEntry]:
        with self._lock:
            snapshot = sorted(self._entries.values(), key=lambda e: e.created_at)
        for entry in snapshot:
            yield copy.deepcopy(entry)

    def keys_created_before(self, cutoff: float) -> list[str]:
        with self._lock:
            return [k for k, e in self._entries.items() if e.created_at < cutoff]

    def keys_for_version(self, version: str) -> list[str]:
        with self._lock:
            return [k for k, e in self._entries.items() if e.version == version]

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class SQLiteBackend(KeyValueBackend):
    """
    SQLite-backed persistent storage.

    Payloads are stored as JSON text. Group writes run inside a single
    transaction so a document and its chunks land together or not at all.

    Usage:
        backend = SQLiteBackend("cache.db")
        store = CacheStore(backend)
    """

    name = "sqlite"

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS cache_entries (
            key TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            version TEXT NOT NULL,
            checksum TEXT NOT NULL,
            created_at REAL NOT NULL,
            last_accessed REAL,
            size INTEGER NOT NULL DEFAULT 0
        );

        CREATE INDEX IF NOT EXISTS idx_cache_entries_created_at ON cache_entries(created_at);
        CREATE INDEX IF NOT EXISTS idx_cache_entries_version ON cache_entries(version);
    """

    _COLUMNS = "key, payload, version, checksum, created_at, last_accessed, size"

    def __init__(self, db_path: str | Path = ":memory:"):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        with self._lock, self._conn:
            self._conn.executescript(self._SCHEMA)
        logger.info(f"Opened SQLite cache at {self.db_path}")

    @staticmethod
    def _to_row(entry: CacheEntry) -> tuple:
        return (
            entry.key,
            json.dumps(entry.payload, ensure_ascii=False),
            entry.version,
            entry.checksum,
            entry.created_at,
            entry.last_accessed,
            entry.size,
        )

    @staticmethod
    def _from_row(row: tuple) -> CacheEntry:
        key, payload, version, checksum, created_at, last_accessed, size = row
        return CacheEntry(
            key=key,
            payload=json.loads(payload),
            version=version,
            checksum=checksum,
            created_at=created_at,
            last_accessed=last_accessed,
            size=size,
        )

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {self._COLUMNS} FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        return self._from_row(row) if row else None

    def put(self, entry: CacheEntry) -> None:
        self.put_many([entry])

    def put_many(self, entries: Iterable[CacheEntry]) -> None:
        rows = [self._to_row(e) for e in entries]
        with self._lock, self._conn:
            self._conn.executemany(
                f"INSERT OR REPLACE INTO cache_entries ({self._COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    def delete(self, key: str) -> bool:
        with self._lock, self._conn:
            cursor = self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def touch(self, key: str, timestamp: float) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE cache_entries SET last_accessed = ? WHERE key = ?", (timestamp, key)
            )

    def iter_entries(self) -> Iterator[CacheEntry]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {self._COLUMNS} FROM cache_entries ORDER BY created_at"
            ).fetchall()
        for row in rows:
            yield self._from_row(row)

    def keys_created_before(self, cutoff: float) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM cache_entries WHERE created_at < ? ORDER BY created_at",
                (cutoff,),
            ).fetchall()
        return [r[0] for r in rows]

    def keys_for_version(self, version: str) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM cache_entries WHERE version = ?", (version,)
            ).fetchall()
        return [r[0] for r in rows]

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM cache_entries").fetchall()
        return [r[0] for r in rows]

    def clear(self) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM cache_entries")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info(f"Closed SQLite cache at {self.db_path}")


def create_backend(kind: str, db_path: Optional[str] = None) -> KeyValueBackend:
    """Build a backend from its configured name."""
    kind = kind.strip().lower()
    if kind == "memory":
        return InMemoryBackend()
    if kind == "sqlite":
        return SQLiteBackend(db_path or ":memory:")
    raise ValueError(f"Unknown cache backend: {kind}")
