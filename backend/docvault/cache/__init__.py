"""Persistent, versioned caching of ingested documents."""

from .backends import InMemoryBackend, KeyValueBackend, SQLiteBackend, create_backend
from .document_cache import DocumentCache
from .entry import CacheEntry
from .store import CacheStats, CacheStore

__all__ = [
    "KeyValueBackend",
    "InMemoryBackend",
    "SQLiteBackend",
    "create_backend",
    "CacheEntry",
    "CacheStore",
    "CacheStats",
    "DocumentCache",
]
