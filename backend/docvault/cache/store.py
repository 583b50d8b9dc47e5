"""
Versioned, checksummed cache store.

Wraps a KeyValueBackend with the cache policy:
- every entry carries a version tag and a SHA-256 checksum of its payload
- reads treat version mismatches and expired entries as misses and
  delete them on the spot (lazy deletion)
- sweeps remove entries older than a maximum age in one pass
- hit/miss counters are owned by the instance and exposed through stats()
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from docvault.cache.backends import KeyValueBackend
from docvault.cache.entry import CacheEntry, compute_checksum, serialize_payload
from docvault.config import settings
from docvault.core.errors import (
    CacheInvalidated,
    EntryExpired,
    StorageFailure,
    VersionMismatch,
)

logger = logging.getLogger(__name__)


@dataclass
class CacheCounters:
    """Mutable access counters for one CacheStore instance."""

    hits: int = 0
    misses: int = 0
    version_invalidations: int = 0
    expirations: int = 0
    read_errors: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses


@dataclass
class CacheStats:
    """Point-in-time view of the cache contents and access counters."""

    count: int
    total_size: int
    oldest_timestamp: Optional[float]
    newest_timestamp: Optional[float]
    hit_rate: float
    miss_rate: float
    counters: CacheCounters = field(default_factory=CacheCounters)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_size": self.total_size,
            "oldest_timestamp": self.oldest_timestamp,
            "newest_timestamp": self.newest_timestamp,
            "hit_rate": self.hit_rate,
            "miss_rate": self.miss_rate,
            "hits": self.counters.hits,
            "misses": self.counters.misses,
            "version_invalidations": self.counters.version_invalidations,
            "expirations": self.counters.expirations,
            "read_errors": self.counters.read_errors,
        }


class CacheStore:
    """
    Persistent cache with version and age based invalidation.

    Usage:
        store = CacheStore(SQLiteBackend("cache.db"), ttl_seconds=3600)
        store.put("chunks_law.pdf", chunks, version="v1.0")

        chunks = store.get("chunks_law.pdf", expected_version="v1.0")
        if chunks is None:
            ...  # miss, stale version, or expired: re-ingest

        print(store.stats().to_dict())
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        ttl_seconds: Optional[float] = None,
        large_entry_bytes: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self.large_entry_bytes = large_entry_bytes or settings.cache_large_entry_bytes
        self._clock = clock
        self._counters = CacheCounters()

    # =========================================================================
    # WRITES
    # =========================================================================

    def _build_entry(self, key: str, payload: Any, version: str, now: float) -> CacheEntry:
        serialized = serialize_payload(payload)
        size = len(serialized.encode("utf-8"))
        if size > self.large_entry_bytes:
            logger.warning(f"Large cache entry ({size / 1024 / 1024:.2f}MB): {key}")
        return CacheEntry(
            key=key,
            payload=payload,
            version=version,
            checksum=compute_checksum(payload),
            created_at=now,
            last_accessed=now,
            size=size,
        )

    def put(self, key: str, payload: Any, version: str) -> None:
        """
        Store payload under key, overwriting any previous entry.

        Raises:
            StorageFailure: if the backend rejects the write
        """
        entry = self._build_entry(key, payload, version, self._clock())
        try:
            self.backend.put(entry)
        except Exception as e:
            logger.error(f"Cache write failed for {key}: {e}")
            raise StorageFailure("put", key, str(e)) from e
        logger.debug(f"Cached {key} ({entry.size} bytes, version {version})")

    def put_many(self, items: Iterable[tuple[str, Any]], version: str) -> None:
        """
        Store several related entries in one backend transaction.

        Raises:
            StorageFailure: if the backend rejects the group write
        """
        now = self._clock()
        entries = [self._build_entry(key, payload, version, now) for key, payload in items]
        if not entries:
            return
        try:
            self.backend.put_many(entries)
        except Exception as e:
            keys = ", ".join(entry.key for entry in entries)
            logger.error(f"Cache group write failed for [{keys}]: {e}")
            raise StorageFailure("put_many", entries[0].key, str(e)) from e
        logger.debug(f"Cached {len(entries)} entries (version {version})")

    # =========================================================================
    # READS
    # =========================================================================

    def _validate(self, entry: CacheEntry, expected_version: str, now: float) -> None:
        if entry.version != expected_version:
            raise VersionMismatch(entry.key, entry.version, expected_version)
        age = entry.age(now)
        if age > self.ttl_seconds:
            raise EntryExpired(entry.key, age, self.ttl_seconds)

    def _discard(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except Exception as e:
            logger.warning(f"Failed to delete invalid cache entry {key}: {e}")

    def get(self, key: str, expected_version: str) -> Optional[Any]:
        """
        Return the cached payload, or None on a miss.

        Stale versions and expired entries are deleted and reported as
        misses. Backend read errors also degrade to a miss.
        """
        try:
            entry = self.backend.get(key)
        except Exception as e:
            self._counters.misses += 1
            self._counters.read_errors += 1
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

        if entry is None:
            self._counters.misses += 1
            logger.debug(f"Cache miss: {key}")
            return None

        now = self._clock()
        try:
            self._validate(entry, expected_version, now)
        except CacheInvalidated as inv:
            self._counters.misses += 1
            if isinstance(inv, VersionMismatch):
                self._counters.version_invalidations += 1
            else:
                self._counters.expirations += 1
            logger.info(f"Dropping cache entry: {inv}")
            self._discard(key)
            return None

        self._counters.hits += 1
        try:
            self.backend.touch(key, now)
        except Exception as e:
            logger.debug(f"Could not record access time for {key}: {e}")
        logger.debug(f"Cache hit: {key}")
        return entry.payload

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Raw stored entry, without validation or counting."""
        try:
            return self.backend.get(key)
        except Exception as e:
            raise StorageFailure("get", key, str(e)) from e

    def verify(self, key: str) -> Optional[bool]:
        """
        Recompute the payload checksum and compare it with the stored one.

        Returns:
            None if the key is absent, otherwise whether the checksums match
        """
        entry = self.get_entry(key)
        if entry is None:
            return None
        intact = compute_checksum(entry.payload) == entry.checksum
        if not intact:
            logger.warning(f"Checksum mismatch for cache entry {key}")
        return intact

    # =========================================================================
    # INVALIDATION & REMOVAL
    # =========================================================================

    def invalidate(self, key: str, new_version: str) -> bool:
        """
        Drop the entry at key if it was written under another version.

        Returns:
            True if an entry was invalidated, False if absent or current
        """
        entry = self.get_entry(key)
        if entry is None or entry.version == new_version:
            return False
        self.remove(key)
        logger.info(f"Invalidated {key} ({entry.version} -> {new_version})")
        return True

    def remove(self, key: str) -> None:
        """Delete the entry at key. Missing keys are ignored."""
        try:
            self.backend.delete(key)
        except Exception as e:
            raise StorageFailure("delete", key, str(e)) from e

    def remove_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        removed = 0
        for key in self.keys():
            if key.startswith(prefix):
                self.remove(key)
                removed += 1
        return removed

    def sweep(self, max_age: Optional[float] = None) -> int:
        """
        Remove every entry older than max_age seconds in a single scan.

        Concurrent sweeps must be serialized by the caller.

        Returns:
            Number of entries removed
        """
        max_age = max_age if max_age is not None else settings.cache_sweep_max_age_seconds
        cutoff = self._clock() - max_age
        try:
            stale_keys = self.backend.keys_created_before(cutoff)
        except Exception as e:
            raise StorageFailure("sweep", "*", str(e)) from e

        removed = 0
        for key in stale_keys:
            try:
                if self.backend.delete(key):
                    removed += 1
            except Exception as e:
                raise StorageFailure("delete", key, str(e)) from e

        if removed:
            logger.info(f"Swept {removed} cache entries older than {max_age:.0f}s")
        return removed

    def clear(self) -> None:
        """Delete every entry and reset the access counters."""
        try:
            self.backend.clear()
        except Exception as e:
            raise StorageFailure("clear", "*", str(e)) from e
        self.reset_stats()
        logger.info("Cache cleared")

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def keys(self) -> list[str]:
        try:
            return self.backend.keys()
        except Exception as e:
            raise StorageFailure("keys", "*", str(e)) from e

    def keys_for_version(self, version: str) -> list[str]:
        try:
            return self.backend.keys_for_version(version)
        except Exception as e:
            raise StorageFailure("keys", version, str(e)) from e

    def stats(self) -> CacheStats:
        """Contents summary plus hit/miss rates since the last reset."""
        try:
            entries = list(self.backend.iter_entries())
        except Exception as e:
            raise StorageFailure("stats", "*", str(e)) from e

        lookups = self._counters.lookups
        timestamps = [e.created_at for e in entries]
        return CacheStats(
            count=len(entries),
            total_size=sum(e.size for e in entries),
            oldest_timestamp=min(timestamps) if timestamps else None,
            newest_timestamp=max(timestamps) if timestamps else None,
            hit_rate=self._counters.hits / lookups if lookups else 0.0,
            miss_rate=self._counters.misses / lookups if lookups else 0.0,
            counters=CacheCounters(**vars(self._counters)),
        )

    def status(self, expected_version: str) -> dict:
        """Count of stored entries versus entries still valid for a version."""
        now = self._clock()
        total = 0
        valid = 0
        try:
            for entry in self.backend.iter_entries():
                total += 1
                if entry.version == expected_version and entry.age(now) <= self.ttl_seconds:
                    valid += 1
        except Exception as e:
            raise StorageFailure("status", "*", str(e)) from e
        return {
            "total_entries": total,
            "valid_entries": valid,
            "expected_version": expected_version,
            "ttl_seconds": self.ttl_seconds,
        }

    def reset_stats(self) -> None:
        self._counters = CacheCounters()
