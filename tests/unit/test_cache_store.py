"""Unit tests for the versioned cache store."""

from typing import Optional

import pytest

from docvault.cache import CacheEntry, CacheStore, InMemoryBackend
from docvault.cache.entry import compute_checksum
from docvault.core.errors import StorageFailure


class BrokenBackend(InMemoryBackend):
    """Backend whose reads and writes always fail."""

    def get(self, key: str) -> Optional[CacheEntry]:
        raise OSError("disk unavailable")

    def put(self, entry: CacheEntry) -> None:
        raise OSError("disk full")

    def put_many(self, entries) -> None:
        raise OSError("disk full")


def test_put_then_get_round_trip(store: CacheStore) -> None:
    payload = {"text": "본문", "pages": [1, 2, 3]}
    store.put("document:law.pdf", payload, "1.0")
    assert store.get("document:law.pdf", "1.0") == payload


def test_version_mismatch_is_a_miss_and_deletes(store: CacheStore) -> None:
    store.put("k", "value", "1.0")

    assert store.get("k", "2.0") is None
    assert "k" not in store.keys()
    assert store.get("k", "1.0") is None

    counters = store.stats().counters
    assert counters.version_invalidations == 1
    assert counters.misses == 2


def test_expired_entry_is_absent_regardless_of_version(store: CacheStore, clock) -> None:
    store.put("k", "value", "1.0")
    clock.advance(store.ttl_seconds + 1)

    assert store.get("k", "1.0") is None
    assert "k" not in store.keys()
    assert store.stats().counters.expirations == 1


def test_entry_at_ttl_boundary_is_still_valid(store: CacheStore, clock) -> None:
    store.put("k", "value", "1.0")
    clock.advance(store.ttl_seconds)
    assert store.get("k", "1.0") == "value"


def test_put_overwrites(store: CacheStore) -> None:
    store.put("k", "old", "1.0")
    store.put("k", "new", "1.0")
    assert store.get("k", "1.0") == "new"


def test_put_records_checksum_and_size(store: CacheStore, clock) -> None:
    store.put("k", {"b": 1, "a": 2}, "1.0")
    entry = store.get_entry("k")

    assert entry.checksum == compute_checksum({"a": 2, "b": 1})
    assert entry.size > 0
    assert entry.created_at == clock.now


def test_get_records_access_time(store: CacheStore, clock) -> None:
    store.put("k", "value", "1.0")
    clock.advance(10)
    store.get("k", "1.0")
    assert store.get_entry("k").last_accessed == clock.now


def test_verify(store: CacheStore) -> None:
    store.put("k", [1, 2, 3], "1.0")
    assert store.verify("k") is True
    assert store.verify("missing") is None


def test_verify_detects_tampering(store: CacheStore) -> None:
    store.put("k", [1, 2, 3], "1.0")
    entry = store.get_entry("k")
    tampered = CacheEntry(
        key=entry.key,
        payload=[1, 2, 4],
        version=entry.version,
        checksum=entry.checksum,
        created_at=entry.created_at,
        size=entry.size,
    )
    store.backend.put(tampered)
    assert store.verify("k") is False


def test_invalidate(store: CacheStore) -> None:
    store.put("k", "value", "1.0")

    assert store.invalidate("k", "1.0") is False
    assert store.invalidate("k", "2.0") is True
    assert store.get_entry("k") is None
    assert store.invalidate("k", "2.0") is False


def test_remove_is_idempotent(store: CacheStore) -> None:
    store.put("k", "value", "1.0")
    store.remove("k")
    store.remove("k")
    assert store.get("k", "1.0") is None


def test_remove_prefix(store: CacheStore) -> None:
    store.put("search:kw_a_all", [], "1.0")
    store.put("search:kw_b_all", [], "1.0")
    store.put("document:x", {}, "1.0")

    assert store.remove_prefix("search:") == 2
    assert store.keys() == ["document:x"]


def test_sweep_removes_only_old_entries(store: CacheStore, clock) -> None:
    store.put("old-1", 1, "1.0")
    store.put("old-2", 2, "1.0")
    clock.advance(100)
    store.put("fresh", 3, "1.0")

    assert store.sweep(max_age=50) == 2
    assert store.keys() == ["fresh"]
    assert store.sweep(max_age=50) == 0


def test_stats(store: CacheStore, clock) -> None:
    empty = store.stats()
    assert empty.count == 0
    assert empty.oldest_timestamp is None
    assert empty.hit_rate == 0.0

    store.put("a", "x", "1.0")
    clock.advance(5)
    store.put("b", "y", "1.0")

    store.get("a", "1.0")
    store.get("a", "1.0")
    store.get("b", "1.0")
    store.get("missing", "1.0")

    stats = store.stats()
    assert stats.count == 2
    assert stats.total_size == sum(e.size for e in store.backend.iter_entries())
    assert stats.newest_timestamp - stats.oldest_timestamp == 5
    assert stats.hit_rate == pytest.approx(0.75)
    assert stats.miss_rate == pytest.approx(0.25)
    assert stats.to_dict()["hits"] == 3


def test_reset_stats_keeps_entries(store: CacheStore) -> None:
    store.put("a", "x", "1.0")
    store.get("a", "1.0")
    store.reset_stats()

    stats = store.stats()
    assert stats.counters.hits == 0
    assert stats.count == 1


def test_counters_are_per_instance(clock) -> None:
    backend = InMemoryBackend()
    first = CacheStore(backend, ttl_seconds=60, clock=clock)
    second = CacheStore(backend, ttl_seconds=60, clock=clock)

    first.put("k", 1, "1.0")
    first.get("k", "1.0")

    assert first.stats().counters.hits == 1
    assert second.stats().counters.hits == 0


def test_clear_resets_everything(store: CacheStore) -> None:
    store.put("a", "x", "1.0")
    store.get("a", "1.0")
    store.clear()

    stats = store.stats()
    assert stats.count == 0
    assert stats.counters.lookups == 0


def test_keys_for_version(store: CacheStore) -> None:
    store.put("a", 1, "1.0")
    store.put("b", 2, "2.0")
    assert store.keys_for_version("2.0") == ["b"]


def test_status_counts_valid_entries(store: CacheStore, clock) -> None:
    store.put("old", 1, "1.0")
    clock.advance(store.ttl_seconds + 1)
    store.put("current", 2, "1.0")
    store.put("other-version", 3, "0.9")

    status = store.status("1.0")
    assert status["total_entries"] == 3
    assert status["valid_entries"] == 1


def test_read_error_degrades_to_miss(clock) -> None:
    store = CacheStore(BrokenBackend(), ttl_seconds=60, clock=clock)

    assert store.get("k", "1.0") is None
    counters = store.stats().counters
    assert counters.read_errors == 1
    assert counters.misses == 1


def test_write_error_raises_storage_failure(clock) -> None:
    store = CacheStore(BrokenBackend(), ttl_seconds=60, clock=clock)

    with pytest.raises(StorageFailure) as exc_info:
        store.put("k", "value", "1.0")
    assert exc_info.value.key == "k"

    with pytest.raises(StorageFailure):
        store.put_many([("a", 1), ("b", 2)], "1.0")


def test_large_entry_still_stored(clock, caplog) -> None:
    store = CacheStore(InMemoryBackend(), ttl_seconds=60, large_entry_bytes=10, clock=clock)
    with caplog.at_level("WARNING"):
        store.put("big", "x" * 100, "1.0")

    assert store.get("big", "1.0") == "x" * 100
    assert "Large cache entry" in caplog.text
