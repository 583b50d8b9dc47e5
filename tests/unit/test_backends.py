"""Unit tests for the key/value backends."""

import sqlite3

import pytest

from docvault.cache import CacheEntry, CacheStore, InMemoryBackend, SQLiteBackend, create_backend


def _entry(key: str, created_at: float = 100.0, version: str = "1.0", payload=None) -> CacheEntry:
    return CacheEntry(
        key=key,
        payload=payload if payload is not None else {"key": key},
        version=version,
        checksum="abc",
        created_at=created_at,
        last_accessed=created_at,
        size=10,
    )


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        instance = InMemoryBackend()
    else:
        instance = SQLiteBackend(tmp_path / "cache.db")
    yield instance
    instance.close()


def test_get_missing_returns_none(backend) -> None:
    assert backend.get("missing") is None


def test_put_and_get(backend) -> None:
    entry = _entry("k", payload={"text": "한글 본문", "n": [1, 2]})
    backend.put(entry)
    assert backend.get("k") == entry


def test_put_many_writes_all(backend) -> None:
    backend.put_many([_entry("a"), _entry("b"), _entry("c")])
    assert sorted(backend.keys()) == ["a", "b", "c"]


def test_delete_reports_presence(backend) -> None:
    backend.put(_entry("k"))
    assert backend.delete("k") is True
    assert backend.delete("k") is False


def test_touch_updates_last_accessed(backend) -> None:
    backend.put(_entry("k"))
    backend.touch("k", 500.0)
    assert backend.get("k").last_accessed == 500.0


def test_iter_entries_oldest_first(backend) -> None:
    backend.put_many([_entry("new", 300.0), _entry("old", 100.0), _entry("mid", 200.0)])
    assert [e.key for e in backend.iter_entries()] == ["old", "mid", "new"]


def test_keys_created_before(backend) -> None:
    backend.put_many([_entry("a", 100.0), _entry("b", 200.0), _entry("c", 300.0)])
    assert sorted(backend.keys_created_before(250.0)) == ["a", "b"]


def test_keys_for_version(backend) -> None:
    backend.put_many([_entry("a", version="1.0"), _entry("b", version="2.0")])
    assert backend.keys_for_version("1.0") == ["a"]


def test_clear(backend) -> None:
    backend.put_many([_entry("a"), _entry("b")])
    backend.clear()
    assert backend.keys() == []


def test_ping(backend) -> None:
    assert backend.ping() is True


def test_memory_backend_isolates_payloads() -> None:
    backend = InMemoryBackend()
    payload = {"items": [1]}
    backend.put(_entry("k", payload=payload))
    payload["items"].append(2)

    fetched = backend.get("k")
    fetched.payload["items"].append(3)
    assert backend.get("k").payload == {"items": [1]}


def test_sqlite_persists_across_reopen(tmp_path) -> None:
    path = tmp_path / "nested" / "cache.db"
    first = SQLiteBackend(path)
    first.put(_entry("k", payload={"text": "persisted"}))
    first.close()

    second = SQLiteBackend(path)
    assert second.get("k").payload == {"text": "persisted"}
    second.close()


def test_sqlite_creates_indexes(tmp_path) -> None:
    path = tmp_path / "cache.db"
    SQLiteBackend(path).close()

    with sqlite3.connect(path) as conn:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")}
    assert {"idx_cache_entries_created_at", "idx_cache_entries_version"} <= names


def test_sqlite_group_write_is_atomic(tmp_path) -> None:
    backend = SQLiteBackend(tmp_path / "cache.db")
    bad = _entry("bad", payload={"value": object()})

    with pytest.raises(TypeError):
        backend.put_many([_entry("good"), bad])
    assert backend.keys() == []
    backend.close()


def test_sqlite_ping_fails_after_close(tmp_path) -> None:
    backend = SQLiteBackend(tmp_path / "cache.db")
    backend.close()
    assert backend.ping() is False


def test_store_over_sqlite(tmp_path) -> None:
    store = CacheStore(SQLiteBackend(tmp_path / "cache.db"), ttl_seconds=60)
    store.put_many([("document:a", {"text": "t"}), ("chunks:a", [])], "1.0")

    assert store.get("document:a", "1.0") == {"text": "t"}
    assert store.get("chunks:a", "1.0") == []
    assert store.verify("document:a") is True


def test_create_backend() -> None:
    assert isinstance(create_backend("memory"), InMemoryBackend)
    assert isinstance(create_backend("SQLite"), SQLiteBackend)
    with pytest.raises(ValueError):
        create_backend("redis")
