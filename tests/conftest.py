"""Shared pytest configuration and fixtures."""

import os

# Must be set before docvault.config builds its settings instance
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("INTER_DOCUMENT_PAUSE_SECONDS", "0")

from typing import Optional

import pytest

from docvault.cache import CacheStore, DocumentCache, InMemoryBackend
from docvault.core.errors import FetchFailure


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "pdf: tests that build real PDFs with PyMuPDF")


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Serves in-memory documents; listed locations fail."""

    def __init__(self, documents: dict[str, str], failing: Optional[set[str]] = None):
        self.documents = documents
        self.failing = failing or set()
        self.calls: list[str] = []

    async def fetch(self, location: str) -> bytes:
        self.calls.append(location)
        name = location.rsplit("/", 1)[-1]
        if name in self.failing or name not in self.documents:
            raise FetchFailure(location, "not found")
        return self.documents[name].encode("utf-8")


class FakeParser:
    """Treats the bytes as UTF-8 text with form feeds between pages."""

    def parse_pages(self, data: bytes, filename: str) -> list[str]:
        return data.decode("utf-8").split("\f")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> CacheStore:
    return CacheStore(InMemoryBackend(), ttl_seconds=3600, clock=clock)


@pytest.fixture
def document_cache(store: CacheStore) -> DocumentCache:
    return DocumentCache(store, version="v1.0")


@pytest.fixture
def corpus() -> dict[str, str]:
    return {
        "a.pdf": "Alpha guidance text.\n1",
        "b.pdf": "Beta guidance text.\n1",
        "c.pdf": "Gamma guidance text.\f Second page of gamma.\n- 2 -",
    }


@pytest.fixture
def fetcher(corpus: dict[str, str]) -> FakeFetcher:
    return FakeFetcher(corpus)


@pytest.fixture
def parser() -> FakeParser:
    return FakeParser()
