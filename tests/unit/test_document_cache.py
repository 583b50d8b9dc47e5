"""Unit tests for the document-scoped cache."""

import pytest

from docvault.cache import CacheStore, DocumentCache
from docvault.cache.document_cache import (
    chunks_key,
    document_key,
    search_key,
    text_search_key,
)
from docvault.core.models import Chunk, StructuralTag, TagKind


def _chunks(document_id: str, n: int = 2) -> list[Chunk]:
    return [
        Chunk(
            id=f"{document_id}#chunk_{i}",
            content=f"content {i}",
            source_document=document_id,
            sequence_index=i,
            structural_tag=StructuralTag(TagKind.PAGE, i + 1),
        )
        for i in range(n)
    ]


def test_cache_and_read_document(document_cache: DocumentCache) -> None:
    chunks = _chunks("law.pdf", 3)
    document_cache.cache_document("law.pdf", "[PAGE_1] text", chunks)

    cached = document_cache.get_document("law.pdf")
    assert cached.text == "[PAGE_1] text"
    assert list(cached.chunks) == chunks


def test_article_tags_survive_round_trip(document_cache: DocumentCache) -> None:
    chunk = Chunk(
        id="법률.pdf#chunk_0",
        content="제1조 목적",
        source_document="법률.pdf",
        sequence_index=0,
        structural_tag=StructuralTag(TagKind.ARTICLE, "제1조"),
    )
    document_cache.cache_document("법률.pdf", "[ARTICLE_제1조] 제1조 목적", [chunk])
    assert document_cache.get_chunks("법률.pdf") == [chunk]


def test_missing_chunks_entry_means_no_document(document_cache: DocumentCache, store: CacheStore) -> None:
    document_cache.cache_document("a.pdf", "text", _chunks("a.pdf"))
    store.remove(chunks_key("a.pdf"))
    assert document_cache.get_document("a.pdf") is None


def test_other_version_is_a_miss(store: CacheStore) -> None:
    DocumentCache(store, version="v1.0").cache_document("a.pdf", "text", _chunks("a.pdf"))
    assert DocumentCache(store, version="v2.0").get_document("a.pdf") is None
    assert store.keys() == [chunks_key("a.pdf")]


def test_remove_document_drops_search_results(document_cache: DocumentCache, store: CacheStore) -> None:
    document_cache.cache_document("a.pdf", "text", _chunks("a.pdf"))
    document_cache.cache_document("b.pdf", "text", _chunks("b.pdf"))
    document_cache.cache_search_results(["금연"], _chunks("a.pdf", 1))

    document_cache.remove_document("a.pdf")

    assert sorted(store.keys()) == [chunks_key("b.pdf"), document_key("b.pdf")]
    assert document_cache.list_documents() == ["b.pdf"]


def test_invalidate_document(document_cache: DocumentCache) -> None:
    document_cache.cache_document("a.pdf", "text", _chunks("a.pdf"))
    assert document_cache.invalidate_document("a.pdf", "v1.0") is False
    assert document_cache.invalidate_document("a.pdf", "v2.0") is True
    assert document_cache.get_document("a.pdf") is None


def test_search_key_is_order_independent() -> None:
    assert search_key(["흡연", "금연"]) == search_key(["금연", "흡연"])
    assert search_key(["a"], "doc.pdf") == "search:kw_a_doc.pdf"
    assert search_key(["a"]) == "search:kw_a_all"


def test_text_search_key_normalizes() -> None:
    assert text_search_key("  Smoking   Area ") == "search:text_smoking_area_all"


def test_search_results_round_trip(document_cache: DocumentCache) -> None:
    chunks = _chunks("a.pdf", 2)
    document_cache.cache_search_results(["b", "a"], chunks, "a.pdf")
    document_cache.cache_text_search_results("Smoking Area", chunks[:1])

    assert document_cache.get_search_results(["a", "b"], "a.pdf") == chunks
    assert document_cache.get_search_results(["a", "b"]) is None
    assert document_cache.get_text_search_results("smoking  area") == chunks[:1]


def test_malformed_chunks_are_dropped(document_cache: DocumentCache, store: CacheStore) -> None:
    document_cache.cache_document("a.pdf", "text", _chunks("a.pdf", 1))
    store.put(chunks_key("a.pdf"), [{"content": "x"}], "v1.0")

    assert document_cache.get_document("a.pdf") is None
    assert chunks_key("a.pdf") not in store.keys()


@pytest.mark.parametrize("payload", ["just text", ["text", 1], {"chunk_count": 1}, {"text": 3, "chunk_count": 1}])
def test_malformed_document_payload_is_a_miss(
    document_cache: DocumentCache, store: CacheStore, payload
) -> None:
    document_cache.cache_document("a.pdf", "text", _chunks("a.pdf", 1))
    store.put(document_key("a.pdf"), payload, "v1.0")

    assert document_cache.get_document("a.pdf") is None
    assert store.keys() == []


def test_malformed_search_results_are_a_miss(document_cache: DocumentCache, store: CacheStore) -> None:
    store.put(search_key(["a"]), {"not": "a list of chunks"}, "v1.0")
    assert document_cache.get_search_results(["a"]) is None
    assert store.keys() == []
