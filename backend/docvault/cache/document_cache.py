"""
Document-scoped view over the cache store.

Lays out the keys used for ingested documents:
- "document:<id>"  combined, marker-annotated text of a document
- "chunks:<id>"    the document's chunk list
- "search:<key>"   chunk lists returned for a keyword or text search

A document's text and chunks are always written together in one group
write so a reader never sees one without the other.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from docvault.cache.store import CacheStore
from docvault.core.errors import StorageFailure
from docvault.core.models import Chunk

logger = logging.getLogger(__name__)

DOCUMENT_PREFIX = "document:"
CHUNKS_PREFIX = "chunks:"
SEARCH_PREFIX = "search:"

# Raised while decoding a payload written under an older layout
DECODE_ERRORS = (KeyError, TypeError, AttributeError, ValueError)


@dataclass(frozen=True)
class CachedDocument:
    document_id: str
    text: str
    chunks: tuple[Chunk, ...]


def document_key(document_id: str) -> str:
    return f"{DOCUMENT_PREFIX}{document_id}"


def chunks_key(document_id: str) -> str:
    return f"{CHUNKS_PREFIX}{document_id}"


def search_key(keywords: list[str], document_id: Optional[str] = None) -> str:
    """Order-independent key for a keyword search."""
    return f"{SEARCH_PREFIX}kw_{'_'.join(sorted(keywords))}_{document_id or 'all'}"


def text_search_key(search_text: str, document_id: Optional[str] = None) -> str:
    """Case- and whitespace-normalized key for a free-text search."""
    normalized = re.sub(r"\s+", "_", search_text.strip().lower())
    return f"{SEARCH_PREFIX}text_{normalized}_{document_id or 'all'}"


class DocumentCache:
    """
    Typed document and chunk caching on top of a CacheStore.

    Usage:
        cache = DocumentCache(store, version="v1.0")
        cache.cache_document("law.pdf", text, chunks)
        cached = cache.get_document("law.pdf")
    """

    def __init__(self, store: CacheStore, version: str):
        self.store = store
        self.version = version

    def cache_document(self, document_id: str, text: str, chunks: list[Chunk]) -> None:
        """
        Write a document's text and chunks together.

        Raises:
            StorageFailure: if the group write fails
        """
        self.store.put_many(
            [
                (document_key(document_id), {"text": text, "chunk_count": len(chunks)}),
                (chunks_key(document_id), [chunk.to_dict() for chunk in chunks]),
            ],
            version=self.version,
        )
        logger.info(f"Cached document {document_id} ({len(chunks)} chunks)")

    def get_document(self, document_id: str) -> Optional[CachedDocument]:
        """
        The cached text and chunks, or None unless both are valid.

        Entries whose payload no longer decodes are dropped and reported
        as a miss.
        """
        document = self.store.get(document_key(document_id), self.version)
        if document is None:
            return None
        chunks = self.get_chunks(document_id)
        try:
            text = document["text"]
            expected = document["chunk_count"]
            if not isinstance(text, str):
                raise TypeError(f"text is {type(text).__name__}")
        except DECODE_ERRORS as e:
            logger.warning(f"Malformed cache entry for {document_id}, dropping: {e}")
            self._discard(document_key(document_id))
            self._discard(chunks_key(document_id))
            return None
        if chunks is None or len(chunks) != expected:
            logger.warning(f"Incomplete cache entries for {document_id}, ignoring")
            return None
        return CachedDocument(document_id=document_id, text=text, chunks=tuple(chunks))

    def get_chunks(self, document_id: str) -> Optional[list[Chunk]]:
        key = chunks_key(document_id)
        return self._decode_chunks(key, self.store.get(key, self.version))

    def _decode_chunks(self, key: str, payload: Any) -> Optional[list[Chunk]]:
        if payload is None:
            return None
        try:
            return [Chunk.from_dict(item) for item in payload]
        except DECODE_ERRORS as e:
            logger.warning(f"Malformed cache entry {key}, dropping: {e}")
            self._discard(key)
            return None

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except StorageFailure as e:
            logger.warning(f"Failed to drop cache entry {key}: {e}")

    def remove_document(self, document_id: str) -> None:
        """Drop a document's entries along with every cached search result."""
        self.store.remove(document_key(document_id))
        self.store.remove(chunks_key(document_id))
        removed = self.store.remove_prefix(SEARCH_PREFIX)
        logger.info(f"Removed cache for {document_id} ({removed} search results dropped)")

    def invalidate_document(self, document_id: str, new_version: str) -> bool:
        """Invalidate both entries of a document written under another version."""
        text_dropped = self.store.invalidate(document_key(document_id), new_version)
        chunks_dropped = self.store.invalidate(chunks_key(document_id), new_version)
        return text_dropped or chunks_dropped

    def list_documents(self) -> list[str]:
        return sorted(
            key[len(DOCUMENT_PREFIX):]
            for key in self.store.keys()
            if key.startswith(DOCUMENT_PREFIX)
        )

    def cache_search_results(
        self,
        keywords: list[str],
        chunks: list[Chunk],
        document_id: Optional[str] = None,
    ) -> None:
        key = search_key(keywords, document_id)
        self.store.put(key, [chunk.to_dict() for chunk in chunks], self.version)
        logger.info(f"Cached search results: {key} ({len(chunks)} chunks)")

    def get_search_results(
        self,
        keywords: list[str],
        document_id: Optional[str] = None,
    ) -> Optional[list[Chunk]]:
        key = search_key(keywords, document_id)
        return self._decode_chunks(key, self.store.get(key, self.version))

    def cache_text_search_results(
        self,
        search_text: str,
        chunks: list[Chunk],
        document_id: Optional[str] = None,
    ) -> None:
        key = text_search_key(search_text, document_id)
        self.store.put(key, [chunk.to_dict() for chunk in chunks], self.version)

    def get_text_search_results(
        self,
        search_text: str,
        document_id: Optional[str] = None,
    ) -> Optional[list[Chunk]]:
        key = text_search_key(search_text, document_id)
        return self._decode_chunks(key, self.store.get(key, self.version))
