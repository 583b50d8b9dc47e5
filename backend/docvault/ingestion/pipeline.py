"""
Progressive multi-document ingestion.

Coordinates, one document at a time:
1. Cache lookup (a valid cached copy skips the remaining steps)
2. Fetching source bytes
3. Parsing bytes into per-page text
4. Structural extraction (article labels or page numbers) per page
5. Chunking
6. Write-through of text and chunks to the cache

A failure at any step fails only that document. The run always
completes and reports which documents succeeded and which failed.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from docvault.cache.document_cache import CachedDocument, DocumentCache
from docvault.config import settings
from docvault.core.errors import DocVaultError, FetchFailure, ParseFailure
from docvault.core.models import Chunk
from docvault.ingestion.chunker import TextChunker
from docvault.ingestion.extractor import StructuralExtractor, classify_document, mark_page
from docvault.ingestion.fetcher import DefaultFetcher, DocumentFetcher, resolve_location
from docvault.ingestion.pdf_parser import PDFParser
from docvault.ingestion.progress import ProgressListener, ProgressReporter, ProgressSnapshot

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n--- END OF DOCUMENT ---\n\n--- START OF DOCUMENT ---\n"


class PageParser(Protocol):
    def parse_pages(self, data: bytes, filename: str) -> Any: ...


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class LoadOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of ingesting one document."""

    document_id: str
    outcome: LoadOutcome
    elapsed_time: float
    text: Optional[str] = None
    chunks: tuple[Chunk, ...] = field(default_factory=tuple)
    error_kind: Optional[str] = None
    error: Optional[str] = None
    from_cache: bool = False

    @property
    def success(self) -> bool:
        return self.outcome == LoadOutcome.SUCCESS

    @classmethod
    def failure(cls, document_id: str, error: Exception, elapsed_time: float) -> "LoadResult":
        return cls(
            document_id=document_id,
            outcome=LoadOutcome.FAILURE,
            elapsed_time=elapsed_time,
            error_kind=type(error).__name__,
            error=str(error),
        )

    def to_dict(self, include_text: bool = False) -> dict:
        data = {
            "document_id": self.document_id,
            "outcome": self.outcome.value,
            "elapsed_time": self.elapsed_time,
            "chunk_count": len(self.chunks),
            "error_kind": self.error_kind,
            "error": self.error,
            "from_cache": self.from_cache,
        }
        if include_text:
            data["text"] = self.text
        return data


class IngestionPipeline:
    """
    Sequential, failure-tolerant ingestion over an ordered document list.

    Documents are never processed concurrently: this bounds peak memory
    and keeps progress and ETA reporting monotonic.

    Usage:
        pipeline = IngestionPipeline(document_cache=DocumentCache(store, "v1.0"))
        pipeline.subscribe(lambda s: print(s.current, s.total, s.status))

        results = await pipeline.run(["a.pdf", "b.pdf"], base_prefix="https://example.org/pdf/")
        failed = [r.document_id for r in results if not r.success]
        text = pipeline.get_combined_text()
    """

    def __init__(
        self,
        fetcher: Optional[DocumentFetcher] = None,
        parser: Optional[PageParser] = None,
        extractor: Optional[StructuralExtractor] = None,
        chunker: Optional[TextChunker] = None,
        document_cache: Optional[DocumentCache] = None,
        reporter: Optional[ProgressReporter] = None,
        pause_seconds: Optional[float] = None,
        use_cache: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher or DefaultFetcher()
        self.parser = parser or PDFParser()
        self.extractor = extractor or StructuralExtractor()
        self.chunker = chunker or TextChunker()
        self.document_cache = document_cache
        self.reporter = reporter or ProgressReporter()
        self.pause_seconds = (
            pause_seconds if pause_seconds is not None else settings.inter_document_pause_seconds
        )
        self.use_cache = use_cache if use_cache is not None else settings.use_cache_on_ingest
        self._clock = clock

        self._state = PipelineState.IDLE
        self._loaded: dict[str, LoadResult] = {}
        self._chunk_pool: list[Chunk] = []
        self._last_results: list[LoadResult] = []

    # =========================================================================
    # STATE & OBSERVERS
    # =========================================================================

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def progress(self) -> ProgressSnapshot:
        return self.reporter.latest

    def subscribe(self, listener: ProgressListener) -> None:
        self.reporter.subscribe(listener)

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(
        self,
        document_ids: list[str],
        base_prefix: Optional[str] = None,
    ) -> list[LoadResult]:
        """
        Ingest documents in order and return one LoadResult per document.

        Args:
            document_ids: Ordered document identifiers (e.g. file names)
            base_prefix: Base URL or directory used to locate each document

        Raises:
            RuntimeError: if a run is already in progress
        """
        if self._state == PipelineState.RUNNING:
            raise RuntimeError("An ingestion run is already in progress")

        base_prefix = base_prefix if base_prefix is not None else settings.document_base_prefix
        total = len(document_ids)
        self._state = PipelineState.RUNNING
        self._last_results = []

        logger.info(f"Starting ingestion run: {total} documents")
        snapshot = ProgressSnapshot(total=total, status="starting")
        self.reporter.publish(snapshot)

        started = self._clock()
        try:
            for i, document_id in enumerate(document_ids):
                snapshot = snapshot.update(
                    current=i + 1,
                    current_item=document_id,
                    status=f"processing {i + 1}/{total}",
                )
                self.reporter.publish(snapshot)

                result = await self._ingest_one(document_id, base_prefix)
                self._last_results.append(result)
                self._loaded[document_id] = result

                if result.success:
                    self._chunk_pool.extend(result.chunks)
                    succeeded = snapshot.succeeded + (document_id,)
                    failed = snapshot.failed
                    source = "cache" if result.from_cache else "source"
                    logger.info(
                        f"Loaded {document_id} from {source} "
                        f"({len(result.chunks)} chunks, {result.elapsed_time:.2f}s)"
                    )
                else:
                    succeeded = snapshot.succeeded
                    failed = snapshot.failed + (document_id,)
                    logger.warning(f"Failed to load {document_id}: {result.error_kind}: {result.error}")

                average = (self._clock() - started) / (i + 1)
                snapshot = snapshot.update(
                    succeeded=succeeded,
                    failed=failed,
                    loaded_chunks=len(self._chunk_pool),
                    estimated_time_remaining=average * (total - (i + 1)),
                )
                self.reporter.publish(snapshot)

                if self.pause_seconds > 0 and i < total - 1:
                    await asyncio.sleep(self.pause_seconds)
        finally:
            self._state = PipelineState.COMPLETED

        elapsed = self._clock() - started
        logger.info(
            f"Ingestion run completed in {elapsed:.2f}s: "
            f"{len(snapshot.succeeded)} succeeded, {len(snapshot.failed)} failed"
        )
        self.reporter.publish(snapshot.update(
            current_item="",
            status=f"completed in {elapsed:.2f}s",
            estimated_time_remaining=0.0,
        ))
        return list(self._last_results)

    async def _ingest_one(self, document_id: str, base_prefix: str) -> LoadResult:
        """Ingest a single document, converting any failure into a failed result."""
        started = self._clock()
        try:
            cached = await asyncio.to_thread(self._read_cache, document_id)
            if cached is not None:
                return LoadResult(
                    document_id=document_id,
                    outcome=LoadOutcome.SUCCESS,
                    elapsed_time=self._clock() - started,
                    text=cached.text,
                    chunks=cached.chunks,
                    from_cache=True,
                )

            text, chunks = await self._load(document_id, base_prefix)

            if self.document_cache is not None:
                await asyncio.to_thread(self.document_cache.cache_document, document_id, text, chunks)

            return LoadResult(
                document_id=document_id,
                outcome=LoadOutcome.SUCCESS,
                elapsed_time=self._clock() - started,
                text=text,
                chunks=tuple(chunks),
            )
        except DocVaultError as e:
            return LoadResult.failure(document_id, e, self._clock() - started)

    def _read_cache(self, document_id: str) -> Optional[CachedDocument]:
        if not self.use_cache or self.document_cache is None:
            return None
        return self.document_cache.get_document(document_id)

    async def _load(self, document_id: str, base_prefix: str) -> tuple[str, list[Chunk]]:
        """
        Fetch, parse, tag and chunk one document.

        Raises:
            FetchFailure: if the source bytes cannot be obtained
            ParseFailure: if parsing fails or yields no text
        """
        location = resolve_location(base_prefix, document_id)
        try:
            data = await self.fetcher.fetch(location)
        except FetchFailure:
            raise
        except Exception as e:
            raise FetchFailure(location, str(e) or type(e).__name__) from e

        try:
            if inspect.iscoroutinefunction(self.parser.parse_pages):
                pages = await self.parser.parse_pages(data, document_id)
            else:
                # Sync parsers run off the event loop
                pages = await asyncio.to_thread(self.parser.parse_pages, data, document_id)
        except ParseFailure:
            raise
        except Exception as e:
            raise ParseFailure(document_id, str(e) or type(e).__name__) from e

        if not pages or not any(page.strip() for page in pages):
            raise ParseFailure(document_id, "extracted text is empty")

        kind = classify_document(document_id)
        logger.debug(f"{document_id}: {len(pages)} pages, kind={kind.value}")

        try:
            tagged = [
                (page, self.extractor.extract(page, kind, page_index, document_id))
                for page_index, page in enumerate(pages, start=1)
            ]
            text = "".join(f"{mark_page(page, result)}\n\n" for page, result in tagged)
            chunks = self.chunker.chunk_pages(document_id, tagged)
        except Exception as e:
            raise ParseFailure(document_id, f"chunk assembly failed: {e}") from e

        return text, chunks

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_all_chunks(self) -> list[Chunk]:
        return list(self._chunk_pool)

    def get_loaded(self) -> dict[str, LoadResult]:
        return dict(self._loaded)

    def get_last_results(self) -> list[LoadResult]:
        return list(self._last_results)

    def get_combined_text(self) -> str:
        """Text of every successfully loaded document, with boundary markers."""
        return DOCUMENT_SEPARATOR.join(
            result.text for result in self._loaded.values() if result.success and result.text
        )

    def cleanup(self) -> None:
        """
        Release loaded documents, the chunk pool and all listeners.

        Raises:
            RuntimeError: if called while a run is in progress
        """
        if self._state == PipelineState.RUNNING:
            raise RuntimeError("Cannot clean up while an ingestion run is in progress")

        self._loaded.clear()
        self._chunk_pool = []
        self._last_results = []
        self.reporter.clear()
        self.reporter.publish(ProgressSnapshot(status="cleaned up"))
        self._state = PipelineState.IDLE
        logger.info("Ingestion state cleaned up")
