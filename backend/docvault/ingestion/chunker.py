"""
Text chunking for document processing.

Pages are split into overlapping fixed-size windows that prefer to end
on a sentence boundary. Every chunk inherits the structural tag of the
page it came from, and chunks are numbered contiguously across the
whole document.
"""

import logging
from typing import Optional

from docvault.config import settings
from docvault.core.models import Chunk
from docvault.ingestion.extractor import ExtractionResult

logger = logging.getLogger(__name__)


class TextChunker:
    """
    Sentence-aware fixed-size chunking with overlap.

    Usage:
        chunker = TextChunker(chunk_size=2000, chunk_overlap=200)
        chunks = chunker.chunk_pages("law.pdf", [(page_text, extraction), ...])

        for chunk in chunks:
            print(f"Chunk {chunk.sequence_index}: {chunk.structural_tag}")
    """

    # Cut at the last sentence end only if it falls past this share of the window
    SENTENCE_CUT_RATIO = 0.7

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else settings.chunk_overlap
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )

    def split_text(self, text: str) -> list[str]:
        """
        Split text into overlapping windows.

        Returns:
            Non-empty, stripped pieces in document order
        """
        if not text or not text.strip():
            return []

        pieces = []
        start = 0

        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            window = text[start:end]

            # Prefer ending on a sentence boundary when not at the end
            if end < len(text):
                last_period = window.rfind(".")
                if last_period > self.chunk_size * self.SENTENCE_CUT_RATIO:
                    window = window[:last_period + 1]

            piece = window.strip()
            if piece:
                pieces.append(piece)

            if start + len(window) >= len(text):
                break

            step = len(window) - self.chunk_overlap
            start += step if step > 0 else len(window)

        return pieces

    def chunk_pages(
        self,
        document_id: str,
        pages: list[tuple[str, ExtractionResult]],
    ) -> list[Chunk]:
        """
        Chunk a document page by page.

        Args:
            document_id: Identifier of the source document
            pages: (page_text, extraction) pairs in page order

        Returns:
            Chunks with sequence_index contiguous from 0
        """
        chunks: list[Chunk] = []

        for page_text, extraction in pages:
            for piece in self.split_text(page_text):
                index = len(chunks)
                chunks.append(Chunk(
                    id=f"{document_id}#chunk_{index}",
                    content=piece,
                    source_document=document_id,
                    sequence_index=index,
                    structural_tag=extraction.tag,
                ))

        logger.debug(f"Split {document_id} into {len(chunks)} chunks")
        return chunks
