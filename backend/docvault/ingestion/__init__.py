"""Document ingestion pipeline: fetching, PDF parsing, structural tagging, chunking."""

from .chunker import TextChunker
from .extractor import DocumentKind, StructuralExtractor, extract
from .pdf_parser import PDFParser
from .pipeline import IngestionPipeline, LoadResult
from .progress import ProgressReporter, ProgressSnapshot

__all__ = [
    "TextChunker",
    "DocumentKind",
    "StructuralExtractor",
    "extract",
    "PDFParser",
    "IngestionPipeline",
    "LoadResult",
    "ProgressReporter",
    "ProgressSnapshot",
]
