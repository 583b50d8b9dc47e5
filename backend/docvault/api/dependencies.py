"""
FastAPI dependencies for dependency injection.

Service instances are created once in the application lifespan and kept
on app.state; routes receive them through these providers.
"""

from fastapi import Request

from docvault.cache import CacheStore, DocumentCache
from docvault.ingestion import IngestionPipeline


def get_cache_store(request: Request) -> CacheStore:
    """Dependency for the cache store."""
    return request.app.state.cache_store


def get_document_cache(request: Request) -> DocumentCache:
    """Dependency for the document-scoped cache."""
    return request.app.state.document_cache


def get_pipeline(request: Request) -> IngestionPipeline:
    """Dependency for the ingestion pipeline."""
    return request.app.state.pipeline
