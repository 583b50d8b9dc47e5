"""
Cache management API routes.

Inspection, invalidation and maintenance of the document cache.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from docvault.api.dependencies import get_cache_store, get_document_cache
from docvault.cache import CacheStore, DocumentCache
from docvault.core.errors import StorageFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


class CacheStatsResponse(BaseModel):
    """Cache contents summary and access counters."""
    count: int
    total_size: int
    oldest_timestamp: Optional[float] = None
    newest_timestamp: Optional[float] = None
    hit_rate: float
    miss_rate: float
    hits: int
    misses: int
    version_invalidations: int
    expirations: int
    read_errors: int


class CacheStatusResponse(BaseModel):
    total_entries: int
    valid_entries: int
    expected_version: str
    ttl_seconds: float


class KeysResponse(BaseModel):
    keys: list[str]
    total: int


class SweepRequest(BaseModel):
    max_age_seconds: Optional[float] = Field(default=None, ge=0)


class SweepResponse(BaseModel):
    removed: int


class InvalidateRequest(BaseModel):
    key: str
    version: str


class InvalidateResponse(BaseModel):
    key: str
    invalidated: bool


class VerifyResponse(BaseModel):
    key: str
    intact: bool


def _storage_error(e: StorageFailure) -> HTTPException:
    logger.error(f"Cache storage error: {e}")
    return HTTPException(status_code=503, detail=str(e))


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(store: CacheStore = Depends(get_cache_store)):
    """Entry count, total size, timestamps and hit/miss rates."""
    try:
        return CacheStatsResponse(**store.stats().to_dict())
    except StorageFailure as e:
        raise _storage_error(e)


@router.post("/stats/reset")
async def reset_cache_stats(store: CacheStore = Depends(get_cache_store)):
    """Reset hit/miss counters without touching stored entries."""
    store.reset_stats()
    return {"message": "Cache statistics reset"}


@router.get("/status", response_model=CacheStatusResponse)
async def cache_status(
    version: Optional[str] = None,
    store: CacheStore = Depends(get_cache_store),
    documents: DocumentCache = Depends(get_document_cache),
):
    """Stored entries versus entries still valid for a version (default: current)."""
    try:
        return CacheStatusResponse(**store.status(version or documents.version))
    except StorageFailure as e:
        raise _storage_error(e)


@router.get("/keys", response_model=KeysResponse)
async def list_keys(
    version: Optional[str] = None,
    store: CacheStore = Depends(get_cache_store),
):
    """List stored keys, optionally only those written under one version."""
    try:
        keys = store.keys_for_version(version) if version else store.keys()
    except StorageFailure as e:
        raise _storage_error(e)
    return KeysResponse(keys=sorted(keys), total=len(keys))


@router.get("/documents")
async def list_cached_documents(documents: DocumentCache = Depends(get_document_cache)):
    """Identifiers of documents with cached text."""
    try:
        ids = documents.list_documents()
    except StorageFailure as e:
        raise _storage_error(e)
    return {"documents": ids, "total": len(ids)}


@router.post("/sweep", response_model=SweepResponse)
async def sweep_cache(
    request: Optional[SweepRequest] = None,
    store: CacheStore = Depends(get_cache_store),
):
    """Remove every entry older than max_age_seconds (default: configured sweep age)."""
    max_age = request.max_age_seconds if request else None
    try:
        return SweepResponse(removed=store.sweep(max_age))
    except StorageFailure as e:
        raise _storage_error(e)


@router.post("/invalidate", response_model=InvalidateResponse)
async def invalidate_entry(
    request: InvalidateRequest,
    store: CacheStore = Depends(get_cache_store),
):
    """Drop an entry if it was written under a version other than the given one."""
    try:
        invalidated = store.invalidate(request.key, request.version)
    except StorageFailure as e:
        raise _storage_error(e)
    return InvalidateResponse(key=request.key, invalidated=invalidated)


@router.get("/verify/{key:path}", response_model=VerifyResponse)
async def verify_entry(key: str, store: CacheStore = Depends(get_cache_store)):
    """Recompute an entry's checksum and compare it with the stored one."""
    try:
        intact = store.verify(key)
    except StorageFailure as e:
        raise _storage_error(e)
    if intact is None:
        raise HTTPException(status_code=404, detail=f"Cache key not found: {key}")
    return VerifyResponse(key=key, intact=intact)


@router.delete("/documents/{document_id:path}")
async def remove_cached_document(
    document_id: str,
    documents: DocumentCache = Depends(get_document_cache),
):
    """Remove a document's text, chunks and all cached search results."""
    try:
        documents.remove_document(document_id)
    except StorageFailure as e:
        raise _storage_error(e)
    return {"message": f"Removed cached document {document_id}"}


@router.delete("/{key:path}")
async def remove_entry(key: str, store: CacheStore = Depends(get_cache_store)):
    """Delete a single entry. Deleting a missing key succeeds."""
    try:
        store.remove(key)
    except StorageFailure as e:
        raise _storage_error(e)
    return {"message": f"Removed {key}"}


@router.delete("")
async def clear_cache(store: CacheStore = Depends(get_cache_store)):
    """Delete every entry and reset statistics."""
    try:
        store.clear()
    except StorageFailure as e:
        raise _storage_error(e)
    return {"message": "Cache cleared"}
