"""
Health check API routes.

Provides endpoints for monitoring system health and readiness.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docvault import __version__
from docvault.api.dependencies import get_cache_store, get_pipeline
from docvault.cache import CacheStore
from docvault.core.errors import StorageFailure
from docvault.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class ServiceHealth(BaseModel):
    """Health status of a single service."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: Optional[str] = None
    latency_ms: Optional[float] = None


class HealthResponse(BaseModel):
    """Complete health check response."""
    status: str
    timestamp: str
    version: str
    services: dict[str, ServiceHealth]
    cache: Optional[dict] = None


class LivenessResponse(BaseModel):
    """Liveness check response."""
    alive: bool
    timestamp: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_cache(store: CacheStore) -> ServiceHealth:
    start = time.perf_counter()
    reachable = store.backend.ping()
    latency = (time.perf_counter() - start) * 1000
    if not reachable:
        return ServiceHealth(
            name="cache",
            status="unhealthy",
            message=f"{store.backend.name} backend not reachable",
            latency_ms=round(latency, 2),
        )
    return ServiceHealth(
        name="cache",
        status="healthy",
        message=f"{store.backend.name} backend",
        latency_ms=round(latency, 2),
    )


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse)
async def health_check(
    store: CacheStore = Depends(get_cache_store),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Health of the cache backend and the ingestion pipeline, with cache stats.

    The service is unhealthy when the cache backend cannot be reached.
    """
    services = {
        "cache": _check_cache(store),
        "ingestion": ServiceHealth(
            name="ingestion",
            status="healthy",
            message=f"state={pipeline.state.value}",
        ),
    }
    overall = "healthy" if all(s.status == "healthy" for s in services.values()) else "unhealthy"

    cache_stats = None
    if services["cache"].status == "healthy":
        try:
            cache_stats = store.stats().to_dict()
        except StorageFailure as e:
            logger.warning(f"Could not collect cache stats: {e}")

    return HealthResponse(
        status=overall,
        timestamp=_now(),
        version=__version__,
        services=services,
        cache=cache_stats,
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness_check():
    """Liveness probe: the process is up and serving requests."""
    return LivenessResponse(alive=True, timestamp=_now())
