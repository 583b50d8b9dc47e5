"""API route modules."""

from .cache import router as cache_router
from .health import router as health_router
from .ingestion import router as ingestion_router

__all__ = [
    "cache_router",
    "health_router",
    "ingestion_router",
]
