"""
docvault Backend Application

FastAPI application serving cached, progressive document ingestion.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docvault import __version__
from docvault.api.routes import cache_router, health_router, ingestion_router
from docvault.cache import CacheStore, DocumentCache, create_backend
from docvault.config import settings
from docvault.ingestion import IngestionPipeline
from docvault.ingestion.pipeline import PipelineState

# DEBUG mode: full details with timestamps and module names
# INFO mode: clean output for progress visibility
if settings.debug:
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = logging.DEBUG
else:
    log_format = "%(message)s"
    log_level = logging.INFO

logging.basicConfig(level=log_level, format=log_format)


class ThirdPartyNoiseFilter(logging.Filter):
    """
    Filter for third-party library logs.

    Drops known repetitive connection-level messages below WARNING and
    lets everything else through.
    """

    NOISE_PATTERNS = [
        # httpx/httpcore connection pool messages
        "HTTP Request:",
        "connect_tcp.started",
        "connect_tcp.complete",
        "send_request_headers",
        "receive_response_headers",
        "receive_response_body",
        "close.started",
        "close.complete",
        # urllib3 pool messages
        "Starting new HTTP",
        "Resetting dropped connection",
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True

        message = record.getMessage()
        return not any(pattern in message for pattern in self.NOISE_PATTERNS)


_noise_filter = ThirdPartyNoiseFilter()
for third_party_logger in ["httpx", "httpcore", "urllib3"]:
    logging.getLogger(third_party_logger).addFilter(_noise_filter)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the cache and pipeline on startup, release the backend on shutdown."""
    logger.info("Starting docvault backend...")

    backend = create_backend(settings.cache_backend, settings.cache_db_path)
    store = CacheStore(backend)
    document_cache = DocumentCache(store, version=settings.cache_version)

    removed = store.sweep()
    if removed:
        logger.info(f"Removed {removed} stale cache entries on startup")

    app.state.cache_store = store
    app.state.document_cache = document_cache
    app.state.pipeline = IngestionPipeline(document_cache=document_cache)
    logger.info(f"Cache ready ({backend.name} backend, version {settings.cache_version})")

    yield

    logger.info("Shutting down docvault backend...")
    if app.state.pipeline.state != PipelineState.RUNNING:
        app.state.pipeline.cleanup()
    backend.close()


app = FastAPI(
    title="docvault API",
    description="""
    Cached, progressive ingestion of PDF and legal documents.

    ## Features

    - **Ingestion**: Load an ordered list of documents with live progress
    - **Structural tagging**: Article labels for statutes, page numbers otherwise
    - **Cache**: Versioned, checksummed, expiring document and chunk cache

    ## Getting Started

    1. Ingest documents via `/ingestion/run`
    2. Follow progress via `/ingestion/progress`
    3. Inspect the cache via `/cache/stats`
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(cache_router)
app.include_router(ingestion_router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "docvault API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "cache": "/cache",
            "ingestion": "/ingestion",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docvault.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.debug,
    )
