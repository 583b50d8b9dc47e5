"""
Ingestion API routes.

Runs progressive ingestion over a list of documents and exposes its
progress, per-document results, combined text and chunk pool.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from docvault.api.dependencies import get_pipeline
from docvault.ingestion import IngestionPipeline
from docvault.ingestion.pipeline import PipelineState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingestion", tags=["ingestion"])


class IngestionRequest(BaseModel):
    """Request to ingest an ordered list of documents."""
    documents: list[str] = Field(..., min_length=1)
    base_prefix: Optional[str] = None


class LoadResultResponse(BaseModel):
    document_id: str
    outcome: str
    elapsed_time: float
    chunk_count: int
    error_kind: Optional[str] = None
    error: Optional[str] = None
    from_cache: bool = False


class ProgressResponse(BaseModel):
    current: int
    total: int
    current_item: str
    status: str
    succeeded: list[str]
    failed: list[str]
    loaded_chunks: int
    estimated_time_remaining: float


class IngestionRunResponse(BaseModel):
    """Outcome of a completed ingestion run."""
    succeeded: list[str]
    failed: list[str]
    results: list[LoadResultResponse]
    progress: ProgressResponse


class ChunkResponse(BaseModel):
    id: str
    content: str
    source_document: str
    sequence_index: int
    structural_tag: Optional[dict] = None
    size: int


@router.post("/run", response_model=IngestionRunResponse)
async def run_ingestion(
    request: IngestionRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Ingest documents one at a time, in the given order.

    Individual failures do not abort the run; they are reported per
    document. Returns 409 if another run is still in progress.
    """
    if pipeline.state == PipelineState.RUNNING:
        raise HTTPException(status_code=409, detail="An ingestion run is already in progress")

    try:
        results = await pipeline.run(request.documents, base_prefix=request.base_prefix)
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return IngestionRunResponse(
        succeeded=[r.document_id for r in results if r.success],
        failed=[r.document_id for r in results if not r.success],
        results=[LoadResultResponse(**r.to_dict()) for r in results],
        progress=ProgressResponse(**pipeline.progress.to_dict()),
    )


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Latest progress snapshot."""
    return ProgressResponse(**pipeline.progress.to_dict())


@router.get("/results", response_model=list[LoadResultResponse])
async def get_results(pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Per-document results of the most recent run."""
    return [LoadResultResponse(**r.to_dict()) for r in pipeline.get_last_results()]


@router.get("/combined-text")
async def get_combined_text(pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Text of every loaded document joined with document boundary markers."""
    loaded = pipeline.get_loaded()
    return {
        "documents": [doc_id for doc_id, r in loaded.items() if r.success],
        "text": pipeline.get_combined_text(),
    }


@router.get("/chunks", response_model=list[ChunkResponse])
async def get_chunks(
    document_id: Optional[str] = None,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Chunk pool of all loaded documents, optionally for one document only."""
    chunks = pipeline.get_all_chunks()
    if document_id:
        chunks = [c for c in chunks if c.source_document == document_id]
    return [ChunkResponse(**c.to_dict()) for c in chunks]


@router.post("/cleanup")
async def cleanup(pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Release loaded documents, the chunk pool and progress listeners."""
    try:
        pipeline.cleanup()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"message": "Ingestion state cleaned up"}
