"""Index endpoint: rebuild the vector index from the served export directory."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from meeting_insights.api.deps import get_context
from meeting_insights.api.models import IndexRequest, IndexResponse
from meeting_insights.context import ServiceContext
from meeting_insights.ingestion.pipeline import index_export

router = APIRouter()


@router.post("/api/index", response_model=IndexResponse)
async def build_index(
    request: IndexRequest,
    ctx: ServiceContext = Depends(get_context),
) -> IndexResponse:
    """Rebuild the index (full replace) for the export directory the API serves.

    The query routes read the index under that directory, so ``source_dir``
    may only name it; other directories are indexed with the CLI script.
    """
    source_dir = Path(request.source_dir) if request.source_dir else ctx.export_dir
    if source_dir.resolve() != ctx.export_dir.resolve():
        raise HTTPException(
            status_code=400,
            detail=f"source_dir must be the served export directory: {ctx.export_dir}",
        )
    if not source_dir.is_dir():
        raise HTTPException(status_code=400, detail=f"Export directory not found: {source_dir}")

    result = await index_export(
        ctx,
        ctx.export_dir,
        model=request.model,
        skip_extraction=request.skip_extraction,
        bulk_extraction=request.bulk_extraction,
    )
    return IndexResponse(
        documents_indexed=result.documents_indexed,
        chunks_created=result.chunks_created,
        db_path=str(ctx.db_path),
    )
