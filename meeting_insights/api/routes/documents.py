"""Document endpoints: list, detail, transcript and folders."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from meeting_insights.api.deps import get_context, raise_if_not_found
from meeting_insights.context import ServiceContext
from meeting_insights.retrieval import documents
from meeting_insights.retrieval.models import (
    DocumentDetail,
    DocumentList,
    FolderList,
    TranscriptResponse,
)

router = APIRouter()


@router.get("/api/documents", response_model=DocumentList)
async def list_documents(
    folder: str | None = None,
    limit: int = Query(default=20, ge=1, le=500),
    ctx: ServiceContext = Depends(get_context),
) -> DocumentList:
    """List indexed meetings ordered by creation date (newest first)."""
    return documents.list_documents(ctx, folder=folder, limit=limit)


@router.get("/api/documents/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: str,
    ctx: ServiceContext = Depends(get_context),
) -> DocumentDetail:
    result = documents.get_document(ctx, document_id)
    raise_if_not_found(result)
    return result  # type: ignore[return-value]


@router.get("/api/documents/{document_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(
    document_id: str,
    ctx: ServiceContext = Depends(get_context),
) -> TranscriptResponse:
    result = documents.get_transcript(ctx, document_id)
    raise_if_not_found(result)
    return result  # type: ignore[return-value]


@router.get("/api/folders", response_model=FolderList)
async def list_folders(ctx: ServiceContext = Depends(get_context)) -> FolderList:
    """Folders with their document counts, largest first."""
    return documents.list_folders(ctx)
