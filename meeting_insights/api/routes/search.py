"""Search endpoints: meetings by free text, excerpts by free text."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from meeting_insights.api.deps import get_context
from meeting_insights.context import ServiceContext
from meeting_insights.ingestion.models import ChunkKind
from meeting_insights.retrieval.models import ExcerptResponse, SearchResponse
from meeting_insights.retrieval.search import search, search_excerpts

router = APIRouter()


@router.get("/api/search", response_model=SearchResponse)
async def search_meetings(
    query: str,
    folder: str | None = None,
    limit: int = Query(default=5, ge=1, le=50),
    ctx: ServiceContext = Depends(get_context),
) -> SearchResponse:
    """Meetings ranked by similarity to *query*."""
    return await search(ctx, query, folder=folder, limit=limit)


@router.get("/api/search/excerpts", response_model=ExcerptResponse)
async def search_meeting_excerpts(
    query: str,
    kind: ChunkKind | None = None,
    theme: str | None = None,
    limit: int = Query(default=10, ge=1, le=100),
    ctx: ServiceContext = Depends(get_context),
) -> ExcerptResponse:
    """Individual summaries, themes and quotes ranked by similarity to *query*."""
    return await search_excerpts(ctx, query, kind=kind, theme_name=theme, limit=limit)
