"""Theme endpoints: catalog with live stats and per-theme evidence."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from meeting_insights.api.deps import get_context
from meeting_insights.context import ServiceContext
from meeting_insights.retrieval.documents import list_themes
from meeting_insights.retrieval.models import ThemeCatalog, ThemeSearchResponse
from meeting_insights.retrieval.search import search_by_theme

router = APIRouter()


@router.get("/api/themes", response_model=ThemeCatalog)
async def theme_catalog(ctx: ServiceContext = Depends(get_context)) -> ThemeCatalog:
    return list_themes(ctx)


@router.get("/api/themes/{theme_id}/documents", response_model=ThemeSearchResponse)
async def theme_documents(
    theme_id: str,
    folder: str | None = None,
    limit: int = Query(default=10, ge=1, le=100),
    ctx: ServiceContext = Depends(get_context),
) -> ThemeSearchResponse:
    """Meetings tagged with *theme_id* and the evidence for it."""
    return search_by_theme(ctx, theme_id, folder=folder, limit=limit)
