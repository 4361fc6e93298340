"""Pydantic request/response schemas for the Meeting Insights API."""

from __future__ import annotations

from pydantic import BaseModel


class IndexRequest(BaseModel):
    """Request body for the /api/index endpoint."""

    source_dir: str | None = None
    model: str | None = None
    skip_extraction: bool = False
    bulk_extraction: bool = False


class IndexResponse(BaseModel):
    """Response body for the /api/index endpoint."""

    documents_indexed: int
    chunks_created: int
    db_path: str
