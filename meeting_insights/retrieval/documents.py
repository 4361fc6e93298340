"""Document detail, transcript, listing and catalog handlers."""

from __future__ import annotations

import logging

from meeting_insights.context import ServiceContext
from meeting_insights.extraction.themes import THEMES
from meeting_insights.ingestion.layout import find_transcript_file
from meeting_insights.retrieval.models import (
    DocumentDetail,
    DocumentList,
    DocumentSummary,
    FolderList,
    FolderOut,
    NotFound,
    QuoteOut,
    ThemeCatalog,
    ThemeCatalogEntry,
    ThemeOut,
    TranscriptResponse,
)

logger = logging.getLogger(__name__)


def get_document(ctx: ServiceContext, document_id: str) -> DocumentDetail | NotFound:
    """Full stored detail for one meeting."""
    document = ctx.store.get_document(document_id)
    if document is None:
        return NotFound(error=f"Document not found: {document_id}", document_id=document_id)

    return DocumentDetail(
        id=document.id,
        title=document.title,
        folders=document.folders,
        created_at=document.created_at,
        updated_at=document.updated_at,
        insights_summary=document.insights_summary,
        raw_summary=document.raw_summary,
        themes=[ThemeOut.from_theme(t) for t in document.themes],
        key_quotes=[QuoteOut.from_quote(q) for q in document.key_quotes],
        has_transcript=document.has_transcript,
    )


def get_transcript(ctx: ServiceContext, document_id: str) -> TranscriptResponse | NotFound:
    """Raw transcript text, located through the export layout by title."""
    document = ctx.store.get_document(document_id)
    if document is None:
        return NotFound(error=f"Document not found: {document_id}", document_id=document_id)

    path = find_transcript_file(ctx.export_dir, document.title)
    if path is None:
        logger.info("No transcript file for %s (%s)", document_id, document.title)
        return NotFound(
            error=f"Transcript not available for: {document.title}",
            document_id=document_id,
        )

    return TranscriptResponse(
        document_id=document_id,
        title=document.title,
        transcript=path.read_text(encoding="utf-8"),
    )


def list_documents(
    ctx: ServiceContext,
    folder: str | None = None,
    limit: int = 20,
) -> DocumentList:
    """Newest meetings first; ``total_count`` counts all matches before *limit*."""
    documents = ctx.store.list_documents(folder=folder)
    return DocumentList(
        documents=[
            DocumentSummary(
                id=d.id,
                title=d.title,
                folders=d.folders,
                date=d.date,
                summary=d.insights_summary,
                has_transcript=d.has_transcript,
            )
            for d in documents[:limit]
        ],
        total_count=len(documents),
    )


def list_folders(ctx: ServiceContext) -> FolderList:
    return FolderList(
        folders=[
            FolderOut(name=f.name, document_count=f.document_count)
            for f in ctx.store.folder_stats()
        ]
    )


def list_themes(ctx: ServiceContext) -> ThemeCatalog:
    """Every registry theme with its live document and evidence counts."""
    stats = ctx.store.theme_stats()
    entries = []
    for theme in THEMES:
        theme_stats = stats.get(theme.id)
        entries.append(
            ThemeCatalogEntry(
                id=theme.id,
                name=theme.name,
                description=theme.prompt,
                document_count=theme_stats.document_count if theme_stats else 0,
                total_evidence_count=theme_stats.total_evidence_count if theme_stats else 0,
            )
        )
    return ThemeCatalog(themes=entries)
