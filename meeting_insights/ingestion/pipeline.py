"""End-to-end indexing pipeline: load -> extract -> embed -> store.

Every run is a full rebuild: documents and chunks are accumulated in memory
and only written, as two bulk operations, after all documents have been
processed. An exception part-way through leaves the existing index as it
was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from meeting_insights.context import ServiceContext
from meeting_insights.extraction.extractor import ExtractionRequest
from meeting_insights.extraction.models import ExtractedInsights, Theme
from meeting_insights.ingestion.embeddings import create_searchable_text
from meeting_insights.ingestion.models import (
    ChunkKind,
    ChunkRecord,
    IndexedDocument,
    SourceDocument,
    chunk_id,
)
from meeting_insights.ingestion.parsers import load_export

logger = logging.getLogger(__name__)

SKIPPED_SUMMARY_CHARS = 500
NO_SUMMARY = "No summary available"


@dataclass
class IndexResult:
    documents_indexed: int
    chunks_created: int


def minimal_insights(notes: str) -> ExtractedInsights:
    """Insights used when extraction is skipped: the start of the notes."""
    return ExtractedInsights(insights_summary=notes[:SKIPPED_SUMMARY_CHARS] or NO_SUMMARY)


def theme_searchable_text(theme: Theme) -> str:
    evidence = " | ".join(f"{e.speaker.tag} {e.text}" for e in theme.evidence)
    return create_searchable_text(
        ChunkKind.THEME,
        f"{theme.description}. Evidence: {evidence}",
        theme_name=theme.name,
    )


async def build_document(
    ctx: ServiceContext,
    source: SourceDocument,
    insights: ExtractedInsights,
) -> tuple[IndexedDocument, list[ChunkRecord]]:
    """Embed one meeting's insights and build its document and chunk records."""
    embedder = ctx.embedder

    summary_vector = await embedder.embed(
        create_searchable_text(ChunkKind.SUMMARY, insights.insights_summary)
    )
    document = IndexedDocument(
        id=source.id,
        title=source.title,
        folders=list(source.folders),
        created_at=source.created_at,
        updated_at=source.updated_at,
        raw_summary=source.notes,
        themes=insights.themes,
        key_quotes=insights.key_quotes,
        insights_summary=insights.insights_summary,
        has_transcript=source.has_transcript,
        vector=summary_vector,
    )

    chunks = [
        ChunkRecord(
            id=chunk_id(source.id, ChunkKind.SUMMARY),
            document_id=source.id,
            content=insights.insights_summary,
            kind=ChunkKind.SUMMARY,
            vector=summary_vector,
        )
    ]
    for theme in insights.themes:
        chunks.append(
            ChunkRecord(
                id=chunk_id(source.id, ChunkKind.THEME, theme.name),
                document_id=source.id,
                content=theme.description,
                kind=ChunkKind.THEME,
                theme_name=theme.name,
            )
        )
    for index, quote in enumerate(insights.key_quotes):
        chunks.append(
            ChunkRecord(
                id=chunk_id(source.id, ChunkKind.QUOTE, index),
                document_id=source.id,
                content=quote.text,
                kind=ChunkKind.QUOTE,
                theme_name=quote.theme,
                timestamp=quote.timestamp,
            )
        )

    # Themes then quotes, in the same order as chunks[1:].
    texts = [theme_searchable_text(t) for t in insights.themes] + [
        create_searchable_text(ChunkKind.QUOTE, q.text, context=q.context)
        for q in insights.key_quotes
    ]
    if texts:
        vectors = await embedder.embed_batch(texts, batch_size=ctx.settings.embedding_batch_size)
        for chunk, vector in zip(chunks[1:], vectors, strict=True):
            chunk.vector = vector

    return document, chunks


async def _extract(
    ctx: ServiceContext,
    source: SourceDocument,
    model: str | None,
) -> ExtractedInsights:
    if not (source.transcript or source.notes):
        return minimal_insights(source.notes)
    logger.info("Extracting insights for: %s", source.title)
    return await ctx.extractor.extract(source.transcript, source.notes, source.title, model)


async def index_documents(
    ctx: ServiceContext,
    sources: Sequence[SourceDocument],
    model: str | None = None,
    skip_extraction: bool = False,
    bulk_extraction: bool = False,
    on_progress: Callable[[int, int], None] | None = None,
) -> IndexResult:
    """Full indexing run over *sources*, replacing the stored index.

    Args:
        ctx: Shared clients and store.
        sources: Meetings to index, processed in order.
        model: Claude model for insight extraction (defaults to settings).
        skip_extraction: Use the first 500 characters of the notes as the
            summary and extract no themes or quotes.
        bulk_extraction: Run extraction for all meetings up front, a bounded
            window of them at a time.
        on_progress: Called with ``(processed, total)`` after each meeting.

    Returns:
        Counts of documents and chunks written.
    """
    prefetched: dict[str, ExtractedInsights] = {}
    if bulk_extraction and not skip_extraction:
        requests = [
            ExtractionRequest(id=s.id, title=s.title, transcript=s.transcript, notes=s.notes)
            for s in sources
            if s.transcript or s.notes
        ]
        prefetched = await ctx.extractor.extract_batch(
            requests,
            model=model,
            concurrency=ctx.settings.extraction_concurrency,
            window_delay=ctx.settings.extraction_window_delay,
        )

    documents: list[IndexedDocument] = []
    chunks: list[ChunkRecord] = []

    for processed, source in enumerate(sources, start=1):
        if skip_extraction:
            insights = minimal_insights(source.notes)
        elif source.id in prefetched:
            insights = prefetched[source.id]
        else:
            insights = await _extract(ctx, source, model)

        document, document_chunks = await build_document(ctx, source, insights)
        documents.append(document)
        chunks.extend(document_chunks)

        if on_progress:
            on_progress(processed, len(sources))

    logger.info("Storing %d documents and %d chunks", len(documents), len(chunks))
    ctx.store.replace_index(documents, chunks)

    return IndexResult(documents_indexed=len(documents), chunks_created=len(chunks))


async def index_export(
    ctx: ServiceContext,
    source_dir: str | Path,
    model: str | None = None,
    skip_extraction: bool = False,
    bulk_extraction: bool = False,
    on_progress: Callable[[int, int], None] | None = None,
) -> IndexResult:
    """Index every meeting exported under *source_dir*.

    The index is written to ``<source_dir>/<index_dir_name>``.
    """
    ctx = ctx.with_export_dir(source_dir)
    sources = load_export(source_dir, exclude=[ctx.settings.index_dir_name])
    result = await index_documents(
        ctx,
        sources,
        model=model,
        skip_extraction=skip_extraction,
        bulk_extraction=bulk_extraction,
        on_progress=on_progress,
    )
    logger.info(
        "Indexing complete: %d documents, %d chunks (%s)",
        result.documents_indexed,
        result.chunks_created,
        ctx.db_path,
    )
    return result
