"""Semantic search over indexed meetings and theme lookup."""

from __future__ import annotations

from meeting_insights.context import ServiceContext
from meeting_insights.extraction.themes import get_theme
from meeting_insights.ingestion.models import ChunkKind, IndexedDocument
from meeting_insights.retrieval.models import (
    DocumentRef,
    EvidenceOut,
    Excerpt,
    ExcerptResponse,
    QuoteOut,
    SearchResponse,
    SearchResult,
    ThemeDocument,
    ThemeSearchResponse,
    ThemeStatsOut,
)

TOP_QUOTES = 3


def document_ref(document: IndexedDocument) -> DocumentRef:
    return DocumentRef(
        id=document.id,
        title=document.title,
        folders=document.folders,
        date=document.date,
    )


async def search(
    ctx: ServiceContext,
    query: str,
    folder: str | None = None,
    limit: int = 5,
) -> SearchResponse:
    """Free-text search: embed *query* and rank meetings by summary similarity.

    Args:
        ctx: Shared clients and store.
        query: Natural-language query.
        folder: Optional case-insensitive folder substring, applied after
            retrieving *limit* candidates.
        limit: Maximum number of meetings.

    Returns:
        Ranked results plus global stats for the themes present among them.
    """
    query_vector = await ctx.embedder.embed(query)
    hits = ctx.store.search_documents(query_vector, limit=limit, folder=folder)
    theme_stats = ctx.store.theme_stats()

    results = [
        SearchResult(
            document=document_ref(hit.document),
            relevance_score=round(hit.score, 2),
            summary=hit.document.insights_summary,
            matching_themes=[t.name for t in hit.document.themes],
            key_quotes=[QuoteOut.from_quote(q) for q in hit.document.key_quotes[:TOP_QUOTES]],
            full_transcript_available=hit.document.has_transcript,
            total_quotes_available=len(hit.document.key_quotes),
        )
        for hit in hits
    ]

    themes_found: dict[str, ThemeStatsOut] = {}
    for hit in hits:
        for theme in hit.document.themes:
            if theme.name not in themes_found:
                themes_found[theme.name] = ThemeStatsOut.from_stats(theme_stats.get(theme.name))

    return SearchResponse(query=query, results=results, themes_found=themes_found)


def search_by_theme(
    ctx: ServiceContext,
    theme_id: str,
    folder: str | None = None,
    limit: int = 10,
) -> ThemeSearchResponse:
    """Meetings tagged with *theme_id*, newest first, with their evidence.

    Only the first ``2 * limit`` meetings (after the folder filter) are
    considered; collection stops once *limit* matches are found.
    """
    if get_theme(theme_id) is None:
        return ThemeSearchResponse(theme=theme_id, documents=[], total_evidence_count=0)

    matches: list[ThemeDocument] = []
    total_evidence = 0

    for document in ctx.store.list_documents(folder=folder)[: limit * 2]:
        theme = next((t for t in document.themes if t.name == theme_id), None)
        if theme is None:
            continue

        matches.append(
            ThemeDocument(
                id=document.id,
                title=document.title,
                folders=document.folders,
                date=document.date,
                evidence=[EvidenceOut.from_evidence(e) for e in theme.evidence],
                key_quotes=[
                    QuoteOut.from_quote(q) for q in document.key_quotes if q.theme == theme_id
                ],
            )
        )
        total_evidence += len(theme.evidence)

        if len(matches) >= limit:
            break

    return ThemeSearchResponse(
        theme=theme_id,
        documents=matches,
        total_evidence_count=total_evidence,
    )


async def search_excerpts(
    ctx: ServiceContext,
    query: str,
    kind: ChunkKind | None = None,
    theme_name: str | None = None,
    limit: int = 10,
) -> ExcerptResponse:
    """Rank individual summaries, themes and quotes against *query*."""
    query_vector = await ctx.embedder.embed(query)
    hits = ctx.store.search_chunks(query_vector, limit=limit, kind=kind, theme_name=theme_name)
    return ExcerptResponse(
        query=query,
        excerpts=[
            Excerpt(
                id=hit.id,
                document_id=hit.document_id,
                content=hit.content,
                kind=hit.kind,
                theme_name=hit.theme_name,
                timestamp=hit.timestamp,
                relevance_score=round(hit.score, 2),
            )
            for hit in hits
        ],
    )
