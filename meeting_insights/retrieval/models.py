"""Pydantic result schemas returned by the query handlers."""

from __future__ import annotations

from pydantic import BaseModel

from meeting_insights.extraction.models import Quote, Speaker, Theme, ThemeEvidence
from meeting_insights.ingestion.models import ChunkKind
from meeting_insights.ingestion.storage import ThemeStats


class NotFound(BaseModel):
    """A lookup miss. Returned, not raised; callers branch on it."""

    error: str
    document_id: str | None = None


class EvidenceOut(BaseModel):
    text: str
    speaker: Speaker

    @classmethod
    def from_evidence(cls, evidence: ThemeEvidence) -> EvidenceOut:
        return cls(text=evidence.text, speaker=evidence.speaker)


class QuoteOut(BaseModel):
    text: str
    speaker: Speaker
    context: str = ""
    timestamp: str | None = None
    theme: str | None = None

    @classmethod
    def from_quote(cls, quote: Quote) -> QuoteOut:
        return cls(
            text=quote.text,
            speaker=quote.speaker,
            context=quote.context,
            timestamp=quote.timestamp,
            theme=quote.theme,
        )


class ThemeOut(BaseModel):
    name: str
    description: str
    evidence: list[EvidenceOut]

    @classmethod
    def from_theme(cls, theme: Theme) -> ThemeOut:
        return cls(
            name=theme.name,
            description=theme.description,
            evidence=[EvidenceOut.from_evidence(e) for e in theme.evidence],
        )


class ThemeStatsOut(BaseModel):
    document_count: int = 0
    total_evidence_count: int = 0

    @classmethod
    def from_stats(cls, stats: ThemeStats | None) -> ThemeStatsOut:
        if stats is None:
            return cls()
        return cls(
            document_count=stats.document_count,
            total_evidence_count=stats.total_evidence_count,
        )


class DocumentRef(BaseModel):
    id: str
    title: str
    folders: list[str]
    date: str


class SearchResult(BaseModel):
    document: DocumentRef
    relevance_score: float
    summary: str
    matching_themes: list[str]
    key_quotes: list[QuoteOut]
    full_transcript_available: bool
    total_quotes_available: int


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResult]
    themes_found: dict[str, ThemeStatsOut]


class ThemeDocument(BaseModel):
    id: str
    title: str
    folders: list[str]
    date: str
    evidence: list[EvidenceOut]
    key_quotes: list[QuoteOut]


class ThemeSearchResponse(BaseModel):
    theme: str
    documents: list[ThemeDocument]
    total_evidence_count: int


class DocumentDetail(BaseModel):
    id: str
    title: str
    folders: list[str]
    created_at: str
    updated_at: str | None = None
    insights_summary: str
    raw_summary: str
    themes: list[ThemeOut]
    key_quotes: list[QuoteOut]
    has_transcript: bool


class TranscriptResponse(BaseModel):
    document_id: str
    title: str
    transcript: str


class DocumentSummary(BaseModel):
    id: str
    title: str
    folders: list[str]
    date: str
    summary: str
    has_transcript: bool


class DocumentList(BaseModel):
    documents: list[DocumentSummary]
    total_count: int


class FolderOut(BaseModel):
    name: str
    document_count: int


class FolderList(BaseModel):
    folders: list[FolderOut]


class ThemeCatalogEntry(BaseModel):
    id: str
    name: str
    description: str
    document_count: int
    total_evidence_count: int


class ThemeCatalog(BaseModel):
    themes: list[ThemeCatalogEntry]


class Excerpt(BaseModel):
    id: str
    document_id: str
    content: str
    kind: ChunkKind
    theme_name: str | None = None
    timestamp: str | None = None
    relevance_score: float


class ExcerptResponse(BaseModel):
    query: str
    excerpts: list[Excerpt]
