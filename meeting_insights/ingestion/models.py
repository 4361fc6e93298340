"""Data models for the indexing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from meeting_insights.extraction.models import Quote, Theme


class ChunkKind(str, Enum):
    """What an embedded chunk was built from."""

    SUMMARY = "summary"
    THEME = "theme"
    QUOTE = "quote"
    RAW_SUMMARY = "raw_summary"


@dataclass
class SourceDocument:
    """Per-meeting inputs read from the export directory."""

    id: str
    title: str
    created_at: str
    updated_at: str | None = None
    notes: str = ""
    transcript: str = ""
    has_transcript: bool = False
    folders: list[str] = field(default_factory=list)


@dataclass
class IndexedDocument:
    """The canonical per-meeting record written to the documents table."""

    id: str
    title: str
    folders: list[str]
    created_at: str
    raw_summary: str
    insights_summary: str
    has_transcript: bool
    updated_at: str | None = None
    themes: list[Theme] = field(default_factory=list)
    key_quotes: list[Quote] = field(default_factory=list)
    vector: list[float] = field(default_factory=list)

    @property
    def date(self) -> str:
        """``YYYY-MM-DD`` part of ``created_at``."""
        return self.created_at.split("T")[0]


@dataclass
class ChunkRecord:
    """An independently embedded, searchable piece of a meeting."""

    id: str
    document_id: str
    content: str
    kind: ChunkKind
    vector: list[float] = field(default_factory=list)
    theme_name: str | None = None
    timestamp: str | None = None


def chunk_id(document_id: str, kind: ChunkKind, discriminator: str | int | None = None) -> str:
    """Deterministic chunk id, e.g. ``doc1_summary`` or ``doc1_quote_2``."""
    if discriminator is None:
        return f"{document_id}_{kind.value}"
    return f"{document_id}_{kind.value}_{discriminator}"
