"""ChromaDB storage for indexed meetings and their searchable chunks.

Two collections are kept in an embedded, on-disk Chroma database:

- ``documents``: one row per meeting, embedded with its summary vector.
- ``chunks``: one row per summary/theme/quote chunk.

Both are rebuilt wholesale on every indexing run. Lists (folders, themes,
key quotes) are stored as JSON strings because Chroma metadata values must
be scalars; encoding and decoding happen only in this module.

Read operations never raise: failures are logged and turned into empty
results so that callers degrade to "no results".
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings as ChromaSettings

from meeting_insights.extraction.models import Quote, Theme
from meeting_insights.ingestion.models import ChunkKind, ChunkRecord, IndexedDocument

logger = logging.getLogger(__name__)

DOCUMENTS_COLLECTION = "documents"
CHUNKS_COLLECTION = "chunks"

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class DocumentHit:
    """A document returned by similarity search."""

    document: IndexedDocument
    score: float


@dataclass
class ChunkHit:
    """A chunk returned by similarity search (vector omitted)."""

    id: str
    document_id: str
    content: str
    kind: ChunkKind
    theme_name: str | None
    timestamp: str | None
    score: float


@dataclass
class ThemeStats:
    document_count: int = 0
    total_evidence_count: int = 0


@dataclass
class FolderCount:
    name: str
    document_count: int


def get_chroma_client(path: str | Path) -> Any:
    """Open (creating if needed) the on-disk Chroma database at *path*."""
    return chromadb.PersistentClient(
        path=str(path),
        settings=ChromaSettings(anonymized_telemetry=False),
    )


def distance_to_score(distance: float) -> float:
    """Map an L2 distance to a (0, 1] similarity; identical vectors score 1.0."""
    return 1.0 / (1.0 + max(distance, 0.0))


def _folder_matches(folders: Sequence[str], folder: str | None) -> bool:
    if not folder:
        return True
    needle = folder.lower()
    return any(needle in f.lower() for f in folders)


def _created_sort_key(document: IndexedDocument) -> datetime:
    try:
        created = datetime.fromisoformat(document.created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return _EARLIEST
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def _document_metadata(document: IndexedDocument) -> dict[str, Any]:
    return {
        "title": document.title or "",
        "folders": json.dumps(document.folders),
        "created_at": document.created_at or "",
        "updated_at": document.updated_at or "",
        "raw_summary": document.raw_summary or "",
        "insights_summary": document.insights_summary or "",
        "themes": json.dumps([t.to_dict() for t in document.themes]),
        "key_quotes": json.dumps([q.to_dict() for q in document.key_quotes]),
        "has_transcript": bool(document.has_transcript),
    }


def _document_from_row(document_id: str, metadata: Mapping[str, Any]) -> IndexedDocument:
    return IndexedDocument(
        id=document_id,
        title=metadata.get("title", ""),
        folders=json.loads(metadata.get("folders") or "[]"),
        created_at=metadata.get("created_at", ""),
        updated_at=metadata.get("updated_at") or None,
        raw_summary=metadata.get("raw_summary", ""),
        insights_summary=metadata.get("insights_summary", ""),
        themes=[Theme.from_dict(t) for t in json.loads(metadata.get("themes") or "[]")],
        key_quotes=[Quote.from_dict(q) for q in json.loads(metadata.get("key_quotes") or "[]")],
        has_transcript=bool(metadata.get("has_transcript", False)),
    )


def _chunk_metadata(chunk: ChunkRecord) -> dict[str, Any]:
    return {
        "document_id": chunk.document_id,
        "kind": chunk.kind.value,
        "theme_name": chunk.theme_name or "",
        "timestamp": chunk.timestamp or "",
    }


@dataclass
class _Rows:
    ids: list[str]
    embeddings: list[list[float]]
    metadatas: list[dict[str, Any]]
    contents: list[str]


def _check_metadata(row_id: str, metadata: Mapping[str, Any]) -> None:
    for key, value in metadata.items():
        if not isinstance(value, (str, int, float, bool)):
            raise ValueError(
                f"Row {row_id!r}: metadata field {key!r} has unsupported value {value!r}"
            )


def _document_rows(documents: Sequence[IndexedDocument]) -> _Rows:
    rows = _Rows(ids=[], embeddings=[], metadatas=[], contents=[])
    for document in documents:
        metadata = _document_metadata(document)
        _check_metadata(document.id, metadata)
        rows.ids.append(document.id)
        rows.embeddings.append(list(document.vector))
        rows.metadatas.append(metadata)
        rows.contents.append(document.insights_summary or "")
    return rows


def _chunk_rows(chunks: Sequence[ChunkRecord]) -> _Rows:
    rows = _Rows(ids=[], embeddings=[], metadatas=[], contents=[])
    for chunk in chunks:
        metadata = _chunk_metadata(chunk)
        _check_metadata(chunk.id, metadata)
        rows.ids.append(chunk.id)
        rows.embeddings.append(list(chunk.vector))
        rows.metadatas.append(metadata)
        rows.contents.append(chunk.content or "")
    return rows


class VectorStore:
    """Documents and chunks tables on top of a Chroma client."""

    def __init__(self, client: Any, batch_size: int = 100) -> None:
        self.client = client
        self.batch_size = batch_size

    @classmethod
    def open(cls, path: str | Path, batch_size: int = 100) -> VectorStore:
        return cls(get_chroma_client(path), batch_size=batch_size)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _collection_names(self) -> set[str]:
        # Older Chroma releases return Collection objects, newer ones names.
        return {getattr(c, "name", c) for c in self.client.list_collections()}

    def index_exists(self) -> bool:
        """True when both collections are present."""
        try:
            names = self._collection_names()
        except Exception:
            logger.exception("Error listing collections")
            return False
        return DOCUMENTS_COLLECTION in names and CHUNKS_COLLECTION in names

    def initialize(self) -> None:
        """Drop both collections if present; they are recreated on first write."""
        existing = self._collection_names()
        for name in (DOCUMENTS_COLLECTION, CHUNKS_COLLECTION):
            if name in existing:
                self.client.delete_collection(name)
                logger.info("Dropped collection %s", name)

    def _recreate(self, name: str) -> Any:
        if name in self._collection_names():
            self.client.delete_collection(name)
        return self.client.create_collection(name=name, embedding_function=None)

    def _add_in_batches(self, collection: Any, rows: _Rows) -> None:
        for i in range(0, len(rows.ids), self.batch_size):
            collection.add(
                ids=rows.ids[i : i + self.batch_size],
                embeddings=rows.embeddings[i : i + self.batch_size],
                metadatas=rows.metadatas[i : i + self.batch_size],
                documents=rows.contents[i : i + self.batch_size],
            )

    def store_documents(self, documents: Sequence[IndexedDocument]) -> None:
        """Replace the documents collection with *documents*."""
        rows = _document_rows(documents)
        self._add_in_batches(self._recreate(DOCUMENTS_COLLECTION), rows)
        logger.info("Stored %d documents", len(documents))

    def store_chunks(self, chunks: Sequence[ChunkRecord]) -> None:
        """Replace the chunks collection with *chunks*."""
        rows = _chunk_rows(chunks)
        self._add_in_batches(self._recreate(CHUNKS_COLLECTION), rows)
        logger.info("Stored %d chunks", len(chunks))

    def replace_index(
        self,
        documents: Sequence[IndexedDocument],
        chunks: Sequence[ChunkRecord],
    ) -> None:
        """Drop both collections and write *documents* and *chunks*.

        All rows are encoded and checked first, so a row Chroma would reject
        raises before the existing index is dropped.
        """
        document_rows = _document_rows(documents)
        chunk_rows = _chunk_rows(chunks)

        self.initialize()
        self._add_in_batches(self._recreate(DOCUMENTS_COLLECTION), document_rows)
        self._add_in_batches(self._recreate(CHUNKS_COLLECTION), chunk_rows)
        logger.info("Stored %d documents and %d chunks", len(documents), len(chunks))

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _nearest(
        self, name: str, query_vector: Sequence[float], n_results: int
    ) -> list[tuple[str, Mapping[str, Any], str, float]]:
        """Return ``(id, metadata, content, distance)`` rows, nearest first."""
        collection = self.client.get_collection(name=name, embedding_function=None)
        n_results = min(n_results, collection.count())
        if n_results <= 0:
            return []
        result = collection.query(
            query_embeddings=[list(query_vector)],
            n_results=n_results,
            include=["metadatas", "documents", "distances"],
        )
        return list(
            zip(
                result["ids"][0],
                result["metadatas"][0],
                result["documents"][0],
                result["distances"][0],
                strict=True,
            )
        )

    def _all_documents(self) -> list[IndexedDocument]:
        collection = self.client.get_collection(name=DOCUMENTS_COLLECTION, embedding_function=None)
        result = collection.get(include=["metadatas"])
        return [
            _document_from_row(doc_id, metadata)
            for doc_id, metadata in zip(result["ids"], result["metadatas"], strict=True)
        ]

    def search_documents(
        self,
        query_vector: Sequence[float],
        limit: int = 10,
        folder: str | None = None,
    ) -> list[DocumentHit]:
        """Nearest documents to *query_vector*.

        The folder filter (case-insensitive substring on any folder name) is
        applied after fetching *limit* candidates, so it can return fewer
        than *limit* hits.
        """
        try:
            rows = self._nearest(DOCUMENTS_COLLECTION, query_vector, limit)
            hits = []
            for doc_id, metadata, _content, distance in rows:
                document = _document_from_row(doc_id, metadata)
                if _folder_matches(document.folders, folder):
                    hits.append(DocumentHit(document=document, score=distance_to_score(distance)))
            return hits
        except Exception:
            logger.exception("Error searching documents")
            return []

    def search_chunks(
        self,
        query_vector: Sequence[float],
        limit: int = 20,
        kind: ChunkKind | str | None = None,
        theme_name: str | None = None,
    ) -> list[ChunkHit]:
        """Nearest chunks, over-fetching ``2 * limit`` before filtering."""
        try:
            kind_value = ChunkKind(kind).value if kind else None
            rows = self._nearest(CHUNKS_COLLECTION, query_vector, limit * 2)
            hits: list[ChunkHit] = []
            for chunk_id, metadata, content, distance in rows:
                if kind_value and metadata.get("kind") != kind_value:
                    continue
                if theme_name and metadata.get("theme_name") != theme_name:
                    continue
                hits.append(
                    ChunkHit(
                        id=chunk_id,
                        document_id=metadata.get("document_id", ""),
                        content=content or "",
                        kind=ChunkKind(metadata.get("kind", ChunkKind.SUMMARY.value)),
                        theme_name=metadata.get("theme_name") or None,
                        timestamp=metadata.get("timestamp") or None,
                        score=distance_to_score(distance),
                    )
                )
            return hits[:limit]
        except Exception:
            logger.exception("Error searching chunks")
            return []

    def list_documents(self, folder: str | None = None) -> list[IndexedDocument]:
        """All documents matching *folder*, most recently created first."""
        try:
            documents = [d for d in self._all_documents() if _folder_matches(d.folders, folder)]
        except Exception:
            logger.exception("Error listing documents")
            return []
        return sorted(documents, key=_created_sort_key, reverse=True)

    def get_document(self, document_id: str) -> IndexedDocument | None:
        """Exact lookup by id; ``None`` when absent."""
        try:
            collection = self.client.get_collection(
                name=DOCUMENTS_COLLECTION, embedding_function=None
            )
            result = collection.get(ids=[document_id], include=["metadatas"])
            if not result["ids"]:
                return None
            return _document_from_row(result["ids"][0], result["metadatas"][0])
        except Exception:
            logger.exception("Error getting document %s", document_id)
            return None

    def document_ids(self) -> list[str]:
        try:
            collection = self.client.get_collection(
                name=DOCUMENTS_COLLECTION, embedding_function=None
            )
            return list(collection.get(include=[])["ids"])
        except Exception:
            logger.exception("Error listing document ids")
            return []

    def theme_stats(self) -> dict[str, ThemeStats]:
        """Per theme: documents containing it and total evidence quotes."""
        stats: dict[str, ThemeStats] = {}
        try:
            documents = self._all_documents()
        except Exception:
            logger.exception("Error getting theme stats")
            return stats

        for document in documents:
            for theme in document.themes:
                entry = stats.setdefault(theme.name, ThemeStats())
                entry.document_count += 1
                entry.total_evidence_count += len(theme.evidence)
        return stats

    def folder_stats(self) -> list[FolderCount]:
        """Document count per folder, largest first."""
        try:
            documents = self._all_documents()
        except Exception:
            logger.exception("Error getting folder stats")
            return []

        counts = Counter(f for d in documents for f in d.folders)
        return [
            FolderCount(name=name, document_count=count)
            for name, count in counts.most_common()
        ]
