"""Readers for the exported meeting directory: notes, folders and transcripts."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from meeting_insights.extraction.models import Speaker
from meeting_insights.ingestion.layout import (
    DOCUMENT_FILE,
    NOTES_FILE,
    TRANSCRIPT_JSON_FILE,
    TRANSCRIPT_TEXT_FILES,
)
from meeting_insights.ingestion.models import SourceDocument

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"^---[\s\S]*?---\n*")
_FOLDERS_RE = re.compile(r"folders:\s*\[(.*?)\]")
_QUOTED_RE = re.compile(r'"([^"]+)"')

MICROPHONE_SOURCE = "microphone"


def strip_frontmatter(content: str) -> str:
    """Remove a leading ``---`` … ``---`` YAML block from Markdown notes."""
    return _FRONTMATTER_RE.sub("", content, count=1)


def parse_folders(content: str) -> list[str]:
    """Folder names from a ``folders: ["A", "B"]`` frontmatter line."""
    match = _FOLDERS_RE.search(content)
    if not match:
        return []
    # dict.fromkeys keeps first-seen order while dropping duplicates
    return list(dict.fromkeys(_QUOTED_RE.findall(match.group(1))))


def transcript_with_speakers(utterances: Iterable[Mapping[str, Any]]) -> str:
    """Render utterances as ``[HOST] …`` / ``[PARTICIPANT] …`` lines.

    The microphone channel is the host; every other source is a participant.
    Consecutive utterances from the same speaker are merged into one line.
    """
    lines: list[str] = []
    current: Speaker | None = None
    texts: list[str] = []

    for utterance in utterances:
        speaker = (
            Speaker.HOST if utterance.get("source") == MICROPHONE_SOURCE else Speaker.PARTICIPANT
        )
        text = (utterance.get("text") or "").strip()
        if not text:
            continue
        if speaker is current:
            texts.append(text)
            continue
        if current is not None:
            lines.append(f"{current.tag} {' '.join(texts)}")
        current, texts = speaker, [text]

    if current is not None:
        lines.append(f"{current.tag} {' '.join(texts)}")
    return "\n".join(lines)


def load_document_dir(directory: Path) -> SourceDocument | None:
    """Read one exported meeting directory; ``None`` if it has no document.json."""
    document_path = directory / DOCUMENT_FILE
    if not document_path.is_file():
        return None

    data = json.loads(document_path.read_text(encoding="utf-8"))

    notes = ""
    folders: list[str] = []
    notes_path = directory / NOTES_FILE
    if notes_path.is_file():
        notes_content = notes_path.read_text(encoding="utf-8")
        notes = strip_frontmatter(notes_content)
        folders = parse_folders(notes_content)

    transcript = ""
    transcript_json = directory / TRANSCRIPT_JSON_FILE
    transcript_text = next(
        (directory / name for name in TRANSCRIPT_TEXT_FILES if (directory / name).is_file()),
        None,
    )
    if transcript_json.is_file():
        utterances = json.loads(transcript_json.read_text(encoding="utf-8"))
        if isinstance(utterances, list):
            transcript = transcript_with_speakers(utterances)
    elif transcript_text is not None:
        # Plain text carries no speaker channel information.
        transcript = transcript_text.read_text(encoding="utf-8")

    return SourceDocument(
        id=str(data["id"]),
        title=data.get("title") or directory.name,
        created_at=data.get("created_at") or "",
        updated_at=data.get("updated_at"),
        notes=notes,
        transcript=transcript,
        has_transcript=transcript_json.is_file() or transcript_text is not None,
        folders=folders,
    )


def load_export(export_dir: str | Path, exclude: Iterable[str] = ()) -> list[SourceDocument]:
    """Load every meeting directory under *export_dir*, in name order.

    Args:
        export_dir: Root of the export.
        exclude: Directory names to skip (e.g. the vector store).

    Returns:
        One :class:`SourceDocument` per directory containing ``document.json``.
    """
    root = Path(export_dir)
    skipped = set(exclude)
    documents: list[SourceDocument] = []

    for directory in sorted(p for p in root.iterdir() if p.is_dir()):
        if directory.name in skipped:
            continue
        document = load_document_dir(directory)
        if document is None:
            logger.debug("Skipping %s: no %s", directory, DOCUMENT_FILE)
            continue
        documents.append(document)

    logger.info("Loaded %d documents from %s", len(documents), root)
    return documents
