"""Where exported meeting files live on disk.

Each meeting is exported to ``<export_dir>/<sanitized title>/`` containing
``document.json``, ``notes.md`` and, when available, ``transcript.json``
and ``transcript.txt`` (or ``transcript.md``).
"""

from __future__ import annotations

import re
from pathlib import Path

DOCUMENT_FILE = "document.json"
NOTES_FILE = "notes.md"
TRANSCRIPT_JSON_FILE = "transcript.json"
TRANSCRIPT_TEXT_FILES = ("transcript.txt", "transcript.md")

MAX_FILENAME_CHARS = 100

_UNSAFE_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_filename(title: str) -> str:
    """Turn a meeting title into the directory name used by the export."""
    cleaned = _UNSAFE_CHARS_RE.sub("", title)
    return _WHITESPACE_RE.sub("_", cleaned)[:MAX_FILENAME_CHARS]


def document_dir(export_dir: str | Path, title: str) -> Path:
    return Path(export_dir) / sanitize_filename(title)


def find_transcript_file(export_dir: str | Path, title: str) -> Path | None:
    """Plain-text transcript for the meeting titled *title*, if exported."""
    directory = document_dir(export_dir, title)
    for name in TRANSCRIPT_TEXT_FILES:
        path = directory / name
        if path.is_file():
            return path
    return None
