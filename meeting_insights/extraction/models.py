"""Data models for structured extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Speaker(str, Enum):
    """Who said a quote: the note-taker or another attendee."""

    HOST = "host"
    PARTICIPANT = "participant"

    @classmethod
    def coerce(cls, value: object) -> Speaker:
        """Map any unrecognised or missing value to ``PARTICIPANT``."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.PARTICIPANT

    @property
    def tag(self) -> str:
        """Transcript label, e.g. ``[HOST]``."""
        return f"[{self.value.upper()}]"


@dataclass
class ThemeEvidence:
    """A single quote supporting a theme's presence in a meeting."""

    text: str
    speaker: Speaker = Speaker.PARTICIPANT

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "speaker": self.speaker.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThemeEvidence:
        return cls(text=data.get("text", ""), speaker=Speaker.coerce(data.get("speaker")))


@dataclass
class Theme:
    """A registry theme detected in a meeting, backed by evidence quotes."""

    name: str
    description: str
    evidence: list[ThemeEvidence] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "evidence": [e.to_dict() for e in self.evidence],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Theme:
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            evidence=[ThemeEvidence.from_dict(e) for e in data.get("evidence", [])],
        )


@dataclass
class Quote:
    """A notable, speaker-attributed statement from a meeting."""

    text: str
    speaker: Speaker = Speaker.PARTICIPANT
    context: str = ""
    timestamp: str | None = None
    theme: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "speaker": self.speaker.value,
            "context": self.context,
            "timestamp": self.timestamp,
            "theme": self.theme,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Quote:
        return cls(
            text=data.get("text", ""),
            speaker=Speaker.coerce(data.get("speaker")),
            context=data.get("context", ""),
            timestamp=data.get("timestamp"),
            theme=data.get("theme"),
        )


@dataclass
class ExtractedInsights:
    """Validated output of one insight-extraction call."""

    insights_summary: str
    themes: list[Theme] = field(default_factory=list)
    key_quotes: list[Quote] = field(default_factory=list)
