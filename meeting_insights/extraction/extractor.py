"""Claude-powered extraction of summaries, themes and key quotes."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from anthropic import AsyncAnthropic

from meeting_insights.extraction.models import (
    ExtractedInsights,
    Quote,
    Speaker,
    Theme,
    ThemeEvidence,
)
from meeting_insights.extraction.themes import is_known_theme, theme_prompt_list
from meeting_insights.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

TOOL_NAME = "record_meeting_insights"

NO_INSIGHTS_SUMMARY = "No insights extracted"
EXTRACTION_FAILED_SUMMARY = "Extraction failed"
MISSING_CONTEXT = "Context not provided"
FALLBACK_SUMMARY_CHARS = 200

_EVIDENCE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "text": {"type": "string", "description": "The quote."},
        "speaker": {"type": "string", "enum": ["host", "participant"]},
    },
    "required": ["text", "speaker"],
}

# Tool definition for Claude structured output
EXTRACTION_TOOL: dict[str, Any] = {
    "name": TOOL_NAME,
    "description": (
        "Record the insights extracted from a meeting. "
        "Call this once with the summary, the themes found and the key quotes."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "insights_summary": {
                "type": "string",
                "description": "2-3 sentence summary of the most important takeaways.",
            },
            "themes": {
                "type": "array",
                "description": "Themes from the provided list that are present in the meeting.",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "The theme ID."},
                        "description": {
                            "type": "string",
                            "description": "How this theme shows up in this meeting.",
                        },
                        "evidence": {
                            "type": "array",
                            "description": "2-5 direct quotes supporting the theme.",
                            "items": _EVIDENCE_SCHEMA,
                        },
                    },
                    "required": ["name", "description", "evidence"],
                },
            },
            "key_quotes": {
                "type": "array",
                "description": "5-10 of the most quotable or insightful moments.",
                "items": {
                    "type": "object",
                    "properties": {
                        "text": {"type": "string", "description": "The exact quote."},
                        "speaker": {"type": "string", "enum": ["host", "participant"]},
                        "timestamp": {
                            "type": "string",
                            "description": "When it was said, if the transcript shows it.",
                        },
                        "context": {
                            "type": "string",
                            "description": "One sentence on what was being discussed.",
                        },
                        "theme": {
                            "type": "string",
                            "description": "Related theme ID, if any.",
                        },
                    },
                    "required": ["text", "speaker", "context"],
                },
            },
        },
        "required": ["insights_summary", "themes", "key_quotes"],
    },
}


def build_system_prompt() -> str:
    return (
        "You are an expert at analyzing meeting transcripts and extracting "
        "actionable insights.\n\n"
        "Speaker attribution:\n"
        "- [HOST] = the meeting host / note-taker (the person whose meetings these are)\n"
        "- [PARTICIPANT] = everyone else (interviewees, customers, colleagues, experts)\n\n"
        "Quotes from [PARTICIPANT] are external signal: feedback, user insights and "
        "expert opinions. Quotes from [HOST] are the host's own statements and "
        "questions. Prioritize [PARTICIPANT] quotes.\n\n"
        "Extract:\n"
        "1. **insights_summary**: 2-3 sentences on the most important, actionable "
        "takeaways.\n"
        "2. **themes**: which of these themes are present:\n"
        f"{theme_prompt_list()}\n"
        "   For each: the theme ID as `name`, a short `description` of how it shows "
        "up in this meeting, and 2-5 `evidence` quotes with speaker set to "
        '"host" or "participant".\n'
        "3. **key_quotes**: 5-10 memorable or surprising statements, each with "
        "`text` (filler words removed), `speaker`, `timestamp` if available, a "
        "one-sentence `context`, and the related `theme` ID if any.\n\n"
        f"Use the {TOOL_NAME} tool to return your results. Only extract what the "
        "notes and transcript clearly support."
    )


def build_user_prompt(transcript: str, notes: str, title: str) -> str:
    return (
        f"Meeting Title: {title}\n\n"
        f"NOTES:\n{notes or 'No notes available'}\n\n"
        f"TRANSCRIPT:\n{transcript or 'No transcript available'}\n\n"
        "Please analyze this meeting and extract insights as specified."
    )


def parse_tool_response(response: Any) -> dict[str, Any]:
    """Return the raw tool input from a Claude tool_use response.

    Raises:
        ValueError: If the response carries no matching tool_use block.
    """
    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != TOOL_NAME:
            continue

        data = block.input
        if isinstance(data, str):
            data = json.loads(data)
        return data if isinstance(data, dict) else {}

    raise ValueError(f"No {TOOL_NAME} tool_use block in response")


def _clean_text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _normalize_evidence(item: object) -> ThemeEvidence | None:
    # Older responses used bare strings for evidence.
    if isinstance(item, str):
        text, speaker = item.strip(), Speaker.PARTICIPANT
    elif isinstance(item, dict):
        text, speaker = _clean_text(item.get("text")), Speaker.coerce(item.get("speaker"))
    else:
        return None
    return ThemeEvidence(text=text, speaker=speaker) if text else None


def _normalize_themes(raw_themes: object) -> list[Theme]:
    themes: dict[str, Theme] = {}
    if not isinstance(raw_themes, list):
        return []

    for raw in raw_themes:
        if not isinstance(raw, dict) or not is_known_theme(raw.get("name")):
            continue
        raw_evidence = raw.get("evidence")
        if not isinstance(raw_evidence, list):
            raw_evidence = []
        evidence = [e for e in map(_normalize_evidence, raw_evidence) if e is not None]
        if not evidence:
            continue

        name = raw["name"]
        if name in themes:
            # Same theme reported twice: keep one entry so chunk ids stay unique.
            themes[name].evidence.extend(evidence)
        else:
            themes[name] = Theme(
                name=name,
                description=_clean_text(raw.get("description")),
                evidence=evidence,
            )
    return list(themes.values())


def _normalize_quotes(raw_quotes: object) -> list[Quote]:
    quotes: list[Quote] = []
    if not isinstance(raw_quotes, list):
        return quotes

    for raw in raw_quotes:
        if not isinstance(raw, dict):
            continue
        text = _clean_text(raw.get("text"))
        if not text:
            continue
        theme = raw.get("theme")
        quotes.append(
            Quote(
                text=text,
                speaker=Speaker.coerce(raw.get("speaker")),
                context=_clean_text(raw.get("context")) or MISSING_CONTEXT,
                timestamp=_clean_text(raw.get("timestamp")) or None,
                theme=theme if is_known_theme(theme) else None,
            )
        )
    return quotes


def normalize_insights(raw: object) -> ExtractedInsights:
    """Validate and repair untrusted model output.

    Unknown themes, empty evidence and empty quotes are dropped; invalid
    speakers default to participant; unknown quote themes are cleared.
    """
    if not isinstance(raw, dict):
        raw = {}
    summary = _clean_text(raw.get("insights_summary")) or NO_INSIGHTS_SUMMARY
    return ExtractedInsights(
        insights_summary=summary,
        themes=_normalize_themes(raw.get("themes")),
        key_quotes=_normalize_quotes(raw.get("key_quotes")),
    )


def degraded_insights(notes: str) -> ExtractedInsights:
    """Minimal result used when extraction cannot be completed."""
    return ExtractedInsights(
        insights_summary=notes[:FALLBACK_SUMMARY_CHARS] if notes else EXTRACTION_FAILED_SUMMARY,
    )


@dataclass
class ExtractionRequest:
    """One document queued for batch extraction."""

    id: str
    title: str
    transcript: str
    notes: str


class InsightExtractor:
    """Derives summary, themes and key quotes from a meeting with one Claude call."""

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry_policy = retry_policy or RetryPolicy()

    async def _request(self, transcript: str, notes: str, title: str, model: str) -> Any:
        return await self.client.messages.create(
            model=model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=build_system_prompt(),
            tools=[EXTRACTION_TOOL],
            tool_choice={"type": "tool", "name": TOOL_NAME},
            messages=[
                {"role": "user", "content": build_user_prompt(transcript, notes, title)}
            ],
        )

    async def extract(
        self,
        transcript: str,
        notes: str,
        title: str,
        model: str | None = None,
    ) -> ExtractedInsights:
        """Extract insights for one meeting. Never raises.

        Transient errors are retried; anything else (or exhausted retries)
        yields :func:`degraded_insights`.
        """
        model = model or self.model
        try:
            response = await with_retry(
                lambda: self._request(transcript, notes, title, model),
                self.retry_policy,
                description=f"Insight extraction for {title!r}",
            )
            return normalize_insights(parse_tool_response(response))
        except Exception:
            logger.exception("Insight extraction failed for %r", title)
            return degraded_insights(notes)

    async def extract_batch(
        self,
        requests: Sequence[ExtractionRequest],
        model: str | None = None,
        concurrency: int = 3,
        window_delay: float = 0.5,
        on_progress: Callable[[int, int, str], None] | None = None,
    ) -> dict[str, ExtractedInsights]:
        """Extract insights for many documents, *concurrency* at a time.

        Each window of requests runs concurrently; windows are separated by
        *window_delay* seconds. Results are keyed by request id.
        """
        concurrency = max(1, concurrency)
        results: dict[str, ExtractedInsights] = {}
        total = len(requests)
        completed = 0

        for start in range(0, total, concurrency):
            window = requests[start : start + concurrency]
            insights = await asyncio.gather(
                *(self.extract(r.transcript, r.notes, r.title, model) for r in window)
            )
            for request, result in zip(window, insights, strict=True):
                results[request.id] = result
                completed += 1
                if on_progress:
                    on_progress(completed, total, request.title)

            if start + concurrency < total:
                await asyncio.sleep(window_delay)

        return results
