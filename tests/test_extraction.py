"""Tests for insight extraction, output repair and the theme registry (no external APIs)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from meeting_insights.extraction.extractor import (
    EXTRACTION_FAILED_SUMMARY,
    NO_INSIGHTS_SUMMARY,
    TOOL_NAME,
    ExtractionRequest,
    InsightExtractor,
    degraded_insights,
    normalize_insights,
    parse_tool_response,
)
from meeting_insights.extraction.models import Speaker
from meeting_insights.extraction.themes import get_theme, theme_ids, theme_prompt_list
from meeting_insights.retry import RetryPolicy

NO_WAIT = RetryPolicy(max_retries=2, base_delay=0.0)


def _tool_response(payload: object) -> MagicMock:
    tool_block = MagicMock()
    tool_block.type = "tool_use"
    tool_block.name = TOOL_NAME
    tool_block.input = payload
    response = MagicMock()
    response.content = [tool_block]
    return response


def _extractor(create: AsyncMock) -> InsightExtractor:
    client = MagicMock()
    client.messages.create = create
    return InsightExtractor(client, model="claude-test", retry_policy=NO_WAIT)


VALID_PAYLOAD = {
    "insights_summary": "Customer is worried about pricing.",
    "themes": [
        {
            "name": "pricing",
            "description": "Cost concerns for the team plan",
            "evidence": [
                {"text": "It's too expensive for us", "speaker": "participant"},
                {"text": "What budget do you have?", "speaker": "host"},
            ],
        }
    ],
    "key_quotes": [
        {
            "text": "We would pay half that.",
            "speaker": "participant",
            "timestamp": "00:12:01",
            "context": "Discussing the team plan",
            "theme": "pricing",
        }
    ],
}


# ---------------------------------------------------------------------------
# Theme registry
# ---------------------------------------------------------------------------


class TestThemeRegistry:
    def test_known_ids(self) -> None:
        assert theme_ids() == [
            "pain-points",
            "feature-requests",
            "positive-feedback",
            "pricing",
            "competition",
            "workflow",
            "decisions",
            "questions",
        ]

    def test_lookup(self) -> None:
        theme = get_theme("pricing")
        assert theme is not None
        assert theme.name == "Pricing"
        assert get_theme("not-a-theme") is None

    def test_prompt_list_has_one_line_per_theme(self) -> None:
        lines = theme_prompt_list().splitlines()
        assert len(lines) == len(theme_ids())
        assert lines[0].startswith("- pain-points: ")


# ---------------------------------------------------------------------------
# Output repair
# ---------------------------------------------------------------------------


class TestNormalizeInsights:
    def test_valid_payload(self) -> None:
        insights = normalize_insights(VALID_PAYLOAD)

        assert insights.insights_summary == "Customer is worried about pricing."
        assert len(insights.themes) == 1
        theme = insights.themes[0]
        assert theme.name == "pricing"
        assert [e.speaker for e in theme.evidence] == [Speaker.PARTICIPANT, Speaker.HOST]

        quote = insights.key_quotes[0]
        assert quote.text == "We would pay half that."
        assert quote.timestamp == "00:12:01"
        assert quote.theme == "pricing"

    def test_unknown_theme_is_dropped(self) -> None:
        insights = normalize_insights(
            {
                "insights_summary": "x",
                "themes": [
                    {"name": "made-up", "description": "d", "evidence": [{"text": "q"}]},
                ],
                "key_quotes": [],
            }
        )
        assert insights.themes == []

    def test_legacy_string_evidence_defaults_to_participant(self) -> None:
        insights = normalize_insights(
            {"themes": [{"name": "workflow", "description": "d", "evidence": ["We use Excel"]}]}
        )
        evidence = insights.themes[0].evidence
        assert evidence[0].text == "We use Excel"
        assert evidence[0].speaker is Speaker.PARTICIPANT

    def test_invalid_speaker_defaults_to_participant(self) -> None:
        insights = normalize_insights(
            {
                "themes": [
                    {
                        "name": "questions",
                        "description": "d",
                        "evidence": [{"text": "Why?", "speaker": "me"}, {"text": "How?"}],
                    }
                ],
                "key_quotes": [{"text": "Hmm", "speaker": 42}],
            }
        )
        assert all(e.speaker is Speaker.PARTICIPANT for e in insights.themes[0].evidence)
        assert insights.key_quotes[0].speaker is Speaker.PARTICIPANT

    def test_theme_with_only_empty_evidence_is_dropped(self) -> None:
        insights = normalize_insights(
            {
                "themes": [
                    {"name": "pricing", "description": "d", "evidence": [{"text": ""}, "  "]},
                    {"name": "decisions", "description": "d", "evidence": []},
                ]
            }
        )
        assert insights.themes == []

    def test_empty_quotes_are_dropped_and_unknown_theme_cleared(self) -> None:
        insights = normalize_insights(
            {
                "key_quotes": [
                    {"text": "", "speaker": "host"},
                    {"speaker": "host"},
                    {"text": "Keep me", "theme": "nonsense"},
                ]
            }
        )
        assert len(insights.key_quotes) == 1
        quote = insights.key_quotes[0]
        assert quote.text == "Keep me"
        assert quote.theme is None
        assert quote.context == "Context not provided"

    def test_missing_summary_gets_placeholder(self) -> None:
        assert normalize_insights({}).insights_summary == NO_INSIGHTS_SUMMARY
        assert normalize_insights("not a dict").insights_summary == NO_INSIGHTS_SUMMARY

    def test_duplicate_theme_names_are_merged(self) -> None:
        insights = normalize_insights(
            {
                "themes": [
                    {"name": "pricing", "description": "first", "evidence": ["a"]},
                    {"name": "pricing", "description": "second", "evidence": ["b"]},
                ]
            }
        )
        assert len(insights.themes) == 1
        assert insights.themes[0].description == "first"
        assert [e.text for e in insights.themes[0].evidence] == ["a", "b"]

    def test_messy_output_is_cleaned(self) -> None:
        insights = normalize_insights(
            {
                "themes": [
                    {
                        "name": "pain-points",
                        "description": "d",
                        "evidence": ["", "x", {"text": "y", "speaker": "HOST"}],
                    },
                    {"name": "pricing", "evidence": None},
                    "garbage",
                ],
                "key_quotes": [None, {"text": " "}, {"text": "ok", "speaker": "host"}],
            }
        )
        for theme in insights.themes:
            assert theme.evidence
            for evidence in theme.evidence:
                assert evidence.text
                assert evidence.speaker in (Speaker.HOST, Speaker.PARTICIPANT)
        assert all(q.text for q in insights.key_quotes)


class TestParseToolResponse:
    def test_dict_input(self) -> None:
        assert parse_tool_response(_tool_response(VALID_PAYLOAD)) == VALID_PAYLOAD

    def test_string_input(self) -> None:
        """JSON-string input (instead of dict) is handled correctly."""
        parsed = parse_tool_response(_tool_response(json.dumps(VALID_PAYLOAD)))
        assert parsed["insights_summary"] == VALID_PAYLOAD["insights_summary"]

    def test_missing_tool_block_raises(self) -> None:
        text_block = MagicMock()
        text_block.type = "text"
        response = MagicMock()
        response.content = [text_block]
        with pytest.raises(ValueError):
            parse_tool_response(response)


def test_degraded_insights() -> None:
    notes = "n" * 500
    assert degraded_insights(notes).insights_summary == "n" * 200
    assert degraded_insights("").insights_summary == EXTRACTION_FAILED_SUMMARY
    assert degraded_insights(notes).themes == []
    assert degraded_insights(notes).key_quotes == []


# ---------------------------------------------------------------------------
# Extractor calls
# ---------------------------------------------------------------------------


class TestInsightExtractor:
    @pytest.mark.asyncio
    async def test_calls_claude_with_forced_tool(self) -> None:
        create = AsyncMock(return_value=_tool_response(VALID_PAYLOAD))
        extractor = _extractor(create)

        insights = await extractor.extract("[PARTICIPANT] Too pricey", "Notes", "Call")

        create.assert_awaited_once()
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["tool_choice"] == {"type": "tool", "name": TOOL_NAME}
        assert kwargs["temperature"] == pytest.approx(0.3)
        assert "[PARTICIPANT]" in kwargs["system"]
        assert "- pricing:" in kwargs["system"]
        user_message = kwargs["messages"][0]["content"]
        assert "Meeting Title: Call" in user_message
        assert "Too pricey" in user_message
        assert insights.themes[0].name == "pricing"

    @pytest.mark.asyncio
    async def test_model_override(self) -> None:
        create = AsyncMock(return_value=_tool_response(VALID_PAYLOAD))
        await _extractor(create).extract("t", "n", "title", model="claude-other")
        assert create.call_args.kwargs["model"] == "claude-other"

    @pytest.mark.asyncio
    async def test_transient_failures_then_success(self) -> None:
        create = AsyncMock(
            side_effect=[
                ConnectionError("ECONNRESET"),
                TimeoutError("timed out"),
                _tool_response(VALID_PAYLOAD),
            ]
        )
        insights = await _extractor(create).extract("t", "n", "title")

        assert create.await_count == 3
        assert insights.insights_summary == "Customer is worried about pricing."

    @pytest.mark.asyncio
    async def test_retry_exhaustion_degrades(self) -> None:
        create = AsyncMock(side_effect=ConnectionError("connection reset"))
        insights = await _extractor(create).extract("t", "Some notes here", "title")

        assert create.await_count == 3
        assert insights.insights_summary == "Some notes here"
        assert insights.themes == []
        assert insights.key_quotes == []

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self) -> None:
        create = AsyncMock(side_effect=ValueError("bad request"))
        insights = await _extractor(create).extract("t", "", "title")

        assert create.await_count == 1
        assert insights.insights_summary == EXTRACTION_FAILED_SUMMARY

    @pytest.mark.asyncio
    async def test_malformed_json_degrades(self) -> None:
        create = AsyncMock(return_value=_tool_response("{not json"))
        insights = await _extractor(create).extract("t", "notes", "title")
        assert insights.insights_summary == "notes"

    @pytest.mark.asyncio
    async def test_batch_keeps_ids_and_reports_progress(self) -> None:
        create = AsyncMock(return_value=_tool_response(VALID_PAYLOAD))
        extractor = _extractor(create)
        requests = [
            ExtractionRequest(id=f"doc{i}", title=f"Meeting {i}", transcript="t", notes="n")
            for i in range(5)
        ]
        progress: list[tuple[int, int, str]] = []

        results = await extractor.extract_batch(
            requests,
            concurrency=2,
            window_delay=0.0,
            on_progress=lambda done, total, title: progress.append((done, total, title)),
        )

        assert list(results) == [f"doc{i}" for i in range(5)]
        assert create.await_count == 5
        assert [p[0] for p in progress] == [1, 2, 3, 4, 5]
        assert all(p[1] == 5 for p in progress)

    @pytest.mark.asyncio
    async def test_batch_runs_bounded_windows(self, monkeypatch: pytest.MonkeyPatch) -> None:
        real_sleep = asyncio.sleep
        in_flight = 0
        peak = 0
        events: list[str] = []

        async def slow_create(**kwargs: object) -> MagicMock:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            events.append("start")
            await real_sleep(0.01)
            in_flight -= 1
            return _tool_response(VALID_PAYLOAD)

        async def recording_sleep(delay: float) -> None:
            assert in_flight == 0
            events.append(f"sleep {delay}")

        monkeypatch.setattr(asyncio, "sleep", recording_sleep)
        extractor = _extractor(AsyncMock(side_effect=slow_create))
        requests = [
            ExtractionRequest(id=f"doc{i}", title=f"Meeting {i}", transcript="t", notes="n")
            for i in range(7)
        ]

        results = await extractor.extract_batch(requests, concurrency=3, window_delay=0.25)

        assert len(results) == 7
        assert peak == 3
        # Windows of 3, 3 and 1 with a delay between windows, none after the last.
        assert events == (
            ["start"] * 3 + ["sleep 0.25"] + ["start"] * 3 + ["sleep 0.25"] + ["start"]
        )
