"""Tests for embedding generation and searchable-text shaping (no external APIs)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from meeting_insights.ingestion.embeddings import Embedder, create_searchable_text
from meeting_insights.ingestion.models import ChunkKind
from meeting_insights.retry import RetryPolicy

NO_WAIT = RetryPolicy(max_retries=2, base_delay=0.0)


def _response(vectors: list[list[float]], indices: list[int] | None = None) -> SimpleNamespace:
    indices = indices if indices is not None else list(range(len(vectors)))
    return SimpleNamespace(
        data=[SimpleNamespace(embedding=v, index=i) for v, i in zip(vectors, indices, strict=True)]
    )


def _embedder(create: AsyncMock, **kwargs: object) -> Embedder:
    client = MagicMock()
    client.embeddings.create = create
    return Embedder(client, retry_policy=NO_WAIT, batch_delay=0.0, **kwargs)  # type: ignore[arg-type]


class TestSearchableText:
    def test_summary(self) -> None:
        assert create_searchable_text(ChunkKind.SUMMARY, "All good") == "Meeting summary: All good"

    def test_raw_summary(self) -> None:
        assert create_searchable_text(ChunkKind.RAW_SUMMARY, "n") == "Meeting notes: n"

    def test_theme(self) -> None:
        text = create_searchable_text(ChunkKind.THEME, "Too pricey", theme_name="pricing")
        assert text == "Theme pricing: Too pricey"

    def test_quote_with_and_without_context(self) -> None:
        assert create_searchable_text(ChunkKind.QUOTE, "Hi") == 'Quote: "Hi"'
        assert (
            create_searchable_text(ChunkKind.QUOTE, "Hi", context="greetings")
            == 'Quote about greetings: "Hi"'
        )


class TestEmbed:
    @pytest.mark.asyncio
    async def test_truncates_long_input(self) -> None:
        create = AsyncMock(return_value=_response([[0.1, 0.2]]))
        vector = await _embedder(create).embed("x" * 10_000)

        assert vector == [0.1, 0.2]
        assert create.call_args.kwargs["input"] == "x" * 8000
        assert create.call_args.kwargs["model"] == "text-embedding-3-small"
        assert create.call_args.kwargs["dimensions"] == 1536

    @pytest.mark.asyncio
    async def test_requests_configured_dimensions(self) -> None:
        create = AsyncMock(side_effect=lambda input, **_: _response([[0.0]] * len(input)))
        await _embedder(create, dimensions=256).embed_batch(["a", "b"])
        assert create.call_args.kwargs["dimensions"] == 256

    @pytest.mark.asyncio
    async def test_two_transient_failures_then_success(self) -> None:
        create = AsyncMock(
            side_effect=[
                ConnectionError("reset"),
                RuntimeError("Rate limit reached"),
                _response([[1.0]]),
            ]
        )
        assert await _embedder(create).embed("hello") == [1.0]
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_propagate(self) -> None:
        create = AsyncMock(side_effect=TimeoutError("timeout"))
        with pytest.raises(TimeoutError):
            await _embedder(create).embed("hello")
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_non_transient_error_propagates_immediately(self) -> None:
        create = AsyncMock(side_effect=ValueError("invalid input"))
        with pytest.raises(ValueError):
            await _embedder(create).embed("hello")
        assert create.await_count == 1


class TestEmbedBatch:
    @pytest.mark.asyncio
    async def test_reorders_by_index(self) -> None:
        """The provider returns items reversed; output still follows input order."""
        texts = [f"marker-{i}" for i in range(5)]

        async def reversed_create(input: list[str], **_: object) -> SimpleNamespace:
            positions = list(range(len(input)))[::-1]
            return _response([[float(int(input[p].split("-")[1]))] for p in positions], positions)

        create = AsyncMock(side_effect=reversed_create)
        vectors = await _embedder(create).embed_batch(texts, batch_size=2)

        assert vectors == [[0.0], [1.0], [2.0], [3.0], [4.0]]
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_progress_callback(self) -> None:
        create = AsyncMock(side_effect=lambda input, **_: _response([[0.0]] * len(input)))
        progress: list[tuple[int, int]] = []

        await _embedder(create).embed_batch(
            ["a", "b", "c"], batch_size=2, on_progress=lambda d, t: progress.append((d, t))
        )
        assert progress == [(2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_truncates_each_text(self) -> None:
        create = AsyncMock(side_effect=lambda input, **_: _response([[0.0]] * len(input)))
        await _embedder(create, max_chars=5).embed_batch(["abcdefgh", "xy"])
        assert create.call_args.kwargs["input"] == ["abcde", "xy"]

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_request(self) -> None:
        create = AsyncMock()
        assert await _embedder(create).embed_batch([]) == []
        create.assert_not_awaited()
