"""Shared fixtures: deterministic fake providers and a real on-disk Chroma store."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from meeting_insights.config import Settings
from meeting_insights.context import ServiceContext
from meeting_insights.extraction.extractor import ExtractionRequest
from meeting_insights.extraction.models import ExtractedInsights
from meeting_insights.ingestion.storage import VectorStore

# Bag-of-words vocabulary; the trailing constant dimension keeps vectors non-zero.
VOCAB = [
    "pricing",
    "cost",
    "budget",
    "feedback",
    "hiring",
    "onboarding",
    "roadmap",
    "bug",
    "meeting",
    "summary",
    "theme",
    "quote",
]


def fake_vector(text: str) -> list[float]:
    words = re.findall(r"[a-z]+", text.lower())
    return [float(words.count(w)) for w in VOCAB] + [1.0]


class FakeEmbedder:
    """Deterministic stand-in for :class:`Embedder` that records its inputs."""

    dimensions = len(VOCAB) + 1

    def __init__(self) -> None:
        self.single_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        self.single_calls.append(text)
        return fake_vector(text)

    async def embed_batch(
        self,
        texts: Sequence[str],
        model: str | None = None,
        batch_size: int = 100,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        return [fake_vector(t) for t in texts]


class FakeExtractor:
    """Returns canned insights per title, recording each request."""

    def __init__(self, insights_by_title: dict[str, ExtractedInsights] | None = None) -> None:
        self.insights_by_title = insights_by_title or {}
        self.calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    def _insights(self, title: str, notes: str) -> ExtractedInsights:
        return self.insights_by_title.get(title, ExtractedInsights(insights_summary=notes[:50]))

    async def extract(
        self, transcript: str, notes: str, title: str, model: str | None = None
    ) -> ExtractedInsights:
        self.calls.append(title)
        return self._insights(title, notes)

    async def extract_batch(
        self,
        requests: Sequence[ExtractionRequest],
        model: str | None = None,
        concurrency: int = 3,
        window_delay: float = 0.5,
        on_progress: Callable[[int, int, str], None] | None = None,
    ) -> dict[str, ExtractedInsights]:
        self.batch_calls.append([r.title for r in requests])
        return {r.id: self._insights(r.title, r.notes) for r in requests}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        openai_api_key="",
        anthropic_api_key="",
        retry_base_delay=0.0,
        embedding_batch_delay=0.0,
        extraction_window_delay=0.0,
    )


@pytest.fixture
def store(tmp_path: Path) -> VectorStore:
    return VectorStore.open(tmp_path / "vectors.chroma")


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def ctx(
    tmp_path: Path,
    settings: Settings,
    store: VectorStore,
    fake_embedder: FakeEmbedder,
    fake_extractor: FakeExtractor,
) -> ServiceContext:
    return ServiceContext(
        settings,
        tmp_path,
        embedder=fake_embedder,  # type: ignore[arg-type]
        extractor=fake_extractor,  # type: ignore[arg-type]
        store=store,
    )
