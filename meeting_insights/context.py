"""Shared clients and components, built once and passed explicitly."""

from __future__ import annotations

from pathlib import Path

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from meeting_insights.config import ConfigurationError, Settings, get_settings
from meeting_insights.extraction.extractor import InsightExtractor
from meeting_insights.ingestion.embeddings import Embedder
from meeting_insights.ingestion.storage import VectorStore
from meeting_insights.retry import RetryPolicy


class ServiceContext:
    """Holds the provider clients and the vector store for one process.

    Each client is constructed on first use and reused afterwards. Tests can
    inject fakes through the keyword arguments. SDK-level retries are
    disabled; ``RetryPolicy`` is the only retry layer.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        export_dir: str | Path | None = None,
        *,
        embedder: Embedder | None = None,
        extractor: InsightExtractor | None = None,
        store: VectorStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.export_dir = Path(export_dir) if export_dir else Path(self.settings.export_dir)
        self._embedder = embedder
        self._extractor = extractor
        self._store = store
        self._openai: AsyncOpenAI | None = None
        self._anthropic: AsyncAnthropic | None = None

    @property
    def db_path(self) -> Path:
        return self.export_dir / self.settings.index_dir_name

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
        )

    @property
    def openai(self) -> AsyncOpenAI:
        if self._openai is None:
            if not self.settings.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY environment variable is required")
            self._openai = AsyncOpenAI(api_key=self.settings.openai_api_key, max_retries=0)
        return self._openai

    @property
    def anthropic(self) -> AsyncAnthropic:
        if self._anthropic is None:
            if not self.settings.anthropic_api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY environment variable is required")
            self._anthropic = AsyncAnthropic(
                api_key=self.settings.anthropic_api_key, max_retries=0
            )
        return self._anthropic

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = Embedder(
                self.openai,
                model=self.settings.embedding_model,
                dimensions=self.settings.embedding_dimensions,
                max_chars=self.settings.embedding_max_chars,
                batch_delay=self.settings.embedding_batch_delay,
                retry_policy=self.retry_policy,
            )
        return self._embedder

    @property
    def extractor(self) -> InsightExtractor:
        if self._extractor is None:
            self._extractor = InsightExtractor(
                self.anthropic,
                model=self.settings.llm_model,
                temperature=self.settings.extraction_temperature,
                max_tokens=self.settings.extraction_max_tokens,
                retry_policy=self.retry_policy,
            )
        return self._extractor

    @property
    def store(self) -> VectorStore:
        if self._store is None:
            self._store = VectorStore.open(self.db_path, batch_size=self.settings.store_batch_size)
        return self._store

    def with_export_dir(self, export_dir: str | Path) -> ServiceContext:
        """A context rooted at another export directory, sharing the provider clients."""
        if Path(export_dir) == self.export_dir:
            return self
        other = ServiceContext(
            self.settings,
            export_dir,
            embedder=self._embedder,
            extractor=self._extractor,
        )
        other._openai, other._anthropic = self._openai, self._anthropic
        return other
