"""Embedding helpers using OpenAI text-embedding-3-small."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from openai import AsyncOpenAI

from meeting_insights.ingestion.models import ChunkKind
from meeting_insights.retry import RetryPolicy, with_retry

MAX_INPUT_CHARS = 8000


def create_searchable_text(
    kind: ChunkKind,
    text: str,
    theme_name: str | None = None,
    context: str | None = None,
) -> str:
    """Prefix *text* with a label describing its role before embedding.

    The label lets a theme description and a raw quote with similar wording
    land in different parts of the vector space.
    """
    if kind is ChunkKind.SUMMARY:
        return f"Meeting summary: {text}"
    if kind is ChunkKind.RAW_SUMMARY:
        return f"Meeting notes: {text}"
    if kind is ChunkKind.THEME:
        return f"Theme {theme_name}: {text}"
    if kind is ChunkKind.QUOTE:
        if context:
            return f'Quote about {context}: "{text}"'
        return f'Quote: "{text}"'
    return text


class Embedder:
    """Turns text into fixed-length vectors, one at a time or in batches."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        max_chars: int = MAX_INPUT_CHARS,
        batch_delay: float = 0.1,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.max_chars = max_chars
        self.batch_delay = batch_delay
        self.retry_policy = retry_policy or RetryPolicy()

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        """Embed a single text (truncated to ``max_chars``).

        Transient failures are retried; the final error propagates.
        """
        truncated = text[: self.max_chars]
        response = await with_retry(
            lambda: self.client.embeddings.create(
                input=truncated, model=model or self.model, dimensions=self.dimensions
            ),
            self.retry_policy,
            description="Embedding request",
        )
        return list(response.data[0].embedding)

    async def embed_batch(
        self,
        texts: Sequence[str],
        model: str | None = None,
        batch_size: int = 100,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[list[float]]:
        """Embed *texts* in batches, returning vectors in input order.

        Args:
            texts: Strings to embed.
            model: OpenAI embedding model name (defaults to the configured one).
            batch_size: Texts per request.
            on_progress: Called with ``(completed, total)`` after each batch.

        Returns:
            A list of embedding vectors (one per input text).
        """
        total = len(texts)
        vectors: list[list[float]] = []

        for start in range(0, total, batch_size):
            batch = [t[: self.max_chars] for t in texts[start : start + batch_size]]
            response = await with_retry(
                lambda batch=batch: self.client.embeddings.create(
                    input=batch, model=model or self.model, dimensions=self.dimensions
                ),
                self.retry_policy,
                description="Batch embedding request",
            )
            # The service may return items out of order.
            for item in sorted(response.data, key=lambda d: d.index):
                vectors.append(list(item.embedding))

            completed = min(start + batch_size, total)
            if on_progress:
                on_progress(completed, total)
            if completed < total:
                await asyncio.sleep(self.batch_delay)

        return vectors
