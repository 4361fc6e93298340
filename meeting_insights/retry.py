"""Retry helpers for transient provider errors (exponential backoff)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import anthropic
import openai

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_TYPES: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,  # includes APITimeoutError
    openai.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    ConnectionError,
    TimeoutError,
)

# Fallback for wrapped errors that only carry a message.
TRANSIENT_MESSAGE_MARKERS = ("connection", "timeout", "timed out", "econnreset", "rate limit")


def is_transient_error(exc: BaseException) -> bool:
    """Return True for network resets, timeouts and rate-limit signals."""
    if isinstance(exc, TRANSIENT_ERROR_TYPES):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry a transient failure and how long to wait.

    The n-th retry waits ``base_delay * 2 ** (n - 1)`` seconds, so the
    defaults give 2s then 4s.
    """

    max_retries: int = 2
    base_delay: float = 2.0

    def delay_for(self, retry_number: int) -> float:
        return self.base_delay * (2 ** (retry_number - 1))


async def with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "provider call",
) -> T:
    """Await ``call()``, retrying transient errors according to *policy*.

    Non-transient errors are raised immediately; the last transient error is
    raised once the retries are exhausted.
    """
    retries = 0
    while True:
        try:
            return await call()
        except Exception as exc:
            if not is_transient_error(exc) or retries >= policy.max_retries:
                raise
            retries += 1
            delay = policy.delay_for(retries)
            logger.warning(
                "%s failed (%s); retry %d/%d in %.1fs",
                description,
                exc,
                retries,
                policy.max_retries,
                delay,
            )
            await asyncio.sleep(delay)
