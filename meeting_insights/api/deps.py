"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from meeting_insights.context import ServiceContext
from meeting_insights.retrieval.models import NotFound


@lru_cache(maxsize=1)
def get_context() -> ServiceContext:
    """The process-wide context; overridden in tests via ``dependency_overrides``."""
    return ServiceContext()


def raise_if_not_found(result: object) -> None:
    if isinstance(result, NotFound):
        raise HTTPException(status_code=404, detail=result.error)
