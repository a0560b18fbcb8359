"""Response envelope builder. Every search call ends here, success or failure."""

from __future__ import annotations

from typing import Optional, Sequence

from patternatlas.config import Settings
from patternatlas.exceptions import PatternAtlasError, ValidationError
from patternatlas.search.filters import PageWindow, PredicateSet, default_window
from patternatlas.search.schemas import ErrorInfo, Notice, PatternResult, SearchResponse


def build_success(
    predicates: PredicateSet,
    results: Sequence[PatternResult],
    total: int,
    notices: Optional[Sequence[Notice]] = None,
) -> SearchResponse:
    """Wrap assembled results with pagination metadata."""
    return SearchResponse(
        status="ok",
        error=None,
        total_considered_hint=total,
        limit=predicates.window.limit,
        offset=predicates.window.offset,
        returned_count=len(results),
        results=list(results),
        notices=list(notices or []),
    )


def build_error(
    exc: Exception,
    settings: Settings,
    window: Optional[PageWindow] = None,
) -> SearchResponse:
    """Wrap a failure in an error envelope with an empty results array.

    Known errors keep their code and message; anything else is reported as
    InternalError without leaking internals.
    """
    window = window or default_window(settings)
    if isinstance(exc, PatternAtlasError):
        error = ErrorInfo(
            code=exc.code,
            message=exc.message,
            field=exc.field if isinstance(exc, ValidationError) else None,
        )
    else:
        error = ErrorInfo(code="InternalError", message="Search failed unexpectedly")
    return SearchResponse(
        status="error",
        error=error,
        total_considered_hint=0,
        limit=window.limit,
        offset=window.offset,
        returned_count=0,
        results=[],
    )
