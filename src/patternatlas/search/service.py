"""Search orchestration: compile, rank, enrich, wrap.

search_patterns() is the boundary operation. It never raises: validation
errors, store failures and timeouts all come back as error envelopes.

Each stage runs on its own short-lived session from the injected session
factory. After ranking, the tag, similarity, dimension and unknown-label
lookups are independent reads on disjoint tables, so they are issued
concurrently in the default executor and gathered before assembly. The whole
call is bounded by ``store_timeout_seconds``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patternatlas.config import Settings, get_settings
from patternatlas.exceptions import StoreUnavailable, ValidationError
from patternatlas.search.assembler import assemble, fetch_dimensions, fetch_related, fetch_tags
from patternatlas.search.envelope import build_error, build_success
from patternatlas.search.filters import PredicateSet, compile_filters
from patternatlas.search.planner import RankedPattern, execute
from patternatlas.search.schemas import Notice, PatternResult, SearchResponse
from patternatlas.taxonomy.models import LABEL_DIMENSIONS, Pattern
from patternatlas.taxonomy.service import resolve_dimension, suggest_dimension

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], Session]
T = TypeVar("T")


def _with_session(session_factory: SessionFactory, fn: Callable[[Session], T]) -> T:
    """Run fn on a fresh session and always close it."""
    db = session_factory()
    try:
        return fn(db)
    finally:
        db.close()


async def _in_thread(session_factory: SessionFactory, fn: Callable[[Session], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _with_session, session_factory, fn)


def label_notices(
    db: Session, predicates: PredicateSet, case_insensitive: bool = False
) -> list[Notice]:
    """Flag filter labels that name no taxonomy dimension row.

    Unknown labels are still applied as filters; the notice only tells the
    caller why the result set may be empty and suggests a close match.
    With case_insensitive set, labels are matched the way the filter matches them.
    """
    notices = []
    for predicate in predicates.equality:
        dimension = LABEL_DIMENSIONS.get(predicate.column)
        if dimension is None:
            continue
        try:
            if resolve_dimension(db, dimension, predicate.value, case_insensitive) is not None:
                continue
            suggestion = suggest_dimension(db, dimension, predicate.value)
        except SQLAlchemyError as e:
            raise StoreUnavailable(message="Taxonomy lookup failed", detail=str(e)) from e
        message = f"No {predicate.request_key} named '{predicate.value}' in the taxonomy"
        if suggestion:
            message += f"; did you mean '{suggestion}'?"
        notices.append(
            Notice(field=predicate.request_key, message=message, suggestion=suggestion)
        )
    return notices


async def _enrich(
    session_factory: SessionFactory,
    rows: Sequence[RankedPattern],
    include_related: bool,
    related_limit: int,
) -> list[PatternResult]:
    """Fan out the per-page relation fetches and assemble the records."""
    if not rows:
        return []
    ids = [r.pattern.id for r in rows]
    patterns = [r.pattern for r in rows]

    async def no_related() -> dict:
        return {}

    tags, related, dimensions = await asyncio.gather(
        _in_thread(session_factory, lambda db: fetch_tags(db, ids)),
        (
            _in_thread(session_factory, lambda db: fetch_related(db, ids, related_limit))
            if include_related
            else no_related()
        ),
        _in_thread(session_factory, lambda db: fetch_dimensions(db, patterns)),
    )
    return assemble(rows, tags, related, dimensions)


async def _run_search(
    session_factory: SessionFactory,
    predicates: PredicateSet,
    settings: Settings,
) -> SearchResponse:
    result, notices = await asyncio.gather(
        _in_thread(session_factory, lambda db: execute(db, predicates, settings)),
        _in_thread(
            session_factory,
            lambda db: label_notices(db, predicates, settings.case_insensitive_filters),
        ),
    )
    results = await _enrich(
        session_factory,
        result.rows,
        predicates.include_related,
        predicates.related_limit,
    )
    return build_success(predicates, results, result.total, notices)


async def search_patterns(
    session_factory: SessionFactory,
    raw: Optional[Mapping[str, Any]],
    settings: Optional[Settings] = None,
) -> SearchResponse:
    """Search the pattern catalog. Always returns an envelope.

    Args:
        session_factory: Callable returning a new Session (e.g. a sessionmaker).
        raw: Request mapping with optional keywords, role, department,
            ai_category, difficulty, company_type, limit, offset,
            include_related, related_limit.
        settings: Optional settings; loaded from the environment when omitted.

    Returns:
        SearchResponse with status "ok", or status "error" carrying a
        ValidationError / StoreUnavailable code and an empty results array.
    """
    settings = settings or get_settings()
    started = time.perf_counter()

    try:
        predicates = compile_filters(raw, settings)
    except ValidationError as e:
        logger.info("search_rejected", field=e.field, reason=e.message)
        return build_error(e, settings)

    try:
        response = await asyncio.wait_for(
            _run_search(session_factory, predicates, settings),
            timeout=settings.store_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "search_timeout",
            timeout_seconds=settings.store_timeout_seconds,
            **predicates.describe(),
        )
        return build_error(
            StoreUnavailable(
                message="Pattern store did not respond in time",
                detail=f"timeout after {settings.store_timeout_seconds}s",
            ),
            settings,
            predicates.window,
        )
    except StoreUnavailable as e:
        logger.warning("search_store_unavailable", detail=e.detail, **predicates.describe())
        return build_error(e, settings, predicates.window)
    except Exception as e:
        logger.exception("search_failed", **predicates.describe())
        return build_error(e, settings, predicates.window)

    logger.info(
        "search_executed",
        total=response.total_considered_hint,
        returned=response.returned_count,
        elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        **predicates.describe(),
    )
    return response


def search_patterns_sync(
    session_factory: SessionFactory,
    raw: Optional[Mapping[str, Any]],
    settings: Optional[Settings] = None,
) -> SearchResponse:
    """Blocking wrapper around search_patterns for callers without an event loop."""
    return asyncio.run(search_patterns(session_factory, raw, settings))


async def get_pattern_detail(
    session_factory: SessionFactory,
    pattern_id: int,
    settings: Optional[Settings] = None,
) -> Optional[PatternResult]:
    """Fetch one enriched pattern by id, or None if it does not exist.

    Raises:
        StoreUnavailable: On store failure or timeout.
    """
    settings = settings or get_settings()

    def load(db: Session) -> Optional[Pattern]:
        try:
            return db.execute(
                select(Pattern).where(Pattern.id == pattern_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable(message="Pattern lookup failed", detail=str(e)) from e

    async def run() -> Optional[PatternResult]:
        pattern = await _in_thread(session_factory, load)
        if pattern is None:
            return None
        results = await _enrich(
            session_factory,
            [RankedPattern(pattern=pattern)],
            include_related=True,
            related_limit=settings.default_related_limit,
        )
        return results[0]

    try:
        return await asyncio.wait_for(run(), timeout=settings.store_timeout_seconds)
    except asyncio.TimeoutError:
        raise StoreUnavailable(
            message="Pattern store did not respond in time",
            detail=f"timeout after {settings.store_timeout_seconds}s",
        ) from None
