"""FastAPI endpoints for pattern search.

Search endpoints always answer with the response envelope. Validation
problems come back as HTTP 200 with status "error" (never a 422), and
StoreUnavailable is returned with HTTP 503 so proxies can retry.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from patternatlas.config import Settings, get_settings
from patternatlas.exceptions import StoreUnavailable
from patternatlas.search.schemas import PatternResult, SearchResponse
from patternatlas.search.service import SessionFactory, get_pattern_detail, search_patterns

router = APIRouter(prefix="/api/patterns", tags=["patterns"])


def _get_session_factory() -> SessionFactory:
    """Return the session factory. Lazy-imports engine so the app starts without a store."""
    from patternatlas.db.engine import SessionLocal

    return SessionLocal


def _get_settings() -> Settings:
    return get_settings()


def _envelope_response(response: SearchResponse):
    if response.error is not None and response.error.code == StoreUnavailable.code:
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))
    return response


@router.get("/search", response_model=SearchResponse)
async def search_get(
    request: Request,
    session_factory: SessionFactory = Depends(_get_session_factory),
    settings: Settings = Depends(_get_settings),
):
    """Search patterns using query parameters.

    Accepts keywords, role, department, ai_category, difficulty,
    company_type, limit, offset, include_related, related_limit.
    """
    response = await search_patterns(session_factory, dict(request.query_params), settings)
    return _envelope_response(response)


@router.post("/search", response_model=SearchResponse)
async def search_post(
    payload: Optional[dict[str, Any]] = Body(None),
    session_factory: SessionFactory = Depends(_get_session_factory),
    settings: Settings = Depends(_get_settings),
):
    """Search patterns using a JSON request body with the same keys as GET."""
    response = await search_patterns(session_factory, payload or {}, settings)
    return _envelope_response(response)


@router.get("/{pattern_id}", response_model=PatternResult)
async def get_pattern(
    pattern_id: int,
    session_factory: SessionFactory = Depends(_get_session_factory),
    settings: Settings = Depends(_get_settings),
) -> PatternResult:
    """Get a single enriched pattern with tags, examples and neighbours."""
    try:
        result = await get_pattern_detail(session_factory, pattern_id, settings)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail=f"Pattern {pattern_id} not found")
    return result
