"""Read-only FastAPI endpoints for taxonomy dimensions.

Lets a presentation layer populate filter choices. There is no write endpoint;
ingestion owns the write path.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patternatlas.exceptions import ValidationError
from patternatlas.search.schemas import DimensionResponse
from patternatlas.taxonomy.service import list_dimension

router = APIRouter(prefix="/api/taxonomy", tags=["taxonomy"])


def _get_db():
    """Yield a SQLAlchemy session. Lazy-imports engine to keep startup store-free."""
    from patternatlas.db.engine import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@router.get("/{dimension}", response_model=list[DimensionResponse])
async def get_dimension(
    dimension: str,
    db: Session = Depends(_get_db),
) -> list[DimensionResponse]:
    """List company_types, departments, business_functions or ai_categories."""
    try:
        rows = list_dimension(db, dimension)
    except ValidationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"Pattern store is unavailable: {e}")
    return [DimensionResponse.model_validate(row) for row in rows]
