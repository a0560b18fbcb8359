"""Query planner/executor: turn a PredicateSet into one ranked, paginated query.

Ranking:
- keywords present: relevance desc, extraction_confidence desc,
  created_at desc, id desc. Rows with zero relevance are excluded.
- no keywords: content_quality_score desc, extraction_confidence desc,
  created_at desc, id desc.

NULL scores sort after every non-NULL score. The trailing id key makes the
order total, so offset/limit paging is stable over an unchanged store.
Offset and limit are applied in SQL after the full ORDER BY.

Relevance per keyword term = title_weight if the title contains the term
plus description_weight if the description contains it (case-insensitive,
LIKE wildcards escaped). Store failures surface as StoreUnavailable.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from functools import reduce
from typing import Optional

from sqlalchemy import String, case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patternatlas.config import Settings
from patternatlas.exceptions import StoreUnavailable
from patternatlas.search.filters import PredicateSet, TextPredicate
from patternatlas.taxonomy.models import Pattern

logger = logging.getLogger(__name__)


@dataclass
class RankedPattern:
    """A matched pattern with the score that placed it."""

    pattern: Pattern
    relevance: Optional[float] = None


@dataclass
class QueryResult:
    rows: list[RankedPattern]
    total: int


def relevance_expression(text: TextPredicate, settings: Settings):
    """Build the SQL relevance score for a text predicate."""
    title = func.lower(Pattern.title, type_=String)
    description = func.lower(Pattern.description, type_=String)
    parts = []
    for term in text.terms:
        parts.append(
            case((title.contains(term, autoescape=True), settings.title_weight), else_=0.0)
        )
        parts.append(
            case(
                (description.contains(term, autoescape=True), settings.description_weight),
                else_=0.0,
            )
        )
    return reduce(operator.add, parts).label("relevance")


def equality_conditions(predicates: PredicateSet, settings: Settings) -> list:
    """One condition per equality predicate. NULL columns never match."""
    conditions = []
    for predicate in predicates.equality:
        column = getattr(Pattern, predicate.column)
        if settings.case_insensitive_filters:
            conditions.append(
                func.lower(column, type_=String) == predicate.value.lower()
            )
        else:
            conditions.append(column == predicate.value)
    return conditions


def _tie_breaks() -> list:
    return [
        Pattern.extraction_confidence.is_(None),
        Pattern.extraction_confidence.desc(),
        Pattern.created_at.desc(),
        Pattern.id.desc(),
    ]


def execute(db: Session, predicates: PredicateSet, settings: Settings) -> QueryResult:
    """Run the ranked search for a predicate set.

    Args:
        db: SQLAlchemy session.
        predicates: Compiled request constraints.
        settings: Supplies relevance weights and case sensitivity.

    Returns:
        QueryResult with the requested page of ranked patterns and the total
        number of matching patterns before paging.

    Raises:
        StoreUnavailable: If the store cannot be queried.
    """
    conditions = equality_conditions(predicates, settings)

    if predicates.text is not None:
        relevance = relevance_expression(predicates.text, settings)
        conditions.append(relevance > 0)
        stmt = select(Pattern, relevance).order_by(relevance.desc(), *_tie_breaks())
    else:
        relevance = None
        stmt = select(Pattern).order_by(
            Pattern.content_quality_score.is_(None),
            Pattern.content_quality_score.desc(),
            *_tie_breaks(),
        )

    stmt = (
        stmt.where(*conditions)
        .offset(predicates.window.offset)
        .limit(predicates.window.limit)
    )
    count_stmt = select(func.count(Pattern.id)).where(*conditions)

    try:
        total = db.execute(count_stmt).scalar_one()
        if relevance is not None:
            rows = [
                RankedPattern(pattern=pattern, relevance=float(score))
                for pattern, score in db.execute(stmt).all()
            ]
        else:
            rows = [RankedPattern(pattern=p) for p in db.execute(stmt).scalars()]
    except SQLAlchemyError as e:
        logger.warning("Pattern query failed: %s", e)
        raise StoreUnavailable(
            message="Pattern store query failed",
            detail=str(e),
        ) from e

    return QueryResult(rows=rows, total=total)
