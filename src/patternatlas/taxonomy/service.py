"""Taxonomy store helpers: similarity pair normalization, tag attachment, dimension lookup.

Similarity edges are keyed on the unordered pair, so every read and write goes
through ``canonical_pair`` first. Tag attachment and similarity upserts are
used by seeding and the ingestion side; the search API itself never writes.

Dimension lookup is by name. Pattern labels are not foreign keys, so an
unknown label resolves to None instead of raising.

All functions take a Session as first argument (dependency injection).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rapidfuzz import fuzz, process
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from patternatlas.exceptions import ValidationError
from patternatlas.taxonomy.models import (
    DIMENSION_MODELS,
    PatternSimilarity,
    PatternTag,
    Tag,
)

logger = logging.getLogger(__name__)

# Minimum WRatio score for "did you mean" suggestions on unknown labels
SUGGESTION_THRESHOLD = 80


def canonical_pair(pattern_a: int, pattern_b: int) -> tuple[int, int]:
    """Return the pair with the smaller id first.

    Raises:
        ValidationError: If both ids are the same pattern.
    """
    if pattern_a == pattern_b:
        raise ValidationError(
            message="A pattern cannot be similar to itself",
            field="pattern_id",
            detail=f"pattern_a == pattern_b == {pattern_a}",
        )
    if pattern_a < pattern_b:
        return pattern_a, pattern_b
    return pattern_b, pattern_a


def get_similarity(
    db: Session, pattern_a: int, pattern_b: int
) -> Optional[PatternSimilarity]:
    """Look up the edge between two patterns regardless of argument order."""
    low, high = canonical_pair(pattern_a, pattern_b)
    return db.execute(
        select(PatternSimilarity).where(
            PatternSimilarity.pattern_1_id == low,
            PatternSimilarity.pattern_2_id == high,
        )
    ).scalar_one_or_none()


def add_similarity(
    db: Session,
    pattern_a: int,
    pattern_b: int,
    score: float,
    similarity_type: Optional[str] = None,
    reasoning: Optional[str] = None,
) -> PatternSimilarity:
    """Insert or update the similarity edge for an unordered pair.

    Calling with (a, b) and later (b, a) updates the same row.
    Flushes but does not commit.
    """
    if not 0.0 <= score <= 1.0:
        raise ValidationError(
            message="Similarity score must be between 0 and 1",
            field="similarity_score",
            detail=f"score={score}",
        )

    edge = get_similarity(db, pattern_a, pattern_b)
    if edge is None:
        low, high = canonical_pair(pattern_a, pattern_b)
        edge = PatternSimilarity(
            pattern_1_id=low,
            pattern_2_id=high,
            similarity_score=score,
            similarity_type=similarity_type,
            reasoning=reasoning,
        )
        db.add(edge)
    else:
        edge.similarity_score = score
        if similarity_type is not None:
            edge.similarity_type = similarity_type
        if reasoning is not None:
            edge.reasoning = reasoning
    db.flush()
    return edge


def edges_touching(db: Session, pattern_ids: Iterable[int]) -> list[PatternSimilarity]:
    """Fetch every edge with either endpoint in ``pattern_ids`` in one query."""
    ids = list(set(pattern_ids))
    if not ids:
        return []
    return list(
        db.execute(
            select(PatternSimilarity).where(
                or_(
                    PatternSimilarity.pattern_1_id.in_(ids),
                    PatternSimilarity.pattern_2_id.in_(ids),
                )
            )
        ).scalars()
    )


def attach_tag(
    db: Session,
    pattern_id: int,
    tag_name: str,
    confidence: float = 1.0,
    category: Optional[str] = None,
) -> PatternTag:
    """Attach a tag to a pattern, creating the tag if needed.

    usage_count increments only when the association is new. Re-attaching an
    existing tag updates its confidence and leaves the counter alone.
    Flushes but does not commit.
    """
    name = tag_name.strip()
    if not name:
        raise ValidationError(message="Tag name cannot be empty", field="tag_name")
    if not 0.0 <= confidence <= 1.0:
        raise ValidationError(
            message="Tag confidence must be between 0 and 1",
            field="confidence",
            detail=f"confidence={confidence}",
        )

    tag = db.execute(select(Tag).where(Tag.name == name)).scalar_one_or_none()
    if tag is None:
        tag = Tag(name=name, category=category, usage_count=0)
        db.add(tag)
        db.flush()

    link = db.get(PatternTag, (pattern_id, tag.id))
    if link is None:
        link = PatternTag(pattern_id=pattern_id, tag_id=tag.id, confidence=confidence)
        db.add(link)
        tag.usage_count = (tag.usage_count or 0) + 1
        logger.debug("Attached tag %r to pattern %d", name, pattern_id)
    else:
        link.confidence = confidence
    db.flush()
    return link


# -- Dimension lookup --------------------------------------------------------


def _dimension_model(dimension: str):
    try:
        return DIMENSION_MODELS[dimension]
    except KeyError:
        raise ValidationError(
            message=f"Unknown taxonomy dimension: {dimension}",
            field="dimension",
            suggestion=f"Use one of: {', '.join(sorted(DIMENSION_MODELS))}",
        ) from None


def list_dimension(db: Session, dimension: str) -> list:
    """Return every row of a taxonomy dimension ordered by name."""
    model = _dimension_model(dimension)
    return list(db.execute(select(model).order_by(model.name)).scalars())


def resolve_dimension(
    db: Session, dimension: str, name: Optional[str], case_insensitive: bool = False
):
    """Look up a dimension row by name. Unknown or empty names give None."""
    if not name:
        return None
    model = _dimension_model(dimension)
    if case_insensitive:
        stmt = select(model).where(func.lower(model.name) == name.lower()).order_by(model.id)
        return db.execute(stmt).scalars().first()
    return db.execute(select(model).where(model.name == name)).scalar_one_or_none()


def resolve_dimensions(db: Session, dimension: str, names: Iterable[str]) -> dict:
    """Batch lookup of dimension rows by name. Missing names are simply absent."""
    wanted = {n for n in names if n}
    if not wanted:
        return {}
    model = _dimension_model(dimension)
    rows = db.execute(select(model).where(model.name.in_(wanted))).scalars()
    return {row.name: row for row in rows}


def suggest_dimension(db: Session, dimension: str, label: str) -> Optional[str]:
    """Suggest the closest known dimension name for an unknown label.

    Returns None when the label already exists or nothing scores at least
    SUGGESTION_THRESHOLD with rapidfuzz WRatio.
    """
    names = [row.name for row in list_dimension(db, dimension)]
    if not names or label in names:
        return None
    match = process.extractOne(
        label.lower(),
        names,
        scorer=fuzz.WRatio,
        processor=str.lower,
        score_cutoff=SUGGESTION_THRESHOLD,
    )
    if match is None:
        return None
    return match[0]
