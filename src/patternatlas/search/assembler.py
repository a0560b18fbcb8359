"""Result assembler: enrich ranked patterns with tags, examples, neighbours and dimensions.

Related rows are fetched once per relation for the whole page (tags, similarity
edges, and one lookup per dimension table), never once per pattern. The
fetchers are independent reads and the search service runs them concurrently.

Problems with a single record (a tag association pointing at a missing tag,
company examples that are not a list) drop the broken sub-field and log a
PartialAssemblyDegradation warning. The rest of the page is unaffected.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patternatlas.exceptions import StoreUnavailable
from patternatlas.search.planner import RankedPattern
from patternatlas.search.schemas import DimensionInfo, PatternResult, RelatedPattern, TagOut
from patternatlas.taxonomy.models import LABEL_DIMENSIONS, Pattern, PatternSimilarity, PatternTag, Tag
from patternatlas.taxonomy.service import edges_touching, resolve_dimensions

logger = logging.getLogger(__name__)

DEGRADED = "PartialAssemblyDegradation"


def _degraded(pattern_id: int, field: str, reason: str) -> None:
    logger.warning("%s: pattern %s field %s omitted (%s)", DEGRADED, pattern_id, field, reason)


# -- Tags --------------------------------------------------------------------


def group_tags(rows: Iterable[tuple]) -> dict[int, list[TagOut]]:
    """Group (pattern_id, tag_id, tag_name, confidence) rows per pattern.

    Rows whose tag no longer exists (tag_name is None) are dropped. Each
    pattern's tags are sorted by confidence desc, then name.
    """
    grouped: dict[int, list[TagOut]] = defaultdict(list)
    for pattern_id, tag_id, tag_name, confidence in rows:
        if tag_name is None:
            _degraded(pattern_id, "tags", f"dangling tag reference {tag_id}")
            continue
        grouped[pattern_id].append(
            TagOut(name=tag_name, confidence=float(confidence if confidence is not None else 1.0))
        )
    for tags in grouped.values():
        tags.sort(key=lambda t: (-t.confidence, t.name))
    return dict(grouped)


def fetch_tags(db: Session, pattern_ids: Sequence[int]) -> dict[int, list[TagOut]]:
    """Fetch tags for a page of patterns in a single query."""
    if not pattern_ids:
        return {}
    stmt = (
        select(PatternTag.pattern_id, PatternTag.tag_id, Tag.name, PatternTag.confidence)
        .outerjoin(Tag, Tag.id == PatternTag.tag_id)
        .where(PatternTag.pattern_id.in_(list(pattern_ids)))
    )
    try:
        rows = db.execute(stmt).all()
    except SQLAlchemyError as e:
        raise StoreUnavailable(message="Tag lookup failed", detail=str(e)) from e
    return group_tags(rows)


# -- Similarity neighbours ---------------------------------------------------


def group_related(
    edges: Iterable[PatternSimilarity],
    pattern_ids: Sequence[int],
    limit: int,
) -> dict[int, list[RelatedPattern]]:
    """Map each page pattern to its top ``limit`` neighbours.

    An edge (low, high) is visible from both ends. Neighbours are sorted by
    similarity desc, then neighbour id asc.
    """
    wanted = set(pattern_ids)
    grouped: dict[int, list[RelatedPattern]] = defaultdict(list)
    for edge in edges:
        score = float(edge.similarity_score)
        for own, other in (
            (edge.pattern_1_id, edge.pattern_2_id),
            (edge.pattern_2_id, edge.pattern_1_id),
        ):
            if own in wanted:
                grouped[own].append(
                    RelatedPattern(
                        pattern_id=other,
                        similarity_score=score,
                        similarity_type=edge.similarity_type,
                    )
                )
    result = {}
    for pattern_id, neighbours in grouped.items():
        neighbours.sort(key=lambda r: (-r.similarity_score, r.pattern_id))
        result[pattern_id] = neighbours[:limit]
    return result


def fetch_related(
    db: Session, pattern_ids: Sequence[int], limit: int
) -> dict[int, list[RelatedPattern]]:
    """Fetch similarity neighbours for a page of patterns in a single query."""
    if not pattern_ids or limit <= 0:
        return {}
    try:
        edges = edges_touching(db, pattern_ids)
    except SQLAlchemyError as e:
        raise StoreUnavailable(message="Similarity lookup failed", detail=str(e)) from e
    return group_related(edges, pattern_ids, limit)


# -- Taxonomy dimensions -----------------------------------------------------


def fetch_dimensions(
    db: Session, patterns: Sequence[Pattern]
) -> dict[str, dict[str, DimensionInfo]]:
    """Resolve every distinct label on the page against its dimension table.

    Returns:
        {label_field: {label: DimensionInfo}}. Labels with no dimension row
        are absent and render as null in results.
    """
    resolved: dict[str, dict[str, DimensionInfo]] = {}
    try:
        for label_field, dimension in LABEL_DIMENSIONS.items():
            labels = {getattr(p, label_field) for p in patterns}
            rows = resolve_dimensions(db, dimension, labels)
            resolved[label_field] = {
                name: DimensionInfo(name=row.name, description=row.description)
                for name, row in rows.items()
            }
    except SQLAlchemyError as e:
        raise StoreUnavailable(message="Taxonomy lookup failed", detail=str(e)) from e
    return resolved


# -- Assembly ----------------------------------------------------------------


def normalize_examples(pattern_id: int, examples: Any) -> list[Any]:
    """Return company examples as stored when they form a list.

    None means no examples. Any other shape degrades to an empty list.
    """
    if examples is None:
        return []
    if isinstance(examples, list):
        return examples
    _degraded(pattern_id, "company_examples", f"expected a list, got {type(examples).__name__}")
    return []


def _taxonomy_block(
    pattern: Pattern, dimensions: dict[str, dict[str, DimensionInfo]]
) -> dict[str, Optional[DimensionInfo]]:
    block = {}
    for label_field in LABEL_DIMENSIONS:
        label = getattr(pattern, label_field)
        block[label_field] = dimensions.get(label_field, {}).get(label) if label else None
    return block


def build_result(
    ranked: RankedPattern,
    tags: list[TagOut],
    related: list[RelatedPattern],
    dimensions: dict[str, dict[str, DimensionInfo]],
) -> PatternResult:
    """Build one enriched record from a ranked pattern and its prefetched relations."""
    p = ranked.pattern
    return PatternResult(
        id=p.id,
        title=p.title,
        description=p.description,
        summary=p.summary,
        company_type=p.company_type,
        department=p.department,
        role=p.role,
        business_function=p.business_function,
        ai_category=p.ai_category,
        difficulty_level=p.difficulty_level,
        content_quality_score=p.content_quality_score,
        extraction_confidence=(
            float(p.extraction_confidence) if p.extraction_confidence is not None else None
        ),
        pattern_verified=bool(p.pattern_verified),
        created_at=p.created_at,
        relevance_score=ranked.relevance,
        tags=tags,
        company_examples=normalize_examples(p.id, p.company_examples),
        related=related,
        taxonomy=_taxonomy_block(p, dimensions),
    )


def assemble(
    rows: Sequence[RankedPattern],
    tags_by_pattern: dict[int, list[TagOut]],
    related_by_pattern: dict[int, list[RelatedPattern]],
    dimensions: dict[str, dict[str, DimensionInfo]],
) -> list[PatternResult]:
    """Produce one enriched record per ranked row, preserving planner order.

    Patterns without tags or neighbours get empty lists.
    """
    return [
        build_result(
            ranked,
            tags_by_pattern.get(ranked.pattern.id, []),
            related_by_pattern.get(ranked.pattern.id, []),
            dimensions,
        )
        for ranked in rows
    ]
