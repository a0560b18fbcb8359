"""Filter compiler: validate and normalize a raw search request into a predicate set.

All request keys are optional. Supplied categorical filters become equality
predicates that must all hold (AND semantics, never OR). Keywords become a
text predicate with lower-cased, de-duplicated terms. Pagination falls back
to configured defaults and limit is clamped to ``max_limit``.

Type coercion and bounds checks are done by the SearchRequest model; any
failure is re-raised as ValidationError naming the offending field. No I/O
happens here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from patternatlas.config import Settings
from patternatlas.exceptions import ValidationError
from patternatlas.search.schemas import SearchRequest

logger = logging.getLogger(__name__)

# Request key -> Pattern column
FILTER_COLUMNS: dict[str, str] = {
    "role": "role",
    "department": "department",
    "ai_category": "ai_category",
    "difficulty": "difficulty_level",
    "company_type": "company_type",
}

KNOWN_KEYS = frozenset(
    {"keywords", "limit", "offset", "include_related", "related_limit", *FILTER_COLUMNS}
)


@dataclass(frozen=True)
class EqualityPredicate:
    """Exact match of a pattern column against a value."""

    request_key: str
    column: str
    value: str


@dataclass(frozen=True)
class TextPredicate:
    """Free-text relevance constraint over title and description."""

    query: str
    terms: tuple[str, ...]


@dataclass(frozen=True)
class PageWindow:
    limit: int
    offset: int


@dataclass(frozen=True)
class PredicateSet:
    """Normalized, validated constraints for one search call."""

    window: PageWindow
    equality: tuple[EqualityPredicate, ...] = ()
    text: Optional[TextPredicate] = None
    include_related: bool = True
    related_limit: int = 5
    ignored_keys: tuple[str, ...] = field(default=())

    def describe(self) -> dict[str, Any]:
        """Flat view of the constraints for logging."""
        filters = {p.request_key: p.value for p in self.equality}
        if self.text:
            filters["keywords"] = self.text.query
        return {
            "filters": filters,
            "limit": self.window.limit,
            "offset": self.window.offset,
        }


def default_window(settings: Settings) -> PageWindow:
    return PageWindow(limit=settings.default_limit, offset=0)


def tokenize(query: str, max_terms: int) -> tuple[str, ...]:
    """Split a keyword query into lower-cased unique terms, keeping first-seen order.

    A query made only of punctuation becomes a single literal term.
    """
    seen: dict[str, None] = {}
    for raw in query.lower().split():
        term = raw.strip(".,;:!?\"'()[]{}")
        if term and term not in seen:
            seen[term] = None
        if len(seen) >= max_terms:
            break
    if not seen and query.strip():
        return (query.strip().lower(),)
    return tuple(seen)


def _validate_request(raw: Mapping[str, Any], settings: Settings) -> SearchRequest:
    try:
        return SearchRequest.model_validate(dict(raw), context={"settings": settings})
    except PydanticValidationError as e:
        err = e.errors()[0]
        field_name = str(err["loc"][0]) if err["loc"] else None
        raise ValidationError(
            message=f"Invalid '{field_name}': {err['msg']}",
            field=field_name,
            detail=f"got {err.get('input')!r}",
        ) from None


def compile_filters(raw: Optional[Mapping[str, Any]], settings: Settings) -> PredicateSet:
    """Compile a raw request mapping into a PredicateSet.

    Args:
        raw: Request mapping; None is treated as an empty request.
        settings: Supplies default/max limit, max offset and keyword term cap.

    Returns:
        PredicateSet with equality predicates in a fixed key order.

    Raises:
        ValidationError: limit not a positive integer, offset negative,
            non-numeric or above max_offset, related_limit negative,
            include_related not boolean.
    """
    raw = raw or {}
    request = _validate_request(raw, settings)

    equality = []
    for key, column in FILTER_COLUMNS.items():
        value = getattr(request, key)
        if value is not None:
            equality.append(EqualityPredicate(request_key=key, column=column, value=value))

    text = None
    if request.keywords is not None:
        text = TextPredicate(
            query=request.keywords,
            terms=tokenize(request.keywords, settings.max_keyword_terms),
        )

    ignored = tuple(sorted(k for k in raw if k not in KNOWN_KEYS))
    if ignored:
        logger.debug("Ignoring unknown search keys: %s", ", ".join(ignored))

    return PredicateSet(
        window=PageWindow(
            limit=request.limit if request.limit is not None else settings.default_limit,
            offset=request.offset if request.offset is not None else 0,
        ),
        equality=tuple(equality),
        text=text,
        include_related=request.include_related if request.include_related is not None else True,
        related_limit=(
            request.related_limit
            if request.related_limit is not None
            else settings.default_related_limit
        ),
        ignored_keys=ignored,
    )
