"""Pydantic schemas for the search request, the response envelope and enriched pattern records.

Company examples, tech stacks and success metrics are producer-defined JSON
documents and are carried through as ``Any`` without reshaping.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class SearchRequest(BaseModel):
    """Search request parameters after type coercion.

    Every key is optional and unknown keys are ignored. Blank strings count as
    absent. When validated with a ``settings`` context, limit and
    related_limit are clamped to their configured maximums and offsets above
    ``max_offset`` are rejected.
    """

    model_config = ConfigDict(extra="ignore")

    keywords: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    ai_category: Optional[str] = None
    difficulty: Optional[str] = None
    company_type: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)
    include_related: Optional[bool] = None
    related_limit: Optional[int] = Field(None, ge=0)

    @field_validator(
        "keywords", "role", "department", "ai_category", "difficulty", "company_type",
        mode="before",
    )
    @classmethod
    def clean_label(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = (v if isinstance(v, str) else str(v)).strip()
        return text or None

    @field_validator("limit", "offset", "related_limit", "include_related", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("limit", "offset", "related_limit", mode="before")
    @classmethod
    def reject_booleans(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("must be an integer, not a boolean")
        return v

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        settings = (info.context or {}).get("settings")
        if v is None or settings is None:
            return v
        return min(v, settings.max_limit)

    @field_validator("related_limit")
    @classmethod
    def clamp_related_limit(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        settings = (info.context or {}).get("settings")
        if v is None or settings is None:
            return v
        return min(v, settings.max_related_limit)

    @field_validator("offset")
    @classmethod
    def check_offset(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        settings = (info.context or {}).get("settings")
        if v is not None and settings is not None and v > settings.max_offset:
            raise ValueError(f"must not exceed {settings.max_offset}")
        return v


class TagOut(BaseModel):
    """A tag attached to a pattern with its association confidence."""

    name: str
    confidence: float


class RelatedPattern(BaseModel):
    """Nearest-similar neighbour of a pattern."""

    pattern_id: int
    similarity_score: float
    similarity_type: Optional[str] = None


class DimensionInfo(BaseModel):
    """Taxonomy dimension row referenced by a pattern label."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    description: Optional[str] = None


class PatternResult(BaseModel):
    """One self-contained, enriched search result."""

    id: int
    title: str
    description: str
    summary: Optional[str] = None
    company_type: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None
    business_function: Optional[str] = None
    ai_category: Optional[str] = None
    difficulty_level: Optional[str] = None
    content_quality_score: Optional[int] = None
    extraction_confidence: Optional[float] = None
    pattern_verified: bool = False
    created_at: Optional[datetime] = None
    relevance_score: Optional[float] = None
    tags: list[TagOut] = Field(default_factory=list)
    company_examples: list[Any] = Field(default_factory=list)
    related: list[RelatedPattern] = Field(default_factory=list)
    taxonomy: dict[str, Optional[DimensionInfo]] = Field(default_factory=dict)


class ErrorInfo(BaseModel):
    """Typed error carried by a failed envelope."""

    code: str
    message: str
    field: Optional[str] = None


class Notice(BaseModel):
    """Non-fatal note about the request, e.g. an unknown filter label."""

    field: str
    message: str
    suggestion: Optional[str] = None


class SearchResponse(BaseModel):
    """Response envelope returned for every search call, success or failure."""

    status: Literal["ok", "error"]
    error: Optional[ErrorInfo] = None
    total_considered_hint: int = 0
    limit: int
    offset: int
    returned_count: int = 0
    results: list[PatternResult] = Field(default_factory=list)
    notices: list[Notice] = Field(default_factory=list)


class DimensionResponse(BaseModel):
    """Taxonomy dimension row as listed by the taxonomy API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
