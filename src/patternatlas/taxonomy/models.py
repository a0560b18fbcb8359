"""Taxonomy store models: patterns, dimensions, tags, similarity edges, raw content.

All models inherit from Base. Patterns carry free-text categorical labels
(department, company type, AI category, ...) that should name a taxonomy
dimension row but are not foreign keys, so the search layer looks dimensions
up by name and tolerates labels with no matching row.

Similarity edges are stored with the smaller pattern id first; see
``patternatlas.taxonomy.service.canonical_pair``.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from patternatlas.db.base import Base, TimestampMixin


class ClassificationStatus(str, PyEnum):
    """Lifecycle of a pattern through the classification pipeline."""

    PENDING = "pending"
    CLASSIFIED = "classified"
    VERIFIED = "verified"


class Pattern(TimestampMixin, Base):
    """Company-agnostic AI use-case pattern, the unit of search.

    content_quality_score measures content richness; extraction_confidence
    measures extraction fidelity. The two are independent signals.
    """

    __tablename__ = "use_case_patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Categorization (free-text labels, not foreign keys)
    company_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    business_function: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ai_category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    difficulty_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)

    # Implementation guidance
    implementation_approach: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    typical_tech_stack: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    prerequisites: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Expected outcomes
    expected_outcomes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    success_metrics: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    # Supporting evidence, producer-defined shape
    company_examples: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    total_example_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Data quality
    content_quality_score: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )
    extraction_confidence: Mapped[Optional[float]] = mapped_column(
        Numeric(3, 2, asdecimal=False), nullable=True
    )
    pattern_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Processing status
    classification_status: Mapped[str] = mapped_column(
        String(20), default=ClassificationStatus.PENDING.value, nullable=False
    )
    similarity_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class RawScrapedContent(Base):
    """Upstream scraped item. Read-only provenance from the search side."""

    __tablename__ = "raw_scraped_content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    full_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    company_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    company_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company_size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    source_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    source_url: Mapped[str] = mapped_column(String(500), nullable=False)
    source_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    processing_status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False, index=True
    )
    assigned_pattern_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("use_case_patterns.id"), nullable=True
    )

    content_quality_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    extraction_errors: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


# -- Taxonomy dimensions -----------------------------------------------------


class CompanyType(Base):
    """Company type dimension. May nest under a parent type."""

    __tablename__ = "company_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("company_types.id"), nullable=True
    )
    typical_departments: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)


class Department(Base):
    """Department dimension."""

    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    typical_roles: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)


class BusinessFunction(Base):
    """Business function dimension. Belongs to a department."""

    __tablename__ = "business_functions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )  # operational, analytical, strategic
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("departments.id"), nullable=True
    )
    typical_ai_categories: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)


class AICategory(Base):
    """AI category dimension."""

    __tablename__ = "ai_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    technical_complexity: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True
    )  # Low, Medium, High
    common_use_cases: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)


# -- Tags and similarity -----------------------------------------------------


class Tag(Base):
    """Reusable free-form label. usage_count grows only on new attachments."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class PatternTag(Base):
    """Pattern to tag association with a per-association confidence."""

    __tablename__ = "pattern_tags"

    pattern_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("use_case_patterns.id"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(Integer, ForeignKey("tags.id"), primary_key=True)
    confidence: Mapped[float] = mapped_column(
        Numeric(3, 2, asdecimal=False), default=1.0, nullable=False
    )


class PatternSimilarity(Base):
    """Precomputed similarity edge between two distinct patterns.

    One row per unordered pair: pattern_1_id is always the smaller id.
    """

    __tablename__ = "pattern_similarities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pattern_1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("use_case_patterns.id"), nullable=False, index=True
    )
    pattern_2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("use_case_patterns.id"), nullable=False, index=True
    )
    similarity_score: Mapped[float] = mapped_column(
        Numeric(3, 2, asdecimal=False), nullable=False
    )
    similarity_type: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True
    )  # same-function, same-industry, ...
    reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("pattern_1_id", "pattern_2_id", name="uq_pattern_similarity_pair"),
        CheckConstraint("pattern_1_id < pattern_2_id", name="ck_pattern_similarity_ordered"),
        CheckConstraint(
            "similarity_score >= 0 AND similarity_score <= 1",
            name="ck_pattern_similarity_score_range",
        ),
        Index("ix_pattern_similarities_score", "similarity_score"),
    )


# Dimension name -> model, used by lookups and the taxonomy router
DIMENSION_MODELS: dict[str, type[Base]] = {
    "company_types": CompanyType,
    "departments": Department,
    "business_functions": BusinessFunction,
    "ai_categories": AICategory,
}

# Pattern label column -> dimension table it should reference
LABEL_DIMENSIONS: dict[str, str] = {
    "company_type": "company_types",
    "department": "departments",
    "business_function": "business_functions",
    "ai_category": "ai_categories",
}
