"""
models/plan.py — SQLAlchemy ORM model for insurance plans.

Table: plans
Each plan belongs to exactly one provider and one state. Ingestion treats the
(provider_id, state_id) pair as the unit of replacement: all rows for the pair
are deleted and the freshly extracted plans inserted in one transaction.

Storage strategy: scalar attributes used by filters (costs, deductible,
coverage) are real columns; the shapes only ever read back whole
(features, age_based_pricing, structured_features) are JSON blobs —
JSONB on PostgreSQL, plain JSON elsewhere.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from insurai.database import Base
from insurai.models.provider import ProviderORM
from insurai.models.state import StateORM

JSONType = JSON().with_variant(JSONB(), "postgresql")


class PlanORM(Base):
    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("providers.id"), nullable=False, index=True,
    )
    state_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("states.id"), nullable=False, index=True,
    )
    plan_name: Mapped[str] = mapped_column(String(255), nullable=False)
    plan_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Health, Auto, Life, Property or Travel",
    )
    monthly_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    annual_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deductible: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_coverage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    coverage_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    features: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    eligibility_criteria: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exclusions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    benefits_table: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    age_based_pricing: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Ordered [{age_range, premium}] — order is preserved exactly as extracted",
    )
    structured_features: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Fixed 23-key comparison map, every value independently nullable",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    document_source: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Comma-joined original filenames of the ingestion batch",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    provider: Mapped[ProviderORM] = relationship(lazy="joined")
    state: Mapped[StateORM] = relationship(lazy="joined")
