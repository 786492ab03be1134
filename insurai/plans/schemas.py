"""
schemas.py — Plan query contracts.

  - PlanFilters  validated GET /api/plans query parameters
  - PlanPage     one page of results plus pagination counters
"""
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_PAGE_LIMIT = 50


class PlanFilters(BaseModel):
    state_id: Optional[int] = None
    type: Optional[str] = None
    max_deductible: Optional[float] = None
    max_cost: Optional[float] = None
    min_coverage: Optional[float] = None
    coverage_type: Optional[str] = None
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=0)
    offset: int = Field(default=0, ge=0)


class PlanPage(BaseModel):
    plans: list[dict[str, Any]]
    total: int
    limit: int
    offset: int
    state_id: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.plans) < self.total
