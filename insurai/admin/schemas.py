"""
schemas.py — Admin request contracts.

PlanUpdateRequest is a partial update: only fields present in the request
body are applied (model_dump(exclude_unset=True)).
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlanUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    plan_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    monthly_cost: Optional[float] = Field(default=None, ge=0)
    annual_cost: Optional[float] = Field(default=None, ge=0)
    deductible: Optional[float] = Field(default=None, ge=0)
    max_coverage: Optional[float] = Field(default=None, ge=0)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("plan_name", "features", "is_active")
    @classmethod
    def _not_null(cls, v):
        # Costs may be cleared with null; these columns may not
        if v is None:
            raise ValueError("may not be null")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)
