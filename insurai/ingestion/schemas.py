"""
schemas.py — Ingestion pipeline Pydantic v2 data contracts.

Defines:
  - PlanType enum (Health / Auto / Life / Property / Travel)
  - SheetTable, ExtractionResult      (Document Extractor output)
  - AgeBand, StructuredFeatures, ExtractedPlan, PlanExtraction
                                      (validated LLM output)
  - UploadedDocument                  (one file handed to the coordinator)
  - FileOutcome, IngestionResults, IngestionSummary
                                      (upload response body)

LLM output is untrusted: ExtractedPlan repairs what can be repaired
("AED 1,200" → 1200.0, unknown plan_type → Health, a bare string feature →
one-item list, missing structured feature keys → null) instead of rejecting
the whole batch over formatting noise.
"""
from __future__ import annotations

import json
import math
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from insurai.ingestion.prompt_builder import STRUCTURED_FEATURE_KEYS


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PlanType(str, Enum):
    health = "Health"
    auto = "Auto"
    life = "Life"
    property = "Property"
    travel = "Travel"


PLAN_TYPES: list[str] = [t.value for t in PlanType]

# Widths of the VARCHAR columns LLM text lands in
PROVIDER_NAME_MAX = 255
PLAN_NAME_MAX = 255
COVERAGE_TYPE_MAX = 100


# ---------------------------------------------------------------------------
# Coercion helpers — tolerate the shapes LLMs actually return
# ---------------------------------------------------------------------------

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_TRUE_WORDS = {"true", "yes", "y", "covered", "included"}
_FALSE_WORDS = {"false", "no", "n", "not covered", "excluded"}


def coerce_number(value: Any) -> Optional[float]:
    """Return a finite float for numbers and numeric-looking strings, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        if cleaned in ("", "-", ".", "-."):
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    # json.loads turns 1e999 into inf and accepts NaN
    return number if math.isfinite(number) else None


def _coerce_int(value: Any) -> Optional[int]:
    number = coerce_number(value)
    return None if number is None else int(number)


def _coerce_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return None


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        return "; ".join(str(v) for v in value if v is not None) or None
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def clip_text(value: Optional[str], limit: int) -> Optional[str]:
    if value is None or len(value) <= limit:
        return value
    return value[:limit].rstrip()


def _plan_type_of(value: Any) -> PlanType:
    """Case-insensitive match against PlanType; anything else is Health."""
    if isinstance(value, str):
        for plan_type in PlanType:
            if plan_type.value.lower() == value.strip().lower():
                return plan_type
    return PlanType.health


# ---------------------------------------------------------------------------
# Document Extractor output
# ---------------------------------------------------------------------------

class SheetTable(BaseModel):
    """One spreadsheet sheet rendered as CSV, kept alongside the plain text."""
    sheet_name: str
    csv: str
    source_file: Optional[str] = None


class ExtractionResult(BaseModel):
    text: str
    tables: list[SheetTable] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Validated LLM output
# ---------------------------------------------------------------------------

class AgeBand(BaseModel):
    """One row of an age-band pricing table."""
    model_config = ConfigDict(extra="ignore")

    age_range: str = ""
    premium: Optional[float] = None

    @field_validator("age_range", mode="before")
    @classmethod
    def _age_range_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("premium", mode="before")
    @classmethod
    def _premium_as_number(cls, v: Any) -> Optional[float]:
        return coerce_number(v)


_INT_FEATURES = {"network_hospitals_count", "waiting_period_days", "copay_percentage"}
_STR_FEATURES = {"network_type", "room_type"}


class StructuredFeatures(BaseModel):
    """
    The fixed 23-key comparison map. Every value is independently nullable;
    unknown keys from the LLM are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    network_hospitals_count: Optional[int] = None
    network_type: Optional[str] = None
    uae_coverage: Optional[bool] = None
    gcc_coverage: Optional[bool] = None
    international_coverage: Optional[bool] = None
    outpatient_coverage: Optional[bool] = None
    inpatient_coverage: Optional[bool] = None
    dental_coverage: Optional[bool] = None
    optical_coverage: Optional[bool] = None
    maternity_coverage: Optional[bool] = None
    pre_existing_conditions: Optional[bool] = None
    pharmacy_coverage: Optional[bool] = None
    emergency_coverage: Optional[bool] = None
    ambulance_service: Optional[bool] = None
    preventive_care: Optional[bool] = None
    chronic_conditions_covered: Optional[bool] = None
    mental_health_coverage: Optional[bool] = None
    physiotherapy_coverage: Optional[bool] = None
    alternative_medicine: Optional[bool] = None
    waiting_period_days: Optional[int] = None
    copay_percentage: Optional[int] = None
    room_type: Optional[str] = None
    cashless_claims: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _repair_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        repaired: dict[str, Any] = {}
        for key in STRUCTURED_FEATURE_KEYS:
            value = data.get(key)
            if key in _INT_FEATURES:
                repaired[key] = _coerce_int(value)
            elif key in _STR_FEATURES:
                repaired[key] = _coerce_text(value)
            else:
                repaired[key] = _coerce_bool(value)
        return repaired


class ExtractedPlan(BaseModel):
    """One plan as returned by the LLM, after repair."""
    model_config = ConfigDict(extra="ignore")

    plan_name: str
    plan_type: PlanType = PlanType.health
    monthly_cost: Optional[float] = None
    annual_cost: Optional[float] = None
    deductible: Optional[float] = None
    max_coverage: Optional[float] = None
    coverage_type: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    eligibility_criteria: Optional[str] = None
    exclusions: Optional[str] = None
    benefits_table: Optional[str] = None
    age_based_pricing: Optional[list[AgeBand]] = None
    structured_features: StructuredFeatures = Field(default_factory=StructuredFeatures)

    @model_validator(mode="before")
    @classmethod
    def _default_plan_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not _coerce_text(data.get("plan_name")):
            data = dict(data)
            data["plan_name"] = f"{_plan_type_of(data.get('plan_type')).value} Plan"
        return data

    @field_validator("plan_name", mode="before")
    @classmethod
    def _plan_name_as_text(cls, v: Any) -> Any:
        return clip_text(_coerce_text(v), PLAN_NAME_MAX)

    @field_validator("plan_type", mode="before")
    @classmethod
    def _known_plan_type(cls, v: Any) -> PlanType:
        return _plan_type_of(v)

    @field_validator("monthly_cost", "annual_cost", "deductible", "max_coverage", mode="before")
    @classmethod
    def _money_as_number(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("coverage_type", mode="before")
    @classmethod
    def _coverage_type_as_text(cls, v: Any) -> Optional[str]:
        return clip_text(_coerce_text(v), COVERAGE_TYPE_MAX)

    @field_validator("eligibility_criteria", "exclusions", "benefits_table", mode="before")
    @classmethod
    def _free_text(cls, v: Any) -> Optional[str]:
        return _coerce_text(v)

    @field_validator("features", mode="before")
    @classmethod
    def _features_as_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        if isinstance(v, list):
            return [str(item) for item in v if item is not None and str(item).strip()]
        return [str(v)]

    @field_validator("age_based_pricing", mode="before")
    @classmethod
    def _age_bands(cls, v: Any) -> Optional[list[Any]]:
        if not isinstance(v, list):
            return None
        bands = [band for band in v if isinstance(band, dict)]
        return bands or None

    @field_validator("structured_features", mode="before")
    @classmethod
    def _features_map(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}


class PlanExtraction(BaseModel):
    """Validated result of one LLM extraction pass."""
    provider_name: str
    plans: list[ExtractedPlan]
    provider_fallback_used: bool = False

    @field_validator("provider_name")
    @classmethod
    def _provider_name_fits(cls, v: str) -> str:
        return clip_text(v, PROVIDER_NAME_MAX)


# ---------------------------------------------------------------------------
# Coordinator input / output
# ---------------------------------------------------------------------------

class UploadedDocument(BaseModel):
    """Raw upload handed to the coordinator. Bytes are written to a temp file."""
    filename: str
    content: bytes
    mime_type: str = ""


class FileOutcome(BaseModel):
    file: str
    status: str
    error: Optional[str] = None


class IngestionResults(BaseModel):
    total_files: int
    successful: int = 0
    failed: int = 0
    total_plans_added: int = 0
    deleted: int = 0
    details: list[dict[str, Any]] = Field(default_factory=list)


class IngestionSummary(BaseModel):
    message: str
    state: str
    total_plans: int
    results: IngestionResults
