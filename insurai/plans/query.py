"""
query.py — Plan Query Service.

parse_plan_filters() turns raw query-string values into PlanFilters, rejecting
anything non-numeric up front (400) instead of letting the database see it.
search_plans() applies the user's home state when no state_id was given.
"""
import logging
import math
from collections.abc import Mapping
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from insurai import store
from insurai.errors import BadRequestError
from insurai.ingestion.schemas import PLAN_TYPES
from insurai.plans.schemas import DEFAULT_PAGE_LIMIT, PlanFilters, PlanPage

logger = logging.getLogger(__name__)

_FLOAT_PARAMS = ("max_deductible", "max_cost", "min_coverage")
_INT_PARAMS = ("state_id", "limit", "offset")


def _present(raw: Mapping[str, str], name: str) -> Optional[str]:
    value = raw.get(name)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def parse_plan_filters(raw: Mapping[str, str]) -> PlanFilters:
    """
    Raises:
        BadRequestError: unknown plan type, or a numeric parameter that is not a
            finite number (or is negative, for limit / offset).
    """
    values: dict = {}

    plan_type = _present(raw, "type")
    if plan_type is not None:
        if plan_type not in PLAN_TYPES:
            raise BadRequestError(
                "Invalid plan type",
                details=[{"field": "type", "issue": f"must be one of {', '.join(PLAN_TYPES)}"}],
            )
        values["type"] = plan_type

    for name in _FLOAT_PARAMS:
        value = _present(raw, name)
        if value is None:
            continue
        try:
            number = float(value)
        except ValueError:
            raise BadRequestError(f"{name} must be a number", details=[{"field": name, "issue": "not a number"}])
        if not math.isfinite(number):
            raise BadRequestError(f"{name} must be a finite number", details=[{"field": name, "issue": "not finite"}])
        values[name] = number

    for name in _INT_PARAMS:
        value = _present(raw, name)
        if value is None:
            continue
        try:
            number = int(value)
        except ValueError:
            raise BadRequestError(f"{name} must be an integer", details=[{"field": name, "issue": "not an integer"}])
        if number < 0:
            raise BadRequestError(f"{name} must not be negative", details=[{"field": name, "issue": "negative"}])
        values[name] = number

    coverage_type = _present(raw, "coverage_type")
    if coverage_type is not None:
        values["coverage_type"] = coverage_type

    values.setdefault("limit", DEFAULT_PAGE_LIMIT)
    return PlanFilters(**values)


async def search_plans(
    db: AsyncSession,
    filters: PlanFilters,
    default_state_id: Optional[int],
) -> PlanPage:
    state_id = filters.state_id if filters.state_id is not None else default_state_id
    plans, total = await store.search_plans(db, filters, state_id)
    logger.info(
        "Plan search state_id=%s type=%s returned=%d total=%d",
        state_id, filters.type, len(plans), total,
    )
    return PlanPage(
        plans=plans,
        total=total,
        limit=filters.limit,
        offset=filters.offset,
        state_id=state_id,
    )
