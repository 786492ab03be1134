"""
Plan HTTP routes — GET /api/plans, GET /api/plans/meta/types, GET /api/plans/{plan_id}

All routes require an authenticated user. Only active plans are visible here;
inactive plans are reachable through the admin routes.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.auth.dependencies import AuthContext, get_current_user
from insurai.database import get_db
from insurai.errors import NotFoundError
from insurai.plans.query import parse_plan_filters, search_plans
from insurai.store import get_active_plan, list_plan_types

router = APIRouter(prefix="/api/plans", tags=["plans"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_plans(
    request: Request,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Query params: type, state_id, max_deductible, max_cost, min_coverage,
    coverage_type, limit (50), offset (0). state_id defaults to the caller's
    home emirate.
    """
    filters = parse_plan_filters(request.query_params)
    page = await search_plans(db, filters, user.state_id)
    return {
        "plans": page.plans,
        "pagination": {
            "total": page.total,
            "limit": page.limit,
            "offset": page.offset,
            "has_more": page.has_more,
        },
        "filters_applied": {
            "state_id": page.state_id,
            "type": filters.type,
            "max_deductible": filters.max_deductible,
            "max_cost": filters.max_cost,
            "min_coverage": filters.min_coverage,
            "coverage_type": filters.coverage_type,
        },
    }


# Registered before /{plan_id} so "meta" is never parsed as an id
@router.get("/meta/types")
async def plan_types(
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return {"types": await list_plan_types(db)}


@router.get("/{plan_id}")
async def get_plan(
    plan_id: int,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    plan = await get_active_plan(db, plan_id)
    if plan is None:
        raise NotFoundError("Plan not found")
    return {"plan": plan}
