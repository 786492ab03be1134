"""
store.py — Data access facade for InsurAI.

Provides a consistent, high-level API for persisting and retrieving domain objects.
Routes and services use these functions — nothing else builds SQLAlchemy queries.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries, every filter value bound as a parameter
  - flush() only — the caller (get_db dependency or the ingestion
    coordinator's explicit transaction) owns commit / rollback
  - Logs ids and counts only — never password hashes, tokens or chat text
  - Returns plain dicts for API payloads so routes stay persistence-agnostic
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.ingestion.schemas import ExtractedPlan
from insurai.models.chat_history import ChatHistoryORM
from insurai.models.plan import PlanORM
from insurai.models.provider import ProviderORM
from insurai.models.state import StateORM
from insurai.models.user import UserORM
from insurai.plans.schemas import PlanFilters

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# State operations
# ---------------------------------------------------------------------------

async def list_states(db: AsyncSession) -> list[dict]:
    """All emirates ordered by name."""
    result = await db.execute(select(StateORM).order_by(StateORM.state_name.asc()))
    return [row.to_dict() for row in result.scalars().all()]


async def get_state(db: AsyncSession, state_id: int) -> Optional[StateORM]:
    return await db.get(StateORM, state_id)


# ---------------------------------------------------------------------------
# User operations
# ---------------------------------------------------------------------------

def user_to_dict(user: UserORM) -> dict:
    """Public view of a user — never includes password_hash."""
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "state": user.state.to_dict() if user.state is not None else None,
        "created_at": _iso(user.created_at),
    }


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password_hash: str,
    full_name: str,
    state_id: Optional[int],
    role: str = "user",
) -> UserORM:
    """Insert a user. Email is lower-cased; uniqueness is the caller's check."""
    user = UserORM(
        email=email.lower(),
        password_hash=password_hash,
        full_name=full_name,
        state_id=state_id,
        role=role,
    )
    db.add(user)
    await db.flush()
    # Load the state relationship for the response without a lazy load
    await db.refresh(user, attribute_names=["state"])
    logger.info("Created user user_id=%s role=%s", user.id, role)
    return user


# ---------------------------------------------------------------------------
# Provider / plan persistence (ingestion)
# ---------------------------------------------------------------------------

async def get_or_create_provider(db: AsyncSession, name: str) -> tuple[ProviderORM, bool]:
    """
    Resolve a provider by exact, case-sensitive name, creating it if absent.
    Returns (provider, created).
    """
    result = await db.execute(select(ProviderORM).where(ProviderORM.name == name))
    provider = result.scalar_one_or_none()
    if provider is not None:
        logger.info("Found existing provider provider_id=%s", provider.id)
        return provider, False

    provider = ProviderORM(name=name)
    db.add(provider)
    await db.flush()
    logger.info("Created new provider provider_id=%s", provider.id)
    return provider, True


async def replace_plans(
    db: AsyncSession,
    provider_id: int,
    state_id: int,
    plans: list[ExtractedPlan],
    document_source: str,
) -> tuple[int, list[PlanORM]]:
    """
    Delete every plan for (provider, state), then insert `plans`.
    Unconditional replace, never a merge. Returns (deleted_count, inserted_rows).
    """
    deleted = await db.execute(
        delete(PlanORM).where(
            PlanORM.provider_id == provider_id,
            PlanORM.state_id == state_id,
        )
    )
    deleted_count = deleted.rowcount or 0
    logger.info(
        "Deleted %d existing plan(s) provider_id=%s state_id=%s",
        deleted_count, provider_id, state_id,
    )

    rows = []
    for plan in plans:
        rows.append(
            PlanORM(
                provider_id=provider_id,
                state_id=state_id,
                plan_name=plan.plan_name,
                plan_type=plan.plan_type.value,
                monthly_cost=plan.monthly_cost,
                annual_cost=plan.annual_cost,
                deductible=plan.deductible,
                max_coverage=plan.max_coverage,
                coverage_type=plan.coverage_type,
                features=list(plan.features),
                eligibility_criteria=plan.eligibility_criteria,
                exclusions=plan.exclusions,
                benefits_table=plan.benefits_table,
                age_based_pricing=(
                    [band.model_dump() for band in plan.age_based_pricing]
                    if plan.age_based_pricing else None
                ),
                structured_features=plan.structured_features.model_dump(),
                is_active=True,
                document_source=document_source,
            )
        )
    db.add_all(rows)
    await db.flush()
    logger.info("Inserted %d plan(s) provider_id=%s state_id=%s", len(rows), provider_id, state_id)
    return deleted_count, rows


# ---------------------------------------------------------------------------
# Plan reads
# ---------------------------------------------------------------------------

_PLAN_COLUMNS = (
    "id", "provider_id", "state_id", "plan_name", "plan_type",
    "monthly_cost", "annual_cost", "deductible", "max_coverage", "coverage_type",
    "features", "eligibility_criteria", "exclusions", "benefits_table",
    "age_based_pricing", "structured_features", "is_active", "document_source",
)


def plan_to_dict(plan: PlanORM) -> dict:
    """Plan row plus the provider / state display columns the UI shows."""
    data: dict[str, Any] = {column: getattr(plan, column) for column in _PLAN_COLUMNS}
    data["created_at"] = _iso(plan.created_at)
    data["updated_at"] = _iso(plan.updated_at)
    data["provider_name"] = plan.provider.name if plan.provider else None
    data["logo_url"] = plan.provider.logo_url if plan.provider else None
    data["provider_description"] = plan.provider.description if plan.provider else None
    data["state_name"] = plan.state.state_name if plan.state else None
    data["state_code"] = plan.state.state_code if plan.state else None
    return data


def _filter_conditions(filters: PlanFilters, state_id: Optional[int]) -> list:
    conditions = [PlanORM.is_active.is_(True)]
    if state_id is not None:
        conditions.append(PlanORM.state_id == state_id)
    if filters.type is not None:
        conditions.append(PlanORM.plan_type == filters.type)
    if filters.max_deductible is not None:
        conditions.append(PlanORM.deductible <= filters.max_deductible)
    if filters.max_cost is not None:
        conditions.append(PlanORM.monthly_cost <= filters.max_cost)
    if filters.min_coverage is not None:
        conditions.append(PlanORM.max_coverage >= filters.min_coverage)
    if filters.coverage_type:
        # substring match; % and _ in user input are literal
        conditions.append(
            func.lower(PlanORM.coverage_type).contains(filters.coverage_type.lower(), autoescape=True)
        )
    return conditions


async def search_plans(
    db: AsyncSession,
    filters: PlanFilters,
    state_id: Optional[int],
) -> tuple[list[dict], int]:
    """
    Active plans matching `filters`, cheapest monthly cost first.
    Returns (page_of_plans, total_matching) — total ignores limit/offset.
    """
    conditions = _filter_conditions(filters, state_id)
    result = await db.execute(
        select(PlanORM)
        .where(*conditions)
        .order_by(PlanORM.monthly_cost.asc().nulls_last(), PlanORM.id.asc())
        .limit(filters.limit)
        .offset(filters.offset)
    )
    plans = [plan_to_dict(p) for p in result.scalars().all()]
    total = await db.scalar(select(func.count(PlanORM.id)).where(*conditions))
    return plans, int(total or 0)


async def get_active_plan(db: AsyncSession, plan_id: int) -> Optional[dict]:
    result = await db.execute(
        select(PlanORM).where(PlanORM.id == plan_id, PlanORM.is_active.is_(True))
    )
    plan = result.scalar_one_or_none()
    return plan_to_dict(plan) if plan is not None else None


async def list_plan_types(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(PlanORM.plan_type)
        .where(PlanORM.is_active.is_(True))
        .distinct()
        .order_by(PlanORM.plan_type.asc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Admin plan operations
# ---------------------------------------------------------------------------

async def admin_list_plans(
    db: AsyncSession,
    state_id: Optional[int],
    is_active: Optional[bool],
    limit: int,
    offset: int,
) -> list[dict]:
    """All plans including inactive ones, newest first."""
    stmt = select(PlanORM)
    if state_id is not None:
        stmt = stmt.where(PlanORM.state_id == state_id)
    if is_active is not None:
        stmt = stmt.where(PlanORM.is_active.is_(is_active))
    stmt = stmt.order_by(PlanORM.created_at.desc(), PlanORM.id.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [plan_to_dict(p) for p in result.scalars().all()]


async def update_plan(db: AsyncSession, plan_id: int, changes: dict[str, Any]) -> Optional[dict]:
    """Apply a partial update. Returns None when the plan does not exist."""
    plan = await db.get(PlanORM, plan_id)
    if plan is None:
        return None
    for field, value in changes.items():
        setattr(plan, field, value)
    await db.flush()
    logger.info("Updated plan plan_id=%s fields=%s", plan_id, sorted(changes))
    return plan_to_dict(plan)


async def delete_plan(db: AsyncSession, plan_id: int, hard_delete: bool) -> bool:
    """Soft delete (is_active=False) or hard delete. Returns False if not found."""
    plan = await db.get(PlanORM, plan_id)
    if plan is None:
        return False
    if hard_delete:
        await db.delete(plan)
    else:
        plan.is_active = False
    await db.flush()
    logger.info("Deleted plan plan_id=%s hard=%s", plan_id, hard_delete)
    return True


async def get_stats(db: AsyncSession) -> dict:
    """Dashboard counters for the admin overview."""
    overview = {
        "total_users": await db.scalar(
            select(func.count(UserORM.id)).where(UserORM.role == "user")
        ),
        "active_plans": await db.scalar(
            select(func.count(PlanORM.id)).where(PlanORM.is_active.is_(True))
        ),
        "total_providers": await db.scalar(select(func.count(ProviderORM.id))),
        "states_with_plans": await db.scalar(
            select(func.count(func.distinct(PlanORM.state_id)))
        ),
        "total_chats": await db.scalar(select(func.count(ChatHistoryORM.id))),
    }

    type_count = func.count(PlanORM.id).label("count")
    by_type = await db.execute(
        select(PlanORM.plan_type, type_count)
        .where(PlanORM.is_active.is_(True))
        .group_by(PlanORM.plan_type)
        .order_by(type_count.desc(), PlanORM.plan_type.asc())
    )

    state_count = func.count(PlanORM.id).label("count")
    by_state = await db.execute(
        select(StateORM.state_name, state_count)
        .outerjoin(
            PlanORM,
            and_(PlanORM.state_id == StateORM.id, PlanORM.is_active.is_(True)),
        )
        .group_by(StateORM.state_name)
        .order_by(state_count.desc(), StateORM.state_name.asc())
    )

    return {
        "overview": {k: int(v or 0) for k, v in overview.items()},
        "plans_by_type": [{"plan_type": t, "count": c} for t, c in by_type.all()],
        "plans_by_state": [{"state_name": s, "count": c} for s, c in by_state.all()],
    }


# ---------------------------------------------------------------------------
# Chat history operations
# ---------------------------------------------------------------------------

async def save_chat_message(
    db: AsyncSession,
    user_id: int,
    session_id: str,
    message: str,
    response: str,
) -> ChatHistoryORM:
    """Append one exchange. Logs only ids (message text may contain PII)."""
    row = ChatHistoryORM(
        user_id=user_id,
        session_id=session_id,
        message=message,
        response=response,
    )
    db.add(row)
    await db.flush()
    logger.info("Saved chat message user_id=%s session_id=%s", user_id, session_id)
    return row


async def get_chat_history(
    db: AsyncSession,
    user_id: int,
    session_id: Optional[str] = None,
    limit: int = 50,
) -> list[dict]:
    """
    The most recent `limit` exchanges for a user (optionally one session),
    returned oldest first — chronological order for prompts and UI display.
    """
    stmt = select(ChatHistoryORM).where(ChatHistoryORM.user_id == user_id)
    if session_id is not None:
        stmt = stmt.where(ChatHistoryORM.session_id == session_id)
    stmt = stmt.order_by(ChatHistoryORM.created_at.desc(), ChatHistoryORM.id.desc()).limit(limit)
    result = await db.execute(stmt)
    rows = list(result.scalars().all())
    rows.reverse()
    return [
        {
            "id": row.id,
            "session_id": row.session_id,
            "message": row.message,
            "response": row.response,
            "created_at": _iso(row.created_at),
        }
        for row in rows
    ]


async def delete_chat_session(db: AsyncSession, user_id: int, session_id: str) -> int:
    result = await db.execute(
        delete(ChatHistoryORM).where(
            ChatHistoryORM.user_id == user_id,
            ChatHistoryORM.session_id == session_id,
        )
    )
    logger.info("Cleared chat session user_id=%s session_id=%s rows=%d", user_id, session_id, result.rowcount or 0)
    return result.rowcount or 0
