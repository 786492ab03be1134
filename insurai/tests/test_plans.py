"""
Plan query tests — filters, ordering, pagination and visibility rules of
GET /api/plans, plus the single-plan and plan-type endpoints.
"""
from __future__ import annotations

from typing import Optional

import pytest

from insurai.errors import BadRequestError
from insurai.plans.query import parse_plan_filters
from insurai.tests.conftest import ABU_DHABI, DUBAI
from insurai.tests.fixtures import seed_plans


def _costs(body: dict) -> list[Optional[float]]:
    return [p["monthly_cost"] for p in body["plans"]]


# ---------------------------------------------------------------------------
# Test Group 1: Filters and ordering
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_max_cost_filters_and_orders_ascending(client, database, user_headers) -> None:
    await seed_plans(
        database,
        DUBAI,
        [{"monthly_cost": c} for c in (300, 100, 500, 200)] + [{"monthly_cost": None}],
    )

    response = await client.get("/api/plans", params={"max_cost": "350"}, headers=user_headers)

    assert response.status_code == 200
    body = response.json()
    assert _costs(body) == [100, 200, 300]
    assert body["pagination"]["total"] == 3
    assert body["filters_applied"]["max_cost"] == 350


@pytest.mark.asyncio
async def test_unpriced_plans_sort_last(client, database, user_headers) -> None:
    await seed_plans(database, DUBAI, [{"monthly_cost": None}, {"monthly_cost": 90}])

    body = (await client.get("/api/plans", headers=user_headers)).json()

    assert _costs(body) == [90, None]


@pytest.mark.asyncio
async def test_state_defaults_to_users_home_emirate(client, database, user_headers) -> None:
    await seed_plans(database, DUBAI, [{"plan_name": "Dubai plan"}])
    await seed_plans(database, ABU_DHABI, [{"plan_name": "Abu Dhabi plan"}])

    home = (await client.get("/api/plans", headers=user_headers)).json()
    other = (
        await client.get("/api/plans", params={"state_id": ABU_DHABI}, headers=user_headers)
    ).json()

    assert [p["plan_name"] for p in home["plans"]] == ["Dubai plan"]
    assert home["filters_applied"]["state_id"] == DUBAI
    assert [p["plan_name"] for p in other["plans"]] == ["Abu Dhabi plan"]


@pytest.mark.asyncio
async def test_other_filters(client, database, user_headers) -> None:
    await seed_plans(
        database,
        DUBAI,
        [
            {"plan_name": "A", "coverage_type": "Family", "deductible": 50, "max_coverage": 1_000_000},
            {"plan_name": "B", "coverage_type": "Individual", "deductible": 500, "max_coverage": 150_000},
            {"plan_name": "C", "plan_type": "Travel", "coverage_type": "family floater"},
        ],
    )

    async def names(**params) -> list[str]:
        body = (await client.get("/api/plans", params=params, headers=user_headers)).json()
        return sorted(p["plan_name"] for p in body["plans"])

    assert await names(coverage_type="FAM") == ["A", "C"]
    assert await names(type="Travel") == ["C"]
    assert await names(max_deductible="100") == ["A"]
    assert await names(min_coverage="500000") == ["A"]


@pytest.mark.asyncio
async def test_coverage_type_wildcards_match_literally(client, database, user_headers) -> None:
    await seed_plans(
        database,
        DUBAI,
        [
            {"plan_name": "A", "coverage_type": "Family"},
            {"plan_name": "B", "coverage_type": "100% Inpatient"},
            {"plan_name": "C", "coverage_type": "Single_Parent"},
        ],
    )

    async def names(coverage_type: str) -> list[str]:
        body = (
            await client.get("/api/plans", params={"coverage_type": coverage_type}, headers=user_headers)
        ).json()
        return sorted(p["plan_name"] for p in body["plans"])

    assert await names("%") == ["B"]
    assert await names("_") == ["C"]
    assert await names("100%") == ["B"]


@pytest.mark.asyncio
async def test_inactive_plans_are_hidden(client, database, user_headers) -> None:
    active_id, inactive_id = await seed_plans(
        database, DUBAI, [{"plan_name": "On"}, {"plan_name": "Off", "is_active": False}]
    )

    listing = (await client.get("/api/plans", headers=user_headers)).json()
    assert [p["id"] for p in listing["plans"]] == [active_id]

    response = await client.get(f"/api/plans/{inactive_id}", headers=user_headers)
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Test Group 2: Pagination
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_has_more(client, database, user_headers) -> None:
    await seed_plans(database, DUBAI, [{"monthly_cost": c} for c in (10, 20, 30)])

    first = (
        await client.get("/api/plans", params={"limit": 2}, headers=user_headers)
    ).json()["pagination"]
    last = (
        await client.get("/api/plans", params={"limit": 2, "offset": 2}, headers=user_headers)
    ).json()["pagination"]

    assert first == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    assert last == {"total": 3, "limit": 2, "offset": 2, "has_more": False}


# ---------------------------------------------------------------------------
# Test Group 3: Parameter validation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"max_cost": "abc"},
        {"max_deductible": "cheap"},
        {"min_coverage": "lots"},
        {"max_cost": "nan"},
        {"max_deductible": "inf"},
        {"min_coverage": "-Infinity"},
        {"type": "Dental"},
        {"limit": "ten"},
        {"offset": "-1"},
        {"state_id": "DU"},
    ],
)
async def test_bad_parameters_are_400(client, user_headers, params: dict) -> None:
    response = await client.get("/api/plans", params=params, headers=user_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_REQUEST"


def test_parse_plan_filters_defaults_and_blanks() -> None:
    filters = parse_plan_filters({"max_cost": "", "type": "Life", "coverage_type": " "})

    assert filters.type == "Life"
    assert filters.max_cost is None
    assert filters.coverage_type is None
    assert filters.limit == 50
    assert filters.offset == 0


def test_parse_plan_filters_rejects_unknown_type() -> None:
    with pytest.raises(BadRequestError):
        parse_plan_filters({"type": "health"})


# ---------------------------------------------------------------------------
# Test Group 4: Single plan and types
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_plan_includes_provider_and_state(client, database, user_headers) -> None:
    (plan_id,) = await seed_plans(database, DUBAI, [{"plan_name": "Gold"}], provider="Sukoon")

    plan = (await client.get(f"/api/plans/{plan_id}", headers=user_headers)).json()["plan"]

    assert plan["plan_name"] == "Gold"
    assert plan["provider_name"] == f"Sukoon-{DUBAI}"
    assert plan["state_code"] == "DU"
    assert "provider_description" in plan


@pytest.mark.asyncio
async def test_missing_plan_is_404(client, user_headers) -> None:
    response = await client.get("/api/plans/12345", headers=user_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_plan_types_are_distinct_and_sorted(client, database, user_headers) -> None:
    await seed_plans(
        database,
        DUBAI,
        [{"plan_type": "Travel"}, {"plan_type": "Health"}, {"plan_type": "Travel"},
         {"plan_type": "Life", "is_active": False}],
    )

    body = (await client.get("/api/plans/meta/types", headers=user_headers)).json()

    assert body["types"] == ["Health", "Travel"]


@pytest.mark.asyncio
async def test_plans_require_authentication(client) -> None:
    response = await client.get("/api/plans")

    assert response.status_code == 401
