"""
Admin API tests — plan management, stats and the admin account script.
"""
from __future__ import annotations

import pytest
from sqlalchemy import select

from insurai.models.user import UserORM
from insurai.scripts.create_admin import create_admin
from insurai.tests.conftest import ABU_DHABI, DUBAI, register
from insurai.tests.fixtures import seed_plans


# ---------------------------------------------------------------------------
# Test Group 1: Access control
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/admin/plans"),
        ("GET", "/api/admin/stats"),
        ("PUT", "/api/admin/plans/1"),
        ("DELETE", "/api/admin/plans/1"),
    ],
)
async def test_regular_user_is_forbidden(client, user_headers, method: str, path: str) -> None:
    response = await client.request(method, path, headers=user_headers, json={"plan_name": "x"})

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Admin access required"


@pytest.mark.asyncio
async def test_create_admin_promotes_existing_user(client, database) -> None:
    body = await register(client, email="lead@example.com")

    user_id = await create_admin(database, "lead@example.com", "Admin@456", "Team Lead")

    assert user_id == body["user"]["id"]
    async with database.session() as session:
        user = (await session.execute(select(UserORM).where(UserORM.id == user_id))).scalar_one()
    assert user.role == "admin"
    assert user.state_id == DUBAI


@pytest.mark.asyncio
async def test_create_admin_rejects_unknown_state_code(database) -> None:
    with pytest.raises(ValueError):
        await create_admin(database, "x@example.com", "Admin@456", "X", "ZZ")


# ---------------------------------------------------------------------------
# Test Group 2: Plan management
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_admin_list_includes_inactive(client, database, admin_headers) -> None:
    await seed_plans(
        database, DUBAI, [{"plan_name": "On"}, {"plan_name": "Off", "is_active": False}]
    )
    await seed_plans(database, ABU_DHABI, [{"plan_name": "Elsewhere"}])

    everything = (await client.get("/api/admin/plans", headers=admin_headers)).json()
    inactive = (
        await client.get("/api/admin/plans", params={"is_active": "false"}, headers=admin_headers)
    ).json()
    dubai_active = (
        await client.get(
            "/api/admin/plans",
            params={"is_active": "true", "state_id": DUBAI},
            headers=admin_headers,
        )
    ).json()

    assert everything["count"] == 3
    assert [p["plan_name"] for p in inactive["plans"]] == ["Off"]
    assert [p["plan_name"] for p in dubai_active["plans"]] == ["On"]


@pytest.mark.asyncio
async def test_update_plan_partial(client, database, admin_headers) -> None:
    (plan_id,) = await seed_plans(database, DUBAI, [{"plan_name": "Silver", "monthly_cost": 200}])

    response = await client.put(
        f"/api/admin/plans/{plan_id}",
        json={"monthly_cost": 250, "features": ["Dental"]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Plan updated successfully"
    assert body["plan"]["monthly_cost"] == 250
    assert body["plan"]["features"] == ["Dental"]
    assert body["plan"]["plan_name"] == "Silver"


@pytest.mark.asyncio
async def test_update_plan_errors(client, database, admin_headers) -> None:
    (plan_id,) = await seed_plans(database, DUBAI, [{"plan_name": "Silver"}])

    empty = await client.put(f"/api/admin/plans/{plan_id}", json={}, headers=admin_headers)
    missing = await client.put("/api/admin/plans/9999", json={"plan_name": "X"}, headers=admin_headers)
    null_name = await client.put(
        f"/api/admin/plans/{plan_id}", json={"plan_name": None}, headers=admin_headers
    )

    assert empty.status_code == 400
    assert empty.json()["error"]["message"] == "No fields to update"
    assert missing.status_code == 404
    assert null_name.status_code == 400


@pytest.mark.asyncio
async def test_soft_then_hard_delete(client, database, admin_headers, user_headers) -> None:
    (plan_id,) = await seed_plans(database, DUBAI, [{"plan_name": "Bronze"}])

    soft = await client.delete(f"/api/admin/plans/{plan_id}", headers=admin_headers)
    assert soft.json() == {"message": "Plan deleted successfully"}
    assert (await client.get(f"/api/plans/{plan_id}", headers=user_headers)).status_code == 404
    listed = (await client.get("/api/admin/plans", headers=admin_headers)).json()
    assert listed["plans"][0]["is_active"] is False

    hard = await client.delete(
        f"/api/admin/plans/{plan_id}", params={"hard_delete": "true"}, headers=admin_headers
    )
    assert hard.status_code == 200
    assert (await client.get("/api/admin/plans", headers=admin_headers)).json()["count"] == 0

    again = await client.delete(f"/api/admin/plans/{plan_id}", headers=admin_headers)
    assert again.status_code == 404


# ---------------------------------------------------------------------------
# Test Group 3: Stats
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_stats(client, database, admin_headers, user_headers) -> None:
    await seed_plans(
        database,
        DUBAI,
        [{"plan_type": "Health"}, {"plan_type": "Health"}, {"plan_type": "Travel"},
         {"plan_type": "Life", "is_active": False}],
    )
    await client.post("/api/chat", json={"message": "hi"}, headers=user_headers)

    body = (await client.get("/api/admin/stats", headers=admin_headers)).json()

    assert body["overview"] == {
        "total_users": 1,
        "active_plans": 3,
        "total_providers": 1,
        "states_with_plans": 1,
        "total_chats": 1,
    }
    assert body["plans_by_type"] == [
        {"plan_type": "Health", "count": 2},
        {"plan_type": "Travel", "count": 1},
    ]
    assert body["plans_by_state"][0] == {"state_name": "Dubai", "count": 3}
    assert len(body["plans_by_state"]) == 7
