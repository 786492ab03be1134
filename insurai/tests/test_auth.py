"""
Auth API tests — registration, login, states, token handling.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import delete

from insurai.auth.security import ALGORITHM, create_access_token
from insurai.config import settings
from insurai.models.user import UserORM
from insurai.tests.conftest import DUBAI, USER_PASSWORD, bearer, register


# ---------------------------------------------------------------------------
# Test Group 1: Registration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_token_and_public_user(client) -> None:
    body = await register(client, email="Sara@Example.com")

    assert body["message"] == "User registered successfully"
    assert body["token"]
    user = body["user"]
    assert user["email"] == "sara@example.com"
    assert user["role"] == "user"
    assert user["state"] == {"id": DUBAI, "state_name": "Dubai", "state_code": "DU"}
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(client) -> None:
    await register(client)

    response = await client.post(
        "/api/auth/register",
        json={
            "email": "SARA@example.com",
            "password": USER_PASSWORD,
            "full_name": "Another Sara",
            "state_id": DUBAI,
        },
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"email": "not-an-email"}, "email"),
        ({"password": "alllowercase1!"}, "password"),
        ({"password": "Short1!"}, "password"),
        ({"password": "NoSpecial123"}, "password"),
        ({"password": "Bad Space1!"}, "password"),
        ({"full_name": ""}, "full_name"),
    ],
)
async def test_register_validation(client, overrides: dict, field: str) -> None:
    payload = {
        "email": "omar@example.com",
        "password": USER_PASSWORD,
        "full_name": "Omar",
        "state_id": DUBAI,
    }
    payload.update(overrides)

    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert field in [d["field"] for d in error["details"]]


@pytest.mark.asyncio
async def test_register_missing_fields_lists_all(client) -> None:
    response = await client.post("/api/auth/register", json={"email": "omar@example.com"})

    assert response.status_code == 400
    fields = {d["field"] for d in response.json()["error"]["details"]}
    assert {"password", "full_name", "state_id"} <= fields


@pytest.mark.asyncio
async def test_register_unknown_state(client) -> None:
    response = await client.post(
        "/api/auth/register",
        json={
            "email": "omar@example.com",
            "password": USER_PASSWORD,
            "full_name": "Omar",
            "state_id": 99,
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_STATE"


# ---------------------------------------------------------------------------
# Test Group 2: Login and states
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client) -> None:
    await register(client)

    response = await client.post(
        "/api/auth/login", json={"email": "SARA@EXAMPLE.COM", "password": USER_PASSWORD}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["state"]["state_code"] == "DU"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password",
    [("sara@example.com", "Wrong@1234"), ("nobody@example.com", USER_PASSWORD)],
)
async def test_login_failures_share_one_message(client, email: str, password: str) -> None:
    await register(client)

    response = await client.post("/api/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_states_ordered_by_name(client) -> None:
    response = await client.get("/api/auth/states")

    names = [s["state_name"] for s in response.json()["states"]]
    assert names == [
        "Abu Dhabi",
        "Ajman",
        "Dubai",
        "Fujairah",
        "Ras Al Khaimah",
        "Sharjah",
        "Umm Al Quwain",
    ]


# ---------------------------------------------------------------------------
# Test Group 3: Token handling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_me_returns_current_user(client, user_headers) -> None:
    response = await client.get("/api/auth/me", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "sara@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Token abc"}])
async def test_missing_token_is_401(client, headers: dict) -> None:
    response = await client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_garbage_token_is_403(client) -> None:
    response = await client.get("/api/auth/me", headers=bearer("not.a.jwt"))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_expired_token_is_403(client) -> None:
    body = await register(client)
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    expired = jwt.encode(
        {
            "user_id": body["user"]["id"],
            "email": body["user"]["email"],
            "role": "user",
            "iat": past - timedelta(hours=24),
            "exp": past,
        },
        settings.jwt_secret,
        algorithm=ALGORITHM,
    )

    response = await client.get("/api/auth/me", headers=bearer(expired))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_403(client) -> None:
    body = await register(client)
    forged = jwt.encode(
        {
            "user_id": body["user"]["id"],
            "role": "admin",
            "iat": datetime.now(timezone.utc),
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        "some-other-secret-that-is-long-enough",
        algorithm=ALGORITHM,
    )

    response = await client.get("/api/auth/me", headers=bearer(forged))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_token_for_deleted_user_is_404(client, database) -> None:
    body = await register(client)
    async with database.session() as session:
        await session.execute(delete(UserORM).where(UserORM.id == body["user"]["id"]))
        await session.commit()

    response = await client.get("/api/auth/me", headers=bearer(body["token"]))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_token_role_claim_is_not_trusted(client) -> None:
    body = await register(client)
    token = create_access_token(body["user"]["id"], body["user"]["email"], "admin")

    response = await client.get("/api/admin/stats", headers=bearer(token))

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Test Group 5: Health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health_needs_no_token(client) -> None:
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
