"""
Test configuration for InsurAI.

Every test gets a fresh in-memory SQLite database (aiosqlite + StaticPool)
with the seven emirates seeded, installed on app.state together with a
mock-mode LLMClient. The lifespan is not run by ASGITransport, so neither
Alembic nor the Mistral SDK is touched.

State ids follow seed order: 1 Abu Dhabi, 2 Dubai, 3 Sharjah, ...
"""
from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from insurai.database import Database
from insurai.llm_client import LLMClient
from insurai.main import app
from insurai.models.state import UAE_STATES, StateORM
from insurai.scripts.create_admin import create_admin

ABU_DHABI = 1
DUBAI = 2

USER_PASSWORD = "Secret@123"
ADMIN_EMAIL = "admin@insurai.com"
ADMIN_PASSWORD = "Admin@123"


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite://")
    await db.create_all()
    async with db.session() as session:
        session.add_all(
            [StateORM(state_code=code, state_name=name) for code, name in UAE_STATES]
        )
        await session.commit()
    yield db
    await db.close()


@pytest.fixture
def mock_llm() -> LLMClient:
    return LLMClient(api_key="", mock=True)


@pytest_asyncio.fixture
async def client(database, mock_llm):
    """Async httpx client using ASGI transport — no live server needed."""
    app.state.db = database
    app.state.llm = mock_llm
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def register(
    client: AsyncClient,
    email: str = "sara@example.com",
    state_id: int = DUBAI,
    full_name: str = "Sara Khan",
) -> dict:
    response = await client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": USER_PASSWORD,
            "full_name": full_name,
            "state_id": state_id,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def user_headers(client) -> dict[str, str]:
    body = await register(client)
    return bearer(body["token"])


@pytest_asyncio.fixture
async def admin_headers(client, database) -> dict[str, str]:
    await create_admin(database, ADMIN_EMAIL, ADMIN_PASSWORD, "InsurAI Admin", "DU")
    response = await client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return bearer(response.json()["token"])
