"""
database.py — SQLAlchemy 2.0 async engine and session factory.

This module owns ALL database connection infrastructure.
Nothing else in the codebase creates engines or sessions directly.

The Database handle is constructed explicitly by whoever owns the process
(main.py lifespan, the admin script, test fixtures) and closed by the same
owner. Routes reach it through the get_db dependency:

    from insurai.database import get_db
    async def my_route(db: AsyncSession = Depends(get_db)): ...

Multi-statement work that must own its transaction (ingestion) asks the handle
for a session directly:

    async with database.session() as session:
        async with session.begin(): ...
"""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Declarative base — ALL ORM models inherit from this
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base.
    All ORM models in insurai/models/ inherit from Base.
    Defined here (not in models/) to prevent circular imports in alembic/env.py.
    """
    pass


# ---------------------------------------------------------------------------
# Store handle — one per process, explicit lifecycle
# ---------------------------------------------------------------------------
class Database:
    """
    Owns the async engine (bounded connection pool) and the session factory.

    SQLite URLs (tests) get a StaticPool so an in-memory database is shared
    by every session; anything else gets a sized QueuePool.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        if url.startswith("sqlite"):
            self.engine: AsyncEngine = create_async_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=5,              # Core connection pool size
                max_overflow=10,          # Extra connections under peak load
                pool_pre_ping=True,       # Detect and discard stale connections before each use
            )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,   # Keep objects usable after commit without re-querying
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a bare session; the caller decides commit / rollback."""
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create every table from Base.metadata (tests only — production uses Alembic)."""
        import insurai.models  # noqa: F401  registers all ORM classes

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the pool. Called once by the owner at shutdown."""
        await self.engine.dispose()
        logger.info("Database connection pool closed")


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
def get_database(request: Request) -> Database:
    """Return the Database handle installed on app.state by the lifespan."""
    return request.app.state.db


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an AsyncSession per request.

    Automatically commits on success or rolls back on exception.
    Always closes the session after the request (via async context manager).
    """
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
