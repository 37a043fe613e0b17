"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- an async engine (PostgreSQL via asyncpg, or SQLite via aiosqlite)
- an async session factory; repositories open one short transaction
  per operation from it
- a lifespan hook that fails startup if storage cannot be reached and
  disposes the pool on shutdown

When DATABASE_URL is None, engine and async_session_factory are None
and the services fall back to in-memory repositories.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from credential_registry.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    pool_options: dict[str, int] = {}
    if not database_url.startswith("sqlite"):
        pool_options = {"pool_size": 5, "max_overflow": 10}
    return create_async_engine(
        database_url, echo=echo, pool_pre_ping=True, **pool_options
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# --- Engine and session factory (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine: AsyncEngine | None = build_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,  # log SQL in dev only
    )
    async_session_factory: async_sessionmaker[AsyncSession] | None = (
        build_session_factory(engine)
    )
else:
    engine = None
    async_session_factory = None


async def ping(bind: AsyncEngine) -> None:
    """Round-trip a trivial query; raises if storage is unreachable."""
    async with bind.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_all(bind: AsyncEngine) -> None:
    # Import registers the tables on Base.metadata.
    import credential_registry.db.tables  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan_db() -> AsyncGenerator[None, None]:
    """Startup/shutdown hook for the database engine.

    A failed ping propagates: a service that cannot open its storage
    must not start serving.
    """
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    await ping(engine)
    if SETTINGS.db_create_all:
        await create_all(engine)
        logger.info("Database tables ensured")
    logger.info("Database engine ready: %s", engine.url.render_as_string())
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
