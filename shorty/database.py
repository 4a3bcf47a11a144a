"""Database configuration and session management for Shorty.

This module provides SQLAlchemy async engine setup, session management,
and database lifecycle operations. PostgreSQL (asyncpg) is the production
backend; SQLite (aiosqlite) is accepted for local runs and tests.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_db()     │
    │ dependency  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Create async │
    │ session     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Yield to     │
    │ request     │
    │ handler     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (finally)    │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Use in FastAPI endpoints**::
    @router.get("/{short_code}")
    async def redirect(short_code: str, db: AsyncSession = Depends(get_db)):
        store = SQLAlchemyShortLinkStore(db)
        ...

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- Every request gets its own session; sessions are never shared between
  concurrent allocations.
- Connection pooling is configured for production workloads; SQLite URLs
  use the driver's default pool.
- Tables are created automatically on application startup.
- Engine is properly disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    engine_options():  Pool keyword arguments for a database URL.
    get_db():  FastAPI dependency for database sessions.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shorty.config import Settings, get_settings

__all__ = ["Base", "engine_options", "get_db", "init_db", "close_db"]

settings = get_settings()


def engine_options(config: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {
        "echo": config.APP_ENV == "development",
        "pool_pre_ping": True,
    }
    # SQLite pools reject sizing arguments.
    if make_url(config.DATABASE_URL).get_backend_name() != "sqlite":
        options["pool_size"] = config.DB_POOL_SIZE
        options["max_overflow"] = config.DB_MAX_OVERFLOW
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings))

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    # Register the models on Base.metadata before create_all.
    import shorty.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
