"""Shared pytest fixtures for store, allocator and API tests.

Tests run against in-memory SQLite (aiosqlite) so the real unique index on
short_code and the SQLite error classifier are exercised.
"""

import asyncio
import datetime
import os
from collections.abc import Iterable
from typing import AsyncGenerator

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["APP_ENV"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shorty.database import Base, get_db
from shorty.exceptions import ShortLinkNotFoundError, UniqueViolationError
from shorty.main import app
from shorty.models import ShortLink
from shorty.store import ShortLinkStore, SQLAlchemyShortLinkStore

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    echo=False,
    poolclass=StaticPool,
)

test_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class SequenceCodeGenerator:
    """Generator returning a fixed sequence of codes, counting calls."""

    def __init__(self, codes: Iterable[str]):
        self._codes = iter(codes)
        self.calls = 0

    def next(self) -> str:
        self.calls += 1
        return next(self._codes)


class FakeShortLinkStore(ShortLinkStore):
    """In-memory store with scripted failures.

    The membership check and the write happen with no await in between, so
    each insert is atomic on the event loop.
    """

    def __init__(self, errors: Iterable[Exception] = (), always_collide: bool = False):
        self.rows: dict[str, ShortLink] = {}
        self.insert_calls = 0
        self.find_calls = 0
        self._errors = list(errors)
        self._always_collide = always_collide

    async def try_insert(self, short_code: str, original_url: str) -> ShortLink:
        self.insert_calls += 1
        await asyncio.sleep(0)
        if self._errors:
            raise self._errors.pop(0)
        if self._always_collide or short_code in self.rows:
            raise UniqueViolationError(short_code)
        link = ShortLink(
            id=len(self.rows) + 1,
            short_code=short_code,
            original_url=original_url,
            created_at=datetime.datetime.now(datetime.timezone.utc),
        )
        self.rows[short_code] = link
        return link

    async def find_by_short_code(self, short_code: str) -> ShortLink:
        self.find_calls += 1
        try:
            return self.rows[short_code]
        except KeyError:
            raise ShortLinkNotFoundError(short_code) from None


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def store(db_session: AsyncSession) -> SQLAlchemyShortLinkStore:
    return SQLAlchemyShortLinkStore(db_session)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
