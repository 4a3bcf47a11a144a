"""Allocator tests: bounded retry, fail-fast and uniqueness under concurrency."""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import FakeShortLinkStore, SequenceCodeGenerator
from shorty.allocator import DEFAULT_MAX_ATTEMPTS, ShortCodeAllocator
from shorty.database import Base
from shorty.exceptions import (
    AllocationError,
    AllocationExhaustedError,
    StoreError,
    StoreFailureError,
    UniqueViolationError,
)
from shorty.generator import ALPHABET, RandomCodeGenerator
from shorty.models import ShortLink
from shorty.store import SQLAlchemyShortLinkStore


def test_default_max_attempts() -> None:
    allocator = ShortCodeAllocator(FakeShortLinkStore(), RandomCodeGenerator())
    assert allocator.max_attempts == DEFAULT_MAX_ATTEMPTS == 10


@pytest.mark.parametrize("max_attempts", [0, -3])
def test_invalid_max_attempts_rejected(max_attempts: int) -> None:
    with pytest.raises(ValueError):
        ShortCodeAllocator(FakeShortLinkStore(), RandomCodeGenerator(), max_attempts=max_attempts)


@pytest.mark.asyncio
async def test_allocate_first_attempt_with_sqlite_store(store) -> None:
    allocator = ShortCodeAllocator(store, RandomCodeGenerator(6))

    link = await allocator.allocate("https://example.com/a")

    assert len(link.short_code) == 6
    assert all(c in ALPHABET for c in link.short_code)
    assert link.id is not None
    assert link.created_at is not None
    found = await store.find_by_short_code(link.short_code)
    assert found.original_url == "https://example.com/a"


@pytest.mark.asyncio
async def test_allocate_retries_past_existing_codes(store) -> None:
    for code in ("aaaaaa", "bbbbbb", "cccccc"):
        await store.try_insert(code, "https://seed.example.com/")
    generator = SequenceCodeGenerator(["aaaaaa", "bbbbbb", "cccccc", "dddddd"])
    allocator = ShortCodeAllocator(store, generator)

    link = await allocator.allocate("https://example.com/b")

    assert link.short_code == "dddddd"
    assert generator.calls == 4
    assert (await store.find_by_short_code("dddddd")).original_url == "https://example.com/b"
    assert (await store.find_by_short_code("aaaaaa")).original_url == "https://seed.example.com/"


@pytest.mark.asyncio
async def test_allocate_exhausts_after_exactly_max_attempts() -> None:
    fake = FakeShortLinkStore(always_collide=True)
    generator = SequenceCodeGenerator(f"code{i:02d}" for i in range(100))
    allocator = ShortCodeAllocator(fake, generator, max_attempts=2)

    with pytest.raises(AllocationExhaustedError) as excinfo:
        await allocator.allocate("https://example.com/c")

    assert excinfo.value.attempts == 2
    assert fake.insert_calls == 2
    assert generator.calls == 2
    assert isinstance(excinfo.value.__cause__, UniqueViolationError)


@pytest.mark.asyncio
async def test_allocate_exhausts_with_default_ceiling() -> None:
    fake = FakeShortLinkStore(always_collide=True)
    allocator = ShortCodeAllocator(fake, RandomCodeGenerator())

    with pytest.raises(AllocationExhaustedError):
        await allocator.allocate("https://example.com/")

    assert fake.insert_calls == 10


@pytest.mark.asyncio
async def test_allocate_fails_fast_on_connectivity_error() -> None:
    connection_lost = StoreError("connection refused")
    fake = FakeShortLinkStore(errors=[connection_lost])
    allocator = ShortCodeAllocator(fake, RandomCodeGenerator())

    with pytest.raises(StoreFailureError) as excinfo:
        await allocator.allocate("https://example.com/d")

    assert excinfo.value.attempts == 1
    assert excinfo.value.__cause__ is connection_lost
    assert fake.insert_calls == 1
    assert fake.rows == {}


@pytest.mark.asyncio
async def test_allocate_fails_fast_after_collisions() -> None:
    fake = FakeShortLinkStore(errors=[UniqueViolationError("x"), UniqueViolationError("y"), StoreError("timeout")])
    allocator = ShortCodeAllocator(fake, RandomCodeGenerator())

    with pytest.raises(StoreFailureError) as excinfo:
        await allocator.allocate("https://example.com/")

    assert excinfo.value.attempts == 3
    assert fake.insert_calls == 3


@pytest.mark.asyncio
async def test_allocation_errors_share_a_base() -> None:
    allocator = ShortCodeAllocator(FakeShortLinkStore(always_collide=True), RandomCodeGenerator(), max_attempts=1)
    with pytest.raises(AllocationError):
        await allocator.allocate("https://example.com/")


@pytest.mark.asyncio
async def test_same_url_gets_distinct_codes(store) -> None:
    allocator = ShortCodeAllocator(store, RandomCodeGenerator())

    first = await allocator.allocate("https://example.com/same")
    second = await allocator.allocate("https://example.com/same")

    assert first.short_code != second.short_code
    assert first.original_url == second.original_url


@pytest.mark.asyncio
async def test_concurrent_allocations_are_unique() -> None:
    fake = FakeShortLinkStore()

    async def allocate(i: int) -> ShortLink:
        # Every task races for the same first code.
        generator = SequenceCodeGenerator(["shared", f"own{i:03d}"])
        return await ShortCodeAllocator(fake, generator).allocate(f"https://example.com/{i}")

    links = await asyncio.gather(*(allocate(i) for i in range(20)))

    codes = [link.short_code for link in links]
    assert len(set(codes)) == 20
    assert codes.count("shared") == 1
    assert len(fake.rows) == 20
    assert fake.insert_calls == 39


@pytest.mark.asyncio
async def test_concurrent_random_allocations_are_unique() -> None:
    fake = FakeShortLinkStore()
    # Two-character codes make collisions likely across 200 allocations.
    generator = RandomCodeGenerator(length=2)

    links = await asyncio.gather(
        *(ShortCodeAllocator(fake, generator).allocate(f"https://example.com/{i}") for i in range(200))
    )

    assert len({link.short_code for link in links}) == 200
    assert {link.short_code for link in links} == set(fake.rows)


@pytest.mark.asyncio
async def test_concurrent_allocations_on_separate_sessions(tmp_path) -> None:
    # File-backed so each session gets its own connection to the same table.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'shorty.db'}",
        connect_args={"timeout": 30},
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def allocate(i: int) -> ShortLink:
        async with session_factory() as session:
            generator = SequenceCodeGenerator(["shared", f"own{i:03d}"])
            allocator = ShortCodeAllocator(SQLAlchemyShortLinkStore(session), generator)
            return await allocator.allocate(f"https://example.com/{i}")

    try:
        links = await asyncio.gather(*(allocate(i) for i in range(10)))

        codes = [link.short_code for link in links]
        assert len(set(codes)) == 10
        assert codes.count("shared") == 1

        async with session_factory() as session:
            stored = (await session.execute(select(ShortLink.short_code))).scalars().all()
        assert sorted(stored) == sorted(codes)
    finally:
        await engine.dispose()
