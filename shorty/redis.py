"""Redis client management for the short link lookup cache.

This module provides a singleton Redis client used as a read-through cache
in front of the store on the redirect path. Short links are immutable, so a
cached entry can never disagree with the database.

Flow Diagram — Redis Operations
=============================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_redis()  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ REDIS_URL    │
    │ configured?  │
    └──────┬──────┘
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Return  │  │ Create  │
│ None    │  │ or reuse│
│ (no     │  │ client  │
│ cache)  │  │         │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Get the client**::
    cache = await get_redis()
    if cache is not None:
        cached = await cache.get("short_link:aZ3kP9")

**Step 2 — Cleanup on shutdown**::
    await close_redis()

Key Behaviours
===============
- The client is created lazily on first use and reused afterwards.
- An empty REDIS_URL disables caching entirely.
- Responses are decoded to str.

Functions:
    get_redis():  Shared Redis client, or None when caching is disabled.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from shorty.config import get_settings

__all__ = ["close_redis", "get_redis"]

settings = get_settings()

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis | None:
    global redis_client
    if not settings.REDIS_URL:
        return None
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
