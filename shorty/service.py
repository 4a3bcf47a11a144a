"""Shorty Service Layer - Core Business Logic

This module wires the allocator and the store into the request-scoped
service used by the HTTP layer, adding logging, Prometheus metrics and an
optional Redis read-through cache on the redirect path.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    Service Layer                            │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │ ShortLinkService│  │ ShortCode-      │  │ Lookup Cache │ │
    │  │                 │  │ Allocator       │  │              │ │
    │  │ • Create links  │  │ • Generate code │  │ • Get/Set    │ │
    │  │ • Resolve codes │  │ • Bounded retry │  │ • TTL        │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                    │                    │
                ▼                    ▼                    ▼
    ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────┐
    │   PostgreSQL    │  │  unique index   │  │     Redis       │
    │   (Primary DB)  │  │  on short_code  │  │   (optional)    │
    └─────────────────┘  └─────────────────┘  └─────────────────┘

Short Link Creation Flow
------------------------
::
    ┌─────────────┐
    │  POST /api  │
    │  /shorten   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Normalize   │
    │ URL (schema)│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Allocate    │
    │ code (retry │
    │ on collide) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache in    │
    │ Redis (TTL) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return link │
    └─────────────┘

Redirect Lookup Flow
--------------------
::
    ┌─────────────┐
    │  GET /:code │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check Redis │
    │ (if enabled)│
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Query   │  │ Return  │
│ store   │  │ cached  │
└────┬────┘  └─────────┘
     ▼
┌─────────┐
│ Cache   │
│ result  │
└─────────┘

Usage Examples
=============
```python
@router.post("/api/shorten")
async def shorten_url(
    payload: ShortenRequest,
    service: ShortLinkService = Depends(get_short_link_service),
) -> ShortenResponse:
    link = await service.create_short_link(payload)
    return ShortenResponse.from_link(link, service.settings.BASE_URL)
```
"""

import time
from typing import TYPE_CHECKING, Optional

import redis.asyncio as redis
from prometheus_client import Counter, Histogram
from pydantic import ValidationError
from redis.exceptions import RedisError

from shorty.allocator import ShortCodeAllocator
from shorty.config import Settings
from shorty.enums import CacheStatus, RequestStatus
from shorty.exceptions import AllocationExhaustedError, ShortLinkNotFoundError, StoreError, StoreFailureError
from shorty.models import ShortLink
from shorty.schemas import CachedShortLinkPayload, ShortenRequest
from shorty.store import ShortLinkStore, SQLAlchemyShortLinkStore

if TYPE_CHECKING:
    from shorty.dependencies import RequestContext

__all__ = ["ShortLinkService", "cache_key"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

SHORT_LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shorty_creation_requests_total",
    "Total short link creation requests",
    ["status"],
)
SHORT_LINK_CREATION_DURATION = Histogram(
    "shorty_creation_duration_seconds",
    "Time taken to allocate short links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
SHORT_LINK_LOOKUP_REQUESTS_TOTAL = Counter(
    "shorty_lookup_requests_total",
    "Total short link lookups",
    ["status", "cache_hit"],
)
REDIS_ERRORS_TOTAL = Counter(
    "shorty_redis_errors_total",
    "Redis cache operations that failed and fell back to the store",
)


def cache_key(short_code: str) -> str:
    return f"short_link:{short_code}"


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class ShortLinkService:
    """Request-scoped service for creating and resolving short links.

    Example:
        >>> service = ShortLinkService.from_context(ctx)
        >>> link = await service.create_short_link(ShortenRequest(url="https://example.com"))
        >>> print(f"Shortened: {link.short_code}")
    """

    def __init__(self, ctx: "RequestContext", store: Optional[ShortLinkStore] = None):
        """Initialize service from a request context.

        Args:
            ctx: Request context with the session, shared cache, logger,
                settings and code generator
            store: Store override; defaults to a SQLAlchemy store on the
                context's session
        """
        self._settings: Settings = ctx.settings
        self._logger = ctx.logger
        self._cache: Optional[redis.Redis] = ctx.cache
        self._store = store if store is not None else SQLAlchemyShortLinkStore(ctx.database)
        self._allocator = ShortCodeAllocator(
            self._store,
            ctx.generator,
            max_attempts=self._settings.MAX_ALLOCATION_ATTEMPTS,
        )

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ShortLinkService":
        return cls(ctx)

    @property
    def settings(self) -> Settings:
        return self._settings

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_short_link(self, request: ShortenRequest) -> ShortLink:
        """Allocate a short code for the request's URL and cache the new link.

        Args:
            request: Shorten request carrying an already normalized URL

        Returns:
            ShortLink: The persisted link

        Raises:
            AllocationExhaustedError: Every attempt collided
            StoreFailureError: The store failed for another reason
        """
        start_time = time.perf_counter()
        self._logger.info(f"Creating short link for: {request.url}")

        try:
            link = await self._allocator.allocate(request.url)
        except AllocationExhaustedError as exc:
            SHORT_LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.EXHAUSTED).inc()
            self._logger.error(f"Short link creation exhausted after {exc.attempts} attempts")
            raise
        except StoreFailureError as exc:
            SHORT_LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.STORE_FAILURE).inc()
            self._logger.error(f"Short link creation failed on attempt {exc.attempts}: {exc.__cause__}")
            raise
        finally:
            SHORT_LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

        SHORT_LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        await self._cache_link(link)

        self._logger.info(f"Short link created: {link.short_code} in {time.perf_counter() - start_time:.3f}s")
        return link

    async def resolve(self, short_code: str) -> ShortLink:
        """Return the link for ``short_code``, cache first.

        Raises:
            ShortLinkNotFoundError: No link has this code
            StoreError: The store failed
        """
        self._logger.debug(f"Resolving short code: {short_code}")

        cached = await self._lookup_from_cache(short_code)
        if cached is not None:
            SHORT_LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.HIT).inc()
            return cached

        try:
            link = await self._store.find_by_short_code(short_code)
        except ShortLinkNotFoundError:
            SHORT_LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=CacheStatus.MISS).inc()
            raise
        except StoreError:
            SHORT_LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.STORE_FAILURE, cache_hit=CacheStatus.MISS).inc()
            raise

        SHORT_LINK_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.MISS).inc()
        await self._cache_link(link)
        return link

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _lookup_from_cache(self, short_code: str) -> Optional[ShortLink]:
        if self._cache is None:
            return None
        try:
            cached_data = await self._cache.get(cache_key(short_code))
        except RedisError as exc:
            REDIS_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache read failed for {short_code}: {exc}")
            return None

        if not cached_data:
            return None
        try:
            return CachedShortLinkPayload.model_validate_json(cached_data).to_model()
        except ValidationError as exc:
            self._logger.error(f"Cache deserialization error for {short_code}: {exc}")
            return None

    async def _cache_link(self, link: ShortLink) -> None:
        if self._cache is None:
            return
        payload = CachedShortLinkPayload.model_validate(link)
        try:
            await self._cache.setex(
                cache_key(link.short_code),
                self._settings.CACHE_TTL_SECONDS,
                payload.model_dump_json(),
            )
        except RedisError as exc:
            REDIS_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache write failed for {link.short_code}: {exc}")
