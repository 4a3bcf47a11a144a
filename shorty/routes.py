"""FastAPI route definitions for the Shorty REST API.

This module provides all HTTP endpoints with dependency injection, error
mapping and response serialization for the URL shortening service.

API Endpoint Overview
=====================
::
    GET  /
        └─ HTML landing page (200)

    GET  /health
        └─ HealthResponse (200)

    POST /api/shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 422/500/503

    GET  /:short_code
        └─ 302 Redirect or 404/503

Error Mapping
=============
::
    InvalidURLError            ─► 422 (raised inside the request schema)
    AllocationExhaustedError   ─► 500 "Failed to generate unique short code"
    StoreFailureError          ─► 503 "Database error"
    ShortLinkNotFoundError     ─► 404 "Short URL not found"
    StoreError (lookup)        ─► 503 "Database error"

How to Use
===========
**Step 1 — Import and include router**::
    from shorty.routes import router
    app.include_router(router)

**Step 2 — Access endpoints**::
    # Shorten URL
    POST http://localhost:8080/api/shorten
    {"url": "https://example.com"}

    # Redirect
    GET http://localhost:8080/aZ3kP9

Key Behaviours
===============
- All endpoints use async/await for non-blocking I/O.
- Each request gets its own database session through RequestContext.
- Error kinds raised by the service are mapped to status codes here and
  nowhere else.
- The redirect route is registered last so it never shadows fixed paths.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shorty.dependencies import RequestContext, get_request_context, get_short_link_service
from shorty.enums import HealthStatus
from shorty.exceptions import AllocationExhaustedError, ShortLinkNotFoundError, StoreError, StoreFailureError
from shorty.landing import LANDING_PAGE
from shorty.schemas import HealthResponse, ShortenRequest, ShortenResponse
from shorty.service import ShortLinkService

__all__ = ["router"]

router = APIRouter()


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> HTMLResponse:
    return HTMLResponse(LANDING_PAGE)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        await ctx.database.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if ctx.cache is not None:
        try:
            await ctx.cache.ping()
            cache_status = HealthStatus.HEALTHY
        except (RedisError, OSError) as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.UNHEALTHY
        if HealthStatus.UNHEALTHY in (db_status, cache_status)
        else HealthStatus.HEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/shorten", response_model=ShortenResponse, status_code=201, tags=["links"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_short_link_service),
) -> ShortenResponse:
    try:
        link = await service.create_short_link(payload)
    except AllocationExhaustedError as exc:
        ctx.logger.error(
            f"Shorten failed: {exc}",
            extra={"operation": "shorten", "attempts": exc.attempts, "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail="Failed to generate unique short code") from exc
    except StoreFailureError as exc:
        ctx.logger.error(
            f"Shorten failed: {exc}",
            extra={"operation": "shorten", "attempts": exc.attempts, "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=503, detail="Database error") from exc

    ctx.logger.info(
        f"Shortened {link.original_url} -> {link.short_code}",
        extra={"operation": "shorten", "short_code": link.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse.from_link(link, ctx.settings.BASE_URL)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_short_link_service),
) -> RedirectResponse:
    try:
        link = await service.resolve(short_code)
    except ShortLinkNotFoundError as exc:
        ctx.logger.warning(
            f"Redirect failed - short code not found: {short_code}",
            extra={"operation": "redirect", "short_code": short_code, "error": "not_found"},
        )
        raise HTTPException(status_code=404, detail="Short URL not found") from exc
    except StoreError as exc:
        ctx.logger.error(
            f"Redirect failed for {short_code}: {exc}",
            extra={"operation": "redirect", "short_code": short_code, "error": "store_failure"},
        )
        raise HTTPException(status_code=503, detail="Database error") from exc

    ctx.logger.info(
        f"Redirect: {short_code} -> {link.original_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=link.original_url, status_code=302)
