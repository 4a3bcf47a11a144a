"""FastAPI application entry point for the Shorty URL shortener.

This module configures the FastAPI application with middleware, lifecycle
management, metrics and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ init_db()   │
    │ services    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ services    │
    │ close_db()  │
    └─────────────┘

How to Use
===========
**Step 1 — Run**::
    shorty
    # or
    uvicorn shorty.main:app --host 127.0.0.1 --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'

Key Behaviours
===============
- Database tables are created automatically on startup.
- Every request is logged with its status and duration.
- Prometheus metrics are exposed at /metrics.
- Database and Redis connections are closed on shutdown.
"""

__all__ = ["app", "run"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from shorty.config import get_settings
from shorty.database import close_db, init_db
from shorty.dependencies import _service_manager
from shorty.middleware import RequestLoggingMiddleware
from shorty.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    await init_db()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with store-enforced unique short codes",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# /metrics is registered before the router so the redirect route cannot shadow it.
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)


def run() -> None:
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)
