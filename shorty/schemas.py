"""Pydantic schemas for request/response validation in Shorty.

This module defines Pydantic models for API input validation and output serialization,
ensuring type safety and automatic OpenAPI documentation generation.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: str (validated and normalized)

    ShortenResponse (Output)
    ├─ short_code: str
    ├─ short_url: str (computed)
    ├─ original_url: str
    └─ created_at: datetime

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

    CachedShortLinkPayload (Redis)
    ├─ id: int
    ├─ short_code: str
    ├─ original_url: str
    └─ created_at: datetime

How to Use
===========
**Step 1 — Input validation**::
    @router.post("/api/shorten")
    async def shorten_url(payload: ShortenRequest):
        # payload.url is already normalized
        ...

**Step 2 — Response serialization**::
    return ShortenResponse.from_link(link, settings.BASE_URL)

Key Behaviours
===============
- URLs are validated with the validators library and normalized before the
  allocator sees them; invalid input yields HTTP 422.
- All datetime fields are timezone-aware where the backend provides it.
- Models are configured for ORM attribute mapping.

Classes:
    ShortenRequest:  Input schema for shorten requests.
    ShortenResponse:  Output schema for created short links.
    HealthResponse:  Output schema for health checks.
    CachedShortLinkPayload:  Redis payload for the lookup cache.
"""

import datetime

from pydantic import BaseModel, Field, field_validator

from shorty.enums import HealthStatus
from shorty.models import ShortLink
from shorty.validation import normalize_url

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "HealthResponse",
    "CachedShortLinkPayload",
]


class ShortenRequest(BaseModel):
    url: str = Field(..., description="Absolute http(s) URL to shorten")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return normalize_url(v)


class ShortenResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    created_at: datetime.datetime

    @classmethod
    def from_link(cls, link: ShortLink, base_url: str) -> "ShortenResponse":
        return cls(
            short_code=link.short_code,
            short_url=f"{base_url.rstrip('/')}/{link.short_code}",
            original_url=link.original_url,
            created_at=link.created_at,
        )


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class CachedShortLinkPayload(BaseModel):
    """Redis cache payload for a short link; links never change, so entries never go stale."""

    id: int
    short_code: str
    original_url: str
    created_at: datetime.datetime

    model_config = {"from_attributes": True}

    def to_model(self) -> ShortLink:
        return ShortLink(
            id=self.id,
            short_code=self.short_code,
            original_url=self.original_url,
            created_at=self.created_at,
        )
