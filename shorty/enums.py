"""Shared enums for Shorty.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheStatus", "StoreErrorKind"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    STORE_FAILURE = "store_failure"
    NOT_FOUND = "not_found"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class StoreErrorKind(StrEnum):
    """Outcome of classifying a failed store write."""

    UNIQUE_VIOLATION = "unique_violation"
    OTHER = "other"
