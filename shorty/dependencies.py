"""Dependency injection with a singleton service manager.

This module provides a centralized way to inject the database session, the
shared cache, logger and code generator into every endpoint, using a
singleton for the process-wide resources and a lightweight per-request
context for everything tied to one request.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shorty.config import Settings, get_settings
from shorty.database import get_db
from shorty.generator import CodeGenerator, RandomCodeGenerator
from shorty.redis import close_redis, get_redis
from shorty.service import ShortLinkService

__all__ = [
    "ServiceManager",
    "RequestContext",
    "get_service_manager",
    "get_request_context",
    "get_short_link_service",
]


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Holds what lives for the whole process: settings, the configured logger,
    the optional Redis client and the code generator.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings: Settings = get_settings()
            self.logger = self._setup_logger()
            self.cache: Optional[redis.Redis] = await get_redis()
            self.generator: CodeGenerator = RandomCodeGenerator(self.settings.SHORT_CODE_LENGTH)
            self._initialized = True
            self.logger.info(
                f"Service manager ready (code length {self.settings.SHORT_CODE_LENGTH}, "
                f"max attempts {self.settings.MAX_ALLOCATION_ATTEMPTS}, "
                f"cache {'enabled' if self.cache is not None else 'disabled'})"
            )

    def _setup_logger(self) -> logging.Logger:
        """Setup the application logger once; module loggers propagate to it."""
        logger = logging.getLogger("shorty")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        await close_redis()
        self.cache = None
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with tracking information and shared resource access.

    Attributes:
        database: Async database session (the only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def cache(self) -> Optional[redis.Redis]:
        return self.service_manager.cache

    @property
    def generator(self) -> CodeGenerator:
        return self.service_manager.generator

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    """Build the request context from the incoming request.

    Args:
        request: FastAPI Request object for extracting client info
        db: Database session (only per-request resource)
        manager: Singleton service manager with shared resources
    """
    return RequestContext(
        database=db,
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_short_link_service(ctx: RequestContext = Depends(get_request_context)) -> ShortLinkService:
    return ShortLinkService.from_context(ctx)
