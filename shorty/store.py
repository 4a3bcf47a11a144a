"""Persistence layer for short links.

The store exposes two operations: an atomic insert that fails loudly when
the short code is already taken, and a lookup by code. Detecting "already
taken" differs per database backend, so failed writes are passed through a
classifier keyed by the SQLAlchemy dialect name.

Store Contract
==============
::
    try_insert(code, url)
        ├─ ShortLink                 inserted, exactly one new row
        ├─ UniqueViolationError      code collided with an existing row
        └─ StoreError                anything else (connectivity, timeout,
                                     constraint on another column, ...)

    find_by_short_code(code)
        ├─ ShortLink
        ├─ ShortLinkNotFoundError
        └─ StoreError

Classifier Dispatch
===================
::
    IntegrityError ──► dialect name ──┬─ postgresql ─► SQLSTATE 23505 on short_code?
                                      ├─ sqlite ─────► "UNIQUE constraint failed: urls.short_code"?
                                      └─ other ──────► OTHER

Anything that is not an IntegrityError classifies as OTHER.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shorty.enums import StoreErrorKind
from shorty.exceptions import ShortLinkNotFoundError, StoreError, UniqueViolationError
from shorty.models import ShortLink

__all__ = [
    "ShortLinkStore",
    "SQLAlchemyShortLinkStore",
    "classify_store_error",
    "classify_postgresql_error",
    "classify_sqlite_error",
    "STORE_ERROR_CLASSIFIERS",
]

logger = logging.getLogger("shorty.store")

PG_UNIQUE_VIOLATION = "23505"
SHORT_CODE_COLUMN = "short_code"

# Errors raised by drivers and the pool that are not SQLAlchemy-wrapped.
_TRANSPORT_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


# ============================================================================
# ERROR CLASSIFICATION
# ============================================================================


def _constraint_names(orig: BaseException | None) -> list[str]:
    names = []
    for source in (orig, getattr(orig, "__cause__", None), getattr(orig, "diag", None)):
        name = getattr(source, "constraint_name", None)
        if name:
            names.append(name)
    return names


def classify_postgresql_error(exc: IntegrityError) -> StoreErrorKind:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate != PG_UNIQUE_VIOLATION:
        return StoreErrorKind.OTHER

    # asyncpg and psycopg expose the constraint name; fall back to the message.
    names = _constraint_names(orig) or [str(orig)]
    if any(SHORT_CODE_COLUMN in name for name in names):
        return StoreErrorKind.UNIQUE_VIOLATION
    return StoreErrorKind.OTHER


def classify_sqlite_error(exc: IntegrityError) -> StoreErrorKind:
    message = str(exc.orig)
    if not message.startswith("UNIQUE constraint failed"):
        return StoreErrorKind.OTHER
    columns = [column.strip() for column in message.split(":", 1)[-1].split(",")]
    if columns == [f"{ShortLink.__tablename__}.{SHORT_CODE_COLUMN}"]:
        return StoreErrorKind.UNIQUE_VIOLATION
    return StoreErrorKind.OTHER


STORE_ERROR_CLASSIFIERS: dict[str, Callable[[IntegrityError], StoreErrorKind]] = {
    "postgresql": classify_postgresql_error,
    "sqlite": classify_sqlite_error,
}


def classify_store_error(exc: BaseException, dialect: str) -> StoreErrorKind:
    """Decide whether a failed write was a short-code collision.

    Unknown backends never report a collision, so their errors are not retried.
    """
    if not isinstance(exc, IntegrityError):
        return StoreErrorKind.OTHER
    classifier = STORE_ERROR_CLASSIFIERS.get(dialect)
    if classifier is None:
        return StoreErrorKind.OTHER
    return classifier(exc)


# ============================================================================
# STORES
# ============================================================================


class ShortLinkStore(ABC):
    """Abstract store of short links with a unique short code."""

    @abstractmethod
    async def try_insert(self, short_code: str, original_url: str) -> ShortLink:
        """Insert a new link, raising UniqueViolationError if the code is taken."""

    @abstractmethod
    async def find_by_short_code(self, short_code: str) -> ShortLink:
        """Return the link for a code, raising ShortLinkNotFoundError on a miss."""


class SQLAlchemyShortLinkStore(ShortLinkStore):
    """Store backed by an async SQLAlchemy session.

    One instance wraps one request's session; it must not be shared between
    concurrent allocations.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def dialect_name(self) -> str:
        return self._session.get_bind().dialect.name

    async def try_insert(self, short_code: str, original_url: str) -> ShortLink:
        link = ShortLink(short_code=short_code, original_url=original_url)
        try:
            self._session.add(link)
            await self._session.flush()
            await self._session.commit()
        except IntegrityError as exc:
            await self._rollback()
            kind = classify_store_error(exc, self.dialect_name)
            if kind is StoreErrorKind.UNIQUE_VIOLATION:
                raise UniqueViolationError(short_code) from exc
            raise StoreError(f"Insert rejected for short code {short_code}: {exc.orig}") from exc
        except _TRANSPORT_ERRORS as exc:
            await self._rollback()
            raise StoreError(f"Insert failed for short code {short_code}: {exc}") from exc
        return link

    async def find_by_short_code(self, short_code: str) -> ShortLink:
        try:
            result = await self._session.execute(select(ShortLink).where(ShortLink.short_code == short_code))
        except _TRANSPORT_ERRORS as exc:
            raise StoreError(f"Lookup failed for short code {short_code}: {exc}") from exc

        link = result.scalar_one_or_none()
        if link is None:
            raise ShortLinkNotFoundError(short_code)
        return link

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except _TRANSPORT_ERRORS as exc:
            logger.warning(f"Rollback failed after store error: {exc}")
