"""SQLAlchemy ORM models for Shorty.

This module defines the database schema using SQLAlchemy declarative models.
The unique index on ``short_code`` is the single arbiter of code uniqueness:
the allocator never checks for an existing code before inserting.

Data Model Layout
=================
::
    urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ original_url (TEXT NOT NULL)
    ├─ short_code (VARCHAR(20), UNIQUE INDEX ix_urls_short_code)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Step 1 — Import**::
    from shorty.models import ShortLink

**Step 2 — Insert through the store**::
    link = await store.try_insert("aZ3kP9", "https://example.com/")

**Step 3 — Query**::
    result = await db.execute(select(ShortLink).where(ShortLink.short_code == "aZ3kP9"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- Rows are immutable: there is no updated_at column and no update path.
- original_url is not unique; the same long URL may have many codes.
- created_at is set once by the database.

Classes:
    ShortLink:  A persisted short code to long URL mapping.
"""

import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shorty.database import Base

__all__ = ["ShortLink"]


class ShortLink(Base):
    __tablename__ = "urls"
    # Fetch id and created_at with the INSERT so no refresh follows the commit.
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, short_code='{self.short_code}')>"
