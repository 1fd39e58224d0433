"""SQLAlchemy ORM models for the durable document store.

One row per container document:
- selector: the JSON criteria the document was created from
- selector_hash: SHA256 of the canonical selector bytes, used for lookups
- doc: JSON document (JSONB on PostgreSQL) holding the ``storage`` tree
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any
from uuid import uuid4

import orjson
from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def canonical_selector(selector: dict[str, Any]) -> bytes:
    """Canonical JSON bytes for a selector (sorted keys, compact)."""
    return orjson.dumps(selector, option=orjson.OPT_SORT_KEYS)


def selector_hash(selector: dict[str, Any]) -> str:
    """Lookup key for a selector: SHA256 hex of its canonical bytes."""
    return hashlib.sha256(canonical_selector(selector)).hexdigest()


class DocumentTable(Base):
    """Container document table."""

    __tablename__ = "cask_documents"

    # Primary key, also the document identity the cache identifier derives from
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    selector: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)

    selector_hash: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )

    doc: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
