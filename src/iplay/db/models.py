"""ORM models backing the SQL adapters.

Documents, blobs and identities are stored generically: the document body is
a JSON column so every collection shares one table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, LargeBinary, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from iplay.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


class DocumentRecord(Base):
    """Maps to the 'documents' table. Primary key is (collection, id)."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(128), primary_key=True)
    id: Mapped[str] = mapped_column(String(256), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ---------------------------------------------------------------------------
# Object storage
# ---------------------------------------------------------------------------


class BlobRecord(Base):
    """Maps to the 'blobs' table."""

    __tablename__ = "blobs"

    bucket: Mapped[str] = mapped_column(String(222), primary_key=True)
    path: Mapped[str] = mapped_column(String(1024), primary_key=True)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


class IdentityRecord(Base):
    """Maps to the 'identities' table (sign-in accounts and their custom claims)."""

    __tablename__ = "identities"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    custom_claims: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
