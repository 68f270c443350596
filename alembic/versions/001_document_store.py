"""Document store, object storage and identity tables.

Creates documents (one row per document, JSONB body), blobs (bucket
objects) and identities (sign-in accounts with custom claims).

Revision ID: 001_document_store
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_document_store"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the three storage tables."""
    # --- documents ---
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(128), primary_key=True),
        sa.Column("id", sa.String(256), primary_key=True),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_documents_data", "documents", ["data"], postgresql_using="gin")

    # --- blobs ---
    op.create_table(
        "blobs",
        sa.Column("bucket", sa.String(222), primary_key=True),
        sa.Column("path", sa.String(1024), primary_key=True),
        sa.Column("content_type", sa.String(128), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("data", sa.LargeBinary(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # --- identities ---
    op.create_table(
        "identities",
        sa.Column("uid", sa.String(128), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column("custom_claims", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("disabled", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_identities_email_lower", "identities", [sa.text("lower(email)")], unique=True)


def downgrade() -> None:
    """Drop the storage tables."""
    op.drop_index("ix_identities_email_lower", table_name="identities")
    op.drop_table("identities")
    op.drop_table("blobs")
    op.drop_index("ix_documents_data", table_name="documents")
    op.drop_table("documents")
