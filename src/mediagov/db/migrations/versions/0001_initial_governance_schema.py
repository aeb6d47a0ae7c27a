"""initial_governance_schema

Revision ID: 3c1d7a9e5b20
Revises:
Create Date: 2026-09-14 10:00:00.000000

Creates the media-type registry, the tag vocabulary, the lifecycle audit
log, and the record table used by the bundled record store.

New Tables:
1. media_types - Media type definitions with lifecycle status
2. tags - Global tag vocabulary
3. tag_categories - Named tag sets usable as Select option sources
4. tag_category_tags - Ordered category membership
5. media_type_events - Audit log of lifecycle and bulk operations
6. media_records - Records referencing a media type by id
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = "3c1d7a9e5b20"
down_revision = None
branch_labels = None
depends_on = None

JSONDocument = sa.JSON().with_variant(JSONB(), "postgresql")
NOW = sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    """Create governance tables in FK dependency order."""
    # =========================================================================
    # TABLE 1: media_types (self-referencing FK for replaced_by_id)
    # =========================================================================
    op.create_table(
        "media_types",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_key", sa.String(255), nullable=False),
        sa.Column("base_type", sa.String(20), nullable=False),
        sa.Column("fields", JSONDocument, nullable=False),
        sa.Column("accepted_file_types", JSONDocument, nullable=False),
        sa.Column("default_tags", JSONDocument, nullable=False),
        sa.Column(
            "include_base_fields",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column("color", sa.String(7), nullable=True),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default=sa.text("'active'")
        ),
        sa.Column("replaced_by_id", sa.Uuid(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_media_types"),
        sa.UniqueConstraint("name_key", name="uq_media_types_name_key"),
        sa.ForeignKeyConstraint(
            ["replaced_by_id"],
            ["media_types.id"],
            name="fk_media_types_replaced_by_id",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'deprecated', 'archived')",
            name="chk_media_type_status_valid",
        ),
        sa.CheckConstraint(
            "base_type IN ('Generic', 'Image', 'Video', 'Audio', 'Document')",
            name="chk_media_type_base_type_valid",
        ),
    )
    op.create_index("ix_media_types_status", "media_types", ["status"])

    # =========================================================================
    # TABLE 2: tags
    # =========================================================================
    op.create_table(
        "tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_key", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_tags"),
        sa.UniqueConstraint("name_key", name="uq_tags_name_key"),
    )

    # =========================================================================
    # TABLE 3: tag_categories
    # =========================================================================
    op.create_table(
        "tag_categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_key", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_tag_categories"),
        sa.UniqueConstraint("name_key", name="uq_tag_categories_name_key"),
    )

    # =========================================================================
    # TABLE 4: tag_category_tags (FK to tags and tag_categories)
    # =========================================================================
    op.create_table(
        "tag_category_tags",
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("category_id", "tag_id", name="pk_tag_category_tags"),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["tag_categories.id"],
            name="fk_tag_category_tags_category_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["tags.id"],
            name="fk_tag_category_tags_tag_id",
            ondelete="CASCADE",
        ),
    )

    # =========================================================================
    # TABLE 5: media_type_events (no FK, events outlive deleted types)
    # =========================================================================
    op.create_table(
        "media_type_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("media_type_id", sa.Uuid(), nullable=False),
        sa.Column("operation", sa.String(20), nullable=False),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=True),
        sa.Column("details", JSONDocument, nullable=False),
        sa.Column(
            "performed_by",
            sa.String(100),
            nullable=False,
            server_default=sa.text("'system'"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_media_type_events"),
        sa.CheckConstraint(
            "operation IN ('create', 'update', 'archive', 'deprecate', 'delete', "
            "'migrate', 'sync_tags')",
            name="chk_media_type_event_operation_valid",
        ),
    )
    op.create_index(
        "ix_media_type_events_media_type_id", "media_type_events", ["media_type_id"]
    )

    # =========================================================================
    # TABLE 6: media_records
    # =========================================================================
    op.create_table(
        "media_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("media_type_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("metadata", JSONDocument, nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW),
        sa.PrimaryKeyConstraint("id", name="pk_media_records"),
    )
    op.create_index(
        "ix_media_records_media_type_id_id",
        "media_records",
        ["media_type_id", "id"],
    )


def downgrade() -> None:
    """Drop governance tables in reverse dependency order."""
    op.drop_index("ix_media_records_media_type_id_id", table_name="media_records")
    op.drop_table("media_records")
    op.drop_index("ix_media_type_events_media_type_id", table_name="media_type_events")
    op.drop_table("media_type_events")
    op.drop_table("tag_category_tags")
    op.drop_table("tag_categories")
    op.drop_table("tags")
    op.drop_index("ix_media_types_status", table_name="media_types")
    op.drop_table("media_types")
