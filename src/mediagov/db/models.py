"""
Database models for mediagov.

This module contains the SQLAlchemy models for media-type definitions, the
tag vocabulary (tags and tag categories), the lifecycle audit log, and the
media record table backing the bundled record store.
"""

from __future__ import annotations

import datetime
import uuid
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from uuid_utils import uuid7

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def generate_uuid7() -> uuid.UUID:
    """Generate a UUIDv7 as a standard uuid.UUID."""
    return uuid.UUID(bytes=uuid7().bytes)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class MediaType(Base):
    """Administrator-defined schema for a class of media records."""

    __tablename__ = "media_types"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid7
    )

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True
    )  # comparison form of name

    # Schema
    base_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Generic"
    )
    fields: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    accepted_file_types: Mapped[list[str]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    default_tags: Mapped[list[str]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    include_base_fields: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    color: Mapped[Optional[str]] = mapped_column(String(7))

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )
    replaced_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("media_types.id", ondelete="SET NULL")
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )  # display projection, recomputed on demand

    # Timestamps
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_media_types_status", "status"),)


class Tag(Base):
    """Global tag vocabulary entry."""

    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid7
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    category_links: Mapped[list["TagCategoryTag"]] = relationship(
        "TagCategoryTag", back_populates="tag"
    )


class TagCategory(Base):
    """Named, shared vocabulary usable as a Select option source."""

    __tablename__ = "tag_categories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid7
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tag_links: Mapped[list["TagCategoryTag"]] = relationship(
        "TagCategoryTag",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="TagCategoryTag.position",
    )


class TagCategoryTag(Base):
    """Membership of a tag in a tag category."""

    __tablename__ = "tag_category_tags"

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tag_categories.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category: Mapped["TagCategory"] = relationship(
        "TagCategory", back_populates="tag_links"
    )
    tag: Mapped["Tag"] = relationship("Tag", back_populates="category_links")


class MediaTypeEvent(Base):
    """Audit log entry for media-type lifecycle and bulk operations."""

    __tablename__ = "media_type_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid7
    )
    # No FK: events outlive deleted media types
    media_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    from_status: Mapped[Optional[str]] = mapped_column(String(20))
    to_status: Mapped[Optional[str]] = mapped_column(String(20))
    details: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )
    performed_by: Mapped[str] = mapped_column(
        String(100), nullable=False, default="system"
    )

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_media_type_events_media_type_id", "media_type_id"),
    )


class MediaRecord(Base):
    """Media record as held by the bundled record store."""

    __tablename__ = "media_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid7
    )
    # Referenced by id only; the record store is owned outside the registry
    media_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(500))
    # ``metadata`` is reserved on declarative classes
    record_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONDocument, nullable=False, default=dict
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_media_records_media_type_id_id", "media_type_id", "id"),
    )
