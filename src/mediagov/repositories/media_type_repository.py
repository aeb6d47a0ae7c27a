"""
Media type repository.

Handles persistence of media-type definitions, including compare-and-set
status changes used by the lifecycle state machine and lookups of fields
that reference a tag category.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import MediaType as MediaTypeDB
from mediagov.models.media_type import MediaTypeCreate, MediaTypeUpdate
from mediagov.repositories.base import BaseSQLAlchemyRepository
from mediagov.services.tag_normalization import comparison_key


def field_references_category(field: dict[str, Any], category_id: uuid.UUID) -> bool:
    """Return True if a stored field definition takes options from *category_id*."""
    source = field.get("option_source")
    if not isinstance(source, dict) or source.get("source") != "category":
        return False
    return str(source.get("tag_category_id")) == str(category_id)


class MediaTypeRepository(
    BaseSQLAlchemyRepository[MediaTypeDB, MediaTypeCreate, MediaTypeUpdate]
):
    """Repository for media type CRUD operations."""

    def __init__(self) -> None:
        """Initialize repository with MediaType model."""
        super().__init__(MediaTypeDB)

    async def create(
        self, session: AsyncSession, *, obj_in: MediaTypeCreate
    ) -> MediaTypeDB:
        """Insert a validated media type definition."""
        db_obj = MediaTypeDB(
            name=obj_in.name,
            name_key=comparison_key(obj_in.name),
            base_type=obj_in.base_type.value,
            fields=[field.model_dump(mode="json") for field in obj_in.fields],
            accepted_file_types=list(obj_in.accepted_file_types),
            default_tags=list(obj_in.default_tags),
            include_base_fields=obj_in.include_base_fields,
            color=obj_in.color,
            status="active",
            usage_count=0,
        )
        session.add(db_obj)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj

    async def get_by_name(
        self, session: AsyncSession, name: str
    ) -> Optional[MediaTypeDB]:
        """Look up a media type by name, case-insensitively."""
        result = await session.execute(
            select(MediaTypeDB).where(MediaTypeDB.name_key == comparison_key(name))
        )
        return result.scalar_one_or_none()

    async def list_all(
        self,
        session: AsyncSession,
        *,
        statuses: Optional[list[str]] = None,
    ) -> list[MediaTypeDB]:
        """List media types ordered by name, optionally filtered by status."""
        query = select(MediaTypeDB).order_by(MediaTypeDB.name_key)
        if statuses:
            query = query.where(MediaTypeDB.status.in_(statuses))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def list_with_default_tags(self, session: AsyncSession) -> list[MediaTypeDB]:
        """List media types that declare at least one default tag."""
        types = await self.list_all(session)
        return [media_type for media_type in types if media_type.default_tags]

    async def find_referencing_category(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> list[MediaTypeDB]:
        """
        Find media types with a Select/MultiSelect field backed by a category.

        Field definitions live in a JSON document, so the match is done in
        Python over the (small) set of media types.
        """
        types = await self.list_all(session)
        return [
            media_type
            for media_type in types
            if any(
                field_references_category(field, category_id)
                for field in media_type.fields or []
            )
        ]

    async def compare_and_set_status(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        *,
        expected_status: str,
        new_status: str,
        replaced_by_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """
        Change status only if the row still has *expected_status*.

        Returns
        -------
        bool
            True if the row was updated.
        """
        values: dict[str, Any] = {"status": new_status}
        if replaced_by_id is not None:
            values["replaced_by_id"] = replaced_by_id
        result = await session.execute(
            update(MediaTypeDB)
            .where(
                MediaTypeDB.id == media_type_id,
                MediaTypeDB.status == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def set_usage_count(
        self, session: AsyncSession, media_type_id: uuid.UUID, usage_count: int
    ) -> None:
        """Write the cached display count."""
        await session.execute(
            update(MediaTypeDB)
            .where(MediaTypeDB.id == media_type_id)
            .values(usage_count=usage_count)
            .execution_options(synchronize_session=False)
        )

    async def clear_replaced_by(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> int:
        """Null out ``replaced_by_id`` pointers to a media type being deleted."""
        result = await session.execute(
            update(MediaTypeDB)
            .where(MediaTypeDB.replaced_by_id == media_type_id)
            .values(replaced_by_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]
