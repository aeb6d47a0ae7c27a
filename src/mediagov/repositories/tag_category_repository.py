"""
Tag category repository.

Handles tag categories and their ordered tag memberships. Category tags are
joined from the ``tags`` table on every read, so renames in the vocabulary
are visible everywhere immediately.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import Tag as TagDB
from mediagov.db.models import TagCategory as TagCategoryDB
from mediagov.db.models import TagCategoryTag as TagCategoryTagDB
from mediagov.models.tag_category import TagCategoryCreate, TagCategoryUpdate
from mediagov.repositories.base import BaseSQLAlchemyRepository
from mediagov.services.tag_normalization import comparison_key


class TagCategoryRepository(
    BaseSQLAlchemyRepository[TagCategoryDB, TagCategoryCreate, TagCategoryUpdate]
):
    """Repository for tag category CRUD operations."""

    def __init__(self) -> None:
        """Initialize repository with TagCategory model."""
        super().__init__(TagCategoryDB)

    async def create(
        self, session: AsyncSession, *, obj_in: TagCategoryCreate
    ) -> TagCategoryDB:
        """Insert a category row (tags are linked separately)."""
        db_obj = TagCategoryDB(
            name=obj_in.name,
            name_key=comparison_key(obj_in.name),
            description=obj_in.description,
            is_active=True,
        )
        session.add(db_obj)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj

    async def get_by_name(
        self, session: AsyncSession, name: str
    ) -> Optional[TagCategoryDB]:
        """Look up a category by name, case-insensitively, active or not."""
        result = await session.execute(
            select(TagCategoryDB).where(
                TagCategoryDB.name_key == comparison_key(name)
            )
        )
        return result.scalar_one_or_none()

    async def list_all(
        self, session: AsyncSession, *, include_inactive: bool = False
    ) -> list[TagCategoryDB]:
        """List categories ordered by name."""
        query = select(TagCategoryDB).order_by(TagCategoryDB.name_key)
        if not include_inactive:
            query = query.where(TagCategoryDB.is_active.is_(True))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_tags(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> list[TagDB]:
        """Return the tags of a category in membership order."""
        result = await session.execute(
            select(TagDB)
            .join(TagCategoryTagDB, TagCategoryTagDB.tag_id == TagDB.id)
            .where(TagCategoryTagDB.category_id == category_id)
            .order_by(TagCategoryTagDB.position, TagDB.name_key)
        )
        return list(result.scalars().all())

    async def get_tags_for_categories(
        self, session: AsyncSession, category_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, list[str]]:
        """
        Resolve tag names for several active categories in one query.

        Missing or inactive categories are absent from the returned mapping.
        """
        if not category_ids:
            return {}
        active = await session.execute(
            select(TagCategoryDB.id).where(
                TagCategoryDB.id.in_(category_ids),
                TagCategoryDB.is_active.is_(True),
            )
        )
        resolved: dict[uuid.UUID, list[str]] = {row[0]: [] for row in active.all()}
        if not resolved:
            return resolved
        result = await session.execute(
            select(TagCategoryTagDB.category_id, TagDB.name)
            .join(TagDB, TagCategoryTagDB.tag_id == TagDB.id)
            .where(TagCategoryTagDB.category_id.in_(list(resolved)))
            .order_by(TagCategoryTagDB.position, TagDB.name_key)
        )
        for category_id, name in result.all():
            resolved[category_id].append(name)
        return resolved

    async def has_tag_key(
        self, session: AsyncSession, category_id: uuid.UUID, name_key: str
    ) -> bool:
        """Check whether a category already holds a tag with this comparison key."""
        result = await session.execute(
            select(TagCategoryTagDB.tag_id)
            .join(TagDB, TagCategoryTagDB.tag_id == TagDB.id)
            .where(
                TagCategoryTagDB.category_id == category_id,
                TagDB.name_key == name_key,
            )
        )
        return result.first() is not None

    async def add_tag(
        self, session: AsyncSession, category_id: uuid.UUID, tag_id: uuid.UUID
    ) -> None:
        """Append a tag to the end of a category."""
        result = await session.execute(
            select(func.max(TagCategoryTagDB.position)).where(
                TagCategoryTagDB.category_id == category_id
            )
        )
        last_position = result.scalar()
        position = 0 if last_position is None else last_position + 1
        session.add(
            TagCategoryTagDB(category_id=category_id, tag_id=tag_id, position=position)
        )
        await session.flush()

    async def remove_tag(
        self, session: AsyncSession, category_id: uuid.UUID, tag_id: uuid.UUID
    ) -> bool:
        """Remove a tag from a category. Returns True if it was a member."""
        result = await session.execute(
            delete(TagCategoryTagDB).where(
                TagCategoryTagDB.category_id == category_id,
                TagCategoryTagDB.tag_id == tag_id,
            )
        )
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]

    async def clear_tags(self, session: AsyncSession, category_id: uuid.UUID) -> None:
        """Remove every tag membership of a category."""
        await session.execute(
            delete(TagCategoryTagDB).where(TagCategoryTagDB.category_id == category_id)
        )

    async def delete(
        self, session: AsyncSession, *, id: uuid.UUID
    ) -> Optional[TagCategoryDB]:
        """Hard-delete a category and its memberships."""
        db_obj = await self.get(session, id)
        if db_obj is None:
            return None
        await self.clear_tags(session, id)
        await session.execute(delete(TagCategoryDB).where(TagCategoryDB.id == id))
        return db_obj
