"""
Tag repository for the global tag vocabulary.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import Tag as TagDB
from mediagov.db.models import TagCategoryTag as TagCategoryTagDB
from mediagov.models.tag_category import TagCreate
from mediagov.repositories.base import BaseSQLAlchemyRepository
from mediagov.services.tag_normalization import comparison_key


class TagRepository(BaseSQLAlchemyRepository[TagDB, TagCreate, dict]):
    """Repository for vocabulary tag CRUD operations."""

    def __init__(self) -> None:
        """Initialize repository with Tag model."""
        super().__init__(TagDB)

    async def create(self, session: AsyncSession, *, obj_in: TagCreate) -> TagDB:
        """Insert a tag, deriving its comparison key."""
        db_obj = TagDB(name=obj_in.name, name_key=comparison_key(obj_in.name))
        session.add(db_obj)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj

    async def get_by_name(self, session: AsyncSession, name: str) -> Optional[TagDB]:
        """Look up a tag by name, case-insensitively."""
        result = await session.execute(
            select(TagDB).where(TagDB.name_key == comparison_key(name))
        )
        return result.scalar_one_or_none()

    async def list_all(self, session: AsyncSession) -> list[TagDB]:
        """List all tags ordered by comparison key."""
        result = await session.execute(select(TagDB).order_by(TagDB.name_key))
        return list(result.scalars().all())

    async def rename(self, session: AsyncSession, tag: TagDB, name: str) -> TagDB:
        """Rename a tag in place; category memberships follow automatically."""
        tag.name = name
        tag.name_key = comparison_key(name)
        session.add(tag)
        await session.flush()
        await session.refresh(tag)
        return tag

    async def delete(self, session: AsyncSession, *, id: uuid.UUID) -> Optional[TagDB]:
        """Delete a tag and its category memberships."""
        db_obj = await self.get(session, id)
        if db_obj is None:
            return None
        await session.execute(
            delete(TagCategoryTagDB).where(TagCategoryTagDB.tag_id == id)
        )
        await session.execute(delete(TagDB).where(TagDB.id == id))
        return db_obj
