"""
Media type event repository for the lifecycle audit trail.

Events are append-only; they are written in the same transaction as the
change they describe.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import MediaTypeEvent as MediaTypeEventDB
from mediagov.models.media_type_event import MediaTypeEventCreate
from mediagov.repositories.base import BaseSQLAlchemyRepository


class MediaTypeEventRepository(
    BaseSQLAlchemyRepository[MediaTypeEventDB, MediaTypeEventCreate, dict]
):
    """Repository for media type event CRUD operations."""

    def __init__(self) -> None:
        """Initialize repository with MediaTypeEvent model."""
        super().__init__(MediaTypeEventDB)

    async def create(
        self, session: AsyncSession, *, obj_in: MediaTypeEventCreate
    ) -> MediaTypeEventDB:
        """Append an event, storing enum values as plain strings."""
        db_obj = MediaTypeEventDB(**obj_in.model_dump(mode="json"))
        db_obj.media_type_id = obj_in.media_type_id
        session.add(db_obj)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj

    async def list_for_media_type(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        *,
        operation: Optional[str] = None,
        limit: int = 50,
    ) -> list[MediaTypeEventDB]:
        """
        Get the most recent events of a media type, newest first.

        Parameters
        ----------
        session : AsyncSession
            Database session.
        media_type_id : uuid.UUID
            Media type whose history is requested.
        operation : str | None, optional
            Restrict to one operation (e.g. ``"migrate"``).
        limit : int, optional
            Maximum number of entries (default 50).
        """
        query = select(MediaTypeEventDB).where(
            MediaTypeEventDB.media_type_id == media_type_id
        )
        if operation is not None:
            query = query.where(MediaTypeEventDB.operation == operation)
        query = query.order_by(desc(MediaTypeEventDB.id)).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())
