"""
Base repository for the governance tables.

Every governance table has a UUID ``id`` primary key. Subclasses supply
``create`` (each computes its own derived columns such as ``name_key``) and
any table-specific queries; lookups, column updates and deletes are shared.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType")
UpdateSchemaType = TypeVar("UpdateSchemaType")


class BaseSQLAlchemyRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType]
):
    """
    Shared data access for one ORM model.

    Writes only flush; committing is left to the caller's session.

    Parameters
    ----------
    model : type[ModelType]
        ORM class the repository reads and writes.
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    @abstractmethod
    async def create(
        self, session: AsyncSession, *, obj_in: CreateSchemaType
    ) -> ModelType:
        """Insert a row built from *obj_in*."""
        pass

    async def get(
        self, session: AsyncSession, id: uuid.UUID
    ) -> Optional[ModelType]:
        """Get a row by id, or None."""
        return await session.get(self.model, id)

    async def exists(self, session: AsyncSession, id: uuid.UUID) -> bool:
        """Check whether a row with *id* exists."""
        id_column = self.model.id  # type: ignore[attr-defined]
        result = await session.execute(select(id_column).where(id_column == id))
        return result.first() is not None

    async def update(
        self,
        session: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: dict[str, Any],
    ) -> ModelType:
        """
        Set the given columns on *db_obj* and flush.

        Keys that are not attributes of the model are ignored.
        """
        for column, value in obj_in.items():
            if hasattr(db_obj, column):
                setattr(db_obj, column, value)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj

    async def delete(
        self, session: AsyncSession, *, id: uuid.UUID
    ) -> Optional[ModelType]:
        """Delete a row by id; returns the deleted row, or None if absent."""
        db_obj = await self.get(session, id)
        if db_obj is not None:
            await session.delete(db_obj)
            await session.flush()
        return db_obj
