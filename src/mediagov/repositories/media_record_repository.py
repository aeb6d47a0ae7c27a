"""
SQLAlchemy-backed record store.

Implements the record store contract over the ``media_records`` table. Each
call opens its own short-lived session from the session factory, so batch
engines never hold a transaction open across an ``await`` on the caller's
side, and every conditional update commits on its own.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.db.models import MediaRecord as MediaRecordDB
from mediagov.exceptions import RecordStoreError
from mediagov.models.media_record import MediaRecordCreate, RecordSnapshot
from mediagov.services.interfaces.record_store import RecordStore

logger = logging.getLogger(__name__)

_PATCHABLE_KEYS: frozenset[str] = frozenset({"media_type_id", "metadata"})


def _snapshot(row: MediaRecordDB) -> RecordSnapshot:
    return RecordSnapshot(
        id=row.id,
        media_type_id=row.media_type_id,
        metadata=row.record_metadata if row.record_metadata is not None else {},
        revision=row.revision,
    )


class MediaRecordRepository(RecordStore):
    """
    Record store over the ``media_records`` table.

    Parameters
    ----------
    session_factory : async_sessionmaker[AsyncSession]
        Factory used to open one session per store call.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def count(self, media_type_id: uuid.UUID) -> int:
        """Count records of a media type."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(MediaRecordDB)
                    .where(MediaRecordDB.media_type_id == media_type_id)
                )
                return result.scalar() or 0
        except SQLAlchemyError as e:
            raise RecordStoreError(
                f"Failed to count records of media type {media_type_id}",
                operation="count",
                original_error=e,
            ) from e

    async def find(
        self,
        media_type_id: uuid.UUID,
        *,
        after_id: Optional[uuid.UUID] = None,
        limit: int = 500,
    ) -> list[RecordSnapshot]:
        """Return one keyset page of records of a media type."""
        query = select(MediaRecordDB).where(
            MediaRecordDB.media_type_id == media_type_id
        )
        if after_id is not None:
            query = query.where(MediaRecordDB.id > after_id)
        query = query.order_by(MediaRecordDB.id).limit(limit)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [_snapshot(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RecordStoreError(
                f"Failed to read records of media type {media_type_id}",
                operation="find",
                original_error=e,
            ) from e

    async def conditional_update(
        self,
        record_id: uuid.UUID,
        expected_media_type_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        expected_revision: Optional[int] = None,
    ) -> bool:
        """Apply *patch* atomically if the record still matches; bump revision."""
        unknown = set(patch) - _PATCHABLE_KEYS
        if unknown:
            raise RecordStoreError(
                f"Unsupported patch keys: {sorted(unknown)}",
                record_id=record_id,
                operation="conditional_update",
            )

        values: dict[str, Any] = {"revision": MediaRecordDB.revision + 1}
        if "media_type_id" in patch:
            values["media_type_id"] = patch["media_type_id"]
        if "metadata" in patch:
            values["record_metadata"] = patch["metadata"]

        statement = update(MediaRecordDB).where(
            MediaRecordDB.id == record_id,
            MediaRecordDB.media_type_id == expected_media_type_id,
        )
        if expected_revision is not None:
            statement = statement.where(MediaRecordDB.revision == expected_revision)
        statement = statement.values(**values).execution_options(
            synchronize_session=False
        )

        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement)
                changed = (result.rowcount or 0) == 1  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            logger.warning("Conditional update of record %s failed: %s", record_id, e)
            raise RecordStoreError(
                f"Failed to update record {record_id}",
                record_id=record_id,
                operation="conditional_update",
                original_error=e,
            ) from e

        if not changed:
            logger.debug(
                "Conditional update of record %s skipped: guard did not match",
                record_id,
            )
        return changed

    async def create(self, obj_in: MediaRecordCreate) -> RecordSnapshot:
        """Insert a record. Used for seeding; the engines never create records."""
        async with self._session_factory() as session, session.begin():
            db_obj = MediaRecordDB(
                media_type_id=obj_in.media_type_id,
                title=obj_in.title,
                record_metadata=obj_in.metadata,
                revision=0,
            )
            session.add(db_obj)
            await session.flush()
            return _snapshot(db_obj)

    async def get(self, record_id: uuid.UUID) -> Optional[RecordSnapshot]:
        """Fetch a single record by id."""
        async with self._session_factory() as session:
            row = await session.get(MediaRecordDB, record_id)
            return _snapshot(row) if row is not None else None
