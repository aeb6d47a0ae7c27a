"""
Media type lifecycle state machine.

A media type is ``active`` until it is archived by an administrator or
deprecated by a migration that moved its records elsewhere. ``archived`` is
terminal. Deletion is possible from any state but only while no record
uses the type.

    active ──migrate──> deprecated ──archive──> archived
       └────────────archive─────────────────────┘

Status writes are compare-and-set on the current status, so two concurrent
administrative operations cannot both succeed from the same starting state.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import MediaType as MediaTypeDB
from mediagov.exceptions import (
    InvalidTransitionError,
    MediaTypeInUseError,
    NotFoundError,
)
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.models.media_type_event import MediaTypeEventCreate
from mediagov.repositories.media_type_event_repository import (
    MediaTypeEventRepository,
)
from mediagov.repositories.media_type_repository import MediaTypeRepository
from mediagov.services.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[MediaTypeStatus, frozenset[MediaTypeStatus]] = {
    MediaTypeStatus.ACTIVE: frozenset(
        {MediaTypeStatus.DEPRECATED, MediaTypeStatus.ARCHIVED}
    ),
    MediaTypeStatus.DEPRECATED: frozenset({MediaTypeStatus.ARCHIVED}),
    MediaTypeStatus.ARCHIVED: frozenset(),
}


class MediaTypeLifecycle:
    """
    Enforces legal status transitions and writes the audit trail.

    Parameters
    ----------
    media_type_repo : MediaTypeRepository
        Repository used for compare-and-set status writes.
    event_repo : MediaTypeEventRepository
        Audit log repository.
    usage_tracker : UsageTracker
        Live usage counts for the deletion guard.
    performed_by : str, optional
        Actor recorded on audit events (default "system").
    """

    def __init__(
        self,
        media_type_repo: MediaTypeRepository,
        event_repo: MediaTypeEventRepository,
        usage_tracker: UsageTracker,
        performed_by: str = "system",
    ) -> None:
        self._media_type_repo = media_type_repo
        self._event_repo = event_repo
        self._usage_tracker = usage_tracker
        self._performed_by = performed_by

    @staticmethod
    def can_transition(
        from_status: MediaTypeStatus | str, to_status: MediaTypeStatus | str
    ) -> bool:
        """
        Check whether the state machine allows ``from_status -> to_status``.

        Examples
        --------
        >>> MediaTypeLifecycle.can_transition("active", "archived")
        True
        >>> MediaTypeLifecycle.can_transition("archived", "active")
        False
        """
        return MediaTypeStatus(to_status) in ALLOWED_TRANSITIONS[
            MediaTypeStatus(from_status)
        ]

    async def archive(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> MediaTypeDB:
        """
        Archive a media type. Existing records keep referencing it.

        Raises
        ------
        NotFoundError
            If the media type does not exist.
        InvalidTransitionError
            If it is already archived, or its status changed concurrently.
        """
        return await self._transition(
            session,
            media_type_id,
            MediaTypeStatus.ARCHIVED,
            operation=MediaTypeOperation.ARCHIVE,
        )

    async def deprecate(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        replaced_by_id: uuid.UUID,
        details: Optional[dict[str, Any]] = None,
    ) -> MediaTypeDB:
        """
        Mark a media type as replaced by *replaced_by_id*.

        Only the migration engine calls this. A type already deprecated in
        favour of the same replacement is returned unchanged, so a retried
        migration does not fail here.
        """
        if replaced_by_id == media_type_id:
            raise InvalidTransitionError(
                media_type_id,
                MediaTypeStatus.ACTIVE.value,
                MediaTypeStatus.DEPRECATED.value,
                reason="a media type cannot replace itself",
            )

        media_type = await self._get(session, media_type_id)
        if (
            media_type.status == MediaTypeStatus.DEPRECATED.value
            and media_type.replaced_by_id == replaced_by_id
        ):
            logger.debug(
                "Media type %s already deprecated in favour of %s",
                media_type_id,
                replaced_by_id,
            )
            return media_type

        return await self._transition(
            session,
            media_type_id,
            MediaTypeStatus.DEPRECATED,
            operation=MediaTypeOperation.DEPRECATE,
            replaced_by_id=replaced_by_id,
            details=details,
        )

    async def delete(self, session: AsyncSession, media_type_id: uuid.UUID) -> None:
        """
        Delete a media type that no record uses.

        Raises
        ------
        MediaTypeInUseError
            If the live usage count is not zero.
        """
        media_type = await self._get(session, media_type_id)
        usage = await self._usage_tracker.usage_count(media_type_id)
        if usage > 0:
            raise MediaTypeInUseError(media_type_id, usage)

        from_status = media_type.status
        name = media_type.name
        cleared = await self._media_type_repo.clear_replaced_by(session, media_type_id)
        await self._media_type_repo.delete(session, id=media_type_id)
        await self.log_event(
            session,
            media_type_id,
            MediaTypeOperation.DELETE,
            from_status=from_status,
            details={"name": name, "cleared_replaced_by": cleared},
        )
        logger.info("Deleted media type '%s' (%s)", name, media_type_id)

    async def log_event(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        operation: MediaTypeOperation,
        *,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append an audit event in the caller's transaction."""
        await self._event_repo.create(
            session,
            obj_in=MediaTypeEventCreate(
                media_type_id=media_type_id,
                operation=operation,
                from_status=MediaTypeStatus(from_status) if from_status else None,
                to_status=MediaTypeStatus(to_status) if to_status else None,
                details=details or {},
                performed_by=self._performed_by,
            ),
        )

    async def _get(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> MediaTypeDB:
        media_type = await self._media_type_repo.get(session, media_type_id)
        if media_type is None:
            raise NotFoundError("MediaType", media_type_id)
        return media_type

    async def _transition(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        to_status: MediaTypeStatus,
        *,
        operation: MediaTypeOperation,
        replaced_by_id: Optional[uuid.UUID] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> MediaTypeDB:
        media_type = await self._get(session, media_type_id)
        from_status = MediaTypeStatus(media_type.status)
        if not self.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                media_type_id, from_status.value, to_status.value
            )

        updated = await self._media_type_repo.compare_and_set_status(
            session,
            media_type_id,
            expected_status=from_status.value,
            new_status=to_status.value,
            replaced_by_id=replaced_by_id,
        )
        await session.refresh(media_type)
        if not updated:
            raise InvalidTransitionError(
                media_type_id,
                media_type.status,
                to_status.value,
                reason="status changed concurrently",
            )

        event_details = dict(details or {})
        if replaced_by_id is not None:
            event_details["replaced_by_id"] = str(replaced_by_id)
        await self.log_event(
            session,
            media_type_id,
            operation,
            from_status=from_status.value,
            to_status=to_status.value,
            details=event_details,
        )
        logger.info(
            "Media type '%s' moved %s -> %s",
            media_type.name,
            from_status.value,
            to_status.value,
        )
        return media_type
