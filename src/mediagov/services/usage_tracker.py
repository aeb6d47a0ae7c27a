"""
Usage tracking for media types.

Live usage counts always come from the record store. The ``usage_count``
column on a media type is a display projection written back by
``refresh_cached_count`` and is never consulted for a guard decision.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.exceptions import NotFoundError
from mediagov.repositories.media_type_repository import MediaTypeRepository
from mediagov.services.interfaces.record_store import RecordStore
from mediagov.services.tag_normalization import (
    TagNormalizationService,
    extract_tags,
)

logger = logging.getLogger(__name__)


@dataclass
class FilesNeedingTags:
    """Records of one media type still missing some of its default tags."""

    media_type_id: uuid.UUID
    name: str
    count: int
    total_files: int


class UsageTracker:
    """
    Computes live usage and tag-sync eligibility for media types.

    Parameters
    ----------
    record_store : RecordStore
        Source of truth for which records use which media type.
    media_type_repo : MediaTypeRepository
        Repository used to read definitions and write the cached count.
    session_factory : async_sessionmaker[AsyncSession]
        Opens short sessions for reads that are not given one.
    batch_size : int, optional
        Page size for scans over records (default 500).
    """

    def __init__(
        self,
        record_store: RecordStore,
        media_type_repo: MediaTypeRepository,
        session_factory: async_sessionmaker[AsyncSession],
        normalizer: Optional[TagNormalizationService] = None,
        batch_size: int = 500,
    ) -> None:
        self._record_store = record_store
        self._media_type_repo = media_type_repo
        self._session_factory = session_factory
        self._normalizer = normalizer or TagNormalizationService()
        self._batch_size = batch_size

    async def usage_count(self, media_type_id: uuid.UUID) -> int:
        """Count records currently typed as *media_type_id*."""
        return await self._record_store.count(media_type_id)

    async def refresh_cached_count(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> int:
        """Recount live usage and store it on the media type for display."""
        count = await self.usage_count(media_type_id)
        await self._media_type_repo.set_usage_count(session, media_type_id, count)
        logger.debug("Cached usage count of %s set to %d", media_type_id, count)
        return count

    async def files_needing_tags(
        self,
        media_type_id: uuid.UUID,
        default_tags: Optional[list[str]] = None,
    ) -> int:
        """
        Count records of a type missing at least one of its default tags.

        Parameters
        ----------
        media_type_id : uuid.UUID
            Media type to inspect.
        default_tags : list[str] | None, optional
            The type's default tags; read from the registry when omitted.

        Returns
        -------
        int
            Number of records a default-tag sync would change.
        """
        if default_tags is None:
            async with self._session_factory() as session:
                media_type = await self._media_type_repo.get(session, media_type_id)
                if media_type is None:
                    raise NotFoundError("MediaType", media_type_id)
                default_tags = list(media_type.default_tags or [])
        if not default_tags:
            return 0

        needing = 0
        async for batch in self._record_store.iter_batches(
            media_type_id, self._batch_size
        ):
            for record in batch:
                tags = extract_tags(record.metadata)
                if self._normalizer.missing(tags, default_tags):
                    needing += 1
        return needing

    async def files_needing_tags_summary(
        self, session: AsyncSession
    ) -> list[FilesNeedingTags]:
        """Summarize tag-sync eligibility for every type with default tags."""
        media_types = await self._media_type_repo.list_with_default_tags(session)
        targets = [
            (media_type.id, media_type.name, list(media_type.default_tags))
            for media_type in media_types
        ]

        summary: list[FilesNeedingTags] = []
        for media_type_id, name, default_tags in targets:
            summary.append(
                FilesNeedingTags(
                    media_type_id=media_type_id,
                    name=name,
                    count=await self.files_needing_tags(media_type_id, default_tags),
                    total_files=await self.usage_count(media_type_id),
                )
            )
        return summary
