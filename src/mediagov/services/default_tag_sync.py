"""
Default tag synchronization.

Applies a media type's default tags to every record of that type. Missing
tags are computed in comparison form and appended in storage form after the
record's existing tags; existing tags are never removed or rewritten. The
operation is idempotent: a second run over unchanged records writes nothing.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.exceptions import NotFoundError, RecordStoreError
from mediagov.models.enums import MediaTypeOperation
from mediagov.models.media_record import RecordSnapshot
from mediagov.repositories.media_type_repository import MediaTypeRepository
from mediagov.services.interfaces.record_store import RecordStore
from mediagov.services.lifecycle import MediaTypeLifecycle
from mediagov.services.tag_normalization import (
    TagNormalizationService,
    extract_tags,
)

logger = logging.getLogger(__name__)


@dataclass
class TagSyncResult:
    """Result of applying default tags to one media type."""

    media_type_id: uuid.UUID
    count: int = 0
    total_files: int = 0
    tags_applied: int = 0
    failed_ids: list[uuid.UUID] = field(default_factory=list)
    skipped_count: int = 0


class DefaultTagSync:
    """
    Idempotent bulk application of default tags.

    Parameters
    ----------
    record_store : RecordStore
        Store holding the records.
    media_type_repo : MediaTypeRepository
        Repository for reading default tags.
    lifecycle : MediaTypeLifecycle
        Used to write the ``sync_tags`` audit event.
    session_factory : async_sessionmaker[AsyncSession]
        Opens the short sessions used for reads and the audit write.
    normalizer : TagNormalizationService | None, optional
        Tag canonicalizer.
    batch_size : int, optional
        Records per batch (default 500).
    """

    def __init__(
        self,
        record_store: RecordStore,
        media_type_repo: MediaTypeRepository,
        lifecycle: MediaTypeLifecycle,
        session_factory: async_sessionmaker[AsyncSession],
        normalizer: Optional[TagNormalizationService] = None,
        batch_size: int = 500,
    ) -> None:
        self._record_store = record_store
        self._media_type_repo = media_type_repo
        self._lifecycle = lifecycle
        self._session_factory = session_factory
        self._normalizer = normalizer or TagNormalizationService()
        self._batch_size = batch_size

    async def apply_default_tags(self, media_type_id: uuid.UUID) -> TagSyncResult:
        """
        Append missing default tags to every record of a media type.

        Parameters
        ----------
        media_type_id : uuid.UUID
            Media type whose default tags are applied.

        Returns
        -------
        TagSyncResult
            ``count`` is the number of records changed by this call;
            records whose write failed are listed in ``failed_ids``.

        Raises
        ------
        NotFoundError
            If the media type does not exist.
        """
        default_tags = await self._load_default_tags(media_type_id)
        result = TagSyncResult(media_type_id=media_type_id)
        if not default_tags:
            logger.debug("Media type %s has no default tags", media_type_id)
            return result

        async for batch in self._record_store.iter_batches(
            media_type_id, self._batch_size
        ):
            for record in batch:
                result.total_files += 1
                await self._sync_record(record, default_tags, result)
            await asyncio.sleep(0)

        async with self._session_factory() as session, session.begin():
            await self._lifecycle.log_event(
                session,
                media_type_id,
                MediaTypeOperation.SYNC_TAGS,
                details={
                    "default_tags": default_tags,
                    "count": result.count,
                    "tags_applied": result.tags_applied,
                    "total_files": result.total_files,
                    "failed_ids": [str(record_id) for record_id in result.failed_ids],
                },
            )
        logger.info(
            "Applied default tags to %d of %d record(s) of %s (%d tag(s) added)",
            result.count,
            result.total_files,
            media_type_id,
            result.tags_applied,
        )
        return result

    async def apply_all_default_tags(self) -> list[TagSyncResult]:
        """Run ``apply_default_tags`` for every media type that has default tags."""
        async with self._session_factory() as session:
            media_types = await self._media_type_repo.list_with_default_tags(session)
            media_type_ids = [media_type.id for media_type in media_types]

        results: list[TagSyncResult] = []
        for media_type_id in media_type_ids:
            results.append(await self.apply_default_tags(media_type_id))
        return results

    async def verify(self, media_type_id: uuid.UUID) -> int:
        """
        Count records still missing a default tag, without writing.

        A return value of 0 means a sync would change nothing.
        """
        default_tags = await self._load_default_tags(media_type_id)
        if not default_tags:
            return 0
        missing = 0
        async for batch in self._record_store.iter_batches(
            media_type_id, self._batch_size
        ):
            for record in batch:
                tags = extract_tags(record.metadata)
                if self._normalizer.missing(tags, default_tags):
                    missing += 1
        return missing

    async def _load_default_tags(self, media_type_id: uuid.UUID) -> list[str]:
        async with self._session_factory() as session:
            media_type = await self._media_type_repo.get(session, media_type_id)
            if media_type is None:
                raise NotFoundError("MediaType", media_type_id)
            return list(media_type.default_tags or [])

    async def _sync_record(
        self,
        record: RecordSnapshot,
        default_tags: list[str],
        result: TagSyncResult,
    ) -> None:
        existing = extract_tags(record.metadata)
        merged, added = self._normalizer.merge(existing, default_tags)
        if not added:
            return

        metadata: dict[str, Any] = (
            dict(record.metadata) if isinstance(record.metadata, Mapping) else {}
        )
        metadata["tags"] = merged
        try:
            changed = await self._record_store.conditional_update(
                record.id,
                record.media_type_id,
                {"metadata": metadata},
                expected_revision=record.revision,
            )
        except RecordStoreError as e:
            logger.warning("Failed to tag record %s: %s", record.id, e)
            result.failed_ids.append(record.id)
            return

        if changed:
            result.count += 1
            result.tags_applied += len(added)
            return

        current = await self._record_store.get(record.id)
        if current is not None and current.media_type_id == record.media_type_id:
            logger.warning("Record %s was modified during tag sync", record.id)
            result.failed_ids.append(record.id)
        else:
            # Retyped since it was read
            result.skipped_count += 1
