"""
Migration engine for moving records between media types.

A migration re-points every record of a source media type at a target media
type, then deprecates the source in favour of the target. Records are
streamed in keyset-paginated batches and each one is moved with a
conditional update guarded by its current media type and revision, so:

- a record already moved (by an earlier, interrupted run or by someone
  else) is never selected or overwritten, and retries are no-ops;
- a failure on one record is reported in ``failed_ids`` and does not stop
  the batch;
- cancelling between batches leaves every record either moved or untouched.

Migrations of the same source are serialized through an in-process advisory
lock registry.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.exceptions import (
    InvalidTransitionError,
    LockAcquisitionError,
    NotFoundError,
    RecordStoreError,
    ValidationError,
)
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.repositories.media_type_repository import MediaTypeRepository
from mediagov.services.interfaces.record_store import RecordStore
from mediagov.services.lifecycle import MediaTypeLifecycle
from mediagov.services.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """Result of a migration run."""

    source_id: uuid.UUID
    target_id: uuid.UUID
    migrated_count: int = 0
    failed_ids: list[uuid.UUID] = field(default_factory=list)
    skipped_count: int = 0
    total_scanned: int = 0
    batches: int = 0

    @property
    def has_failures(self) -> bool:
        """True if at least one record could not be written."""
        return bool(self.failed_ids)


class MigrationLockRegistry:
    """
    Advisory per-key locks for migrations running in this process.

    Locks are created on first use and dropped again once nobody holds or
    waits for them.

    Examples
    --------
    >>> locks = MigrationLockRegistry()
    >>> async with locks.hold(source_id, timeout=30):
    ...     ...  # migrate
    """

    def __init__(self) -> None:
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self._users: dict[uuid.UUID, int] = {}

    def is_locked(self, key: uuid.UUID) -> bool:
        """Check whether a migration of *key* is in progress."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(
        self, key: uuid.UUID, timeout: Optional[float] = None
    ) -> AsyncIterator[None]:
        """
        Hold the lock for *key* for the duration of the block.

        Raises
        ------
        LockAcquisitionError
            If the lock could not be acquired within *timeout* seconds.
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout)
            except asyncio.TimeoutError:
                raise LockAcquisitionError(key, timeout) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class MigrationEngine:
    """
    Bulk reassignment of records from one media type to another.

    Parameters
    ----------
    record_store : RecordStore
        Store holding the records.
    media_type_repo : MediaTypeRepository
        Repository for the media type definitions.
    lifecycle : MediaTypeLifecycle
        Performs the deprecation and writes the audit events.
    usage_tracker : UsageTracker
        Live usage counts written back after the run.
    session_factory : async_sessionmaker[AsyncSession]
        Opens the short sessions used for validation and the final update.
    lock_registry : MigrationLockRegistry | None, optional
        Shared per-source lock registry (a private one when omitted).
    batch_size : int, optional
        Records per batch (default 500).
    lock_timeout : float | None, optional
        Seconds to wait for a running migration of the same source
        (default 30; ``None`` waits forever).
    """

    def __init__(
        self,
        record_store: RecordStore,
        media_type_repo: MediaTypeRepository,
        lifecycle: MediaTypeLifecycle,
        usage_tracker: UsageTracker,
        session_factory: async_sessionmaker[AsyncSession],
        lock_registry: Optional[MigrationLockRegistry] = None,
        batch_size: int = 500,
        lock_timeout: Optional[float] = 30.0,
    ) -> None:
        self._record_store = record_store
        self._media_type_repo = media_type_repo
        self._lifecycle = lifecycle
        self._usage_tracker = usage_tracker
        self._session_factory = session_factory
        self._lock_registry = lock_registry or MigrationLockRegistry()
        self._batch_size = batch_size
        self._lock_timeout = lock_timeout

    async def migrate(
        self, source_id: uuid.UUID, target_id: uuid.UUID
    ) -> MigrationResult:
        """
        Move every record of *source_id* to *target_id* and deprecate the source.

        Parameters
        ----------
        source_id : uuid.UUID
            Media type whose records are moved.
        target_id : uuid.UUID
            Active media type receiving the records.

        Returns
        -------
        MigrationResult
            Counts for this call only; ``failed_ids`` lists records whose
            write failed in the store or that were edited during the run
            and are still on the source.

        Raises
        ------
        ValidationError
            If source and target are the same type.
        NotFoundError
            If either type does not exist.
        InvalidTransitionError
            If the target is not active, the source is archived, or the
            source was already deprecated in favour of another type.
        LockAcquisitionError
            If another migration of the source holds the lock too long.
        """
        if source_id == target_id:
            raise ValidationError(
                "Source and target media types must differ",
                field_name="target_id",
                invalid_value=str(target_id),
            )
        async with self._lock_registry.hold(source_id, self._lock_timeout):
            await self._validate(source_id, target_id)
            result = MigrationResult(source_id=source_id, target_id=target_id)
            logger.info("Migrating records of %s to %s", source_id, target_id)

            async for batch in self._record_store.iter_batches(
                source_id, self._batch_size
            ):
                result.batches += 1
                for record in batch:
                    result.total_scanned += 1
                    try:
                        changed = await self._record_store.conditional_update(
                            record.id,
                            source_id,
                            {"media_type_id": target_id},
                            expected_revision=record.revision,
                        )
                    except RecordStoreError as e:
                        logger.warning("Failed to migrate record %s: %s", record.id, e)
                        result.failed_ids.append(record.id)
                        continue
                    if changed:
                        result.migrated_count += 1
                    elif await self._still_on_source(record.id, source_id):
                        logger.warning(
                            "Record %s was modified during migration", record.id
                        )
                        result.failed_ids.append(record.id)
                    else:
                        result.skipped_count += 1
                logger.debug(
                    "Batch %d done: %d migrated so far",
                    result.batches,
                    result.migrated_count,
                )
                await asyncio.sleep(0)

            await self._finish(result)

        logger.info(
            "Migration %s -> %s: %d migrated, %d skipped, %d failed",
            source_id,
            target_id,
            result.migrated_count,
            result.skipped_count,
            len(result.failed_ids),
        )
        return result

    async def _still_on_source(
        self, record_id: uuid.UUID, source_id: uuid.UUID
    ) -> bool:
        current = await self._record_store.get(record_id)
        return current is not None and current.media_type_id == source_id

    async def _validate(self, source_id: uuid.UUID, target_id: uuid.UUID) -> None:
        async with self._session_factory() as session:
            source = await self._media_type_repo.get(session, source_id)
            if source is None:
                raise NotFoundError("MediaType", source_id)
            target = await self._media_type_repo.get(session, target_id)
            if target is None:
                raise NotFoundError("MediaType", target_id)

            if target.status != MediaTypeStatus.ACTIVE.value:
                raise InvalidTransitionError(
                    target_id,
                    target.status,
                    "migration target",
                    reason="records can only be migrated into an active media type",
                )
            if source.status == MediaTypeStatus.ARCHIVED.value:
                raise InvalidTransitionError(
                    source_id,
                    source.status,
                    MediaTypeStatus.DEPRECATED.value,
                    reason="archived media types cannot be migrated",
                )
            if (
                source.status == MediaTypeStatus.DEPRECATED.value
                and source.replaced_by_id != target_id
            ):
                raise InvalidTransitionError(
                    source_id,
                    source.status,
                    MediaTypeStatus.DEPRECATED.value,
                    reason=f"already replaced by '{source.replaced_by_id}'",
                )

    async def _finish(self, result: MigrationResult) -> None:
        source_count = await self._usage_tracker.usage_count(result.source_id)
        target_count = await self._usage_tracker.usage_count(result.target_id)

        async with self._session_factory() as session, session.begin():
            await self._lifecycle.deprecate(
                session,
                result.source_id,
                result.target_id,
                details={"reason": "migration"},
            )
            await self._media_type_repo.set_usage_count(
                session, result.source_id, source_count
            )
            await self._media_type_repo.set_usage_count(
                session, result.target_id, target_count
            )
            await self._lifecycle.log_event(
                session,
                result.source_id,
                MediaTypeOperation.MIGRATE,
                details={
                    "target_id": str(result.target_id),
                    "migrated_count": result.migrated_count,
                    "skipped_count": result.skipped_count,
                    "failed_ids": [str(record_id) for record_id in result.failed_ids],
                    "total_scanned": result.total_scanned,
                },
            )
