"""
Record store interface.

The governance engine never owns media records. It reaches them through
this contract: counting, fetching and paging records by media type, and conditional
single-record updates that only apply when the record still carries the
expected media type (and, optionally, the expected revision).
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, Optional

from mediagov.models.media_record import RecordSnapshot


class RecordStore(ABC):
    """
    Abstract access to the externally owned media record collection.

    Implementations must make ``conditional_update`` atomic per record and
    must not hold any store-wide lock across calls.
    """

    @abstractmethod
    async def count(self, media_type_id: uuid.UUID) -> int:
        """Count records whose media type is *media_type_id*."""
        pass

    @abstractmethod
    async def get(self, record_id: uuid.UUID) -> Optional[RecordSnapshot]:
        """Fetch one record by id, or None if it does not exist."""
        pass

    @abstractmethod
    async def find(
        self,
        media_type_id: uuid.UUID,
        *,
        after_id: Optional[uuid.UUID] = None,
        limit: int = 500,
    ) -> list[RecordSnapshot]:
        """
        Return up to *limit* records of a media type ordered by id.

        Parameters
        ----------
        media_type_id : uuid.UUID
            Media type to filter on.
        after_id : uuid.UUID | None, optional
            Keyset cursor; only records with a greater id are returned.
        limit : int, optional
            Page size (default 500).
        """
        pass

    @abstractmethod
    async def conditional_update(
        self,
        record_id: uuid.UUID,
        expected_media_type_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        expected_revision: Optional[int] = None,
    ) -> bool:
        """
        Apply *patch* to one record if it still matches the expectations.

        Parameters
        ----------
        record_id : uuid.UUID
            Record to update.
        expected_media_type_id : uuid.UUID
            The write only applies while the record has this media type.
        patch : dict[str, Any]
            Keys ``media_type_id`` and/or ``metadata`` with their new values.
        expected_revision : int | None, optional
            When given, the write also requires this revision.

        Returns
        -------
        bool
            True if the record was changed, False if the guard did not match.

        Raises
        ------
        RecordStoreError
            If the store failed to perform the write.
        """
        pass

    async def iter_batches(
        self, media_type_id: uuid.UUID, batch_size: int
    ) -> AsyncIterator[list[RecordSnapshot]]:
        """
        Stream all records of a media type in keyset-paginated batches.

        Records that leave the media type while the scan is running are
        simply not seen again; the cursor always advances.
        """
        after_id: Optional[uuid.UUID] = None
        while True:
            batch = await self.find(media_type_id, after_id=after_id, limit=batch_size)
            if not batch:
                return
            yield batch
            if len(batch) < batch_size:
                return
            after_id = batch[-1].id
