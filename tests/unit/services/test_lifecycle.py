"""
Unit tests for the media type lifecycle state machine.

Repositories are mocked; these tests cover the transition table, the
compare-and-set failure path, and the deletion guard.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from mediagov.exceptions import (
    InvalidTransitionError,
    MediaTypeInUseError,
    NotFoundError,
)
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.services.lifecycle import ALLOWED_TRANSITIONS, MediaTypeLifecycle

TYPE_ID = uuid.UUID("01890a5d-ac96-774b-bcce-b302099a8057")


@pytest.fixture
def media_type_row() -> MagicMock:
    row = MagicMock()
    row.id = TYPE_ID
    row.name = "Invoice"
    row.status = "active"
    row.replaced_by_id = None
    return row


@pytest.fixture
def mock_media_type_repo(media_type_row: MagicMock) -> AsyncMock:
    repo = AsyncMock()
    repo.get.return_value = media_type_row
    repo.compare_and_set_status.return_value = True
    repo.clear_replaced_by.return_value = 0
    return repo


@pytest.fixture
def mock_event_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_usage_tracker() -> AsyncMock:
    tracker = AsyncMock()
    tracker.usage_count.return_value = 0
    return tracker


@pytest.fixture
def mock_session() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def lifecycle(
    mock_media_type_repo: AsyncMock,
    mock_event_repo: AsyncMock,
    mock_usage_tracker: AsyncMock,
) -> MediaTypeLifecycle:
    return MediaTypeLifecycle(
        media_type_repo=mock_media_type_repo,
        event_repo=mock_event_repo,
        usage_tracker=mock_usage_tracker,
        performed_by="tester",
    )


class TestTransitionTable:
    """The allowed moves between statuses."""

    @pytest.mark.parametrize(
        "from_status,to_status,allowed",
        [
            ("active", "deprecated", True),
            ("active", "archived", True),
            ("deprecated", "archived", True),
            ("deprecated", "active", False),
            ("archived", "active", False),
            ("archived", "deprecated", False),
            ("active", "active", False),
        ],
    )
    def test_can_transition(
        self, from_status: str, to_status: str, allowed: bool
    ) -> None:
        assert MediaTypeLifecycle.can_transition(from_status, to_status) is allowed

    def test_archived_is_terminal(self) -> None:
        assert ALLOWED_TRANSITIONS[MediaTypeStatus.ARCHIVED] == frozenset()


@pytest.mark.asyncio
class TestArchive:
    """Archiving through compare-and-set."""

    async def test_archive_writes_event(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_media_type_repo: AsyncMock,
        mock_event_repo: AsyncMock,
    ) -> None:
        await lifecycle.archive(mock_session, TYPE_ID)

        mock_media_type_repo.compare_and_set_status.assert_awaited_once_with(
            mock_session,
            TYPE_ID,
            expected_status="active",
            new_status="archived",
            replaced_by_id=None,
        )
        event = mock_event_repo.create.await_args.kwargs["obj_in"]
        assert event.operation == MediaTypeOperation.ARCHIVE
        assert event.from_status == MediaTypeStatus.ACTIVE
        assert event.to_status == MediaTypeStatus.ARCHIVED
        assert event.performed_by == "tester"

    async def test_archive_archived_rejected(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        media_type_row: MagicMock,
        mock_media_type_repo: AsyncMock,
    ) -> None:
        media_type_row.status = "archived"
        with pytest.raises(InvalidTransitionError):
            await lifecycle.archive(mock_session, TYPE_ID)
        mock_media_type_repo.compare_and_set_status.assert_not_awaited()

    async def test_lost_race_raises(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_media_type_repo: AsyncMock,
        mock_event_repo: AsyncMock,
    ) -> None:
        mock_media_type_repo.compare_and_set_status.return_value = False
        with pytest.raises(InvalidTransitionError, match="concurrently"):
            await lifecycle.archive(mock_session, TYPE_ID)
        mock_event_repo.create.assert_not_awaited()

    async def test_missing_type(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_media_type_repo: AsyncMock,
    ) -> None:
        mock_media_type_repo.get.return_value = None
        with pytest.raises(NotFoundError):
            await lifecycle.archive(mock_session, TYPE_ID)


@pytest.mark.asyncio
class TestDeprecate:
    """Deprecation is driven by migrations."""

    async def test_self_replacement_rejected(
        self, lifecycle: MediaTypeLifecycle, mock_session: AsyncMock
    ) -> None:
        with pytest.raises(InvalidTransitionError, match="replace itself"):
            await lifecycle.deprecate(mock_session, TYPE_ID, TYPE_ID)

    async def test_deprecate_records_replacement(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_media_type_repo: AsyncMock,
        mock_event_repo: AsyncMock,
    ) -> None:
        target = uuid.uuid4()
        await lifecycle.deprecate(mock_session, TYPE_ID, target)

        kwargs = mock_media_type_repo.compare_and_set_status.await_args.kwargs
        assert kwargs["new_status"] == "deprecated"
        assert kwargs["replaced_by_id"] == target
        event = mock_event_repo.create.await_args.kwargs["obj_in"]
        assert event.details["replaced_by_id"] == str(target)

    async def test_repeat_with_same_target_is_noop(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        media_type_row: MagicMock,
        mock_media_type_repo: AsyncMock,
        mock_event_repo: AsyncMock,
    ) -> None:
        target = uuid.uuid4()
        media_type_row.status = "deprecated"
        media_type_row.replaced_by_id = target

        result = await lifecycle.deprecate(mock_session, TYPE_ID, target)

        assert result is media_type_row
        mock_media_type_repo.compare_and_set_status.assert_not_awaited()
        mock_event_repo.create.assert_not_awaited()


@pytest.mark.asyncio
class TestDelete:
    """Deletion guard on live usage."""

    async def test_in_use_rejected(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_usage_tracker: AsyncMock,
        mock_media_type_repo: AsyncMock,
    ) -> None:
        mock_usage_tracker.usage_count.return_value = 4
        with pytest.raises(MediaTypeInUseError) as exc_info:
            await lifecycle.delete(mock_session, TYPE_ID)
        assert exc_info.value.usage_count == 4
        mock_media_type_repo.delete.assert_not_awaited()

    async def test_unused_deleted_with_event(
        self,
        lifecycle: MediaTypeLifecycle,
        mock_session: AsyncMock,
        mock_media_type_repo: AsyncMock,
        mock_event_repo: AsyncMock,
    ) -> None:
        await lifecycle.delete(mock_session, TYPE_ID)

        mock_media_type_repo.clear_replaced_by.assert_awaited_once_with(
            mock_session, TYPE_ID
        )
        mock_media_type_repo.delete.assert_awaited_once_with(mock_session, id=TYPE_ID)
        event = mock_event_repo.create.await_args.kwargs["obj_in"]
        assert event.operation == MediaTypeOperation.DELETE
        assert event.details["name"] == "Invoice"
