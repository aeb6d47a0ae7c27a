"""
Tests for DefaultTagSync and the tag-sync eligibility summary, run against a
SQLite database.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import pytest

from mediagov.container import Container
from mediagov.exceptions import NotFoundError, RecordStoreError
from mediagov.models.enums import MediaTypeOperation
from mediagov.repositories.media_record_repository import MediaRecordRepository
from mediagov.services.default_tag_sync import DefaultTagSync
from mediagov.services.governance import MediaGovernanceService
from mediagov.services.tag_normalization import TagNormalizationService

pytestmark = pytest.mark.asyncio

WEBINAR_RECORDS: list[dict[str, Any]] = [
    {"title": "Kickoff", "tags": ["intro"]},
    {"title": "Complete", "tags": ["Intro", "webinar"]},
    {"title": "Untagged"},
    {"title": "Legacy", "tags": "intro,webinar"},
    {"title": "Other", "tags": ["Other"]},
]


@pytest.fixture
async def webinar_type_id(governance: MediaGovernanceService) -> uuid.UUID:
    """A media type with default tags Intro and Webinar."""
    media_type = await governance.create_type(
        {"name": "Webinar Recording", "default_tags": ["Intro", "Webinar"]}
    )
    return media_type.id


class TestApplyDefaultTags:
    """Appending missing default tags to every record of a type."""

    async def test_appends_only_missing_tags(
        self,
        governance: MediaGovernanceService,
        record_store: MediaRecordRepository,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        records = await seed_records(webinar_type_id, WEBINAR_RECORDS)

        result = await governance.apply_default_tags(webinar_type_id)

        assert result.count == 4
        assert result.tags_applied == 7
        assert result.total_files == 5
        assert result.failed_ids == []

        tags = []
        for record in records:
            stored = await record_store.get(record.id)
            assert stored is not None
            tags.append(stored.metadata["tags"])
            assert stored.metadata["title"] == record.metadata["title"]
        assert tags == [
            ["intro", "Webinar"],
            ["Intro", "webinar"],
            ["Intro", "Webinar"],
            ["Intro", "Webinar"],
            ["Other", "Intro", "Webinar"],
        ]

    async def test_unchanged_record_keeps_revision(
        self,
        governance: MediaGovernanceService,
        record_store: MediaRecordRepository,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        complete, partial = await seed_records(
            webinar_type_id, [{"tags": ["Webinar", "INTRO"]}, {"tags": []}]
        )

        await governance.apply_default_tags(webinar_type_id)

        assert (await record_store.get(complete.id)).revision == complete.revision
        assert (await record_store.get(partial.id)).revision == partial.revision + 1

    async def test_spacing_variant_is_a_different_tag(
        self,
        governance: MediaGovernanceService,
        record_store: MediaRecordRepository,
        seed_records,
    ) -> None:
        media_type = await governance.create_type(
            {"name": "Product Image", "default_tags": ["product image"]}
        )
        (record,) = await seed_records(media_type.id, [{"tags": ["Product  Image"]}])

        result = await governance.apply_default_tags(media_type.id)

        assert result.count == 1
        stored = await record_store.get(record.id)
        assert stored.metadata["tags"] == ["Product  Image", "product image"]

    async def test_second_run_changes_nothing(
        self,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        await seed_records(webinar_type_id, WEBINAR_RECORDS)
        await governance.apply_default_tags(webinar_type_id)

        again = await governance.apply_default_tags(webinar_type_id)

        assert again.count == 0
        assert again.tags_applied == 0
        assert again.total_files == 5

    async def test_event_recorded(
        self,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        await seed_records(webinar_type_id, WEBINAR_RECORDS)
        await governance.apply_default_tags(webinar_type_id)

        events = await governance.list_events(webinar_type_id)
        sync_events = [
            event for event in events if event.operation == MediaTypeOperation.SYNC_TAGS
        ]
        assert len(sync_events) == 1
        assert sync_events[0].details["count"] == 4
        assert sync_events[0].details["default_tags"] == ["Intro", "Webinar"]

    async def test_type_without_default_tags(
        self, governance: MediaGovernanceService, seed_records
    ) -> None:
        media_type = await governance.create_type({"name": "Plain"})
        await seed_records(media_type.id, count=3)

        result = await governance.apply_default_tags(media_type.id)

        assert result.count == 0
        assert result.total_files == 0
        assert await governance.verify_default_tags(media_type.id) == 0

    async def test_unknown_type(self, governance: MediaGovernanceService) -> None:
        with pytest.raises(NotFoundError):
            await governance.apply_default_tags(uuid.uuid4())

    async def test_other_types_untouched(
        self,
        governance: MediaGovernanceService,
        record_store: MediaRecordRepository,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        other = await governance.create_type({"name": "Podcast"})
        (untouched,) = await seed_records(other.id, [{"tags": []}])
        await seed_records(webinar_type_id, [{"tags": []}])

        await governance.apply_default_tags(webinar_type_id)

        stored = await record_store.get(untouched.id)
        assert stored is not None
        assert stored.metadata == {"tags": []}


class TestVerifyAndSummary:
    """Read-only eligibility checks."""

    async def test_verify_counts_records_needing_tags(
        self,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        await seed_records(webinar_type_id, WEBINAR_RECORDS)

        assert await governance.verify_default_tags(webinar_type_id) == 4
        await governance.apply_default_tags(webinar_type_id)
        assert await governance.verify_default_tags(webinar_type_id) == 0

    async def test_summary_lists_types_with_default_tags(
        self,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        await governance.create_type({"name": "Plain"})
        await seed_records(webinar_type_id, WEBINAR_RECORDS)

        summary = await governance.files_needing_tags_summary()

        assert len(summary) == 1
        assert summary[0].media_type_id == webinar_type_id
        assert summary[0].name == "Webinar Recording"
        assert summary[0].count == 4
        assert summary[0].total_files == 5


class TestApplyAll:
    """Syncing every type that declares default tags."""

    async def test_runs_for_each_type_with_default_tags(
        self,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        podcast = await governance.create_type(
            {"name": "Podcast", "default_tags": ["Audio"]}
        )
        plain = await governance.create_type({"name": "Plain"})
        await seed_records(webinar_type_id, [{}])
        await seed_records(podcast.id, [{}, {"tags": ["audio"]}])
        await seed_records(plain.id, [{}])

        results = await governance.apply_all_default_tags()

        by_type = {result.media_type_id: result for result in results}
        assert set(by_type) == {webinar_type_id, podcast.id}
        assert by_type[webinar_type_id].count == 1
        assert by_type[podcast.id].count == 1
        assert by_type[podcast.id].total_files == 2


class FailingRecordStore(MediaRecordRepository):
    """Fails every write to one record."""

    def __init__(self, session_factory, broken_id: uuid.UUID) -> None:
        super().__init__(session_factory)
        self.broken_id = broken_id

    async def conditional_update(
        self,
        record_id: uuid.UUID,
        expected_media_type_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        expected_revision: Optional[int] = None,
    ) -> bool:
        if record_id == self.broken_id:
            raise RecordStoreError("locked", record_id=record_id)
        return await super().conditional_update(
            record_id,
            expected_media_type_id,
            patch,
            expected_revision=expected_revision,
        )


class EditingRecordStore(MediaRecordRepository):
    """Edits one record's metadata just before the sync writes it."""

    def __init__(self, session_factory, edited_id: uuid.UUID) -> None:
        super().__init__(session_factory)
        self.edited_id = edited_id

    async def conditional_update(
        self,
        record_id: uuid.UUID,
        expected_media_type_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        expected_revision: Optional[int] = None,
    ) -> bool:
        if record_id == self.edited_id and expected_revision is not None:
            await super().conditional_update(
                record_id, expected_media_type_id, {"metadata": {"title": "Edited"}}
            )
        return await super().conditional_update(
            record_id,
            expected_media_type_id,
            patch,
            expected_revision=expected_revision,
        )


class TestRecordFailures:
    """A failing record is reported and the rest are still tagged."""

    async def test_failed_record_reported(
        self,
        test_container: Container,
        governance: MediaGovernanceService,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        records = await seed_records(webinar_type_id, WEBINAR_RECORDS)
        broken = records[0]
        sync = DefaultTagSync(
            record_store=FailingRecordStore(test_container.session_factory, broken.id),
            media_type_repo=test_container.create_media_type_repository(),
            lifecycle=test_container.create_lifecycle(),
            session_factory=test_container.session_factory,
            normalizer=TagNormalizationService(),
            batch_size=2,
        )

        result = await sync.apply_default_tags(webinar_type_id)

        assert result.failed_ids == [broken.id]
        assert result.count == 3
        assert await governance.verify_default_tags(webinar_type_id) == 1

    async def test_record_edited_mid_run_reported(
        self,
        test_container: Container,
        governance: MediaGovernanceService,
        record_store: MediaRecordRepository,
        seed_records,
        webinar_type_id: uuid.UUID,
    ) -> None:
        records = await seed_records(webinar_type_id, WEBINAR_RECORDS)
        edited = records[2]
        sync = DefaultTagSync(
            record_store=EditingRecordStore(test_container.session_factory, edited.id),
            media_type_repo=test_container.create_media_type_repository(),
            lifecycle=test_container.create_lifecycle(),
            session_factory=test_container.session_factory,
            batch_size=2,
        )

        result = await sync.apply_default_tags(webinar_type_id)

        assert result.failed_ids == [edited.id]
        assert result.skipped_count == 0
        assert result.count == 3

        retry = await governance.apply_default_tags(webinar_type_id)
        assert retry.count == 1
        stored = await record_store.get(edited.id)
        assert stored.metadata == {"title": "Edited", "tags": ["Intro", "Webinar"]}
