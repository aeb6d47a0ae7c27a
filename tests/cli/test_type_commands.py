"""
Tests for the media type CLI commands.

The governance service is replaced by a mock so the commands can be driven
through typer's CliRunner without a database.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from mediagov.cli.type_commands import type_app
from mediagov.exceptions import (
    DuplicateNameError,
    InvalidTransitionError,
    LockAcquisitionError,
    MediaTypeInUseError,
    NotFoundError,
)
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.models.media_type_event import MediaTypeEvent
from mediagov.services.default_tag_sync import TagSyncResult
from mediagov.services.migration_engine import MigrationResult
from mediagov.services.usage_tracker import FilesNeedingTags
from tests.factories import FieldTestData, create_media_type


@pytest.fixture
def runner() -> CliRunner:
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def service() -> Iterator[MagicMock]:
    """Governance service double with async methods."""
    mock = MagicMock()
    for name in (
        "list_types",
        "get_type",
        "get_type_by_name",
        "create_type",
        "update_type",
        "get_usage",
        "archive_type",
        "delete_type",
        "migrate",
        "apply_default_tags",
        "apply_all_default_tags",
        "verify_default_tags",
        "files_needing_tags_summary",
        "list_events",
    ):
        setattr(mock, name, AsyncMock())
    with patch("mediagov.cli.type_commands._service", return_value=mock):
        yield mock


class TestHelp:
    """Command discovery."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(type_app, ["--help"])
        assert result.exit_code == 0
        for command in ("list", "show", "create", "migrate", "sync-tags", "history"):
            assert command in result.stdout


class TestListAndShow:
    """Read-only commands."""

    def test_list_empty(self, runner: CliRunner, service: MagicMock) -> None:
        service.list_types.return_value = []

        result = runner.invoke(type_app, ["list"])

        assert result.exit_code == 0
        assert "No media types defined" in result.stdout
        service.list_types.assert_awaited_once_with(include_archived=True)

    def test_list_excluding_archived(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        service.list_types.return_value = [
            create_media_type(name="Invoice"),
            create_media_type(name="Photo"),
        ]

        result = runner.invoke(type_app, ["list", "-x"])

        assert result.exit_code == 0
        assert "Invoice" in result.stdout
        assert "Photo" in result.stdout
        service.list_types.assert_awaited_once_with(include_archived=False)

    def test_show_by_name(self, runner: CliRunner, service: MagicMock) -> None:
        service.get_type_by_name.return_value = create_media_type(
            name="Survey",
            fields=[FieldTestData.static_select()],
            resolved_options={"Status": ["Draft", "Final"]},
        )

        result = runner.invoke(type_app, ["show", "survey"])

        assert result.exit_code == 0
        assert "Survey" in result.stdout
        assert "Draft, Final" in result.stdout
        service.get_type_by_name.assert_awaited_once_with("survey")

    def test_show_by_uuid(self, runner: CliRunner, service: MagicMock) -> None:
        media_type = create_media_type(name="Invoice")
        service.get_type.return_value = media_type

        result = runner.invoke(type_app, ["show", str(media_type.id)])

        assert result.exit_code == 0
        service.get_type.assert_awaited_once_with(media_type.id)
        service.get_type_by_name.assert_not_awaited()

    def test_show_unknown_exits_2(self, runner: CliRunner, service: MagicMock) -> None:
        service.get_type_by_name.side_effect = NotFoundError("MediaType", "Ghost")

        result = runner.invoke(type_app, ["show", "Ghost"])

        assert result.exit_code == 2
        assert "Not Found" in result.stdout

    def test_usage(self, runner: CliRunner, service: MagicMock) -> None:
        service.get_type_by_name.return_value = create_media_type(name="Invoice")
        service.get_usage.return_value = 1234

        result = runner.invoke(type_app, ["usage", "Invoice"])

        assert result.exit_code == 0
        assert "1,234" in result.stdout

    def test_history(self, runner: CliRunner, service: MagicMock) -> None:
        media_type = create_media_type(name="Fax")
        service.get_type_by_name.return_value = media_type
        service.list_events.return_value = [
            MediaTypeEvent(
                id=uuid.uuid4(),
                media_type_id=media_type.id,
                operation=MediaTypeOperation.ARCHIVE,
                from_status=MediaTypeStatus.ACTIVE,
                to_status=MediaTypeStatus.ARCHIVED,
                performed_by="admin",
            )
        ]

        result = runner.invoke(type_app, ["history", "Fax", "--limit", "5"])

        assert result.exit_code == 0
        assert "archive" in result.stdout
        service.list_events.assert_awaited_once_with(media_type.id, limit=5)


class TestDefinitionCommands:
    """Create and update from JSON files."""

    def test_create_from_file(
        self, runner: CliRunner, service: MagicMock, tmp_path: Path
    ) -> None:
        definition = {"name": "Invoice", "default_tags": ["finance"]}
        path = tmp_path / "invoice.json"
        path.write_text(json.dumps(definition), encoding="utf-8")
        service.create_type.return_value = create_media_type(name="Invoice")

        result = runner.invoke(type_app, ["create", str(path)])

        assert result.exit_code == 0
        assert "Created media type 'Invoice'" in result.stdout
        service.create_type.assert_awaited_once_with(definition)

    def test_create_with_unreadable_file(
        self, runner: CliRunner, service: MagicMock, tmp_path: Path
    ) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(type_app, ["create", str(path)])

        assert result.exit_code == 2
        service.create_type.assert_not_awaited()

    def test_create_with_non_object(
        self, runner: CliRunner, service: MagicMock, tmp_path: Path
    ) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")

        result = runner.invoke(type_app, ["create", str(path)])

        assert result.exit_code == 2

    def test_create_duplicate_exits_3(
        self, runner: CliRunner, service: MagicMock, tmp_path: Path
    ) -> None:
        path = tmp_path / "invoice.json"
        path.write_text('{"name": "Invoice"}', encoding="utf-8")
        service.create_type.side_effect = DuplicateNameError("MediaType", "Invoice")

        result = runner.invoke(type_app, ["create", str(path)])

        assert result.exit_code == 3

    def test_update_from_file(
        self, runner: CliRunner, service: MagicMock, tmp_path: Path
    ) -> None:
        media_type = create_media_type(name="Invoice")
        service.get_type_by_name.return_value = media_type
        service.update_type.return_value = create_media_type(
            id=media_type.id, name="Supplier Invoice"
        )
        path = tmp_path / "changes.json"
        path.write_text('{"name": "Supplier Invoice"}', encoding="utf-8")

        result = runner.invoke(type_app, ["update", "Invoice", str(path)])

        assert result.exit_code == 0
        service.update_type.assert_awaited_once_with(
            media_type.id, {"name": "Supplier Invoice"}
        )


class TestLifecycleCommands:
    """Archive and delete."""

    def test_archive_twice_exits_3(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        media_type = create_media_type(name="Fax")
        service.get_type_by_name.return_value = media_type
        service.archive_type.side_effect = InvalidTransitionError(
            media_type.id, "archived", "archived"
        )

        result = runner.invoke(type_app, ["archive", "Fax"])

        assert result.exit_code == 3

    def test_delete_with_yes(self, runner: CliRunner, service: MagicMock) -> None:
        media_type = create_media_type(name="Fax")
        service.get_type_by_name.return_value = media_type

        result = runner.invoke(type_app, ["delete", "Fax", "--yes"])

        assert result.exit_code == 0
        assert "Deleted media type 'Fax'" in result.stdout
        service.delete_type.assert_awaited_once_with(media_type.id)

    def test_delete_cancelled(self, runner: CliRunner, service: MagicMock) -> None:
        service.get_type_by_name.return_value = create_media_type(name="Fax")

        result = runner.invoke(type_app, ["delete", "Fax"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        service.delete_type.assert_not_awaited()

    def test_delete_in_use_exits_3(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        media_type = create_media_type(name="Invoice")
        service.get_type_by_name.return_value = media_type
        service.delete_type.side_effect = MediaTypeInUseError(media_type.id, 12)

        result = runner.invoke(type_app, ["delete", "Invoice", "-y"])

        assert result.exit_code == 3
        assert "Conflict" in result.stdout


class TestBatchCommands:
    """Migration and default-tag sync."""

    def test_migrate(self, runner: CliRunner, service: MagicMock) -> None:
        source = create_media_type(name="OldDoc")
        target = create_media_type(name="NewDoc")
        service.get_type_by_name.side_effect = [source, target]
        service.migrate.return_value = MigrationResult(
            source_id=source.id,
            target_id=target.id,
            migrated_count=5,
            total_scanned=5,
            batches=3,
        )

        result = runner.invoke(type_app, ["migrate", "OldDoc", "NewDoc"])

        assert result.exit_code == 0
        assert "Migrated: 5" in result.stdout
        service.migrate.assert_awaited_once_with(source.id, target.id)

    def test_migrate_with_failures_suggests_rerun(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        source = create_media_type(name="OldDoc")
        target = create_media_type(name="NewDoc")
        service.get_type_by_name.side_effect = [source, target]
        service.migrate.return_value = MigrationResult(
            source_id=source.id,
            target_id=target.id,
            migrated_count=4,
            failed_ids=[uuid.uuid4()],
            total_scanned=5,
            batches=3,
        )

        result = runner.invoke(type_app, ["migrate", "OldDoc", "NewDoc"])

        assert result.exit_code == 0
        assert "Failed: 1" in result.stdout
        assert "Re-run" in result.stdout

    def test_migrate_locked_exits_4(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        source = create_media_type(name="OldDoc")
        service.get_type_by_name.side_effect = [source, create_media_type()]
        service.migrate.side_effect = LockAcquisitionError(source.id, 30.0)

        result = runner.invoke(type_app, ["migrate", "OldDoc", "NewDoc"])

        assert result.exit_code == 4
        assert "Locked" in result.stdout

    def test_sync_tags_needs_target(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        result = runner.invoke(type_app, ["sync-tags"])

        assert result.exit_code == 2
        service.apply_default_tags.assert_not_awaited()
        service.apply_all_default_tags.assert_not_awaited()

    def test_sync_tags_one_type(self, runner: CliRunner, service: MagicMock) -> None:
        media_type = create_media_type(name="Webinar")
        service.get_type_by_name.return_value = media_type
        service.apply_default_tags.return_value = TagSyncResult(
            media_type_id=media_type.id, count=4, total_files=5, tags_applied=7
        )

        result = runner.invoke(type_app, ["sync-tags", "Webinar"])

        assert result.exit_code == 0
        assert "Updated: 4 of 5" in result.stdout
        assert "Tags added: 7" in result.stdout

    def test_sync_tags_verify_only(
        self, runner: CliRunner, service: MagicMock
    ) -> None:
        media_type = create_media_type(name="Webinar")
        service.get_type_by_name.return_value = media_type
        service.verify_default_tags.return_value = 2

        result = runner.invoke(type_app, ["sync-tags", "Webinar", "--verify"])

        assert result.exit_code == 0
        assert "2 record(s)" in result.stdout
        service.apply_default_tags.assert_not_awaited()

    def test_sync_tags_all(self, runner: CliRunner, service: MagicMock) -> None:
        service.apply_all_default_tags.return_value = [
            TagSyncResult(media_type_id=uuid.uuid4(), count=1, total_files=3)
        ]

        result = runner.invoke(type_app, ["sync-tags", "--all"])

        assert result.exit_code == 0
        service.apply_all_default_tags.assert_awaited_once()
        service.get_type_by_name.assert_not_awaited()

    def test_needing_tags(self, runner: CliRunner, service: MagicMock) -> None:
        service.files_needing_tags_summary.return_value = [
            FilesNeedingTags(
                media_type_id=uuid.uuid4(), name="Webinar", count=4, total_files=5
            )
        ]

        result = runner.invoke(type_app, ["needing-tags"])

        assert result.exit_code == 0
        assert "Webinar" in result.stdout

    def test_needing_tags_none(self, runner: CliRunner, service: MagicMock) -> None:
        service.files_needing_tags_summary.return_value = []

        result = runner.invoke(type_app, ["needing-tags"])

        assert result.exit_code == 0
        assert "No media type defines default tags" in result.stdout
