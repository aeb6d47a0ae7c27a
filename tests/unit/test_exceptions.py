"""
Tests for the mediagov exception hierarchy.
"""

from __future__ import annotations

import uuid

import pytest

from mediagov.exceptions import (
    DuplicateNameError,
    InvalidTransitionError,
    LockAcquisitionError,
    MediaGovError,
    MediaTypeInUseError,
    NotFoundError,
    RecordStoreError,
    TagCategoryInUseError,
    ValidationError,
)

TYPE_ID = uuid.UUID("01890a5d-ac96-774b-bcce-b302099a8057")


class TestHierarchy:
    """Every domain error derives from MediaGovError."""

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            DuplicateNameError("MediaType", "Photo"),
            NotFoundError("MediaType", TYPE_ID),
            InvalidTransitionError(TYPE_ID, "archived", "deprecated"),
            MediaTypeInUseError(TYPE_ID, 3),
            TagCategoryInUseError(TYPE_ID, [TYPE_ID]),
            LockAcquisitionError(TYPE_ID, 1.5),
            RecordStoreError(),
        ],
    )
    def test_is_mediagov_error(self, error: MediaGovError) -> None:
        assert isinstance(error, MediaGovError)
        assert str(error) == error.message


class TestMessages:
    """Messages and attributes carried by each error."""

    def test_validation_error_defaults(self) -> None:
        error = ValidationError()
        assert error.message == "Validation failed"
        assert error.field_name is None
        assert error.errors == []

    def test_validation_error_attributes(self) -> None:
        error = ValidationError(
            "fields.0: bad", field_name="fields.0", invalid_value={"a": 1}
        )
        assert error.field_name == "fields.0"
        assert error.invalid_value == {"a": 1}

    def test_duplicate_name(self) -> None:
        error = DuplicateNameError("TagCategory", "Departments")
        assert error.entity_type == "TagCategory"
        assert error.name == "Departments"
        assert "case-insensitive" in error.message

    def test_not_found_with_hint(self) -> None:
        error = NotFoundError("Tag", "intro", hint="Check the spelling")
        assert error.identifier == "intro"
        assert error.message == "Tag 'intro' not found. Check the spelling"

    def test_invalid_transition_reason(self) -> None:
        error = InvalidTransitionError(
            TYPE_ID, "active", "archived", reason="status changed concurrently"
        )
        assert error.from_status == "active"
        assert error.to_status == "archived"
        assert error.message.endswith(": status changed concurrently")

    def test_media_type_in_use(self) -> None:
        error = MediaTypeInUseError(TYPE_ID, 12)
        assert error.usage_count == 12
        assert "12 record(s)" in error.message

    def test_tag_category_in_use(self) -> None:
        other = uuid.uuid4()
        error = TagCategoryInUseError(TYPE_ID, [TYPE_ID, other])
        assert error.media_type_ids == [TYPE_ID, other]
        assert "2 media type(s)" in error.message

    def test_lock_acquisition(self) -> None:
        assert "(waited 1.5s)" in LockAcquisitionError(TYPE_ID, 1.5).message
        assert "waited" not in LockAcquisitionError(TYPE_ID).message

    def test_record_store_error(self) -> None:
        cause = RuntimeError("disk full")
        error = RecordStoreError(
            "write failed", record_id=TYPE_ID, operation="find", original_error=cause
        )
        assert error.record_id == TYPE_ID
        assert error.operation == "find"
        assert error.original_error is cause
