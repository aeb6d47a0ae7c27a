"""
Factory for MediaType Pydantic models using factory_boy.

Provides reusable media type definitions with sensible defaults and the
field shapes the schema registry accepts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import factory
from factory import LazyFunction, Sequence
from uuid_utils import uuid7

from mediagov.models.enums import BaseType, MediaTypeStatus
from mediagov.models.media_type import MediaType, MediaTypeCreate


def _uuid7() -> uuid.UUID:
    """Generate a UUIDv7 as a standard uuid.UUID for Pydantic compatibility."""
    return uuid.UUID(bytes=uuid7().bytes)


class MediaTypeCreateFactory(factory.Factory[MediaTypeCreate]):
    """Factory for MediaTypeCreate models."""

    class Meta:
        model = MediaTypeCreate

    name: Any = Sequence(lambda n: f"Media Type {n}")
    base_type: Any = LazyFunction(lambda: BaseType.GENERIC)
    fields: Any = LazyFunction(list)
    accepted_file_types: Any = LazyFunction(list)
    default_tags: Any = LazyFunction(list)
    include_base_fields: Any = LazyFunction(lambda: True)
    color: Any = LazyFunction(lambda: None)


class MediaTypeFactory(factory.Factory[MediaType]):
    """Factory for full MediaType read models."""

    class Meta:
        model = MediaType

    id: Any = LazyFunction(_uuid7)
    name: Any = Sequence(lambda n: f"Media Type {n}")
    base_type: Any = LazyFunction(lambda: BaseType.IMAGE)
    fields: Any = LazyFunction(list)
    accepted_file_types: Any = LazyFunction(lambda: ["image/*"])
    default_tags: Any = LazyFunction(list)
    status: Any = LazyFunction(lambda: MediaTypeStatus.ACTIVE)
    replaced_by_id: Any = LazyFunction(lambda: None)
    usage_count: Any = LazyFunction(lambda: 0)
    resolved_options: Any = LazyFunction(dict)
    created_at: Any = LazyFunction(
        lambda: datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
    )
    updated_at: Any = LazyFunction(
        lambda: datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
    )


# Convenience factory methods
def create_media_type_create(**kwargs: Any) -> MediaTypeCreate:
    """Create a MediaTypeCreate with keyword arguments."""
    result = MediaTypeCreateFactory.build(**kwargs)
    assert isinstance(result, MediaTypeCreate)
    return result


def create_media_type(**kwargs: Any) -> MediaType:
    """Create a MediaType with keyword arguments."""
    result = MediaTypeFactory.build(**kwargs)
    assert isinstance(result, MediaType)
    return result


# Common test data patterns
class FieldTestData:
    """Loose field definitions as an editor would submit them."""

    @staticmethod
    def text(name: str = "Caption", **extra: Any) -> dict[str, Any]:
        return {"name": name, "kind": "Text", **extra}

    @staticmethod
    def number(name: str = "Pages", **extra: Any) -> dict[str, Any]:
        return {"name": name, "kind": "Number", **extra}

    @staticmethod
    def static_select(
        name: str = "Status", options: list[str] | None = None, **extra: Any
    ) -> dict[str, Any]:
        return {
            "name": name,
            "kind": "Select",
            "options": options or ["Draft", "Final"],
            **extra,
        }

    @staticmethod
    def category_select(
        category_id: uuid.UUID, name: str = "Department", **extra: Any
    ) -> dict[str, Any]:
        return {
            "name": name,
            "kind": "Select",
            "tag_category_id": str(category_id),
            **extra,
        }

    @staticmethod
    def legacy_select(name: str = "Region") -> dict[str, Any]:
        """A field in the camelCase shape older editors produced."""
        return {
            "_id": "f-1",
            "name": name,
            "type": "Select",
            "useTagCategory": False,
            "options": ["North", "South"],
            "unique": False,
        }
