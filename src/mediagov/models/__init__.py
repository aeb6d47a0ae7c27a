"""
Pydantic models for mediagov.

Re-exports the public model types so callers can import them from
``mediagov.models`` directly.
"""

from __future__ import annotations

from .enums import (
    BaseType,
    FieldKind,
    MediaTypeOperation,
    MediaTypeStatus,
    OptionSourceKind,
)
from .fields import (
    BooleanField,
    CategoryOptions,
    DateField,
    FieldDefinition,
    MultiSelectField,
    NumberField,
    SelectField,
    StaticOptions,
    TextAreaField,
    TextField,
    parse_field_definition,
)
from .media_record import MediaRecordCreate, RecordSnapshot
from .media_type import (
    FILE_TYPE_PRESETS,
    MediaType,
    MediaTypeCreate,
    MediaTypeUpdate,
    mime_matches,
)
from .media_type_event import MediaTypeEvent, MediaTypeEventCreate
from .tag_category import (
    CategoryDeleteResult,
    CategoryTag,
    Tag,
    TagCategory,
    TagCategoryCreate,
    TagCategoryUpdate,
    TagCreate,
)

__all__ = [
    "BaseType",
    "BooleanField",
    "CategoryDeleteResult",
    "CategoryOptions",
    "CategoryTag",
    "DateField",
    "FILE_TYPE_PRESETS",
    "FieldDefinition",
    "FieldKind",
    "MediaRecordCreate",
    "MediaType",
    "MediaTypeCreate",
    "MediaTypeEvent",
    "MediaTypeEventCreate",
    "MediaTypeOperation",
    "MediaTypeStatus",
    "MediaTypeUpdate",
    "MultiSelectField",
    "NumberField",
    "OptionSourceKind",
    "RecordSnapshot",
    "SelectField",
    "StaticOptions",
    "Tag",
    "TagCategory",
    "TagCategoryCreate",
    "TagCategoryUpdate",
    "TagCreate",
    "TextAreaField",
    "TextField",
    "mime_matches",
]
