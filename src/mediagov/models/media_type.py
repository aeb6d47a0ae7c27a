"""
Media type models.

Defines Pydantic models for media-type definitions: the create and update
payloads accepted by the schema registry, and the full read model returned
to callers with category-backed Select options resolved.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mediagov.models.enums import BaseType, MediaTypeStatus
from mediagov.models.fields import (
    FieldDefinition,
    is_choice_field,
    normalize_field_keys,
)
from mediagov.services.tag_normalization import comparison_key, storage_form

# MIME presets per file category, as offered by the type editor
IMAGE_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/svg+xml",
    "image/webp",
)
VIDEO_MIME_TYPES: tuple[str, ...] = (
    "video/mp4",
    "video/webm",
    "video/ogg",
    "video/quicktime",
)
AUDIO_MIME_TYPES: tuple[str, ...] = (
    "audio/mpeg",
    "audio/ogg",
    "audio/wav",
    "audio/webm",
)
DOCUMENT_MIME_TYPES: tuple[str, ...] = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
)

FILE_TYPE_PRESETS: dict[BaseType, tuple[str, ...]] = {
    BaseType.IMAGE: IMAGE_MIME_TYPES,
    BaseType.VIDEO: VIDEO_MIME_TYPES,
    BaseType.AUDIO: AUDIO_MIME_TYPES,
    BaseType.DOCUMENT: DOCUMENT_MIME_TYPES,
    BaseType.GENERIC: (
        IMAGE_MIME_TYPES + VIDEO_MIME_TYPES + AUDIO_MIME_TYPES + DOCUMENT_MIME_TYPES
    ),
}

_MIME_TOKEN = r"[a-z0-9][a-z0-9!#$&^_.+-]*"
_MIME_PATTERN_RE = re.compile(rf"^(\*/\*|{_MIME_TOKEN}/(\*|{_MIME_TOKEN}))$")


def mime_matches(pattern: str, mime_type: str) -> bool:
    """
    Check whether *mime_type* is covered by an accepted-file-type *pattern*.

    Examples
    --------
    >>> mime_matches("image/*", "image/png")
    True
    >>> mime_matches("image/png", "image/jpeg")
    False
    """
    pattern = pattern.lower()
    mime_type = mime_type.strip().lower()
    if pattern == "*/*":
        return True
    major, _, minor = pattern.partition("/")
    mime_major, _, mime_minor = mime_type.partition("/")
    if major != mime_major:
        return False
    return minor == "*" or minor == mime_minor


def _clean_name(v: str) -> str:
    name = v.strip()
    if not name:
        raise ValueError("Name cannot be blank")
    return name


def _clean_file_types(v: list[str]) -> list[str]:
    cleaned: list[str] = []
    for raw in v:
        pattern = raw.strip().lower()
        if not _MIME_PATTERN_RE.match(pattern):
            raise ValueError(f"Invalid MIME pattern '{raw}'")
        if pattern not in cleaned:
            cleaned.append(pattern)
    return cleaned


def _clean_default_tags(v: list[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in v:
        tag = storage_form(raw)
        key = comparison_key(tag)
        if not key:
            raise ValueError("Default tags cannot be blank")
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(tag)
    return cleaned


def _check_unique_field_names(fields: list[Any]) -> None:
    seen: set[str] = set()
    for field in fields:
        key = comparison_key(field.name)
        if key in seen:
            raise ValueError(f"Duplicate field name '{field.name}'")
        seen.add(key)


class MediaTypeBase(BaseModel):
    """Base model for media type definitions."""

    name: str = Field(..., min_length=1, max_length=255)
    base_type: BaseType = Field(default=BaseType.GENERIC)
    fields: list[FieldDefinition] = Field(default_factory=list)
    accepted_file_types: list[str] = Field(default_factory=list)
    default_tags: list[str] = Field(default_factory=list)
    include_base_fields: bool = Field(default=True)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim the type name."""
        return _clean_name(v)

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_legacy_fields(cls, v: Any) -> Any:
        """Accept field definitions in the legacy loose shape."""
        if isinstance(v, list):
            return [normalize_field_keys(item) for item in v]
        return v

    @field_validator("fields")
    @classmethod
    def validate_unique_field_names(cls, v: list[Any]) -> list[Any]:
        """Field names are unique within a type (case-insensitive)."""
        _check_unique_field_names(v)
        return v

    @field_validator("accepted_file_types")
    @classmethod
    def validate_file_types(cls, v: list[str]) -> list[str]:
        """Lower-case, validate and deduplicate MIME patterns."""
        return _clean_file_types(v)

    @field_validator("default_tags")
    @classmethod
    def validate_default_tags(cls, v: list[str]) -> list[str]:
        """Store default tags in storage form, deduplicated."""
        return _clean_default_tags(v)


class MediaTypeCreate(MediaTypeBase):
    """Model for creating media types."""

    @model_validator(mode="after")
    def apply_file_type_preset(self) -> MediaTypeCreate:
        """Fall back to the base type's preset when no file types are given."""
        if not self.accepted_file_types:
            self.accepted_file_types = list(FILE_TYPE_PRESETS[self.base_type])
        return self


class MediaTypeUpdate(BaseModel):
    """Model for updating media types (PATCH-style, all fields optional).

    Lifecycle fields (``status``, ``replaced_by_id``) are not updatable here.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    base_type: Optional[BaseType] = None
    fields: Optional[list[FieldDefinition]] = None
    accepted_file_types: Optional[list[str]] = None
    default_tags: Optional[list[str]] = None
    include_base_fields: Optional[bool] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        """Trim the type name."""
        return _clean_name(v) if v is not None else v

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_legacy_fields(cls, v: Any) -> Any:
        """Accept field definitions in the legacy loose shape."""
        if isinstance(v, list):
            return [normalize_field_keys(item) for item in v]
        return v

    @field_validator("fields")
    @classmethod
    def validate_unique_field_names(
        cls, v: Optional[list[Any]]
    ) -> Optional[list[Any]]:
        """Field names are unique within a type (case-insensitive)."""
        if v is not None:
            _check_unique_field_names(v)
        return v

    @field_validator("accepted_file_types")
    @classmethod
    def validate_file_types(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Lower-case, validate and deduplicate MIME patterns."""
        return _clean_file_types(v) if v is not None else v

    @field_validator("default_tags")
    @classmethod
    def validate_default_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Store default tags in storage form, deduplicated."""
        return _clean_default_tags(v) if v is not None else v


class MediaType(MediaTypeBase):
    """Full media type model with lifecycle state and resolved options."""

    id: uuid.UUID = Field(..., description="Media type UUID (UUIDv7)")
    status: MediaTypeStatus = Field(default=MediaTypeStatus.ACTIVE)
    replaced_by_id: Optional[uuid.UUID] = Field(
        default=None, description="Target type of the migration that deprecated it"
    )
    usage_count: int = Field(
        default=0, ge=0, description="Cached record count, display only"
    )
    resolved_options: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Effective option list per Select/MultiSelect field",
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def accepts_file_type(self, mime_type: str) -> bool:
        """Return True if any accepted pattern covers *mime_type*."""
        return any(
            mime_matches(pattern, mime_type) for pattern in self.accepted_file_types
        )

    def choice_fields(self) -> list[Any]:
        """Return the Select and MultiSelect fields in definition order."""
        return [field for field in self.fields if is_choice_field(field)]

    def field_names(self) -> list[str]:
        """Return the field names in definition order."""
        return [field.name for field in self.fields]
