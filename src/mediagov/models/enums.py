"""
Enums for mediagov models.

Defines enumeration types used across the application for consistent
type safety and validation.
"""

from __future__ import annotations

from enum import Enum


class BaseType(str, Enum):
    """Closed set of media base types a media type builds on."""

    GENERIC = "Generic"
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    DOCUMENT = "Document"


class MediaTypeStatus(str, Enum):
    """Lifecycle status of a media type."""

    ACTIVE = "active"
    DEPRECATED = "deprecated"
    ARCHIVED = "archived"


class FieldKind(str, Enum):
    """Variants of a media-type field."""

    TEXT = "Text"
    TEXT_AREA = "TextArea"
    NUMBER = "Number"
    DATE = "Date"
    BOOLEAN = "Boolean"
    SELECT = "Select"
    MULTI_SELECT = "MultiSelect"


class OptionSourceKind(str, Enum):
    """Where a Select/MultiSelect field takes its options from."""

    STATIC = "static"
    CATEGORY = "category"


class MediaTypeOperation(str, Enum):
    """Operations recorded in the media-type audit log."""

    CREATE = "create"
    UPDATE = "update"
    ARCHIVE = "archive"
    DEPRECATE = "deprecate"
    DELETE = "delete"
    MIGRATE = "migrate"
    SYNC_TAGS = "sync_tags"
