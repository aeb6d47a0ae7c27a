"""
Test data factories for mediagov models.
"""

from .media_record_factory import (
    MediaRecordCreateFactory,
    create_media_record_create,
)
from .media_type_factory import (
    FieldTestData,
    MediaTypeCreateFactory,
    MediaTypeFactory,
    create_media_type,
    create_media_type_create,
)
from .tag_category_factory import (
    TagCategoryCreateFactory,
    create_tag_category_create,
)

__all__ = [
    "FieldTestData",
    "MediaRecordCreateFactory",
    "MediaTypeCreateFactory",
    "MediaTypeFactory",
    "TagCategoryCreateFactory",
    "create_media_record_create",
    "create_media_type",
    "create_media_type_create",
    "create_tag_category_create",
]
