"""
Repository layer for data access patterns.

This module provides repository interfaces and implementations following
the Repository pattern for clean separation of domain logic and data persistence.
"""

from .base import BaseSQLAlchemyRepository
from .media_record_repository import MediaRecordRepository
from .media_type_event_repository import MediaTypeEventRepository
from .media_type_repository import MediaTypeRepository
from .tag_category_repository import TagCategoryRepository
from .tag_repository import TagRepository

__all__ = [
    "BaseSQLAlchemyRepository",
    "MediaRecordRepository",
    "MediaTypeEventRepository",
    "MediaTypeRepository",
    "TagCategoryRepository",
    "TagRepository",
]
