"""
Media governance facade.

Single entry point for an outer layer (CLI, HTTP router) to the schema
registry, the tag vocabulary, and the batch engines. Each administrative
operation runs in its own transaction; batch operations manage their own
short-lived sessions.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.models.media_type import MediaType, MediaTypeCreate, MediaTypeUpdate
from mediagov.models.media_type_event import MediaTypeEvent
from mediagov.models.tag_category import (
    CategoryDeleteResult,
    Tag,
    TagCategory,
    TagCategoryCreate,
    TagCategoryUpdate,
)
from mediagov.repositories.media_type_event_repository import (
    MediaTypeEventRepository,
)
from mediagov.services.default_tag_sync import DefaultTagSync, TagSyncResult
from mediagov.services.migration_engine import MigrationEngine, MigrationResult
from mediagov.services.schema_registry import SchemaRegistry
from mediagov.services.tag_vocabulary import TagVocabularyService
from mediagov.services.usage_tracker import FilesNeedingTags, UsageTracker

logger = logging.getLogger(__name__)


class MediaGovernanceService:
    """
    Facade over the governance services.

    Parameters
    ----------
    session_factory : async_sessionmaker[AsyncSession]
        Opens one session per administrative operation.
    registry : SchemaRegistry
        Media-type definitions.
    vocabulary : TagVocabularyService
        Tags and tag categories.
    usage_tracker : UsageTracker
        Live usage counts.
    migration_engine : MigrationEngine
        Bulk record reassignment.
    tag_sync : DefaultTagSync
        Bulk default-tag application.
    event_repo : MediaTypeEventRepository
        Read access to the audit trail.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: SchemaRegistry,
        vocabulary: TagVocabularyService,
        usage_tracker: UsageTracker,
        migration_engine: MigrationEngine,
        tag_sync: DefaultTagSync,
        event_repo: MediaTypeEventRepository,
    ) -> None:
        self._session_factory = session_factory
        self.registry = registry
        self.vocabulary = vocabulary
        self.usage_tracker = usage_tracker
        self.migration_engine = migration_engine
        self.tag_sync = tag_sync
        self._event_repo = event_repo

    # -------------------------------------------------------------------
    # Media types
    # -------------------------------------------------------------------

    async def create_type(
        self, definition: MediaTypeCreate | Mapping[str, Any]
    ) -> MediaType:
        """Register a new media type."""
        async with self._session_factory() as session, session.begin():
            return await self.registry.create(session, definition)

    async def update_type(
        self,
        media_type_id: uuid.UUID,
        changes: MediaTypeUpdate | Mapping[str, Any],
    ) -> MediaType:
        """Apply a partial update to a media type."""
        async with self._session_factory() as session, session.begin():
            return await self.registry.update(session, media_type_id, changes)

    async def delete_type(self, media_type_id: uuid.UUID) -> None:
        """Delete an unused media type."""
        async with self._session_factory() as session, session.begin():
            await self.registry.delete(session, media_type_id)

    async def archive_type(self, media_type_id: uuid.UUID) -> MediaType:
        """Archive a media type."""
        async with self._session_factory() as session, session.begin():
            return await self.registry.archive(session, media_type_id)

    async def get_type(self, media_type_id: uuid.UUID) -> MediaType:
        """Get a media type with resolved options."""
        async with self._session_factory() as session:
            return await self.registry.get(session, media_type_id)

    async def get_type_by_name(self, name: str) -> MediaType:
        """Get a media type by name (case-insensitive)."""
        async with self._session_factory() as session:
            return await self.registry.get_by_name(session, name)

    async def list_types(self, *, include_archived: bool = True) -> list[MediaType]:
        """List media types ordered by name."""
        async with self._session_factory() as session:
            return await self.registry.list_types(
                session, include_archived=include_archived
            )

    async def validate_metadata(
        self, media_type_id: uuid.UUID, metadata: Mapping[str, Any]
    ) -> list[str]:
        """Check record metadata against a media type's fields."""
        async with self._session_factory() as session:
            return await self.registry.validate_metadata(
                session, media_type_id, metadata
            )

    async def get_usage(self, media_type_id: uuid.UUID) -> int:
        """
        Live usage count of a media type; the cached count is refreshed too.
        """
        async with self._session_factory() as session, session.begin():
            await self.registry.get(session, media_type_id)
            return await self.usage_tracker.refresh_cached_count(
                session, media_type_id
            )

    async def list_events(
        self, media_type_id: uuid.UUID, *, limit: int = 50
    ) -> list[MediaTypeEvent]:
        """Audit trail of a media type, newest first."""
        async with self._session_factory() as session:
            events = await self._event_repo.list_for_media_type(
                session, media_type_id, limit=limit
            )
            return [MediaTypeEvent.model_validate(event) for event in events]

    # -------------------------------------------------------------------
    # Batch operations
    # -------------------------------------------------------------------

    async def migrate(
        self, source_id: uuid.UUID, target_id: uuid.UUID
    ) -> MigrationResult:
        """Move all records of one type to another and deprecate the source."""
        return await self.migration_engine.migrate(source_id, target_id)

    async def apply_default_tags(self, media_type_id: uuid.UUID) -> TagSyncResult:
        """Append missing default tags to every record of a type."""
        return await self.tag_sync.apply_default_tags(media_type_id)

    async def apply_all_default_tags(self) -> list[TagSyncResult]:
        """Apply default tags for every type that has any."""
        return await self.tag_sync.apply_all_default_tags()

    async def verify_default_tags(self, media_type_id: uuid.UUID) -> int:
        """Count records of a type still missing a default tag."""
        return await self.tag_sync.verify(media_type_id)

    async def files_needing_tags_summary(self) -> list[FilesNeedingTags]:
        """Tag-sync eligibility of every type with default tags."""
        async with self._session_factory() as session:
            return await self.usage_tracker.files_needing_tags_summary(session)

    # -------------------------------------------------------------------
    # Tags and tag categories
    # -------------------------------------------------------------------

    async def create_tag(self, name: str) -> Tag:
        """Add a tag to the global vocabulary."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.create_tag(session, name)

    async def rename_tag(self, tag_id: uuid.UUID, new_name: str) -> Tag:
        """Rename a vocabulary tag."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.rename_tag(session, tag_id, new_name)

    async def delete_tag(self, tag_id: uuid.UUID) -> None:
        """Remove a vocabulary tag."""
        async with self._session_factory() as session, session.begin():
            await self.vocabulary.delete_tag(session, tag_id)

    async def list_tags(self) -> list[Tag]:
        """List the global vocabulary."""
        async with self._session_factory() as session:
            return await self.vocabulary.list_tags(session)

    async def create_category(
        self, data: TagCategoryCreate | Mapping[str, Any]
    ) -> TagCategory:
        """Create (or reactivate) a tag category."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.create_category(session, data)

    async def update_category(
        self,
        category_id: uuid.UUID,
        changes: TagCategoryUpdate | Mapping[str, Any],
    ) -> TagCategory:
        """Update a tag category."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.update_category(session, category_id, changes)

    async def get_category(self, category_id: uuid.UUID) -> TagCategory:
        """Get a tag category with its tags."""
        async with self._session_factory() as session:
            return await self.vocabulary.get_category(session, category_id)

    async def list_categories(
        self, *, include_inactive: bool = False
    ) -> list[TagCategory]:
        """List tag categories."""
        async with self._session_factory() as session:
            return await self.vocabulary.list_categories(
                session, include_inactive=include_inactive
            )

    async def add_tag_to_category(
        self, category_id: uuid.UUID, tag_name: str
    ) -> TagCategory:
        """Add a tag to a category."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.add_tag_to_category(
                session, category_id, tag_name
            )

    async def remove_tag_from_category(
        self, category_id: uuid.UUID, tag_id: uuid.UUID
    ) -> TagCategory:
        """Remove a tag from a category."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.remove_tag_from_category(
                session, category_id, tag_id
            )

    async def delete_category(
        self,
        category_id: uuid.UUID,
        *,
        hard_delete: bool = False,
        cascade: bool = False,
    ) -> CategoryDeleteResult:
        """Soft- or hard-delete a tag category."""
        async with self._session_factory() as session, session.begin():
            return await self.vocabulary.delete_category(
                session, category_id, hard=hard_delete, cascade=cascade
            )

    async def resolve_options(self, category_id: uuid.UUID) -> list[str]:
        """Current option list provided by a category."""
        async with self._session_factory() as session:
            return await self.vocabulary.resolve_options(session, category_id)

