"""
Dependency Injection Container for mediagov.

This module provides a centralized container for managing dependencies across
the application. It implements a lightweight dependency injection pattern that:

- Provides factory methods for creating repository instances (transient)
- Provides factory methods for creating wired services (transient)
- Manages process-wide singletons (session factory, record store, migration
  lock registry) via cached properties
- Enables easy mock injection for testing

Usage
-----
    >>> from mediagov.container import container
    >>> governance = container.create_governance_service()
    >>> await governance.list_types()

Design Principles
-----------------
- Repository and service factories return new instances each call
- The migration lock registry is a singleton so every engine built by the
  container serializes migrations of the same source
- Container can be reset for testing isolation
"""

from __future__ import annotations

from functools import cached_property
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.config.database import DatabaseManager, db_manager
from mediagov.config.settings import Settings, settings
from mediagov.repositories import (
    MediaRecordRepository,
    MediaTypeEventRepository,
    MediaTypeRepository,
    TagCategoryRepository,
    TagRepository,
)
from mediagov.services.default_tag_sync import DefaultTagSync
from mediagov.services.governance import MediaGovernanceService
from mediagov.services.interfaces.record_store import RecordStore
from mediagov.services.lifecycle import MediaTypeLifecycle
from mediagov.services.migration_engine import MigrationEngine, MigrationLockRegistry
from mediagov.services.schema_registry import SchemaRegistry
from mediagov.services.tag_normalization import TagNormalizationService
from mediagov.services.tag_vocabulary import TagVocabularyService
from mediagov.services.usage_tracker import UsageTracker


class Container:
    """
    Dependency injection container for mediagov.

    Parameters
    ----------
    app_settings : Settings | None, optional
        Settings to wire services with (the global settings by default).
    database : DatabaseManager | None, optional
        Database manager providing the session factory (the global one by
        default).

    Examples
    --------
    Creating repositories (transient - new instance each call):

        >>> container = Container()
        >>> repo1 = container.create_media_type_repository()
        >>> repo2 = container.create_media_type_repository()
        >>> repo1 is repo2
        False

    Notes
    -----
    Repository factory methods follow the naming convention
    ``create_<entity>_repository()`` and return a new instance each call.
    """

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        database: Optional[DatabaseManager] = None,
    ) -> None:
        self._settings = app_settings or settings
        self._database = database or db_manager

    @property
    def settings(self) -> Settings:
        """Settings the container wires services with."""
        return self._settings

    # -------------------------------------------------------------------------
    # Repository Factory Methods (Transient - new instance per call)
    # -------------------------------------------------------------------------

    def create_media_type_repository(self) -> MediaTypeRepository:
        """Create a new MediaTypeRepository instance."""
        return MediaTypeRepository()

    def create_tag_repository(self) -> TagRepository:
        """Create a new TagRepository instance."""
        return TagRepository()

    def create_tag_category_repository(self) -> TagCategoryRepository:
        """Create a new TagCategoryRepository instance."""
        return TagCategoryRepository()

    def create_media_type_event_repository(self) -> MediaTypeEventRepository:
        """Create a new MediaTypeEventRepository instance."""
        return MediaTypeEventRepository()

    # -------------------------------------------------------------------------
    # Service Factory Methods (Transient - new instance per call)
    # -------------------------------------------------------------------------

    def create_usage_tracker(self) -> UsageTracker:
        """Create a UsageTracker over the record store."""
        return UsageTracker(
            record_store=self.record_store,
            media_type_repo=self.create_media_type_repository(),
            session_factory=self.session_factory,
            normalizer=TagNormalizationService(),
            batch_size=self._settings.batch_size,
        )

    def create_lifecycle(self) -> MediaTypeLifecycle:
        """Create a MediaTypeLifecycle with wired dependencies."""
        return MediaTypeLifecycle(
            media_type_repo=self.create_media_type_repository(),
            event_repo=self.create_media_type_event_repository(),
            usage_tracker=self.create_usage_tracker(),
            performed_by=self._settings.performed_by,
        )

    def create_tag_vocabulary_service(self) -> TagVocabularyService:
        """Create a TagVocabularyService with wired dependencies."""
        return TagVocabularyService(
            tag_repo=self.create_tag_repository(),
            category_repo=self.create_tag_category_repository(),
            media_type_repo=self.create_media_type_repository(),
            event_repo=self.create_media_type_event_repository(),
            normalizer=TagNormalizationService(),
            performed_by=self._settings.performed_by,
        )

    def create_schema_registry(self) -> SchemaRegistry:
        """Create a SchemaRegistry with wired dependencies."""
        return SchemaRegistry(
            media_type_repo=self.create_media_type_repository(),
            vocabulary=self.create_tag_vocabulary_service(),
            lifecycle=self.create_lifecycle(),
            usage_tracker=self.create_usage_tracker(),
        )

    def create_migration_engine(self) -> MigrationEngine:
        """
        Create a MigrationEngine sharing the container's lock registry.

        Returns
        -------
        MigrationEngine
            Engine configured with ``batch_size`` and
            ``migration_lock_timeout`` from settings.
        """
        return MigrationEngine(
            record_store=self.record_store,
            media_type_repo=self.create_media_type_repository(),
            lifecycle=self.create_lifecycle(),
            usage_tracker=self.create_usage_tracker(),
            session_factory=self.session_factory,
            lock_registry=self.migration_lock_registry,
            batch_size=self._settings.batch_size,
            lock_timeout=self._settings.migration_lock_timeout,
        )

    def create_default_tag_sync(self) -> DefaultTagSync:
        """Create a DefaultTagSync with wired dependencies."""
        return DefaultTagSync(
            record_store=self.record_store,
            media_type_repo=self.create_media_type_repository(),
            lifecycle=self.create_lifecycle(),
            session_factory=self.session_factory,
            normalizer=TagNormalizationService(),
            batch_size=self._settings.batch_size,
        )

    def create_governance_service(self) -> MediaGovernanceService:
        """Create the governance facade with every service wired."""
        return MediaGovernanceService(
            session_factory=self.session_factory,
            registry=self.create_schema_registry(),
            vocabulary=self.create_tag_vocabulary_service(),
            usage_tracker=self.create_usage_tracker(),
            migration_engine=self.create_migration_engine(),
            tag_sync=self.create_default_tag_sync(),
            event_repo=self.create_media_type_event_repository(),
        )

    # -------------------------------------------------------------------------
    # Singleton Properties (Cached - same instance on repeated access)
    # -------------------------------------------------------------------------

    @cached_property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """The database manager's session factory."""
        return self._database.get_session_factory()

    @cached_property
    def record_store(self) -> RecordStore:
        """The bundled SQLAlchemy record store."""
        return MediaRecordRepository(self.session_factory)

    @cached_property
    def migration_lock_registry(self) -> MigrationLockRegistry:
        """Process-wide registry of per-source migration locks."""
        return MigrationLockRegistry()

    # -------------------------------------------------------------------------
    # Testing Support
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """
        Reset the container by clearing all cached singleton instances.

        Examples
        --------
        >>> container.reset()
        >>> # All cached singletons are cleared
        """
        properties_to_clear = [
            "session_factory",
            "record_store",
            "migration_lock_registry",
        ]
        for prop in properties_to_clear:
            self.__dict__.pop(prop, None)


# Global container instance
container = Container()
