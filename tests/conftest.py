"""
Pytest configuration and fixtures for mediagov tests.

Service and repository tests run against a throwaway file-based SQLite
database (one per test) so that every short-lived session opened by the
batch engines sees the same data.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediagov.config.database import DatabaseManager
from mediagov.config.settings import Settings
from mediagov.container import Container
from mediagov.models.media_record import MediaRecordCreate, RecordSnapshot
from mediagov.repositories.media_record_repository import MediaRecordRepository
from mediagov.services.governance import MediaGovernanceService

SeedRecords = Callable[..., Awaitable[list[RecordSnapshot]]]


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a per-test SQLite file with small batches."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'mediagov.db'}",
        development_mode=False,
        batch_size=2,
        migration_lock_timeout=0.5,
        performed_by="test-admin",
    )


@pytest.fixture
async def database(test_settings: Settings) -> AsyncGenerator[DatabaseManager, None]:
    """Database manager with all tables created, disposed after the test."""
    manager = DatabaseManager(test_settings)
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def test_container(test_settings: Settings, database: DatabaseManager) -> Container:
    """Container wired to the per-test database."""
    return Container(app_settings=test_settings, database=database)


@pytest.fixture
def session_factory(
    test_container: Container,
) -> async_sessionmaker[AsyncSession]:
    """Session factory of the per-test database."""
    return test_container.session_factory


@pytest.fixture
def governance(test_container: Container) -> MediaGovernanceService:
    """Fully wired governance facade."""
    return test_container.create_governance_service()


@pytest.fixture
def record_store(test_container: Container) -> MediaRecordRepository:
    """The bundled SQLAlchemy record store."""
    store = test_container.record_store
    assert isinstance(store, MediaRecordRepository)
    return store


@pytest.fixture
def seed_records(record_store: MediaRecordRepository) -> SeedRecords:
    """
    Return a helper inserting records of one media type.

    Examples
    --------
    >>> records = await seed_records(media_type.id, [{"tags": ["a"]}, {}])
    """

    async def _seed(
        media_type_id: uuid.UUID,
        metadatas: Optional[list[dict[str, Any]]] = None,
        *,
        count: Optional[int] = None,
    ) -> list[RecordSnapshot]:
        if metadatas is None:
            metadatas = [{"title": f"File {n}"} for n in range(count or 1)]
        created: list[RecordSnapshot] = []
        for metadata in metadatas:
            created.append(
                await record_store.create(
                    MediaRecordCreate(media_type_id=media_type_id, metadata=metadata)
                )
            )
        return created

    return _seed
