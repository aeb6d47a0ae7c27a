"""
Tests for the Alembic migration scripts.

The initial revision is applied to a fresh SQLite database and the result is
compared with the ORM metadata, so schema drift between the two is caught.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

import mediagov.db
from mediagov.db.models import Base

VERSIONS_DIR = Path(mediagov.db.__file__).parent / "migrations" / "versions"


def load_revision(filename: str) -> ModuleType:
    path = VERSIONS_DIR / filename
    spec = importlib.util.spec_from_file_location(path.stem, path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def initial_revision() -> ModuleType:
    return load_revision("0001_initial_governance_schema.py")


def test_initial_revision_is_root(initial_revision: ModuleType) -> None:
    assert initial_revision.down_revision is None
    assert initial_revision.revision


def test_upgrade_creates_every_table(
    initial_revision: ModuleType, tmp_path: Path
) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            initial_revision.upgrade()

    inspector = inspect(engine)
    assert set(inspector.get_table_names()) == set(Base.metadata.tables)
    for table in Base.metadata.sorted_tables:
        columns = {column["name"] for column in inspector.get_columns(table.name)}
        assert columns == {column.name for column in table.columns}, table.name
        indexes = {index["name"] for index in inspector.get_indexes(table.name)}
        assert {index.name for index in table.indexes} <= indexes
    engine.dispose()


def test_downgrade_removes_every_table(
    initial_revision: ModuleType, tmp_path: Path
) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            initial_revision.upgrade()
            initial_revision.downgrade()

    assert inspect(engine).get_table_names() == []
    engine.dispose()
