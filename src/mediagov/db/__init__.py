"""
Database layer for mediagov.

Contains the SQLAlchemy declarative models and Alembic migrations.
"""

from __future__ import annotations

__all__: list[str] = []
