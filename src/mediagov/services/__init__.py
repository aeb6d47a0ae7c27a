"""
Service layer for mediagov.

Each governance component (vocabulary, registry, usage tracking, lifecycle,
migration and default-tag synchronization) lives in its own module; import
from those modules directly.
"""

from __future__ import annotations

__all__: list[str] = []
