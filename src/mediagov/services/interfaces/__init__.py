"""
Service interfaces for mediagov.

Abstract contracts for collaborators the governance engine consumes but
does not own.
"""

from __future__ import annotations

from .record_store import RecordStore

__all__ = ["RecordStore"]
