"""
Media record models.

Media records are owned by an external subsystem; these models describe the
slice of a record the governance engine reads and writes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field


class MediaRecordCreate(BaseModel):
    """Model for seeding a record into the bundled record store."""

    media_type_id: uuid.UUID
    title: Optional[str] = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class RecordSnapshot:
    """A record as read during a batch scan.

    ``revision`` is the value conditional writes compare against.
    """

    id: uuid.UUID
    media_type_id: uuid.UUID
    metadata: dict[str, Any] = field(default_factory=dict)
    revision: int = 0
