"""
Media type event models.

Audit entries written for every lifecycle transition and bulk operation on
a media type.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import MediaTypeOperation, MediaTypeStatus


class MediaTypeEventCreate(BaseModel):
    """Model for creating media type events."""

    media_type_id: uuid.UUID
    operation: MediaTypeOperation
    from_status: Optional[MediaTypeStatus] = None
    to_status: Optional[MediaTypeStatus] = None
    details: dict[str, Any] = Field(default_factory=dict)
    performed_by: str = Field(default="system", max_length=100)


class MediaTypeEvent(MediaTypeEventCreate):
    """Full media type event model."""

    id: uuid.UUID
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
