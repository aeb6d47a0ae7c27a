"""
Tag and tag category models.

Defines Pydantic models for the global tag vocabulary and for tag
categories, the named, deduplicated tag sets that Select and MultiSelect
fields can use as their option source.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mediagov.services.tag_normalization import storage_form


def _clean_name(v: str) -> str:
    name = storage_form(v)
    if not name:
        raise ValueError("Name cannot be blank")
    return name


class TagCreate(BaseModel):
    """Model for creating a vocabulary tag."""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Store the tag in storage form."""
        return _clean_name(v)


class Tag(BaseModel):
    """Full vocabulary tag model."""

    id: uuid.UUID
    name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CategoryTag(BaseModel):
    """A tag as listed inside a category."""

    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class TagCategoryBase(BaseModel):
    """Base model for tag category data."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim the category name."""
        return _clean_name(v)


class TagCategoryCreate(TagCategoryBase):
    """Model for creating tag categories."""

    tags: list[str] = Field(default_factory=list, description="Initial tag names")


class TagCategoryUpdate(BaseModel):
    """Model for updating tag categories (PATCH-style, all fields optional).

    ``tags`` replaces the whole tag list when given.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    tags: Optional[list[str]] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        """Trim the category name."""
        return _clean_name(v) if v is not None else v


class TagCategory(TagCategoryBase):
    """Full tag category model with its tags."""

    id: uuid.UUID
    is_active: bool = True
    tags: list[CategoryTag] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def tag_names(self) -> list[str]:
        """Tag names in category order."""
        return [tag.name for tag in self.tags]


class CategoryDeleteResult(BaseModel):
    """Outcome of a tag category delete."""

    category_id: uuid.UUID
    hard_delete: bool
    converted_media_type_ids: list[uuid.UUID] = Field(default_factory=list)
