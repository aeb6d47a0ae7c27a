"""
Field definition models for media types.

A field is a closed tagged union discriminated by ``kind``. Select and
MultiSelect fields carry an inner tagged union ``option_source`` which is
either a static option list or a reference to a tag category, so a choice
field always has exactly one option source.

Loose input in the legacy shape (``type``, ``options``, ``tagCategoryId``,
``useTagCategory``...) is accepted and mapped onto the union; input that
supplies both a static option list and a category, or neither, is rejected.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from mediagov.services.tag_normalization import comparison_key, storage_form

# Legacy camelCase / short keys -> model attribute names
_LEGACY_KEYS: dict[str, str] = {
    "type": "kind",
    "tagCategoryId": "tag_category_id",
    "minLength": "min_length",
    "maxLength": "max_length",
    "min": "minimum",
    "max": "maximum",
}
_IGNORED_KEYS: frozenset[str] = frozenset({"_id", "unique", "useTagCategory"})


class StaticOptions(BaseModel):
    """Inline, fixed option list."""

    source: Literal["static"] = "static"
    options: list[str] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str]) -> list[str]:
        """Trim options and reject blanks and case-insensitive duplicates."""
        seen: set[str] = set()
        cleaned: list[str] = []
        for option in v:
            value = storage_form(option)
            if not value:
                raise ValueError("Select options cannot be blank")
            key = comparison_key(value)
            if key in seen:
                raise ValueError(f"Duplicate select option '{value}'")
            seen.add(key)
            cleaned.append(value)
        return cleaned


class CategoryOptions(BaseModel):
    """Options resolved at read time from a tag category."""

    source: Literal["category"] = "category"
    tag_category_id: uuid.UUID

    model_config = ConfigDict(extra="forbid")


OptionSource = Annotated[
    Union[StaticOptions, CategoryOptions], Field(discriminator="source")
]


class FieldBase(BaseModel):
    """Properties shared by every field variant."""

    name: str = Field(..., min_length=1, max_length=100)
    required: bool = Field(default=False)
    label: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim the field name and reject blank names."""
        name = v.strip()
        if not name:
            raise ValueError("Field name cannot be blank")
        if name == "tags":
            raise ValueError("'tags' is reserved for record tags")
        return name


class _TextualField(FieldBase):
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=1)
    default: Optional[str] = None

    @model_validator(mode="after")
    def validate_length_bounds(self) -> _TextualField:
        """Ensure min_length does not exceed max_length."""
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError("min_length cannot exceed max_length")
        return self


class TextField(_TextualField):
    """Single-line text."""

    kind: Literal["Text"] = "Text"


class TextAreaField(_TextualField):
    """Multi-line text."""

    kind: Literal["TextArea"] = "TextArea"


class NumberField(FieldBase):
    """Numeric value with optional bounds."""

    kind: Literal["Number"] = "Number"
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    default: Optional[float] = None

    @model_validator(mode="after")
    def validate_bounds(self) -> NumberField:
        """Ensure minimum does not exceed maximum."""
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError("minimum cannot exceed maximum")
        return self


class DateField(FieldBase):
    """Calendar date."""

    kind: Literal["Date"] = "Date"


class BooleanField(FieldBase):
    """True/false flag."""

    kind: Literal["Boolean"] = "Boolean"


class _ChoiceField(FieldBase):
    option_source: OptionSource

    @model_validator(mode="before")
    @classmethod
    def coerce_option_source(cls, data: Any) -> Any:
        """
        Map flat ``options`` / ``tag_category_id`` input onto ``option_source``.

        Exactly one of the two must be supplied; an empty option list counts
        as not supplied.
        """
        if not isinstance(data, Mapping):
            return data

        data = dict(data)
        options = data.pop("options", None)
        category_id = data.pop("tag_category_id", None)
        has_options = bool(options)
        has_category = category_id not in (None, "")

        if "option_source" in data:
            if has_options or has_category:
                raise ValueError(
                    "Give option_source or options/tag_category_id, not both"
                )
            return data

        if has_options and has_category:
            raise ValueError(
                "A choice field takes either a static option list or a tag "
                "category, not both"
            )
        if not has_options and not has_category:
            raise ValueError(
                "A choice field requires a static option list or a tag category"
            )

        if has_category:
            data["option_source"] = {
                "source": "category",
                "tag_category_id": category_id,
            }
        else:
            data["option_source"] = {"source": "static", "options": options}
        return data

    @property
    def tag_category_id(self) -> Optional[uuid.UUID]:
        """The referenced tag category, if options come from one."""
        if isinstance(self.option_source, CategoryOptions):
            return self.option_source.tag_category_id
        return None


class SelectField(_ChoiceField):
    """Single choice from an option list."""

    kind: Literal["Select"] = "Select"


class MultiSelectField(_ChoiceField):
    """Any number of choices from an option list."""

    kind: Literal["MultiSelect"] = "MultiSelect"


FieldDefinition = Annotated[
    Union[
        TextField,
        TextAreaField,
        NumberField,
        DateField,
        BooleanField,
        SelectField,
        MultiSelectField,
    ],
    Field(discriminator="kind"),
]

ChoiceField = Union[SelectField, MultiSelectField]

field_adapter: TypeAdapter[Any] = TypeAdapter(FieldDefinition)


def normalize_field_keys(raw: Any) -> Any:
    """
    Rename legacy keys of a loose field definition to model attribute names.

    Non-mapping input (e.g. an already-built field model) is returned as-is.
    """
    if not isinstance(raw, Mapping):
        return raw
    return {
        _LEGACY_KEYS.get(key, key): value
        for key, value in raw.items()
        if key not in _IGNORED_KEYS
    }


def parse_field_definition(raw: Mapping[str, Any] | FieldBase) -> Any:
    """
    Build a field model from a loose mapping.

    Raises
    ------
    pydantic.ValidationError
        If the definition is malformed.
    """
    if isinstance(raw, FieldBase):
        return raw
    return field_adapter.validate_python(normalize_field_keys(raw))


def is_choice_field(field: Any) -> bool:
    """Return True for Select and MultiSelect fields."""
    return isinstance(field, _ChoiceField)
