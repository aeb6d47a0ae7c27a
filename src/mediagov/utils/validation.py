"""
Conversion of loose input into validated pydantic models.

Service entry points accept either a model instance or a plain mapping (as
produced by a JSON request body or a CLI file argument). Pydantic failures
are re-raised as the package's own ``ValidationError`` so callers only need
to handle one exception family.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from mediagov.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def _summarize(errors: list[dict[str, Any]]) -> tuple[str, str | None]:
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    if location:
        message = f"{location}: {message}"
    if len(errors) > 1:
        message += f" (and {len(errors) - 1} more error(s))"
    return message, location or None


def coerce_model(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """
    Validate *data* into an instance of *model*.

    Parameters
    ----------
    model : type[BaseModel]
        Target pydantic model class.
    data : BaseModel | Mapping[str, Any]
        An instance of *model* (returned unchanged) or raw input.

    Returns
    -------
    BaseModel
        The validated model instance.

    Raises
    ------
    ValidationError
        If *data* does not validate. ``errors`` carries pydantic's
        structured error list.
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [dict(error) for error in e.errors(include_url=False)]
        message, location = _summarize(errors)
        raise ValidationError(
            message,
            field_name=location,
            invalid_value=data,
            errors=errors,
        ) from e
