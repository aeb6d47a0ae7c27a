"""
Schema registry for media types.

Owns media-type definitions: validates them on create and update, stores
them, and returns them with category-backed Select options resolved at read
time. Lifecycle changes (archive, deprecate, delete) are delegated to the
lifecycle state machine; ``update`` never touches ``status``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import MediaType as MediaTypeDB
from mediagov.exceptions import DuplicateNameError, NotFoundError, ValidationError
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.models.fields import (
    BooleanField,
    CategoryOptions,
    DateField,
    MultiSelectField,
    NumberField,
    SelectField,
    StaticOptions,
    is_choice_field,
)
from mediagov.models.media_type import MediaType, MediaTypeCreate, MediaTypeUpdate
from mediagov.repositories.media_type_repository import MediaTypeRepository
from mediagov.services.lifecycle import MediaTypeLifecycle
from mediagov.services.tag_normalization import comparison_key
from mediagov.services.tag_vocabulary import TagVocabularyService
from mediagov.services.usage_tracker import UsageTracker
from mediagov.utils.validation import coerce_model

logger = logging.getLogger(__name__)

_DEFINITION_KEYS: tuple[str, ...] = (
    "name",
    "base_type",
    "fields",
    "accepted_file_types",
    "default_tags",
    "include_base_fields",
    "color",
)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
        return True
    except ValueError:
        pass
    try:
        datetime.fromisoformat(value)
        return True
    except ValueError:
        return False


class SchemaRegistry:
    """
    Service owning media-type definitions.

    Parameters
    ----------
    media_type_repo : MediaTypeRepository
        Repository for media type rows.
    vocabulary : TagVocabularyService
        Resolves category-backed options and checks category references.
    lifecycle : MediaTypeLifecycle
        State machine for archive and delete, and the audit trail.
    usage_tracker : UsageTracker
        Live usage counts.
    """

    def __init__(
        self,
        media_type_repo: MediaTypeRepository,
        vocabulary: TagVocabularyService,
        lifecycle: MediaTypeLifecycle,
        usage_tracker: UsageTracker,
    ) -> None:
        self._media_type_repo = media_type_repo
        self._vocabulary = vocabulary
        self._lifecycle = lifecycle
        self._usage_tracker = usage_tracker

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------

    async def create(
        self,
        session: AsyncSession,
        definition: MediaTypeCreate | Mapping[str, Any],
    ) -> MediaType:
        """
        Register a new media type.

        Parameters
        ----------
        session : AsyncSession
            Database session.
        definition : MediaTypeCreate | Mapping[str, Any]
            The definition; loose legacy field shapes are accepted.

        Returns
        -------
        MediaType
            The stored type with resolved options, in ``active`` status.

        Raises
        ------
        ValidationError
            If the definition is malformed or references an unknown category.
        DuplicateNameError
            If another type has the same name (case-insensitive).
        """
        obj_in = coerce_model(MediaTypeCreate, definition)
        if await self._media_type_repo.get_by_name(session, obj_in.name) is not None:
            raise DuplicateNameError("MediaType", obj_in.name)
        await self._check_category_references(session, obj_in.fields)

        media_type = await self._media_type_repo.create(session, obj_in=obj_in)
        await self._lifecycle.log_event(
            session,
            media_type.id,
            MediaTypeOperation.CREATE,
            to_status=MediaTypeStatus.ACTIVE.value,
            details={"name": media_type.name},
        )
        logger.info("Created media type '%s' (%s)", media_type.name, media_type.id)
        return (await self._to_models(session, [media_type]))[0]

    async def update(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        changes: MediaTypeUpdate | Mapping[str, Any],
    ) -> MediaType:
        """
        Apply a partial update to a media type definition.

        The merged definition is validated as a whole before anything is
        written. Status and replacement cannot be changed here.

        Raises
        ------
        NotFoundError
            If the media type does not exist.
        ValidationError
            If the merged definition is invalid or a lifecycle key is given.
        DuplicateNameError
            If the new name collides with another type.
        """
        update_in = coerce_model(MediaTypeUpdate, changes)
        media_type = await self._get_row(session, media_type_id)

        patch = update_in.model_dump(mode="json", exclude_unset=True)
        candidate_data = {key: getattr(media_type, key) for key in _DEFINITION_KEYS}
        candidate_data.update(patch)
        candidate = coerce_model(MediaTypeCreate, candidate_data)

        if "name" in patch:
            clash = await self._media_type_repo.get_by_name(session, candidate.name)
            if clash is not None and clash.id != media_type.id:
                raise DuplicateNameError("MediaType", candidate.name)
        if "fields" in patch:
            await self._check_category_references(session, candidate.fields)

        values: dict[str, Any] = {
            "name": candidate.name,
            "name_key": comparison_key(candidate.name),
            "base_type": candidate.base_type.value,
            "fields": [field.model_dump(mode="json") for field in candidate.fields],
            "accepted_file_types": list(candidate.accepted_file_types),
            "default_tags": list(candidate.default_tags),
            "include_base_fields": candidate.include_base_fields,
            "color": candidate.color,
        }
        media_type = await self._media_type_repo.update(
            session, db_obj=media_type, obj_in=values
        )
        await self._usage_tracker.refresh_cached_count(session, media_type.id)
        await session.refresh(media_type)
        await self._lifecycle.log_event(
            session,
            media_type.id,
            MediaTypeOperation.UPDATE,
            from_status=media_type.status,
            to_status=media_type.status,
            details={"changed": sorted(patch)},
        )
        logger.info("Updated media type '%s' (%s)", media_type.name, media_type.id)
        return (await self._to_models(session, [media_type]))[0]

    async def delete(self, session: AsyncSession, media_type_id: uuid.UUID) -> None:
        """Delete a media type no record uses (see ``MediaTypeLifecycle.delete``)."""
        await self._lifecycle.delete(session, media_type_id)

    async def archive(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> MediaType:
        """Archive a media type and return its new state."""
        media_type = await self._lifecycle.archive(session, media_type_id)
        return (await self._to_models(session, [media_type]))[0]

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    async def get(self, session: AsyncSession, media_type_id: uuid.UUID) -> MediaType:
        """Get a media type with resolved options."""
        media_type = await self._get_row(session, media_type_id)
        return (await self._to_models(session, [media_type]))[0]

    async def get_by_name(self, session: AsyncSession, name: str) -> MediaType:
        """Get a media type by name (case-insensitive)."""
        media_type = await self._media_type_repo.get_by_name(session, name)
        if media_type is None:
            raise NotFoundError("MediaType", name)
        return (await self._to_models(session, [media_type]))[0]

    async def list_types(
        self,
        session: AsyncSession,
        *,
        include_archived: bool = True,
        statuses: Optional[Iterable[MediaTypeStatus | str]] = None,
    ) -> list[MediaType]:
        """
        List media types ordered by name.

        Parameters
        ----------
        session : AsyncSession
            Database session.
        include_archived : bool, optional
            Include archived types (default True).
        statuses : Iterable[MediaTypeStatus | str] | None, optional
            Restrict to these statuses.
        """
        wanted: Optional[list[str]] = None
        if statuses is not None:
            wanted = [MediaTypeStatus(status).value for status in statuses]
        elif not include_archived:
            wanted = [MediaTypeStatus.ACTIVE.value, MediaTypeStatus.DEPRECATED.value]
        media_types = await self._media_type_repo.list_all(session, statuses=wanted)
        return await self._to_models(session, media_types)

    async def validate_metadata(
        self,
        session: AsyncSession,
        media_type_id: uuid.UUID,
        metadata: Mapping[str, Any],
    ) -> list[str]:
        """
        Check a record's metadata against a media type's fields.

        Required fields must be present, values must match their field kind,
        and Select/MultiSelect values must be among the resolved options
        (compared in comparison form). Keys that are not fields are allowed.

        Returns
        -------
        list[str]
            Human-readable problems; empty when the metadata is valid.
        """
        media_type = await self.get(session, media_type_id)
        problems: list[str] = []

        tags = metadata.get("tags")
        if tags is not None and (
            not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
        ):
            problems.append("'tags' must be a list of strings")

        for field in media_type.fields:
            value = metadata.get(field.name)
            if _is_blank(value):
                if field.required:
                    problems.append(f"'{field.name}' is required")
                continue
            problem = self._check_value(
                field, value, media_type.resolved_options.get(field.name, [])
            )
            if problem:
                problems.append(problem)
        return problems

    @staticmethod
    def matches_file_type(media_type: MediaType, mime_type: str) -> bool:
        """Return True if *media_type* accepts files of *mime_type*."""
        return media_type.accepts_file_type(mime_type)

    # -------------------------------------------------------------------
    # Private helpers
    # -------------------------------------------------------------------

    async def _get_row(
        self, session: AsyncSession, media_type_id: uuid.UUID
    ) -> MediaTypeDB:
        media_type = await self._media_type_repo.get(session, media_type_id)
        if media_type is None:
            raise NotFoundError("MediaType", media_type_id)
        return media_type

    async def _check_category_references(
        self, session: AsyncSession, fields: list[Any]
    ) -> None:
        for field in fields:
            if not is_choice_field(field):
                continue
            category_id = field.tag_category_id
            if category_id is None:
                continue
            if not await self._vocabulary.category_exists(session, category_id):
                raise ValidationError(
                    f"Field '{field.name}' references unknown tag category "
                    f"'{category_id}'",
                    field_name=field.name,
                    invalid_value=str(category_id),
                )

    async def _to_models(
        self, session: AsyncSession, media_types: list[MediaTypeDB]
    ) -> list[MediaType]:
        models = [MediaType.model_validate(media_type) for media_type in media_types]
        category_ids = [
            field.option_source.tag_category_id
            for model in models
            for field in model.choice_fields()
            if isinstance(field.option_source, CategoryOptions)
        ]
        resolved = await self._vocabulary.resolve_many(session, category_ids)

        for model in models:
            options: dict[str, list[str]] = {}
            for field in model.choice_fields():
                source = field.option_source
                if isinstance(source, StaticOptions):
                    options[field.name] = list(source.options)
                else:
                    options[field.name] = list(resolved.get(source.tag_category_id, []))
            model.resolved_options = options
        return models

    @staticmethod
    def _check_value(field: Any, value: Any, options: list[str]) -> Optional[str]:
        name = field.name
        if isinstance(field, BooleanField):
            if not isinstance(value, bool):
                return f"'{name}' must be true or false"
            return None
        if isinstance(field, NumberField):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return f"'{name}' must be a number"
            if field.minimum is not None and value < field.minimum:
                return f"'{name}' must be at least {field.minimum:g}"
            if field.maximum is not None and value > field.maximum:
                return f"'{name}' must be at most {field.maximum:g}"
            return None
        if isinstance(field, DateField):
            if not isinstance(value, str) or not _is_iso_date(value):
                return f"'{name}' must be an ISO-8601 date"
            return None
        if isinstance(field, SelectField):
            allowed = {comparison_key(option) for option in options}
            if not isinstance(value, str) or comparison_key(value) not in allowed:
                return f"'{name}' must be one of the field's options"
            return None
        if isinstance(field, MultiSelectField):
            allowed = {comparison_key(option) for option in options}
            if not isinstance(value, list) or not all(
                isinstance(item, str) and comparison_key(item) in allowed
                for item in value
            ):
                return f"'{name}' must be a list of the field's options"
            return None

        # Text and TextArea
        if not isinstance(value, str):
            return f"'{name}' must be text"
        if field.min_length is not None and len(value) < field.min_length:
            return f"'{name}' must be at least {field.min_length} characters"
        if field.max_length is not None and len(value) > field.max_length:
            return f"'{name}' must be at most {field.max_length} characters"
        return None
