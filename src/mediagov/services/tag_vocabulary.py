"""
Tag vocabulary service.

Owns the global tag list and the tag categories built from it. Every name
is compared in comparison form, so "Product Image" and "product  image" are
the same tag everywhere: in the global list, inside a category, and when
default tags are merged into a record.

Categories can be soft-deleted (``is_active=False``), which makes fields
backed by them resolve to an empty option list, or hard-deleted, which is
refused while a media-type field still references the category unless the
caller asks for a cascade that snapshots the current tags into each field.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mediagov.db.models import Tag as TagDB
from mediagov.db.models import TagCategory as TagCategoryDB
from mediagov.exceptions import (
    DuplicateNameError,
    NotFoundError,
    TagCategoryInUseError,
    ValidationError,
)
from mediagov.models.enums import MediaTypeOperation, MediaTypeStatus
from mediagov.models.media_type_event import MediaTypeEventCreate
from mediagov.models.tag_category import (
    CategoryDeleteResult,
    CategoryTag,
    Tag,
    TagCategory,
    TagCategoryCreate,
    TagCategoryUpdate,
    TagCreate,
)
from mediagov.repositories.media_type_event_repository import (
    MediaTypeEventRepository,
)
from mediagov.repositories.media_type_repository import (
    MediaTypeRepository,
    field_references_category,
)
from mediagov.repositories.tag_category_repository import TagCategoryRepository
from mediagov.repositories.tag_repository import TagRepository
from mediagov.services.tag_normalization import TagNormalizationService
from mediagov.utils.validation import coerce_model

logger = logging.getLogger(__name__)


class TagVocabularyService:
    """
    Service for the global tag list and tag categories.

    Parameters
    ----------
    tag_repo : TagRepository
        Repository for vocabulary tags.
    category_repo : TagCategoryRepository
        Repository for categories and their memberships.
    media_type_repo : MediaTypeRepository
        Used to find fields referencing a category before a hard delete.
    event_repo : MediaTypeEventRepository
        Audit log for media types rewritten by a cascading delete.
    normalizer : TagNormalizationService | None, optional
        Tag canonicalizer (a default instance is created when omitted).
    performed_by : str, optional
        Actor recorded on audit events (default "system").
    """

    def __init__(
        self,
        tag_repo: TagRepository,
        category_repo: TagCategoryRepository,
        media_type_repo: MediaTypeRepository,
        event_repo: MediaTypeEventRepository,
        normalizer: Optional[TagNormalizationService] = None,
        performed_by: str = "system",
    ) -> None:
        self._tag_repo = tag_repo
        self._category_repo = category_repo
        self._media_type_repo = media_type_repo
        self._event_repo = event_repo
        self._normalizer = normalizer or TagNormalizationService()
        self._performed_by = performed_by

    # -------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------

    def normalize(self, raw_tag: str) -> str:
        """
        Return the storage form of *raw_tag*.

        Raises
        ------
        ValidationError
            If nothing remains after trimming.
        """
        tag = self._normalizer.normalize(raw_tag)
        if tag is None:
            raise ValidationError(
                "Tag cannot be empty", field_name="tag", invalid_value=raw_tag
            )
        return tag

    def comparison_key(self, raw_tag: str) -> str:
        """Return the comparison form of *raw_tag*."""
        return self._normalizer.comparison_key(raw_tag)

    def merge_tags(
        self, existing: Iterable[Any], additions: Iterable[str]
    ) -> tuple[list[Any], list[str]]:
        """Order-preserving union of *additions* into *existing*."""
        return self._normalizer.merge(existing, additions)

    # -------------------------------------------------------------------
    # Global tags
    # -------------------------------------------------------------------

    async def create_tag(
        self, session: AsyncSession, data: TagCreate | Mapping[str, Any] | str
    ) -> Tag:
        """
        Add a tag to the global vocabulary.

        Raises
        ------
        DuplicateNameError
            If a tag with the same comparison form exists.
        """
        if isinstance(data, str):
            data = {"name": data}
        obj_in = coerce_model(TagCreate, data)
        self.normalize(obj_in.name)
        if await self._tag_repo.get_by_name(session, obj_in.name) is not None:
            raise DuplicateNameError("Tag", obj_in.name)

        tag = await self._tag_repo.create(session, obj_in=obj_in)
        logger.info("Created tag '%s' (%s)", tag.name, tag.id)
        return Tag.model_validate(tag)

    async def rename_tag(
        self, session: AsyncSession, tag_id: uuid.UUID, new_name: str
    ) -> Tag:
        """
        Rename a vocabulary tag. Categories holding it see the new name.

        A rename that only changes case or spacing of the same tag is allowed.
        """
        tag = await self._get_tag(session, tag_id)
        name = self.normalize(new_name)
        clash = await self._tag_repo.get_by_name(session, name)
        if clash is not None and clash.id != tag.id:
            raise DuplicateNameError("Tag", name)

        old_name = tag.name
        tag = await self._tag_repo.rename(session, tag, name)
        logger.info("Renamed tag '%s' -> '%s'", old_name, name)
        return Tag.model_validate(tag)

    async def delete_tag(self, session: AsyncSession, tag_id: uuid.UUID) -> None:
        """Remove a tag from the vocabulary and from every category."""
        tag = await self._get_tag(session, tag_id)
        await self._tag_repo.delete(session, id=tag.id)
        logger.info("Deleted tag '%s' (%s)", tag.name, tag.id)

    async def list_tags(self, session: AsyncSession) -> list[Tag]:
        """List every vocabulary tag ordered by name."""
        tags = await self._tag_repo.list_all(session)
        return [Tag.model_validate(tag) for tag in tags]

    async def get_or_create_tag(self, session: AsyncSession, name: str) -> TagDB:
        """Return the vocabulary tag matching *name*, creating it if needed."""
        storage = self.normalize(name)
        tag = await self._tag_repo.get_by_name(session, storage)
        if tag is None:
            tag = await self._tag_repo.create(session, obj_in=TagCreate(name=storage))
            logger.debug("Created vocabulary tag '%s'", storage)
        return tag

    async def _get_tag(self, session: AsyncSession, tag_id: uuid.UUID) -> TagDB:
        tag = await self._tag_repo.get(session, tag_id)
        if tag is None:
            raise NotFoundError("Tag", tag_id)
        return tag

    # -------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------

    async def create_category(
        self,
        session: AsyncSession,
        data: TagCategoryCreate | Mapping[str, Any],
    ) -> TagCategory:
        """
        Create a tag category with an optional initial tag list.

        If an inactive category with the same comparison name exists it is
        reactivated instead, taking the new description and gaining the
        given tags.

        Raises
        ------
        DuplicateNameError
            If an active category with the same comparison name exists.
        ValidationError
            If the input is malformed or a tag is blank.
        """
        obj_in = coerce_model(TagCategoryCreate, data)
        tag_names = self._normalizer.dedupe(
            [self.normalize(raw) for raw in obj_in.tags]
        )

        existing = await self._category_repo.get_by_name(session, obj_in.name)
        if existing is not None:
            if existing.is_active:
                raise DuplicateNameError("TagCategory", obj_in.name)
            category = await self._category_repo.update(
                session,
                db_obj=existing,
                obj_in={
                    "is_active": True,
                    "name": obj_in.name,
                    "description": obj_in.description,
                },
            )
            logger.info(
                "Reactivated tag category '%s' (%s)", category.name, category.id
            )
        else:
            category = await self._category_repo.create(session, obj_in=obj_in)
            logger.info("Created tag category '%s' (%s)", category.name, category.id)

        for name in tag_names:
            await self._link_tag(session, category.id, name, strict=False)
        return await self._build(session, category)

    async def update_category(
        self,
        session: AsyncSession,
        category_id: uuid.UUID,
        changes: TagCategoryUpdate | Mapping[str, Any],
    ) -> TagCategory:
        """
        Update name, description, active flag or the whole tag list.

        Reactivating a soft-deleted category is done here with
        ``is_active=True``.
        """
        obj_in = coerce_model(TagCategoryUpdate, changes)
        category = await self._get_category_row(session, category_id)

        values: dict[str, Any] = obj_in.model_dump(exclude_unset=True, exclude={"tags"})
        if "name" in values:
            clash = await self._category_repo.get_by_name(session, values["name"])
            if clash is not None and clash.id != category.id:
                raise DuplicateNameError("TagCategory", values["name"])
            values["name_key"] = self.comparison_key(values["name"])
        if obj_in.tags is not None:
            tag_names = self._normalizer.dedupe(
                [self.normalize(raw) for raw in obj_in.tags]
            )

        if values:
            category = await self._category_repo.update(
                session, db_obj=category, obj_in=values
            )
        if obj_in.tags is not None:
            await self._category_repo.clear_tags(session, category.id)
            for name in tag_names:
                await self._link_tag(session, category.id, name, strict=False)
            logger.info(
                "Replaced tags of category '%s' (%d tag(s))",
                category.name,
                len(tag_names),
            )
        return await self._build(session, category)

    async def get_category(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> TagCategory:
        """Get a category (active or not) with its tags."""
        category = await self._get_category_row(session, category_id)
        return await self._build(session, category)

    async def list_categories(
        self, session: AsyncSession, *, include_inactive: bool = False
    ) -> list[TagCategory]:
        """List categories ordered by name, active ones only by default."""
        categories = await self._category_repo.list_all(
            session, include_inactive=include_inactive
        )
        return [await self._build(session, category) for category in categories]

    async def add_tag_to_category(
        self, session: AsyncSession, category_id: uuid.UUID, tag_name: str
    ) -> TagCategory:
        """
        Add a tag to a category, creating the vocabulary tag if needed.

        Raises
        ------
        DuplicateNameError
            If the category already holds the tag (comparison form).
        """
        category = await self._get_category_row(session, category_id)
        await self._link_tag(session, category.id, tag_name, strict=True)
        return await self._build(session, category)

    async def remove_tag_from_category(
        self, session: AsyncSession, category_id: uuid.UUID, tag_id: uuid.UUID
    ) -> TagCategory:
        """Remove a tag from a category; the vocabulary tag itself is kept."""
        category = await self._get_category_row(session, category_id)
        removed = await self._category_repo.remove_tag(session, category.id, tag_id)
        if not removed:
            raise NotFoundError(
                "Tag", tag_id, hint=f"It is not a member of category '{category.name}'"
            )
        logger.info("Removed tag %s from category '%s'", tag_id, category.name)
        return await self._build(session, category)

    async def delete_category(
        self,
        session: AsyncSession,
        category_id: uuid.UUID,
        *,
        hard: bool = False,
        cascade: bool = False,
    ) -> CategoryDeleteResult:
        """
        Delete a tag category.

        Parameters
        ----------
        session : AsyncSession
            Database session.
        category_id : uuid.UUID
            Category to delete.
        hard : bool, optional
            Remove the row instead of deactivating it (default False).
        cascade : bool, optional
            With ``hard``, convert every referencing field to a static
            option list holding the category's current tags first.

        Returns
        -------
        CategoryDeleteResult
            What was deleted and which media types were rewritten.

        Raises
        ------
        TagCategoryInUseError
            On a hard delete without cascade while fields reference it.
        ValidationError
            On a cascade of an empty category (a static option list
            cannot be empty).
        """
        category = await self._get_category_row(session, category_id)

        if not hard:
            if category.is_active:
                await self._category_repo.update(
                    session, db_obj=category, obj_in={"is_active": False}
                )
            logger.info(
                "Soft-deleted tag category '%s' (%s)", category.name, category.id
            )
            return CategoryDeleteResult(category_id=category.id, hard_delete=False)

        referencing = await self._media_type_repo.find_referencing_category(
            session, category.id
        )
        if referencing and not cascade:
            raise TagCategoryInUseError(
                category.id, [media_type.id for media_type in referencing]
            )

        converted: list[uuid.UUID] = []
        if referencing:
            tags = await self._category_repo.get_tags(session, category.id)
            options = [tag.name for tag in tags]
            if not options:
                raise ValidationError(
                    f"Tag category '{category.name}' has no tags to snapshot into "
                    "static options",
                    field_name="tag_category_id",
                    invalid_value=str(category.id),
                )
            for media_type in referencing:
                await self._snapshot_category_fields(
                    session, media_type, category.id, options
                )
                converted.append(media_type.id)

        await self._category_repo.delete(session, id=category.id)
        logger.info(
            "Hard-deleted tag category '%s' (%s), converted %d media type(s)",
            category.name,
            category.id,
            len(converted),
        )
        return CategoryDeleteResult(
            category_id=category.id,
            hard_delete=True,
            converted_media_type_ids=converted,
        )

    async def resolve_options(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> list[str]:
        """Tag names of an active category; ``[]`` if missing or inactive."""
        resolved = await self.resolve_many(session, [category_id])
        return resolved.get(category_id, [])

    async def resolve_many(
        self, session: AsyncSession, category_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, list[str]]:
        """Resolve several categories at once; unresolvable ones map to ``[]``."""
        wanted = list(dict.fromkeys(category_ids))
        found = await self._category_repo.get_tags_for_categories(session, wanted)
        return {category_id: found.get(category_id, []) for category_id in wanted}

    async def category_exists(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> bool:
        """Check whether a category row exists, active or not."""
        return await self._category_repo.exists(session, category_id)

    # -------------------------------------------------------------------
    # Private helpers
    # -------------------------------------------------------------------

    async def _get_category_row(
        self, session: AsyncSession, category_id: uuid.UUID
    ) -> TagCategoryDB:
        category = await self._category_repo.get(session, category_id)
        if category is None:
            raise NotFoundError("TagCategory", category_id)
        return category

    async def _link_tag(
        self,
        session: AsyncSession,
        category_id: uuid.UUID,
        tag_name: str,
        *,
        strict: bool,
    ) -> bool:
        """Link a tag to a category. Returns False if it was already there."""
        storage = self.normalize(tag_name)
        key = self.comparison_key(storage)
        if await self._category_repo.has_tag_key(session, category_id, key):
            if strict:
                raise DuplicateNameError("Tag", storage)
            return False
        tag = await self.get_or_create_tag(session, storage)
        await self._category_repo.add_tag(session, category_id, tag.id)
        logger.debug("Linked tag '%s' to category %s", tag.name, category_id)
        return True

    async def _build(
        self, session: AsyncSession, category: TagCategoryDB
    ) -> TagCategory:
        tags = await self._category_repo.get_tags(session, category.id)
        return TagCategory(
            id=category.id,
            name=category.name,
            description=category.description,
            is_active=category.is_active,
            tags=[CategoryTag.model_validate(tag) for tag in tags],
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

    async def _snapshot_category_fields(
        self,
        session: AsyncSession,
        media_type: Any,
        category_id: uuid.UUID,
        options: list[str],
    ) -> None:
        fields: list[dict[str, Any]] = []
        for field in media_type.fields or []:
            if field_references_category(field, category_id):
                field = dict(field)
                field["option_source"] = {"source": "static", "options": list(options)}
            fields.append(field)

        await self._media_type_repo.update(
            session, db_obj=media_type, obj_in={"fields": fields}
        )
        await self._event_repo.create(
            session,
            obj_in=MediaTypeEventCreate(
                media_type_id=media_type.id,
                operation=MediaTypeOperation.UPDATE,
                from_status=MediaTypeStatus(media_type.status),
                to_status=MediaTypeStatus(media_type.status),
                details={
                    "reason": "tag_category_deleted",
                    "tag_category_id": str(category_id),
                    "options": list(options),
                },
                performed_by=self._performed_by,
            ),
        )
        logger.info(
            "Converted category-backed fields of media type '%s' to static options",
            media_type.name,
        )
