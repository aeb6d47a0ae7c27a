"""
Custom exceptions for the mediagov application.

This module defines the domain-specific exceptions raised by the schema
registry, the tag vocabulary, the lifecycle state machine, and the batch
engines. Structural and validation errors are raised before any write.
Per-record failures inside batch operations are never raised; they are
reported as data on the operation result.
"""

from __future__ import annotations

import uuid
from typing import Any


class MediaGovError(Exception):
    """Base exception for all mediagov errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize MediaGovError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        """
        self.message = message
        super().__init__(message)


class ValidationError(MediaGovError):
    """
    Exception raised for malformed media-type or vocabulary definitions.

    Raised for malformed field definitions, a Select field without exactly
    one option source, duplicate field names, invalid MIME patterns, empty
    tags, and references to unknown tag categories.

    Attributes
    ----------
    message : str
        Human-readable error message.
    field_name : str | None
        The name of the field that failed validation.
    invalid_value : object
        The value that failed validation.
    errors : list[dict[str, Any]]
        Structured error entries (pydantic ``errors()`` shape) when the
        failure came from model validation.

    Examples
    --------
    >>> try:
    ...     await registry.create(session, {"name": "Doc", "fields": [...]})
    ... except ValidationError as e:
    ...     print(f"Invalid {e.field_name}: {e.message}")
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field_name: str | None = None,
        invalid_value: object = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        """
        Initialize ValidationError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message (default: "Validation failed").
        field_name : str | None, optional
            The name of the field that failed validation (default: None).
        invalid_value : object, optional
            The value that failed validation (default: None).
        errors : list[dict[str, Any]] | None, optional
            Structured validation error entries (default: None).
        """
        self.field_name: str | None = field_name
        self.invalid_value: object = invalid_value
        self.errors: list[dict[str, Any]] = errors or []
        super().__init__(message)


class DuplicateNameError(MediaGovError):
    """
    Exception raised when a name collides case-insensitively.

    Attributes
    ----------
    entity_type : str
        The kind of entity ("MediaType", "TagCategory", "Tag").
    name : str
        The rejected name.
    """

    def __init__(self, entity_type: str, name: str) -> None:
        """
        Initialize DuplicateNameError.

        Parameters
        ----------
        entity_type : str
            The kind of entity whose name collided.
        name : str
            The rejected name.
        """
        self.entity_type = entity_type
        self.name = name
        super().__init__(
            f"{entity_type} named '{name}' already exists (case-insensitive match)"
        )


class NotFoundError(MediaGovError):
    """
    Exception raised when an operation references an unknown id.

    Attributes
    ----------
    resource_type : str
        The type of resource that was not found (e.g., "MediaType").
    identifier : str
        The identifier used to look up the resource.

    Examples
    --------
    >>> raise NotFoundError(resource_type="MediaType", identifier=str(type_id))
    """

    def __init__(
        self,
        resource_type: str,
        identifier: str | uuid.UUID,
        hint: str | None = None,
    ) -> None:
        """
        Initialize NotFoundError.

        Parameters
        ----------
        resource_type : str
            The type of resource that was not found.
        identifier : str | uuid.UUID
            The identifier used to look up the resource.
        hint : str | None, optional
            Additional hint for the user (default: None).
        """
        self.resource_type = resource_type
        self.identifier = str(identifier)
        message = f"{resource_type} '{identifier}' not found"
        if hint:
            message += f". {hint}"
        super().__init__(message)


class InvalidTransitionError(MediaGovError):
    """
    Exception raised for an illegal media-type lifecycle move.

    Covers moves the state machine does not allow (e.g. ``archived`` to
    ``deprecated``), migrating into a non-active target, and status changes
    that lost a race with a concurrent administrative operation.

    Attributes
    ----------
    media_type_id : uuid.UUID
        The media type whose transition was refused.
    from_status : str
        The status the media type was in.
    to_status : str
        The requested status or operation.
    """

    def __init__(
        self,
        media_type_id: uuid.UUID,
        from_status: str,
        to_status: str,
        reason: str | None = None,
    ) -> None:
        """
        Initialize InvalidTransitionError.

        Parameters
        ----------
        media_type_id : uuid.UUID
            The media type whose transition was refused.
        from_status : str
            The current status.
        to_status : str
            The requested status or operation.
        reason : str | None, optional
            Extra explanation appended to the message (default: None).
        """
        self.media_type_id = media_type_id
        self.from_status = from_status
        self.to_status = to_status
        message = (
            f"Media type '{media_type_id}' cannot move from "
            f"'{from_status}' to '{to_status}'"
        )
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MediaTypeInUseError(MediaGovError):
    """
    Exception raised when deleting a media type that records still reference.

    Attributes
    ----------
    media_type_id : uuid.UUID
        The media type that could not be deleted.
    usage_count : int
        The live number of records referencing it.
    """

    def __init__(self, media_type_id: uuid.UUID, usage_count: int) -> None:
        """
        Initialize MediaTypeInUseError.

        Parameters
        ----------
        media_type_id : uuid.UUID
            The media type that could not be deleted.
        usage_count : int
            The live number of records referencing it.
        """
        self.media_type_id = media_type_id
        self.usage_count = usage_count
        super().__init__(
            f"Media type '{media_type_id}' is used by {usage_count} record(s); "
            "migrate or archive it instead"
        )


class TagCategoryInUseError(MediaGovError):
    """
    Exception raised when hard-deleting a tag category that fields reference.

    Attributes
    ----------
    category_id : uuid.UUID
        The category that could not be deleted.
    media_type_ids : list[uuid.UUID]
        Media types whose Select/MultiSelect fields reference the category.
    """

    def __init__(
        self, category_id: uuid.UUID, media_type_ids: list[uuid.UUID]
    ) -> None:
        """
        Initialize TagCategoryInUseError.

        Parameters
        ----------
        category_id : uuid.UUID
            The category that could not be deleted.
        media_type_ids : list[uuid.UUID]
            Media types still referencing the category.
        """
        self.category_id = category_id
        self.media_type_ids = list(media_type_ids)
        super().__init__(
            f"Tag category '{category_id}' is referenced by "
            f"{len(self.media_type_ids)} media type(s); soft-delete it or "
            "delete with cascade"
        )


class LockAcquisitionError(MediaGovError):
    """
    Exception raised when a per-entity advisory lock cannot be acquired.

    Attributes
    ----------
    resource_id : uuid.UUID
        The entity whose lock was contended.
    timeout : float | None
        How long acquisition was attempted, in seconds.
    """

    def __init__(
        self, resource_id: uuid.UUID, timeout: float | None = None
    ) -> None:
        """
        Initialize LockAcquisitionError.

        Parameters
        ----------
        resource_id : uuid.UUID
            The entity whose lock was contended.
        timeout : float | None, optional
            Seconds spent waiting (default: None).
        """
        self.resource_id = resource_id
        self.timeout = timeout
        message = f"Another migration of media type '{resource_id}' is running"
        if timeout is not None:
            message += f" (waited {timeout:g}s)"
        super().__init__(message)


class RecordStoreError(MediaGovError):
    """
    Exception raised by the record store for a failed read or write.

    Batch engines catch it per record and report the id in ``failed_ids``.

    Attributes
    ----------
    record_id : uuid.UUID | None
        The record involved, when the failure was record-specific.
    operation : str | None
        The store operation that failed (e.g., "conditional_update").
    original_error : Exception | None
        The underlying driver exception.
    """

    def __init__(
        self,
        message: str = "Record store operation failed",
        record_id: uuid.UUID | None = None,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize RecordStoreError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message.
        record_id : uuid.UUID | None, optional
            The record involved (default: None).
        operation : str | None, optional
            The store operation that failed (default: None).
        original_error : Exception | None, optional
            The underlying exception (default: None).
        """
        self.record_id = record_id
        self.operation = operation
        self.original_error = original_error
        super().__init__(message)


# Exit codes for CLI commands
EXIT_CODE_SUCCESS = 0
EXIT_CODE_GENERAL_ERROR = 1
EXIT_CODE_INVALID_ARGS = 2
EXIT_CODE_CONFLICT = 3
EXIT_CODE_LOCK_HELD = 4
