"""
Tag Normalization Service for storage and comparison forms.

Every tag string has two representations:

- *storage form*: whitespace-trimmed, original case preserved. This is what
  gets written to records and vocabularies.
- *comparison form*: storage form lowercased. Used only for equality and
  duplicate checks, never stored on a record.

Both functions are pure (no I/O) and idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)


def storage_form(raw_tag: str) -> str:
    """
    Return the storage form of *raw_tag* (trimmed, case preserved).

    Examples
    --------
    >>> storage_form("  Product Image ")
    'Product Image'
    """
    return raw_tag.strip()


def comparison_key(raw_tag: str) -> str:
    """
    Return the comparison form of *raw_tag*.

    Examples
    --------
    >>> comparison_key("Product Image") == comparison_key("  product image ")
    True
    >>> comparison_key("a  b") == comparison_key("a b")
    False
    """
    return raw_tag.strip().lower()


def extract_tags(metadata: Any) -> list[Any]:
    """
    Return the raw tag list held in a record's metadata.

    A missing metadata document, a missing ``tags`` key, or a ``tags`` value
    that is not a list all count as an empty tag list.
    """
    if not isinstance(metadata, Mapping):
        return []
    tags = metadata.get("tags")
    if not isinstance(tags, list):
        return []
    return list(tags)


class TagNormalizationService:
    """
    Canonicalizes tag strings and computes tag-set differences.

    All comparisons happen in comparison form; every value returned for
    storage is in storage form.
    """

    def normalize(self, raw_tag: str) -> str | None:
        """
        Return the storage form of *raw_tag*, or ``None`` if it is blank.

        Parameters
        ----------
        raw_tag : str
            The tag as entered by a user or found on a record.

        Returns
        -------
        str | None
            The trimmed tag, or ``None`` when nothing remains after trimming.
        """
        text = storage_form(raw_tag)
        if not comparison_key(text):
            return None
        return text

    def comparison_key(self, raw_tag: str) -> str:
        """Return the comparison form of *raw_tag*."""
        return comparison_key(raw_tag)

    def dedupe(self, tags: Iterable[str]) -> list[str]:
        """
        Deduplicate *tags* in comparison form, keeping the first spelling.

        Blank tags are dropped. Order of first occurrence is preserved.
        """
        seen: set[str] = set()
        result: list[str] = []
        for raw in tags:
            tag = self.normalize(raw)
            if tag is None:
                continue
            key = comparison_key(tag)
            if key in seen:
                continue
            seen.add(key)
            result.append(tag)
        return result

    def missing(self, existing: Iterable[Any], required: Iterable[str]) -> list[str]:
        """
        Return the tags of *required* absent from *existing*.

        Parameters
        ----------
        existing : Iterable[Any]
            Tags currently on a record. Non-string entries are ignored for
            comparison purposes.
        required : Iterable[str]
            Tags that should be present (e.g. a media type's default tags).

        Returns
        -------
        list[str]
            Missing tags in storage form, deduplicated, in *required* order.
        """
        present = {comparison_key(tag) for tag in existing if isinstance(tag, str)}
        result: list[str] = []
        for tag in self.dedupe(required):
            key = comparison_key(tag)
            if key not in present:
                present.add(key)
                result.append(tag)
        return result

    def merge(
        self, existing: Iterable[Any], additions: Iterable[str]
    ) -> tuple[list[Any], list[str]]:
        """
        Union *additions* into *existing* without removing or rewriting tags.

        Returns
        -------
        tuple[list[Any], list[str]]
            ``(merged, added)`` where *merged* is *existing* followed by the
            tags that were actually added, and *added* lists those tags.
        """
        existing_list = list(existing)
        added = self.missing(existing_list, additions)
        if added:
            logger.debug("Adding %d missing tag(s): %s", len(added), added)
        return existing_list + added, added
