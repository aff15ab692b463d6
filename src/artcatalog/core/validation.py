"""Validation utilities for engine requests."""

from collections.abc import Iterable


class ValidationError(ValueError):
    """Invalid request parameters.

    The message is intended to be reported to the caller as-is.
    """

    pass


def validate_limit(limit: object) -> int:
    """Validate a result-count limit.

    Args:
        limit: Requested maximum number of results

    Returns:
        The limit, unchanged

    Raises:
        ValidationError: If limit is not a positive integer
    """
    # bool is an int subclass; reject it explicitly
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"Limit must be an integer, got {type(limit).__name__}")
    if limit <= 0:
        raise ValidationError(f"Limit must be positive, got {limit}")
    return limit


def normalize_tags(tags: Iterable[str] | None) -> frozenset[str]:
    """Lower-case and strip a tag collection, dropping blanks.

    Raises:
        ValidationError: If a bare string is passed instead of a collection
    """
    if tags is None:
        return frozenset()
    if isinstance(tags, str):
        raise ValidationError("Tags must be a collection of strings, not a single string")
    return frozenset(tag.strip().lower() for tag in tags if tag and tag.strip())


def normalize_ids(ids: Iterable[str] | None) -> frozenset[str]:
    """Return identifiers as a frozenset.

    Raises:
        ValidationError: If a bare string is passed instead of a collection
    """
    if ids is None:
        return frozenset()
    if isinstance(ids, str):
        raise ValidationError("Identifiers must be a collection, not a single string")
    return frozenset(ids)
