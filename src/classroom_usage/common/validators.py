from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, PROTECTED_FIELDS
from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_version(value: Any) -> int:
    """Validate the version token a client sends with every update/delete."""
    if value is None or value == "":
        raise ValidationError("Version is required for optimistic locking")
    if isinstance(value, bool):
        raise ValidationError("Version must be a non-negative integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Version must be a non-negative integer")
    if parsed < 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("Version must be a non-negative integer")
    return parsed


def require_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a non-negative integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field_name} must be a non-negative integer")
    if parsed < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer")
    return parsed


def sanitize_fields(fields: Mapping[str, Any] | None, protected: Iterable[str] = PROTECTED_FIELDS) -> dict[str, Any]:
    """Drop system fields that must never come from a client payload."""
    blocked = set(protected)
    return {k: v for k, v in dict(fields or {}).items() if k not in blocked}


def require_limit(value: Any, *, default: int = DEFAULT_LIST_LIMIT, maximum: int = MAX_LIST_LIMIT) -> int:
    """Page size for listings: missing means ``default``, above ``maximum`` is clamped."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError("limit must be a positive integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("limit must be a positive integer")
    if parsed < 1:
        raise ValidationError("limit must be a positive integer")
    return min(parsed, maximum)
