from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def is_empty_value(value: object) -> bool:
    """Empty for a form value: None, blank string or empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False
