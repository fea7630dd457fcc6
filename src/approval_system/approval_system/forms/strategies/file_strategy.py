from __future__ import annotations

from typing import Any

from ..model import Field
from .base import ValueCheck, ValueStrategy


class FileStrategy(ValueStrategy):
    """Attachment references (storage keys); the files themselves live elsewhere."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if isinstance(value, str):
            return ValueCheck([value])
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) and v.strip() for v in value):
            return ValueCheck(list(value))
        return ValueCheck(value, "must be a file reference or a list of file references")
