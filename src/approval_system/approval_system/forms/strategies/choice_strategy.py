from __future__ import annotations

from typing import Any

from ..model import ChoiceField, Field
from .base import ValueCheck, ValueStrategy


class ChoiceStrategy(ValueStrategy):
    """select / radio: one of the declared options."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        allowed = field.option_values if isinstance(field, ChoiceField) else ()
        if allowed and value not in allowed:
            return ValueCheck(value, "is not one of the allowed options")
        return ValueCheck(value)


class MultiChoiceStrategy(ValueStrategy):
    """multiSelect, and checkbox groups that declare options."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, (list, tuple)):
            return ValueCheck(value, "must be a list of options")
        allowed = field.option_values if isinstance(field, ChoiceField) else ()
        if allowed and any(v not in allowed for v in value):
            return ValueCheck(value, "contains a value that is not an allowed option")
        return ValueCheck(list(value))


class CheckboxStrategy(ValueStrategy):
    """Single checkbox without options: a boolean."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, bool):
            return ValueCheck(value, "must be true or false")
        return ValueCheck(value)
