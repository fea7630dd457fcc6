from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from ...core.constants import MAX_NUMBER_MAGNITUDE
from ..formula import to_output_number
from ..model import Field
from .base import ValueCheck, ValueStrategy


class NumberStrategy(ValueStrategy):
    """number / money. Numeric strings ("1,500") are accepted and normalized."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if isinstance(value, bool):
            return ValueCheck(value, "must be a number")
        if isinstance(value, (int, float, Decimal)):
            d = Decimal(str(value))
        elif isinstance(value, str):
            try:
                d = Decimal(value.strip().replace(",", ""))
            except InvalidOperation:
                return ValueCheck(value, "must be a number")
        else:
            return ValueCheck(value, "must be a number")

        if not d.is_finite():
            return ValueCheck(value, "must be a number")
        if d.copy_abs() >= MAX_NUMBER_MAGNITUDE:
            return ValueCheck(value, "is out of range")
        return ValueCheck(to_output_number(d))
