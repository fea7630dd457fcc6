from __future__ import annotations

from typing import Any

from ...common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..model import Field
from .base import ValueCheck, ValueStrategy


class DateStrategy(ValueStrategy):
    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, str):
            return ValueCheck(value, "must be a date (YYYY-MM-DD)")
        try:
            parse_iso_date(value.strip())
        except ValueError:
            return ValueCheck(value, "must be a date (YYYY-MM-DD)")
        return ValueCheck(value.strip())


class DateTimeStrategy(ValueStrategy):
    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, str):
            return ValueCheck(value, "must be a date and time")
        try:
            parse_iso_datetime(value)
        except ValueError:
            return ValueCheck(value, "must be a date and time")
        return ValueCheck(value.strip())
