from __future__ import annotations

import re
from typing import Any, Mapping

from ..model import Field
from .base import ValueCheck, ValueStrategy

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9][0-9\s\-().]{5,19}$")


class TextStrategy(ValueStrategy):
    """text / textarea."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return ValueCheck(value, "must be text")
        return ValueCheck(str(value))


class EmailStrategy(ValueStrategy):
    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
            return ValueCheck(value, "must be a valid email address")
        return ValueCheck(value.strip())


class PhoneStrategy(ValueStrategy):
    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if not isinstance(value, str) or not PHONE_RE.match(value.strip()):
            return ValueCheck(value, "must be a valid phone number")
        return ValueCheck(value.strip())


class AddressStrategy(ValueStrategy):
    """Free-form string or a structured mapping of string parts."""

    def coerce(self, field: Field, value: Any) -> ValueCheck:
        if isinstance(value, str):
            return ValueCheck(value)
        if isinstance(value, Mapping) and all(isinstance(v, (str, type(None))) for v in value.values()):
            return ValueCheck(dict(value))
        return ValueCheck(value, "must be an address")
