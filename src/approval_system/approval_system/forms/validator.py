"""
Payload validation against a FormSchema.

Walks sections and fields in declaration order and collects every field
error instead of stopping at the first one. Calculated fields are always
recomputed from the payload; whatever the caller sent for them is dropped.

Error keys are field paths: ``key`` for top-level fields and
``table[row].column`` (0-based row) for table cells.

Data problems never raise; only a malformed schema does, and that is caught
when the schema is parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..common.validators import is_empty_value
from .factory import ValueStrategyFactory
from .formula import to_decimal
from .model import NUMERIC_TYPES, Field, FormSchema, ScalarField, TableField


@dataclass(frozen=True)
class FieldError:
    field_key: str
    message: str

    def to_dict(self) -> dict:
        return {"field_key": self.field_key, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[FieldError, ...] = ()
    normalized_payload: dict = field(default_factory=dict)

    def error_map(self) -> dict[str, str]:
        return {e.field_key: e.message for e in self.errors}

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "normalized_payload": self.normalized_payload,
        }


class SchemaValidator:
    def __init__(self, strategy_factory: ValueStrategyFactory | None = None):
        self._factory = strategy_factory or ValueStrategyFactory()

    def validate(self, schema: FormSchema, payload: Any) -> ValidationResult:
        if not isinstance(payload, Mapping):
            return ValidationResult(valid=False, errors=(FieldError("", "payload must be an object"),))

        values = self.apply_calculations(schema, payload)
        errors: list[FieldError] = []
        normalized: dict[str, Any] = {}

        for f in schema.iter_fields():
            if not f.holds_data:
                continue
            if not f.is_visible(values):
                continue
            if isinstance(f, TableField):
                rows = self._validate_table(f, values, errors)
                if rows is not None and f.key in values:
                    normalized[f.key] = rows
                continue

            present = f.key in values
            value, error = self._check(f, values.get(f.key))
            if error:
                errors.append(FieldError(f.key, error))
            if present:
                normalized[f.key] = value

        return ValidationResult(valid=not errors, errors=tuple(errors), normalized_payload=normalized)

    def apply_calculations(self, schema: FormSchema, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Copy the payload with every calculated field (re)computed.

        Row-level columns first, since top-level formulas may sum them.
        """
        values = dict(payload)

        for table in schema.tables():
            rows = values.get(table.key)
            if not isinstance(rows, list):
                continue
            new_rows = []
            for row in rows:
                if not isinstance(row, Mapping):
                    new_rows.append(row)
                    continue
                row = dict(row)
                for key in table.calculation_order:
                    col = table.column(key)
                    if not isinstance(col, ScalarField) or col.formula is None:
                        continue
                    row[key] = col.formula.evaluate(row)
                new_rows.append(row)
            values[table.key] = new_rows

        for key in schema.calculation_order:
            f = schema.field(key)
            if not isinstance(f, ScalarField) or f.formula is None:
                continue
            values[key] = f.formula.evaluate(values)

        return values

    def _validate_table(self, table: TableField, values: Mapping[str, Any], errors: list[FieldError]) -> Optional[list]:
        rows = values.get(table.key)
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            errors.append(FieldError(table.key, _message(table, "must be a list of rows")))
            return None

        count = len(rows)
        if table.validation.required and count == 0:
            errors.append(FieldError(table.key, _message(table, "is required")))
        elif table.min_rows is not None and count < table.min_rows:
            errors.append(FieldError(table.key, _message(table, f"needs at least {table.min_rows} rows")))
        elif table.max_rows is not None and count > table.max_rows:
            errors.append(FieldError(table.key, _message(table, f"allows at most {table.max_rows} rows")))

        normalized_rows: list[dict] = []
        for idx, row in enumerate(rows):
            path = f"{table.key}[{idx}]"
            if not isinstance(row, Mapping):
                errors.append(FieldError(path, "row must be an object"))
                continue
            scope = {**values, **row}
            out: dict[str, Any] = {}
            for col in table.columns:
                if not col.holds_data or not col.is_visible(scope):
                    continue
                value, error = self._check(col, row.get(col.key))
                if error:
                    errors.append(FieldError(f"{path}.{col.key}", error))
                if col.key in row:
                    out[col.key] = value
            normalized_rows.append(out)
        return normalized_rows

    def _check(self, f: Field, value: Any) -> tuple[Any, Optional[str]]:
        """Apply the rules in order; the first failure wins."""
        rules = f.validation
        if is_empty_value(value):
            if rules.required:
                return value, _message(f, "is required")
            return value, None

        check = self._factory.for_field(f).coerce(f, value)
        if check.error:
            return value, f"{f.label} {check.error}"
        value = check.value

        if f.type in NUMERIC_TYPES:
            number = to_decimal(value)
            if rules.min is not None and number < rules.min:
                return value, _message(f, f"must be at least {_fmt(rules.min)}")
            if rules.max is not None and number > rules.max:
                return value, _message(f, f"must be at most {_fmt(rules.max)}")

        if isinstance(value, str):
            if rules.min_length is not None and len(value) < rules.min_length:
                return value, _message(f, f"must be at least {rules.min_length} characters")
            if rules.max_length is not None and len(value) > rules.max_length:
                return value, _message(f, f"must be at most {rules.max_length} characters")
            if rules.regex is not None and not rules.regex.search(value):
                return value, _message(f, "has an invalid format")

        return value, None


def _message(f: Field, default: str) -> str:
    return f.validation.message or f"{f.label} {default}"


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


_default_validator = SchemaValidator()


def validate(schema: FormSchema, payload: Any) -> ValidationResult:
    return _default_validator.validate(schema, payload)
