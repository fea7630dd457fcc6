"""Dynamic form schema model.

A schema arrives as nested dict data (the JSON stored with a template) and is
parsed once into immutable dataclasses. ``Field`` is a small tagged union:
the concrete class is chosen from the field ``type``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, Mapping, Optional, Sequence

from ..core.constants import DEFAULT_AUTOSAVE_INTERVAL, DEFAULT_LAYOUT_COLUMNS, DEFAULT_SCHEMA_VERSION
from ..core.enums import ConditionOperator, FieldType
from ..core.exceptions import SchemaDefinitionError
from .formula import Formula, parse_formula, to_decimal

SCALAR_TYPES = frozenset(
    {
        FieldType.TEXT,
        FieldType.NUMBER,
        FieldType.DATE,
        FieldType.DATETIME,
        FieldType.TEXTAREA,
        FieldType.FILE,
        FieldType.MONEY,
        FieldType.EMAIL,
        FieldType.PHONE,
        FieldType.ADDRESS,
    }
)
CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.MULTI_SELECT, FieldType.RADIO, FieldType.CHECKBOX})
LAYOUT_TYPES = frozenset({FieldType.SECTION, FieldType.DIVIDER})
NUMERIC_TYPES = frozenset({FieldType.NUMBER, FieldType.MONEY})


@dataclass(frozen=True)
class FieldValidation:
    required: bool = False
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    message: Optional[str] = None
    regex: Optional[re.Pattern] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Condition:
    """Visibility predicate ``{field, operator, value}``."""

    field: str
    operator: ConditionOperator
    value: Any = None

    def holds(self, values: Mapping[str, Any]) -> bool:
        actual = values.get(self.field)
        if self.operator == ConditionOperator.EQUALS:
            return _loose_equals(actual, self.value)
        if self.operator == ConditionOperator.NOT_EQUALS:
            return not _loose_equals(actual, self.value)
        if self.operator == ConditionOperator.CONTAINS:
            if isinstance(actual, str):
                return str(self.value) in actual
            if isinstance(actual, (list, tuple)):
                return any(_loose_equals(item, self.value) for item in actual)
            return False

        left, right = _as_number(actual), _as_number(self.value)
        if left is None or right is None:
            return False
        if self.operator == ConditionOperator.GREATER_THAN:
            return left > right
        return left < right


@dataclass(frozen=True)
class SelectOption:
    value: Any
    label: str
    description: Optional[str] = None


@dataclass(frozen=True)
class Field:
    key: str
    label: str
    type: FieldType
    validation: FieldValidation = FieldValidation()
    conditional: Optional[Condition] = None
    default: Any = None
    help_text: Optional[str] = None

    @property
    def holds_data(self) -> bool:
        return True

    @property
    def is_calculated(self) -> bool:
        return False

    def is_visible(self, values: Mapping[str, Any]) -> bool:
        return self.conditional is None or self.conditional.holds(values)


@dataclass(frozen=True)
class ScalarField(Field):
    calculated: bool = False
    formula: Optional[Formula] = None
    currency: Optional[str] = None
    placeholder: Optional[str] = None

    @property
    def is_calculated(self) -> bool:
        return self.calculated


@dataclass(frozen=True)
class ChoiceField(Field):
    options: tuple[SelectOption, ...] = ()

    @property
    def option_values(self) -> tuple[Any, ...]:
        return tuple(o.value for o in self.options)

    @property
    def is_multi(self) -> bool:
        return self.type == FieldType.MULTI_SELECT or (self.type == FieldType.CHECKBOX and bool(self.options))


@dataclass(frozen=True)
class TableField(Field):
    columns: tuple[Field, ...] = ()
    min_rows: Optional[int] = None
    max_rows: Optional[int] = None
    allow_add: bool = True
    allow_delete: bool = True
    calculation_order: tuple[str, ...] = ()

    def column(self, key: str) -> Optional[Field]:
        for c in self.columns:
            if c.key == key:
                return c
        return None


@dataclass(frozen=True)
class LayoutField(Field):
    """Section headers and dividers: presentation only, never validated."""

    @property
    def holds_data(self) -> bool:
        return False


@dataclass(frozen=True)
class Section:
    title: str
    fields: tuple[Field, ...]
    description: Optional[str] = None
    collapsible: bool = False


@dataclass(frozen=True)
class FormSettings:
    submit_label: str = "Submit"
    cancel_label: str = "Cancel"
    save_as_draft: bool = True
    auto_save: bool = False
    autosave_interval: int = DEFAULT_AUTOSAVE_INTERVAL


@dataclass(frozen=True)
class FormLayout:
    columns: int = DEFAULT_LAYOUT_COLUMNS
    spacing: str = "normal"


@dataclass(frozen=True)
class FormSchema:
    version: str
    title: str
    sections: tuple[Section, ...]
    settings: FormSettings = FormSettings()
    layout: FormLayout = FormLayout()
    description: Optional[str] = None
    calculation_order: tuple[str, ...] = ()

    def iter_fields(self) -> Iterator[Field]:
        for section in self.sections:
            yield from section.fields

    def data_fields(self) -> list[Field]:
        return [f for f in self.iter_fields() if f.holds_data]

    def field(self, key: str) -> Optional[Field]:
        for f in self.iter_fields():
            if f.holds_data and f.key == key:
                return f
        return None

    def tables(self) -> list[TableField]:
        return [f for f in self.iter_fields() if isinstance(f, TableField)]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_schema(definition: Mapping[str, Any]) -> FormSchema:
    """Build a FormSchema from its dict definition.

    Raises SchemaDefinitionError for authoring defects (duplicate keys,
    unknown types, formulas or conditions that reference unknown fields,
    calculation cycles, bad patterns).
    """
    if not isinstance(definition, Mapping):
        raise SchemaDefinitionError("schema definition must be an object")

    raw_sections = definition.get("sections")
    if not isinstance(raw_sections, list) or not raw_sections:
        raise SchemaDefinitionError("schema must declare at least one section")

    # First pass: keys and table columns, so formulas can reference fields
    # declared later in the form.
    top_keys: list[str] = []
    table_columns: dict[str, frozenset[str]] = {}
    for s_idx, raw_section in enumerate(raw_sections):
        if not isinstance(raw_section, Mapping):
            raise SchemaDefinitionError(f"section #{s_idx} must be an object")
        raw_fields = raw_section.get("fields") or []
        if not isinstance(raw_fields, list):
            raise SchemaDefinitionError(f"section #{s_idx}: fields must be a list")
        for raw in raw_fields:
            ftype = _field_type(raw, where=f"section #{s_idx}")
            if ftype in LAYOUT_TYPES:
                continue
            key = _field_key(raw, where=f"section #{s_idx}")
            if key in top_keys:
                raise SchemaDefinitionError(f"duplicate field key '{key}'")
            top_keys.append(key)
            if ftype == FieldType.TABLE:
                table_columns[key] = frozenset(_column_keys(raw, table_key=key))

    known = frozenset(top_keys)
    sections = tuple(
        Section(
            title=str(raw_section.get("title") or ""),
            description=raw_section.get("description"),
            collapsible=bool(raw_section.get("collapsible", False)),
            fields=tuple(
                _parse_field(raw, scope_keys=known, table_columns=table_columns, outer_keys=frozenset())
                for raw in (raw_section.get("fields") or [])
            ),
        )
        for raw_section in raw_sections
    )

    calculated = {
        f.key: f.formula
        for s in sections
        for f in s.fields
        if isinstance(f, ScalarField) and f.calculated and f.formula is not None
    }

    return FormSchema(
        version=str(definition.get("version") or DEFAULT_SCHEMA_VERSION),
        title=str(definition.get("title") or ""),
        description=definition.get("description"),
        sections=sections,
        settings=_parse_settings(definition.get("settings") or {}),
        layout=_parse_layout(definition.get("layout") or {}),
        calculation_order=_calculation_order(calculated),
    )


def _parse_field(
    raw: Mapping[str, Any],
    *,
    scope_keys: frozenset[str],
    table_columns: Mapping[str, frozenset[str]],
    outer_keys: frozenset[str],
) -> Field:
    ftype = _field_type(raw, where="field")

    if ftype in LAYOUT_TYPES:
        return LayoutField(key=str(raw.get("key") or ""), label=str(raw.get("label") or ""), type=ftype)

    key = _field_key(raw, where="field")
    common = dict(
        key=key,
        label=str(raw.get("label") or key),
        type=ftype,
        validation=_parse_validation(raw.get("validation") or {}, key=key),
        conditional=_parse_condition(raw.get("conditional"), key=key, known=scope_keys | outer_keys),
        default=_get(raw, "defaultValue", "default"),
        help_text=_get(raw, "helpText", "help_text"),
    )

    if ftype == FieldType.TABLE:
        if outer_keys:
            raise SchemaDefinitionError(f"table '{key}' cannot be nested inside another table")
        return _parse_table(raw, common=common, top_keys=scope_keys)

    if ftype in CHOICE_TYPES:
        if raw.get("calculated"):
            raise SchemaDefinitionError(f"choice field '{key}' cannot be calculated")
        return ChoiceField(options=_parse_options(raw.get("options"), key=key), **common)

    calculated = bool(raw.get("calculated", False))
    formula = None
    if calculated:
        expression = raw.get("formula")
        if not expression:
            raise SchemaDefinitionError(f"calculated field '{key}' has no formula")
        formula = parse_formula(expression, field_keys=scope_keys, table_columns=table_columns, owner=key)
    elif raw.get("formula"):
        raise SchemaDefinitionError(f"field '{key}' has a formula but is not marked calculated")

    return ScalarField(
        calculated=calculated,
        formula=formula,
        currency=raw.get("currency"),
        placeholder=raw.get("placeholder"),
        **common,
    )


def _parse_table(raw: Mapping[str, Any], *, common: dict, top_keys: frozenset[str]) -> TableField:
    key = common["key"]
    raw_columns = raw.get("columns")
    if not isinstance(raw_columns, list) or not raw_columns:
        raise SchemaDefinitionError(f"table '{key}' must declare columns")

    column_keys = frozenset(_column_keys(raw, table_key=key))
    # Column formulas and conditions are evaluated per row, against sibling cells.
    columns = tuple(
        _parse_field(c, scope_keys=column_keys, table_columns={}, outer_keys=top_keys) for c in raw_columns
    )

    min_rows = _optional_int(_get(raw, "minRows", "min_rows"), what=f"table '{key}' minRows")
    max_rows = _optional_int(_get(raw, "maxRows", "max_rows"), what=f"table '{key}' maxRows")
    if min_rows is not None and max_rows is not None and min_rows > max_rows:
        raise SchemaDefinitionError(f"table '{key}': minRows {min_rows} exceeds maxRows {max_rows}")

    calculated = {
        c.key: c.formula for c in columns if isinstance(c, ScalarField) and c.calculated and c.formula is not None
    }
    return TableField(
        columns=columns,
        min_rows=min_rows,
        max_rows=max_rows,
        allow_add=bool(_get(raw, "allowAdd", "allow_add", default=True)),
        allow_delete=bool(_get(raw, "allowDelete", "allow_delete", default=True)),
        calculation_order=_calculation_order(calculated),
        **common,
    )


def _column_keys(raw: Mapping[str, Any], *, table_key: str) -> list[str]:
    keys: list[str] = []
    for col in raw.get("columns") or []:
        ctype = _field_type(col, where=f"table '{table_key}'")
        if ctype in LAYOUT_TYPES:
            continue
        ckey = _field_key(col, where=f"table '{table_key}'")
        if ckey in keys:
            raise SchemaDefinitionError(f"duplicate column key '{ckey}' in table '{table_key}'")
        keys.append(ckey)
    return keys


def _calculation_order(formulas: Mapping[str, Formula]) -> tuple[str, ...]:
    """Order calculated keys so each is computed after the ones it uses."""
    order: list[str] = []
    state: dict[str, int] = {}  # 1 = visiting, 2 = done

    def visit(key: str, chain: list[str]) -> None:
        if state.get(key) == 2:
            return
        if state.get(key) == 1:
            cycle = " -> ".join(chain + [key])
            raise SchemaDefinitionError(f"calculated fields form a cycle: {cycle}")
        state[key] = 1
        for dep in sorted(formulas[key].references):
            if dep in formulas:
                visit(dep, chain + [key])
        state[key] = 2
        order.append(key)

    for key in formulas:
        visit(key, [])
    return tuple(order)


def _parse_validation(raw: Mapping[str, Any], *, key: str) -> FieldValidation:
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError(f"field '{key}': validation must be an object")

    pattern = raw.get("pattern")
    regex = None
    if pattern is not None and not isinstance(pattern, str):
        raise SchemaDefinitionError(f"field '{key}': pattern must be a string")
    if pattern:
        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise SchemaDefinitionError(f"field '{key}': invalid pattern: {e}") from e

    return FieldValidation(
        required=bool(raw.get("required", False)),
        min=_optional_decimal(raw.get("min"), what=f"field '{key}' min"),
        max=_optional_decimal(raw.get("max"), what=f"field '{key}' max"),
        min_length=_optional_int(_get(raw, "minLength", "min_length"), what=f"field '{key}' minLength"),
        max_length=_optional_int(_get(raw, "maxLength", "max_length"), what=f"field '{key}' maxLength"),
        pattern=pattern or None,
        message=raw.get("message"),
        regex=regex,
    )


def _parse_condition(raw: Any, *, key: str, known: frozenset[str]) -> Optional[Condition]:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError(f"field '{key}': conditional must be an object")
    target = raw.get("field")
    if target not in known:
        raise SchemaDefinitionError(f"field '{key}': conditional references unknown field '{target}'")
    if target == key:
        raise SchemaDefinitionError(f"field '{key}': conditional cannot reference itself")
    try:
        operator = ConditionOperator(raw.get("operator"))
    except ValueError as e:
        raise SchemaDefinitionError(f"field '{key}': unknown operator {raw.get('operator')!r}") from e
    return Condition(field=target, operator=operator, value=raw.get("value"))


def _parse_options(raw: Any, *, key: str) -> tuple[SelectOption, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        raise SchemaDefinitionError(f"field '{key}': options must be a list")
    options: list[SelectOption] = []
    for o in raw:
        if isinstance(o, Mapping):
            if "value" not in o:
                raise SchemaDefinitionError(f"field '{key}': option without value")
            options.append(SelectOption(value=o["value"], label=str(o.get("label", o["value"])), description=o.get("description")))
        else:
            options.append(SelectOption(value=o, label=str(o)))
    return tuple(options)


def _parse_settings(raw: Any) -> FormSettings:
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError("settings must be an object")
    interval = _optional_int(_get(raw, "autoSaveInterval", "autosave_interval"), what="settings autoSaveInterval")
    return FormSettings(
        submit_label=str(_get(raw, "submitButtonText", "submit_label", default="Submit")),
        cancel_label=str(_get(raw, "cancelButtonText", "cancel_label", default="Cancel")),
        save_as_draft=bool(_get(raw, "saveAsDraft", "save_as_draft", default=True)),
        auto_save=bool(_get(raw, "autoSave", "auto_save", default=False)),
        autosave_interval=DEFAULT_AUTOSAVE_INTERVAL if interval is None else interval,
    )


def _parse_layout(raw: Any) -> FormLayout:
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError("layout must be an object")
    columns = _optional_int(raw.get("columns"), what="layout columns")
    return FormLayout(
        columns=columns or DEFAULT_LAYOUT_COLUMNS,
        spacing=str(raw.get("spacing") or "normal"),
    )


def _field_type(raw: Any, *, where: str) -> FieldType:
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError(f"{where}: field definition must be an object")
    try:
        return FieldType.parse(raw.get("type"))
    except ValueError as e:
        raise SchemaDefinitionError(f"{where}: unknown field type {raw.get('type')!r}") from e


def _field_key(raw: Mapping[str, Any], *, where: str) -> str:
    key = raw.get("key")
    if not isinstance(key, str) or not key.strip():
        raise SchemaDefinitionError(f"{where}: field without key")
    return key


def _get(raw: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return default


def _optional_int(value: Any, *, what: str) -> Optional[int]:
    if value is None:
        return None
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or int(value) != value
        or value < 0
    ):
        raise SchemaDefinitionError(f"{what} must be a non-negative integer")
    return int(value)


def _optional_decimal(value: Any, *, what: str) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise SchemaDefinitionError(f"{what} must be a number")
    number = Decimal(str(value))
    if not number.is_finite():
        raise SchemaDefinitionError(f"{what} must be a finite number")
    return number


def _as_number(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return to_decimal(value)
    if isinstance(value, str):
        try:
            d = Decimal(value.strip().replace(",", ""))
        except InvalidOperation:
            return None
        return d if d.is_finite() else None
    return None


def _loose_equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return actual == expected
    a, b = _as_number(actual), _as_number(expected)
    if a is not None and b is not None:
        return a == b
    return actual == expected
