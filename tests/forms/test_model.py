import pytest

from src.approval_system.approval_system.core.enums import FieldType
from src.approval_system.approval_system.core.exceptions import SchemaDefinitionError
from src.approval_system.approval_system.forms.model import (
    ChoiceField,
    LayoutField,
    ScalarField,
    TableField,
    parse_schema,
)


def _schema(*fields, **extra):
    return {"version": "1.0", "title": "Test", "sections": [{"title": "Main", "fields": list(fields)}], **extra}


def test_parse_builds_tagged_fields_in_declaration_order():
    schema = parse_schema(
        _schema(
            {"key": "name", "label": "Name", "type": "text", "validation": {"required": True, "minLength": 2}},
            {"type": "divider"},
            {"key": "tags", "label": "Tags", "type": "multi_select", "options": ["a", {"value": "b", "label": "B"}]},
            {
                "key": "lines",
                "label": "Lines",
                "type": "table",
                "minRows": 1,
                "maxRows": 3,
                "columns": [{"key": "qty", "label": "Qty", "type": "number"}],
            },
            settings={"submitButtonText": "Send", "autoSave": True, "autoSaveInterval": 60},
            layout={"columns": 6},
        )
    )

    fields = list(schema.iter_fields())
    assert [type(f) for f in fields] == [ScalarField, LayoutField, ChoiceField, TableField]
    assert [f.key for f in schema.data_fields()] == ["name", "tags", "lines"]
    assert fields[0].validation.min_length == 2
    assert fields[2].type == FieldType.MULTI_SELECT
    assert fields[2].option_values == ("a", "b")
    assert fields[3].min_rows == 1 and fields[3].max_rows == 3
    assert schema.settings.submit_label == "Send"
    assert schema.settings.autosave_interval == 60
    assert schema.layout.columns == 6


def test_defaults_for_settings_and_layout():
    schema = parse_schema(_schema({"key": "x", "type": "text"}))

    assert schema.settings.autosave_interval == 30
    assert schema.layout.columns == 12
    assert schema.field("x").label == "x"


def test_calculation_order_follows_dependencies():
    schema = parse_schema(
        _schema(
            {"key": "grand", "type": "money", "calculated": True, "formula": "subtotal + tax"},
            {"key": "tax", "type": "money", "calculated": True, "formula": "round(subtotal * 0.1)"},
            {"key": "subtotal", "type": "money", "calculated": True, "formula": "a + b"},
            {"key": "a", "type": "number"},
            {"key": "b", "type": "number"},
        )
    )

    order = schema.calculation_order
    assert order.index("subtotal") < order.index("tax") < order.index("grand")


@pytest.mark.parametrize(
    "fields",
    [
        [{"key": "a", "type": "text"}, {"key": "a", "type": "number"}],
        [{"key": "a", "type": "colour"}],
        [{"type": "text"}],
        [{"key": "a", "type": "number", "calculated": True}],
        [{"key": "a", "type": "number", "formula": "1 + 1"}],
        [{"key": "a", "type": "number", "calculated": True, "formula": "b + 1"}],
        [
            {"key": "a", "type": "number", "calculated": True, "formula": "b + 1"},
            {"key": "b", "type": "number", "calculated": True, "formula": "a + 1"},
        ],
        [{"key": "a", "type": "text", "conditional": {"field": "ghost", "operator": "equals", "value": 1}}],
        [
            {"key": "b", "type": "text"},
            {"key": "a", "type": "text", "conditional": {"field": "b", "operator": "like", "value": 1}},
        ],
        [{"key": "a", "type": "text", "validation": {"pattern": "([a-z"}}],
        [{"key": "a", "type": "text", "validation": {"pattern": 123}}],
        [{"key": "a", "type": "number", "validation": {"min": float("nan")}}],
        [{"key": "a", "type": "text", "validation": {"maxLength": float("inf")}}],
        [{"key": "t", "type": "table", "minRows": 3, "maxRows": 1, "columns": [{"key": "c", "type": "text"}]}],
        [{"key": "t", "type": "table", "columns": [{"key": "c", "type": "text"}, {"key": "c", "type": "text"}]}],
        [{"key": "t", "type": "table", "columns": []}],
        [
            {
                "key": "t",
                "type": "table",
                "columns": [{"key": "inner", "type": "table", "columns": [{"key": "c", "type": "text"}]}],
            }
        ],
        [{"key": "s", "type": "select", "calculated": True, "formula": "1"}],
    ],
)
def test_schema_defects_are_fatal(fields):
    with pytest.raises(SchemaDefinitionError):
        parse_schema(_schema(*fields))


@pytest.mark.parametrize(
    "extra",
    [
        {"settings": {"autoSaveInterval": "soon"}},
        {"settings": {"autoSaveInterval": -5}},
        {"settings": ["autoSave"]},
        {"layout": {"columns": "wide"}},
        {"layout": "grid"},
    ],
)
def test_settings_and_layout_defects_are_fatal(extra):
    with pytest.raises(SchemaDefinitionError):
        parse_schema(_schema({"key": "a", "type": "text"}, **extra))


def test_schema_without_sections_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        parse_schema({"version": "1.0", "sections": []})
    with pytest.raises(SchemaDefinitionError):
        parse_schema(["not", "a", "dict"])


def test_formula_may_reference_field_declared_later():
    schema = parse_schema(
        {
            "sections": [
                {"title": "Totals", "fields": [{"key": "total", "type": "money", "calculated": True, "formula": "sum(items.amount)"}]},
                {
                    "title": "Items",
                    "fields": [{"key": "items", "type": "table", "columns": [{"key": "amount", "type": "money"}]}],
                },
            ]
        }
    )

    assert schema.field("total").is_calculated


def test_conditions():
    schema = parse_schema(
        _schema(
            {"key": "kind", "type": "text"},
            {"key": "amount", "type": "number"},
            {"key": "eq", "type": "text", "conditional": {"field": "kind", "operator": "equals", "value": "x"}},
            {"key": "ne", "type": "text", "conditional": {"field": "kind", "operator": "not_equals", "value": "none"}},
            {"key": "gt", "type": "text", "conditional": {"field": "amount", "operator": "greater_than", "value": 100}},
            {"key": "lt", "type": "text", "conditional": {"field": "amount", "operator": "less_than", "value": "100"}},
            {"key": "has", "type": "text", "conditional": {"field": "kind", "operator": "contains", "value": "ab"}},
        )
    )

    def visible(key, values):
        return schema.field(key).is_visible(values)

    assert visible("eq", {"kind": "x"}) and not visible("eq", {"kind": "y"})
    assert visible("ne", {}) and not visible("ne", {"kind": "none"})
    assert visible("gt", {"amount": "150"}) and not visible("gt", {"amount": 100})
    assert visible("lt", {"amount": 5}) and not visible("lt", {"amount": "abc"})
    assert visible("has", {"kind": "cabin"}) and not visible("has", {"kind": "a"})
