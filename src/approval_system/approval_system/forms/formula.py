"""
Restricted formula language for calculated form fields.

Formulas are parsed once, when a schema is published, into a small AST of
frozen nodes. Evaluation walks that AST against a payload; nothing is ever
passed to ``eval``.

Allowed:
  - Numbers, field keys (``quantity``), ``table.column`` inside ``sum()``
  - Arithmetic: + - * / and unary -/+, parentheses
  - Functions: sum(table.column), round(x[, digits]), abs(x), min(...), max(...)

Evaluation rules:
  - Unresolved or non-numeric operands count as 0.
  - Division by zero yields 0.
  - Results outside the decimal range (overflow, too many digits to round)
    yield 0.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation, localcontext
from typing import Any, Callable, Mapping, Union

from ..core.exceptions import SchemaDefinitionError

ALLOWED_FUNCTIONS: frozenset[str] = frozenset({"sum", "round", "abs", "min", "max"})

_ZERO = Decimal(0)


@dataclass(frozen=True)
class Number:
    value: Decimal


@dataclass(frozen=True)
class FieldRef:
    key: str


@dataclass(frozen=True)
class ColumnRef:
    table: str
    column: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]


Node = Union[Number, FieldRef, ColumnRef, UnaryOp, BinaryOp, Call]

_BIN_OPS: dict[type, str] = {ast.Add: "+", ast.Sub: "-", ast.Mult: "*", ast.Div: "/"}
_UNARY_OPS: dict[type, str] = {ast.USub: "-", ast.UAdd: "+"}


@dataclass(frozen=True)
class Formula:
    expression: str
    root: Node
    references: frozenset[str]

    def evaluate(self, values: Mapping[str, Any]) -> int | float:
        with localcontext():
            try:
                return to_output_number(_eval(self.root, values))
            except DecimalException:
                return 0


def parse_formula(
    expression: str,
    *,
    field_keys: frozenset[str] | set[str],
    table_columns: Mapping[str, frozenset[str] | set[str]] | None = None,
    owner: str = "",
) -> Formula:
    """Parse and check ``expression`` against the known field keys.

    ``table_columns`` maps table keys to their column keys, for
    ``sum(table.column)`` references. Raises SchemaDefinitionError on
    syntax errors, disallowed constructs and unknown references.
    """
    label = f"formula of '{owner}'" if owner else "formula"
    if not isinstance(expression, str) or not expression.strip():
        raise SchemaDefinitionError(f"{label} is empty")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise SchemaDefinitionError(f"{label}: syntax error: {e.msg}") from e

    refs: set[str] = set()
    builder = _Builder(
        expression=expression,
        label=label,
        field_keys=frozenset(field_keys),
        table_columns={k: frozenset(v) for k, v in (table_columns or {}).items()},
        refs=refs,
    )
    root = builder.build(tree.body)
    return Formula(expression=expression, root=root, references=frozenset(refs))


@dataclass
class _Builder:
    expression: str
    label: str
    field_keys: frozenset[str]
    table_columns: dict[str, frozenset[str]]
    refs: set[str]

    def fail(self, message: str) -> SchemaDefinitionError:
        return SchemaDefinitionError(f"{self.label}: {message}")

    def build(self, node: ast.AST) -> Node:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise self.fail(f"disallowed constant {node.value!r}")
            return Number(Decimal(str(node.value)))

        if isinstance(node, ast.Name):
            if node.id not in self.field_keys:
                raise self.fail(f"unknown field '{node.id}'")
            self.refs.add(node.id)
            return FieldRef(node.id)

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPS.get(type(node.op))
            if op is None:
                raise self.fail(f"disallowed unary operator {type(node.op).__name__}")
            return UnaryOp(op, self.build(node.operand))

        if isinstance(node, ast.BinOp):
            op = _BIN_OPS.get(type(node.op))
            if op is None:
                raise self.fail(f"disallowed binary operator {type(node.op).__name__}")
            return BinaryOp(op, self.build(node.left), self.build(node.right))

        if isinstance(node, ast.Call):
            return self._build_call(node)

        if isinstance(node, ast.Attribute):
            raise self.fail("column references are only allowed inside sum()")

        raise self.fail(f"disallowed expression {type(node).__name__}")

    def _build_call(self, node: ast.Call) -> Node:
        if not isinstance(node.func, ast.Name) or node.func.id not in ALLOWED_FUNCTIONS:
            raise self.fail(f"disallowed function call {_call_name(node.func)}")
        if node.keywords:
            raise self.fail("keyword arguments are not allowed")
        name = node.func.id

        if name == "sum":
            if len(node.args) != 1 or not isinstance(node.args[0], ast.Attribute):
                raise self.fail("sum() takes exactly one table.column argument")
            attr = node.args[0]
            if not isinstance(attr.value, ast.Name):
                raise self.fail("sum() takes exactly one table.column argument")
            table, column = attr.value.id, attr.attr
            if table not in self.table_columns:
                raise self.fail(f"unknown table '{table}'")
            if column not in self.table_columns[table]:
                raise self.fail(f"unknown column '{table}.{column}'")
            self.refs.add(table)
            return Call("sum", (ColumnRef(table, column),))

        if name == "abs" and len(node.args) != 1:
            raise self.fail("abs() takes exactly one argument")
        if name == "round" and len(node.args) not in (1, 2):
            raise self.fail("round() takes one or two arguments")
        if name in ("min", "max") and not node.args:
            raise self.fail(f"{name}() needs at least one argument")
        return Call(name, tuple(self.build(a) for a in node.args))


def to_decimal(value: Any) -> Decimal:
    """Coerce a payload value to a number; anything non-numeric is 0."""
    if value is None or isinstance(value, bool):
        return _ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            return _ZERO
        return d if d.is_finite() else _ZERO
    if isinstance(value, str):
        v = value.strip().replace(",", "")
        if not v:
            return _ZERO
        try:
            d = Decimal(v)
        except InvalidOperation:
            return _ZERO
        return d if d.is_finite() else _ZERO
    return _ZERO


def to_output_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _eval(node: Node, values: Mapping[str, Any]) -> Decimal:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, FieldRef):
        return to_decimal(values.get(node.key))
    if isinstance(node, UnaryOp):
        v = _eval(node.operand, values)
        return -v if node.op == "-" else v
    if isinstance(node, BinaryOp):
        return _BINARY[node.op](_eval(node.left, values), _eval(node.right, values))
    if isinstance(node, Call):
        return _call(node, values)
    # ColumnRef only appears under sum()
    return _ZERO


def _divide(a: Decimal, b: Decimal) -> Decimal:
    if b == 0:
        return _ZERO
    return a / b


_BINARY: dict[str, Callable[[Decimal, Decimal], Decimal]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
}


def _call(node: Call, values: Mapping[str, Any]) -> Decimal:
    if node.name == "sum":
        ref = node.args[0]
        rows = values.get(ref.table) if isinstance(ref, ColumnRef) else None
        if not isinstance(rows, list):
            return _ZERO
        total = _ZERO
        for row in rows:
            if isinstance(row, Mapping):
                total += to_decimal(row.get(ref.column))
        return total

    args = [_eval(a, values) for a in node.args]
    if node.name == "abs":
        return abs(args[0])
    if node.name == "round":
        digits = int(args[1]) if len(args) > 1 else 0
        return args[0].quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    if node.name == "min":
        return min(args)
    return max(args)


def _call_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_call_name(node.value)}.{node.attr}"
    return type(node).__name__
