from __future__ import annotations

from dataclasses import dataclass, field

from ..core.enums import FieldType
from .model import ChoiceField, Field
from .strategies.base import ValueStrategy
from .strategies.choice_strategy import CheckboxStrategy, ChoiceStrategy, MultiChoiceStrategy
from .strategies.date_strategy import DateStrategy, DateTimeStrategy
from .strategies.file_strategy import FileStrategy
from .strategies.number_strategy import NumberStrategy
from .strategies.text_strategy import AddressStrategy, EmailStrategy, PhoneStrategy, TextStrategy


def _default_strategies() -> dict[FieldType, ValueStrategy]:
    text = TextStrategy()
    number = NumberStrategy()
    return {
        FieldType.TEXT: text,
        FieldType.TEXTAREA: text,
        FieldType.NUMBER: number,
        FieldType.MONEY: number,
        FieldType.DATE: DateStrategy(),
        FieldType.DATETIME: DateTimeStrategy(),
        FieldType.EMAIL: EmailStrategy(),
        FieldType.PHONE: PhoneStrategy(),
        FieldType.ADDRESS: AddressStrategy(),
        FieldType.FILE: FileStrategy(),
        FieldType.SELECT: ChoiceStrategy(),
        FieldType.RADIO: ChoiceStrategy(),
        FieldType.MULTI_SELECT: MultiChoiceStrategy(),
    }


@dataclass
class ValueStrategyFactory:
    """Factory Pattern: choose the value strategy for a field type."""

    strategies: dict[FieldType, ValueStrategy] = field(default_factory=_default_strategies)

    def for_field(self, f: Field) -> ValueStrategy:
        if f.type == FieldType.CHECKBOX:
            if isinstance(f, ChoiceField) and f.options:
                return MultiChoiceStrategy()
            return CheckboxStrategy()
        try:
            return self.strategies[f.type]
        except KeyError:
            raise ValueError(f"No value strategy for field type {f.type.value!r}") from None
