from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..model import Field


@dataclass(frozen=True)
class ValueCheck:
    value: Any
    error: Optional[str] = None


class ValueStrategy(ABC):
    """Strategy Pattern: encapsulate how a non-empty value of one field type is checked.

    ``coerce`` returns the normalized value, or an error message when the
    value does not have the field's type.
    """

    @abstractmethod
    def coerce(self, field: Field, value: Any) -> ValueCheck:
        raise NotImplementedError
