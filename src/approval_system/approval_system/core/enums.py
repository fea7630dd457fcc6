from __future__ import annotations

from enum import Enum


class DocumentStatus(str, Enum):
    """Lifecycle of an approval document."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.APPROVED, DocumentStatus.REJECTED, DocumentStatus.CANCELLED)

    @property
    def is_routing(self) -> bool:
        return self in (DocumentStatus.SUBMITTED, DocumentStatus.IN_PROGRESS)


class StageType(str, Enum):
    """Participation type of a route stage."""

    APPROVAL = "APPROVAL"
    COOPERATION = "COOPERATION"
    REFERENCE = "REFERENCE"
    RECEPTION = "RECEPTION"
    CIRCULATION = "CIRCULATION"

    @property
    def is_blocking(self) -> bool:
        return self in (StageType.APPROVAL, StageType.COOPERATION)


class StageStatus(str, Enum):
    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    NOTIFIED = "NOTIFIED"
    REJECTED = "REJECTED"
    SKIPPED = "SKIPPED"


class Decision(str, Enum):
    """Per-participant decision recorded on a stage."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class FieldType(str, Enum):
    """Field types of a dynamic form schema."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    SELECT = "select"
    MULTI_SELECT = "multiSelect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    FILE = "file"
    MONEY = "money"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    TABLE = "table"
    SECTION = "section"
    DIVIDER = "divider"

    @classmethod
    def parse(cls, value: str) -> "FieldType":
        # Stored templates use both "multiSelect" and "multi_select".
        if value == "multi_select":
            return cls.MULTI_SELECT
        return cls(value)


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class HistoryAction(str, Enum):
    """Audit trail actions stored on the document."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    SUBMIT_REJECTED = "SUBMIT_REJECTED"
    SUBMITTED = "SUBMITTED"
    STAGE_ENTERED = "STAGE_ENTERED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    STAGE_SKIPPED = "STAGE_SKIPPED"
    RECALLED = "RECALLED"
    COMPLETED = "COMPLETED"
