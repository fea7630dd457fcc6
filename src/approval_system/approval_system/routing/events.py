from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Union

from ..core.enums import Decision, DocumentStatus, StageType


@dataclass(frozen=True)
class StageEntered:
    document_id: str
    stage_ordinal: int
    stage_type: StageType
    participant_ids: tuple[str, ...]


@dataclass(frozen=True)
class DecisionRecorded:
    document_id: str
    actor: str
    stage_ordinal: int
    decision: Decision


@dataclass(frozen=True)
class DocumentTerminal:
    document_id: str
    final_status: DocumentStatus


Event = Union[StageEntered, DecisionRecorded, DocumentTerminal]


def event_to_dict(event: Event) -> dict:
    data = {"event": type(event).__name__}
    for k, v in asdict(event).items():
        if isinstance(v, Enum):
            v = v.value
        elif isinstance(v, tuple):
            v = list(v)
        data[k] = v
    return data
