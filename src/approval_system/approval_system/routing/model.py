from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.enums import Decision, StageStatus, StageType
from ..core.exceptions import ValidationError


@dataclass
class Participant:
    user_id: str
    decision: Decision = Decision.PENDING
    decided_at: Optional[datetime] = None
    comment: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.decision == Decision.PENDING


@dataclass
class Stage:
    """One step of a route; participants keep insertion order for audit display."""

    type: StageType
    ordinal: int
    participants: list[Participant] = field(default_factory=list)
    status: StageStatus = StageStatus.WAITING

    @property
    def is_blocking(self) -> bool:
        return self.type.is_blocking

    @property
    def is_resolved(self) -> bool:
        return self.status in (StageStatus.COMPLETED, StageStatus.NOTIFIED, StageStatus.REJECTED, StageStatus.SKIPPED)

    def participant(self, user_id: str) -> Optional[Participant]:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def participant_ids(self) -> tuple[str, ...]:
        return tuple(p.user_id for p in self.participants)

    def all_approved(self) -> bool:
        # AND-gate: order of decisions does not matter.
        return all(p.decision == Decision.APPROVED for p in self.participants)


@dataclass
class Route:
    stages: list[Stage] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.stages.sort(key=lambda s: s.ordinal)

    def stage(self, ordinal: int) -> Optional[Stage]:
        for s in self.stages:
            if s.ordinal == ordinal:
                return s
        return None

    @property
    def current_stage(self) -> Optional[Stage]:
        """The active blocking stage, if the route is still waiting on one."""
        for s in self.stages:
            if s.status == StageStatus.ACTIVE:
                return s
        return None

    @property
    def total_count(self) -> int:
        return len(self.stages)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.stages if s.status in (StageStatus.COMPLETED, StageStatus.NOTIFIED))

    @property
    def has_blocking_stage(self) -> bool:
        return any(s.is_blocking for s in self.stages)

    def has_any_decision(self) -> bool:
        return any(not p.is_pending for s in self.stages for p in s.participants)

    def stages_for(self, user_id: str) -> list[Stage]:
        return [s for s in self.stages if s.participant(user_id) is not None]


@dataclass(frozen=True)
class StageTemplate:
    type: StageType
    participant_ids: tuple[str, ...]


@dataclass(frozen=True)
class RouteTemplate:
    """Route as chosen by the submitter; materialized into a Route at submission."""

    stages: tuple[StageTemplate, ...]

    @classmethod
    def of(cls, *stages: tuple[StageType | str, Iterable[Any]]) -> "RouteTemplate":
        return cls(
            stages=tuple(
                StageTemplate(type=StageType(t), participant_ids=tuple(str(p) for p in participants))
                for t, participants in stages
            )
        )

    @classmethod
    def from_dict(cls, data: Any) -> "RouteTemplate":
        """Accepts ``[{"type": "APPROVAL", "participants": ["u1", ...]}, ...]``
        or ``{"stages": [...]}``."""
        raw_stages = data.get("stages") if isinstance(data, Mapping) else data
        if not isinstance(raw_stages, Sequence) or isinstance(raw_stages, (str, bytes)):
            raise ValidationError("route must be a list of stages")

        stages: list[StageTemplate] = []
        for idx, raw in enumerate(raw_stages):
            if not isinstance(raw, Mapping):
                raise ValidationError(f"route stage #{idx + 1} must be an object")
            try:
                stage_type = StageType(str(raw.get("type", "")).upper())
            except ValueError:
                raise ValidationError(f"route stage #{idx + 1} has unknown type {raw.get('type')!r}") from None
            participants = raw.get("participants") or raw.get("participant_ids") or []
            if isinstance(participants, (str, bytes)) or not isinstance(participants, Sequence):
                raise ValidationError(f"route stage #{idx + 1}: participants must be a list")
            stages.append(StageTemplate(type=stage_type, participant_ids=tuple(str(p) for p in participants)))
        return cls(stages=tuple(stages))

    def check(self) -> None:
        if not self.stages:
            raise ValidationError("route needs at least one stage")
        for idx, st in enumerate(self.stages, start=1):
            if not st.participant_ids:
                raise ValidationError(f"route stage #{idx} has no participants")
            if len(set(st.participant_ids)) != len(st.participant_ids):
                raise ValidationError(f"route stage #{idx} lists a participant twice")

    def participant_ids(self) -> set[str]:
        return {p for st in self.stages for p in st.participant_ids}

    def materialize(self) -> Route:
        self.check()
        return Route(
            stages=[
                Stage(
                    type=st.type,
                    ordinal=idx,
                    participants=[Participant(user_id=p) for p in st.participant_ids],
                )
                for idx, st in enumerate(self.stages, start=1)
            ]
        )

    def to_list(self) -> list[dict]:
        return [{"type": st.type.value, "participants": list(st.participant_ids)} for st in self.stages]
