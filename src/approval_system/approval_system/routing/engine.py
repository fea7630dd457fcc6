"""
Document routing state machine.

    DRAFT -> SUBMITTED -> IN_PROGRESS -> APPROVED | REJECTED
    SUBMITTED | IN_PROGRESS -> CANCELLED   (recall, before any decision)

Every operation mutates the document in place, appends to its history and
returns the events it produced. Nothing here touches storage; callers load
the aggregate, call the engine, then save with the version they read.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..core.enums import Decision, DocumentStatus, HistoryAction, StageStatus
from ..core.exceptions import (
    AlreadyDecidedError,
    AuthorizationError,
    InvalidStateError,
    NotAParticipantError,
    RecallNotAllowedError,
    StageNotActiveError,
    ValidationError,
)
from ..documents.model import ApprovalDocument
from ..forms.model import FormSchema
from ..forms.validator import SchemaValidator
from .events import DecisionRecorded, DocumentTerminal, Event, StageEntered
from .model import RouteTemplate, Stage

logger = get_logger("routing.engine")


class RoutingEngine:
    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = now_local,
        validator: Optional[SchemaValidator] = None,
    ):
        self._clock = clock
        self._validator = validator or SchemaValidator()

    # -------- submit --------
    def submit(self, document: ApprovalDocument, schema: FormSchema, route_template: RouteTemplate) -> list[Event]:
        if document.status != DocumentStatus.DRAFT:
            raise InvalidStateError(f"Only drafts can be submitted (status is {document.status.value})")

        now = self._clock()
        result = self._validator.validate(schema, document.data)
        if not result.valid:
            document.record(
                HistoryAction.SUBMIT_REJECTED,
                now,
                actor=document.created_by,
                comment="; ".join(f"{e.field_key}: {e.message}" for e in result.errors),
            )
            logger.warning(
                "submit rejected by validation",
                extra={"document_id": document.document_id, "error_count": len(result.errors)},
            )
            raise ValidationError("Document data is invalid", errors=result.errors)

        route = route_template.materialize()
        document.data = result.normalized_payload
        document.route = route
        document.status = DocumentStatus.SUBMITTED
        document.submitted_at = now
        document.record(HistoryAction.SUBMITTED, now, actor=document.created_by)

        events: list[Event] = []
        self._advance(document, now, events)
        logger.info(
            "document submitted",
            extra={"document_id": document.document_id, "status": document.status.value, "stages": route.total_count},
        )
        return events

    # -------- decide --------
    def decide(
        self,
        document: ApprovalDocument,
        actor: str,
        stage_ordinal: int,
        decision: Decision | str,
        comment: Optional[str] = None,
    ) -> list[Event]:
        decision = _parse_decision(decision)
        actor = str(actor)

        if not document.status.is_routing or document.route is None:
            raise InvalidStateError(f"Document is {document.status.value}; decisions are closed")

        stage = document.route.stage(int(stage_ordinal))
        if stage is None or not stage.is_blocking:
            raise StageNotActiveError(f"Stage {stage_ordinal} does not take decisions")

        participant = stage.participant(actor)
        if participant is None:
            raise NotAParticipantError(f"{actor} is not a participant of stage {stage.ordinal}")
        if not participant.is_pending:
            raise AlreadyDecidedError(f"{actor} already decided on stage {stage.ordinal}")
        if stage.status != StageStatus.ACTIVE:
            raise StageNotActiveError(f"Stage {stage.ordinal} is {stage.status.value}")

        now = self._clock()
        participant.decision = decision
        participant.decided_at = now
        participant.comment = comment
        if document.status == DocumentStatus.SUBMITTED:
            document.status = DocumentStatus.IN_PROGRESS

        events: list[Event] = [
            DecisionRecorded(
                document_id=document.document_id,
                actor=actor,
                stage_ordinal=stage.ordinal,
                decision=decision,
            )
        ]

        if decision == Decision.REJECTED:
            document.record(HistoryAction.REJECTED, now, actor=actor, stage_ordinal=stage.ordinal, comment=comment)
            stage.status = StageStatus.REJECTED
            for later in document.route.stages:
                if later.status == StageStatus.WAITING:
                    later.status = StageStatus.SKIPPED
                    document.record(HistoryAction.STAGE_SKIPPED, now, stage_ordinal=later.ordinal)
            self._finish(document, DocumentStatus.REJECTED, now, events)
            logger.info("document rejected", extra={"document_id": document.document_id, "actor": actor, "stage": stage.ordinal})
            return events

        document.record(HistoryAction.APPROVED, now, actor=actor, stage_ordinal=stage.ordinal, comment=comment)
        if stage.all_approved():
            stage.status = StageStatus.COMPLETED
            self._advance(document, now, events)
        logger.info(
            "decision recorded",
            extra={"document_id": document.document_id, "actor": actor, "stage": stage.ordinal, "status": document.status.value},
        )
        return events

    # -------- recall --------
    def recall(self, document: ApprovalDocument, actor: str) -> list[Event]:
        if str(actor) != document.created_by:
            raise AuthorizationError("Only the creator can recall a document")
        if not document.status.is_routing or document.route is None:
            raise InvalidStateError(f"Document is {document.status.value}; only submitted documents can be recalled")
        if document.route.has_any_decision():
            raise RecallNotAllowedError("A participant has already acted on this document")

        now = self._clock()
        document.record(HistoryAction.RECALLED, now, actor=document.created_by)
        events: list[Event] = []
        self._finish(document, DocumentStatus.CANCELLED, now, events)
        logger.info("document recalled", extra={"document_id": document.document_id})
        return events

    # -------- acknowledge --------
    def acknowledge(self, document: ApprovalDocument, actor: str, stage_ordinal: int) -> list[Event]:
        actor = str(actor)
        if document.status in (DocumentStatus.DRAFT, DocumentStatus.CANCELLED) or document.route is None:
            raise InvalidStateError(f"Document is {document.status.value}; nothing to acknowledge")

        stage = document.route.stage(int(stage_ordinal))
        if stage is None or stage.is_blocking:
            raise StageNotActiveError(f"Stage {stage_ordinal} is not an informational stage")
        if stage.status != StageStatus.NOTIFIED:
            raise StageNotActiveError(f"Stage {stage.ordinal} has not been reached")

        participant = stage.participant(actor)
        if participant is None:
            raise NotAParticipantError(f"{actor} is not a participant of stage {stage.ordinal}")
        if not participant.is_pending:
            raise AlreadyDecidedError(f"{actor} already acknowledged stage {stage.ordinal}")

        now = self._clock()
        participant.decision = Decision.ACKNOWLEDGED
        participant.decided_at = now
        document.record(HistoryAction.ACKNOWLEDGED, now, actor=actor, stage_ordinal=stage.ordinal)
        logger.info("acknowledged", extra={"document_id": document.document_id, "actor": actor, "stage": stage.ordinal})
        return [
            DecisionRecorded(
                document_id=document.document_id,
                actor=actor,
                stage_ordinal=stage.ordinal,
                decision=Decision.ACKNOWLEDGED,
            )
        ]

    # -------- internals --------
    def _advance(self, document: ApprovalDocument, now: datetime, events: list[Event]) -> None:
        """Notify waiting informational stages up to the next blocking one and activate it.

        With no blocking stage left the document is approved.
        """
        for stage in document.route.stages:
            if stage.status != StageStatus.WAITING:
                continue
            if stage.is_blocking:
                stage.status = StageStatus.ACTIVE
                self._entered(document, stage, now, events)
                return
            stage.status = StageStatus.NOTIFIED
            self._entered(document, stage, now, events)

        self._finish(document, DocumentStatus.APPROVED, now, events)

    @staticmethod
    def _entered(document: ApprovalDocument, stage: Stage, now: datetime, events: list[Event]) -> None:
        document.record(HistoryAction.STAGE_ENTERED, now, stage_ordinal=stage.ordinal)
        events.append(
            StageEntered(
                document_id=document.document_id,
                stage_ordinal=stage.ordinal,
                stage_type=stage.type,
                participant_ids=stage.participant_ids(),
            )
        )

    @staticmethod
    def _finish(document: ApprovalDocument, status: DocumentStatus, now: datetime, events: list[Event]) -> None:
        document.status = status
        document.completed_at = now
        if status != DocumentStatus.CANCELLED:
            document.record(HistoryAction.COMPLETED, now, comment=status.value)
        events.append(DocumentTerminal(document_id=document.document_id, final_status=status))


def _parse_decision(value: Decision | str) -> Decision:
    raw = value.value if isinstance(value, Decision) else str(value or "").strip().upper()
    aliases = {"APPROVE": "APPROVED", "REJECT": "REJECTED"}
    raw = aliases.get(raw, raw)
    if raw not in (Decision.APPROVED.value, Decision.REJECTED.value):
        raise ValidationError("decision must be APPROVED or REJECTED")
    return Decision(raw)
