from datetime import datetime, timedelta

import pytest

from src.approval_system.approval_system.core.enums import (
    Decision,
    DocumentStatus,
    HistoryAction,
    StageStatus,
    StageType,
)
from src.approval_system.approval_system.core.exceptions import (
    AlreadyDecidedError,
    AuthorizationError,
    InvalidStateError,
    NotAParticipantError,
    RecallNotAllowedError,
    StageNotActiveError,
    ValidationError,
)
from src.approval_system.approval_system.documents.model import ApprovalDocument, SchemaRef
from src.approval_system.approval_system.forms.model import parse_schema
from src.approval_system.approval_system.routing.engine import RoutingEngine
from src.approval_system.approval_system.routing.events import DecisionRecorded, DocumentTerminal, StageEntered
from src.approval_system.approval_system.routing.model import RouteTemplate

SCHEMA = parse_schema(
    {
        "sections": [
            {
                "title": "Leave",
                "fields": [
                    {"key": "reason", "label": "Reason", "type": "text", "validation": {"required": True}},
                    {"key": "days", "label": "Days", "type": "number", "validation": {"min": 1}},
                ],
            }
        ]
    }
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


def _draft(data=None):
    return ApprovalDocument(
        document_id="doc-1",
        schema_ref=SchemaRef("tpl-1", 1),
        created_by="creator",
        created_at=datetime(2026, 3, 2, 8, 0, 0),
        data={"reason": "family trip", "days": 2} if data is None else data,
    )


def _submitted(route, engine=None):
    engine = engine or RoutingEngine(clock=FakeClock())
    doc = _draft()
    engine.submit(doc, SCHEMA, route)
    return engine, doc


APPROVAL_THEN_REFERENCE = RouteTemplate.of(("APPROVAL", ["u1", "u2"]), ("REFERENCE", ["u3"]))


def test_two_approvers_then_reference_scenario():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)

    assert doc.status == DocumentStatus.SUBMITTED
    assert doc.current_stage.ordinal == 1
    assert doc.route.stage(2).status == StageStatus.WAITING

    engine.decide(doc, "u1", 1, Decision.APPROVED)
    assert doc.status == DocumentStatus.IN_PROGRESS
    assert doc.current_stage.ordinal == 1

    events = engine.decide(doc, "u2", 1, "APPROVED")
    assert doc.status == DocumentStatus.APPROVED
    assert doc.completed_at is not None
    assert doc.route.stage(1).status == StageStatus.COMPLETED
    assert doc.route.stage(2).status == StageStatus.NOTIFIED
    assert [type(e) for e in events] == [DecisionRecorded, StageEntered, DocumentTerminal]
    assert events[1].participant_ids == ("u3",)
    assert events[2].final_status == DocumentStatus.APPROVED


def test_submit_emits_stage_entered_for_leading_reference_and_first_blocking_stage():
    route = RouteTemplate.of(("RECEPTION", ["r1"]), ("COOPERATION", ["c1"]), ("APPROVAL", ["a1"]))
    doc = _draft()

    events = RoutingEngine(clock=FakeClock()).submit(doc, SCHEMA, route)

    assert [(e.stage_ordinal, e.stage_type) for e in events] == [(1, StageType.RECEPTION), (2, StageType.COOPERATION)]
    assert doc.submitted_at is not None
    assert [s.status for s in doc.route.stages] == [StageStatus.NOTIFIED, StageStatus.ACTIVE, StageStatus.WAITING]


def test_route_without_blocking_stage_is_approved_on_submit():
    route = RouteTemplate.of(("REFERENCE", ["u3"]), ("CIRCULATION", ["u4", "u5"]))
    doc = _draft()

    events = RoutingEngine(clock=FakeClock()).submit(doc, SCHEMA, route)

    assert doc.status == DocumentStatus.APPROVED
    assert doc.completed_at is not None
    assert all(s.status == StageStatus.NOTIFIED for s in doc.route.stages)
    assert isinstance(events[-1], DocumentTerminal)


def test_rejection_short_circuits_the_route():
    route = RouteTemplate.of(("APPROVAL", ["u1", "u2"]), ("APPROVAL", ["u3"]), ("REFERENCE", ["u4"]))
    engine, doc = _submitted(route)

    events = engine.decide(doc, "u1", 1, Decision.REJECTED, "over budget")

    assert doc.status == DocumentStatus.REJECTED
    assert doc.completed_at is not None
    assert [s.status for s in doc.route.stages] == [StageStatus.REJECTED, StageStatus.SKIPPED, StageStatus.SKIPPED]
    assert doc.route.stage(1).participant("u1").comment == "over budget"
    assert events[-1] == DocumentTerminal("doc-1", DocumentStatus.REJECTED)

    with pytest.raises(InvalidStateError):
        engine.decide(doc, "u2", 1, Decision.APPROVED)


def test_deciding_twice_is_already_decided_and_does_not_advance():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)
    engine.decide(doc, "u1", 1, Decision.APPROVED)
    history_len = len(doc.history)

    with pytest.raises(AlreadyDecidedError):
        engine.decide(doc, "u1", 1, Decision.APPROVED)

    assert doc.current_stage.ordinal == 1
    assert doc.status == DocumentStatus.IN_PROGRESS
    assert len(doc.history) == history_len


def test_decide_check_order():
    route = RouteTemplate.of(("APPROVAL", ["u1"]), ("REFERENCE", ["u3"]), ("APPROVAL", ["u4"]))
    engine, doc = _submitted(route)

    with pytest.raises(StageNotActiveError):
        engine.decide(doc, "u3", 2, Decision.APPROVED)
    with pytest.raises(StageNotActiveError):
        engine.decide(doc, "u1", 9, Decision.APPROVED)
    with pytest.raises(NotAParticipantError):
        engine.decide(doc, "stranger", 1, Decision.APPROVED)
    with pytest.raises(StageNotActiveError):
        engine.decide(doc, "u4", 3, Decision.APPROVED)
    with pytest.raises(ValidationError):
        engine.decide(doc, "u1", 1, "MAYBE")
    with pytest.raises(ValidationError):
        engine.decide(doc, "u1", 1, Decision.ACKNOWLEDGED)

    draft = _draft()
    with pytest.raises(InvalidStateError):
        engine.decide(draft, "u1", 1, Decision.APPROVED)


def test_and_gate_is_order_independent():
    for order in (["a", "b", "c"], ["c", "a", "b"]):
        engine, doc = _submitted(RouteTemplate.of(("COOPERATION", ["a", "b", "c"]), ("APPROVAL", ["boss"])))
        for actor in order[:-1]:
            engine.decide(doc, actor, 1, Decision.APPROVED)
            assert doc.current_stage.ordinal == 1
        engine.decide(doc, order[-1], 1, Decision.APPROVED)
        assert doc.current_stage.ordinal == 2
        assert [p.user_id for p in doc.route.stage(1).participants] == ["a", "b", "c"]


def test_submit_rejects_invalid_payload_and_records_it():
    doc = _draft({"reason": "", "days": 0})

    with pytest.raises(ValidationError) as exc:
        RoutingEngine(clock=FakeClock()).submit(doc, SCHEMA, APPROVAL_THEN_REFERENCE)

    assert [e.field_key for e in exc.value.errors] == ["reason", "days"]
    assert doc.status == DocumentStatus.DRAFT
    assert doc.route is None
    assert doc.history[-1].action == HistoryAction.SUBMIT_REJECTED


def test_submit_requires_draft():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)

    with pytest.raises(InvalidStateError):
        engine.submit(doc, SCHEMA, APPROVAL_THEN_REFERENCE)


def test_recall_before_any_decision():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)

    with pytest.raises(AuthorizationError):
        engine.recall(doc, "u1")

    events = engine.recall(doc, "creator")

    assert doc.status == DocumentStatus.CANCELLED
    assert doc.completed_at is not None
    assert events == [DocumentTerminal("doc-1", DocumentStatus.CANCELLED)]
    assert doc.history[-1].action == HistoryAction.RECALLED
    with pytest.raises(InvalidStateError):
        engine.recall(doc, "creator")


def test_recall_refused_after_any_decision():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)
    engine.decide(doc, "u1", 1, Decision.APPROVED)

    with pytest.raises(RecallNotAllowedError):
        engine.recall(doc, "creator")


def test_recall_refused_after_an_acknowledgment():
    route = RouteTemplate.of(("REFERENCE", ["u3"]), ("APPROVAL", ["u1"]))
    engine, doc = _submitted(route)

    engine.acknowledge(doc, "u3", 1)

    assert doc.status == DocumentStatus.SUBMITTED
    with pytest.raises(RecallNotAllowedError):
        engine.recall(doc, "creator")


def test_recall_of_draft_is_invalid_state():
    with pytest.raises(InvalidStateError):
        RoutingEngine().recall(_draft(), "creator")


def test_acknowledge_rules():
    route = RouteTemplate.of(("APPROVAL", ["u1"]), ("CIRCULATION", ["u3", "u4"]))
    engine, doc = _submitted(route)

    with pytest.raises(StageNotActiveError):
        engine.acknowledge(doc, "u1", 1)
    with pytest.raises(StageNotActiveError):
        engine.acknowledge(doc, "u3", 2)

    engine.decide(doc, "u1", 1, Decision.APPROVED)
    assert doc.status == DocumentStatus.APPROVED

    events = engine.acknowledge(doc, "u3", 2)
    assert events == [DecisionRecorded("doc-1", "u3", 2, Decision.ACKNOWLEDGED)]
    assert doc.route.stage(2).participant("u3").decision == Decision.ACKNOWLEDGED
    assert doc.status == DocumentStatus.APPROVED

    with pytest.raises(AlreadyDecidedError):
        engine.acknowledge(doc, "u3", 2)
    with pytest.raises(NotAParticipantError):
        engine.acknowledge(doc, "u1", 2)
    with pytest.raises(InvalidStateError):
        engine.acknowledge(_draft(), "u3", 2)


def test_history_records_the_audit_trail():
    engine, doc = _submitted(APPROVAL_THEN_REFERENCE)
    engine.decide(doc, "u1", 1, Decision.APPROVED, "ok")
    engine.decide(doc, "u2", 1, Decision.APPROVED)

    actions = [h.action for h in doc.history]
    assert actions == [
        HistoryAction.SUBMITTED,
        HistoryAction.STAGE_ENTERED,
        HistoryAction.APPROVED,
        HistoryAction.APPROVED,
        HistoryAction.STAGE_ENTERED,
        HistoryAction.COMPLETED,
    ]
    times = [h.at for h in doc.history]
    assert times == sorted(times)


def test_route_template_checks():
    with pytest.raises(ValidationError):
        RouteTemplate.of().materialize()
    with pytest.raises(ValidationError):
        RouteTemplate.of(("APPROVAL", [])).materialize()
    with pytest.raises(ValidationError):
        RouteTemplate.of(("APPROVAL", ["u1", "u1"])).materialize()
    with pytest.raises(ValidationError):
        RouteTemplate.from_dict([{"type": "VETO", "participants": ["u1"]}])

    route = RouteTemplate.from_dict({"stages": [{"type": "approval", "participant_ids": [7]}, {"type": "REFERENCE", "participants": ["u3"]}]})
    assert [s.ordinal for s in route.materialize().stages] == [1, 2]
    assert route.to_list() == [
        {"type": "APPROVAL", "participants": ["7"]},
        {"type": "REFERENCE", "participants": ["u3"]},
    ]
