from __future__ import annotations

import pytest

from src.approval_system.approval_system.core.enums import DocumentStatus, HistoryAction
from src.approval_system.approval_system.core.exceptions import (
    AlreadyDecidedError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    RecallNotAllowedError,
    ValidationError,
)
from src.approval_system.approval_system.documents.repository import DocumentFilter
from src.approval_system.approval_system.routing.events import DocumentTerminal, StageEntered


def test_create_update_and_delete_draft(env):
    doc_id = env.draft({"reason": "half done"})

    snap = env.service.update_draft(doc_id, actor="creator", data={"reason": "done", "days": 1}, title="Spring leave")

    assert snap.status == DocumentStatus.DRAFT
    assert snap.version == 2
    assert snap.document["title"] == "Spring leave"
    assert snap.document["data"] == {"reason": "done", "days": 1}
    assert [h["action"] for h in snap.document["history"]] == ["CREATED", "UPDATED"]

    with pytest.raises(AuthorizationError):
        env.service.update_draft(doc_id, actor="u1", title="hijack")

    env.service.delete_draft(doc_id, actor="creator")
    assert env.documents.get(doc_id) is None


def test_draft_title_defaults_to_template_name(env):
    doc = env.documents.get(env.draft())

    assert doc.title == "Leave"
    assert doc.schema_ref.schema_version == 1


def test_draft_data_must_be_an_object(env):
    with pytest.raises(ValidationError):
        env.service.create_draft(template_id=env.leave_id, creator="creator", data=["x"], tenant_id="acme")


def test_unknown_template_is_not_found(env):
    with pytest.raises(NotFoundError):
        env.service.create_draft(template_id="nope", creator="creator", tenant_id="acme")
    with pytest.raises(NotFoundError):
        env.service.create_draft(template_id=env.leave_id, creator="creator", tenant_id="globex")


def test_submit_draft_routes_and_publishes(env):
    doc_id = env.draft()

    snap = env.service.submit_draft(doc_id, actor="creator", route_template=env.route)

    assert snap.status == DocumentStatus.SUBMITTED
    assert snap.current_stage_ordinal == 1
    assert snap.total_stages == 2
    assert snap.submitted_at is not None
    assert [type(e) for e in env.events] == [StageEntered]
    assert env.events[0].participant_ids == ("u1", "u2")


def test_submit_draft_with_invalid_data_keeps_rejection_in_history(env):
    doc_id = env.draft({"reason": ""})

    with pytest.raises(ValidationError) as exc:
        env.service.submit_draft(doc_id, actor="creator", route_template=env.route)

    assert {e.field_key for e in exc.value.errors} == {"reason", "days"}
    stored = env.documents.get(doc_id)
    assert stored.status == DocumentStatus.DRAFT
    assert stored.history[-1].action == HistoryAction.SUBMIT_REJECTED
    assert env.events == []


def test_submit_document_stores_nothing_when_invalid(env):
    with pytest.raises(ValidationError):
        env.service.submit_document(env.leave_id, {"days": 0}, env.route, "creator", tenant_id="acme")

    assert env.documents.find(DocumentFilter(created_by="creator")) == []


def test_submit_document_in_one_step(env):
    doc_id = env.service.submit_document(env.leave_id, {"reason": "x", "days": "3"}, env.route, "creator", tenant_id="acme")

    doc = env.documents.get(doc_id)
    assert doc.status == DocumentStatus.SUBMITTED
    assert doc.data == {"reason": "x", "days": 3}
    assert doc.version == 1


@pytest.mark.parametrize(
    "participant,message",
    [
        ("ghost", "ghost is not an active member"),
        ("gone", "gone is not an active member"),
        ("outsider", "outsider belongs to another organization"),
    ],
)
def test_route_participants_must_be_active_members_of_the_tenant(env, participant, message):
    doc_id = env.draft()

    with pytest.raises(ValidationError) as exc:
        env.service.submit_draft(
            doc_id, actor="creator", route_template=[{"type": "APPROVAL", "participants": ["u1", participant]}]
        )

    assert [e.to_dict() for e in exc.value.errors] == [{"field_key": "route", "message": message}]
    assert env.documents.get(doc_id).status == DocumentStatus.DRAFT


def test_malformed_route_is_rejected(env):
    doc_id = env.draft()

    with pytest.raises(ValidationError):
        env.service.submit_draft(doc_id, actor="creator", route_template=[])
    with pytest.raises(ValidationError):
        env.service.submit_draft(doc_id, actor="creator", route_template={"stages": "u1"})


def test_only_creator_submits(env):
    doc_id = env.draft()

    with pytest.raises(AuthorizationError):
        env.service.submit_draft(doc_id, actor="u1", route_template=env.route)


def test_full_approval_flow(env):
    doc_id = env.submitted()

    env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="approve", comment="fine")
    snap = env.service.decide(doc_id, actor="u2", stage_ordinal=1, decision="APPROVED")

    assert snap.status == DocumentStatus.APPROVED
    assert snap.version == 4
    assert snap.completed_stages == 2
    assert isinstance(env.events[-1], DocumentTerminal)

    ack = env.service.acknowledge(doc_id, actor="u3", stage_ordinal=2)
    assert ack.document["route"][1]["participants"][0]["decision"] == "ACKNOWLEDGED"

    with pytest.raises(InvalidStateError):
        env.service.update_draft(doc_id, actor="creator", title="late edit")


def test_decide_twice_does_not_bump_version(env):
    doc_id = env.submitted()
    env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="APPROVED")

    with pytest.raises(AlreadyDecidedError):
        env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="APPROVED")

    assert env.documents.get(doc_id).version == 3


def test_recall(env):
    doc_id = env.submitted()

    with pytest.raises(AuthorizationError):
        env.service.recall(doc_id, actor="u1")

    snap = env.service.recall(doc_id, actor="creator")
    assert snap.status == DocumentStatus.CANCELLED

    other = env.submitted()
    env.service.decide(other, actor="u2", stage_ordinal=1, decision="APPROVED")
    with pytest.raises(RecallNotAllowedError):
        env.service.recall(other, actor="creator")


def test_get_document_requires_involvement(env):
    doc_id = env.submitted()

    assert env.service.get_document(doc_id, actor="u3").document_id == doc_id
    assert env.service.get_document(doc_id, actor="creator").to_dict()["status"] == "SUBMITTED"
    with pytest.raises(AuthorizationError):
        env.service.get_document(doc_id, actor="outsider")
    with pytest.raises(NotFoundError):
        env.service.get_document("missing", actor="creator")


def test_documents_keep_validating_against_their_schema_version(env):
    doc_id = env.draft({"reason": "x", "days": 1})
    revised = {
        "sections": [
            {
                "title": "Leave",
                "fields": [
                    {"key": "reason", "label": "Reason", "type": "text"},
                    {"key": "days", "label": "Days", "type": "number"},
                    {"key": "backup", "label": "Backup", "type": "text", "validation": {"required": True}},
                ],
            }
        ]
    }
    env.templates.revise_schema(env.leave_id, revised, tenant_id="acme")

    snap = env.service.submit_draft(doc_id, actor="creator", route_template=env.route)
    assert snap.status == DocumentStatus.SUBMITTED

    with pytest.raises(ValidationError):
        env.service.submit_document(env.leave_id, {"reason": "x", "days": 1}, env.route, "creator", tenant_id="acme")
