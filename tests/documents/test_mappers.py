from __future__ import annotations

import json

from src.approval_system.approval_system.documents.mappers import document_from_dict, document_to_dict


def test_submitted_document_survives_json_storage(env):
    doc_id = env.submitted()
    env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="APPROVED", comment="ok")
    doc = env.documents.get(doc_id)

    stored = json.loads(json.dumps(document_to_dict(doc)))
    restored = document_from_dict(stored)

    assert restored == doc
    assert stored["route"][0]["participants"][0] == {
        "user_id": "u1",
        "decision": "APPROVED",
        "decided_at": doc.route.stage(1).participant("u1").decided_at.isoformat(),
        "comment": "ok",
    }


def test_draft_has_no_route(env):
    doc = env.documents.get(env.draft())

    data = document_to_dict(doc)

    assert data["route"] is None
    assert data["submitted_at"] is None
    assert document_from_dict(data).route is None
