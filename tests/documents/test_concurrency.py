"""
Concurrent transitions on one document.

Two approvers read the same version; the store accepts exactly one write and
the loser gets a retryable ConcurrentModificationError.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from src.approval_system.approval_system.core.enums import Decision, DocumentStatus
from src.approval_system.approval_system.core.exceptions import ConcurrentModificationError, DomainError
from src.approval_system.approval_system.documents.memory_document_repository import InMemoryDocumentRepository


class RacingRepository(InMemoryDocumentRepository):
    """Holds every save until ``parties`` writers have read the document."""

    def __init__(self, parties):
        super().__init__()
        self.barrier = None
        self.parties = parties

    def arm(self):
        self.barrier = Barrier(self.parties, timeout=5)

    def save(self, document, *, expected_version):
        if self.barrier is not None:
            self.barrier.wait()
        super().save(document, expected_version=expected_version)


@pytest.fixture()
def racing_env(env):
    repo = RacingRepository(parties=2)
    env.documents = repo
    env.service._documents = repo
    env.templates._documents = repo
    env.queries._documents = repo
    return env


def _decide(env, doc_id, actor):
    try:
        env.service.decide(doc_id, actor=actor, stage_ordinal=1, decision="APPROVED")
        return "ok"
    except ConcurrentModificationError:
        return "conflict"


def test_parallel_decisions_one_wins_loser_retries(racing_env):
    env = racing_env
    doc_id = env.submitted()
    version = env.documents.get(doc_id).version

    env.documents.arm()
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = sorted(pool.map(lambda actor: _decide(env, doc_id, actor), ["u1", "u2"]))
    env.documents.barrier = None

    assert results == ["conflict", "ok"]
    doc = env.documents.get(doc_id)
    assert doc.version == version + 1
    decided = [p.user_id for p in doc.route.stage(1).participants if p.decision == Decision.APPROVED]
    assert len(decided) == 1
    assert doc.status == DocumentStatus.IN_PROGRESS

    loser = "u2" if decided == ["u1"] else "u1"
    snap = env.service.decide(doc_id, actor=loser, stage_ordinal=1, decision="APPROVED")
    assert snap.status == DocumentStatus.APPROVED
    assert snap.version == version + 2


def test_stale_save_is_rejected(env):
    doc_id = env.submitted()
    first = env.documents.get(doc_id)
    second = env.documents.get(doc_id)

    env.service._engine.decide(first, "u1", 1, "APPROVED")
    env.documents.save(first, expected_version=second.version)

    env.service._engine.decide(second, "u2", 1, "APPROVED")
    with pytest.raises(ConcurrentModificationError):
        env.documents.save(second, expected_version=second.version)

    stored = env.documents.get(doc_id)
    assert stored.route.stage(1).participant("u2").is_pending


def test_many_threads_on_many_documents(env):
    doc_ids = [env.submitted(route=[{"type": "APPROVAL", "participants": ["u1"]}]) for _ in range(20)]

    def approve(doc_id):
        for _ in range(5):
            try:
                return env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="APPROVED").status
            except ConcurrentModificationError:
                continue
        raise AssertionError("gave up retrying")

    with ThreadPoolExecutor(max_workers=8) as pool:
        statuses = list(pool.map(approve, doc_ids))

    assert statuses == [DocumentStatus.APPROVED] * 20
    assert env.queries.pending("u1") == []


def test_double_click_records_one_decision(env):
    doc_id = env.submitted()
    barrier = Barrier(4, timeout=5)

    def click():
        barrier.wait()
        try:
            env.service.decide(doc_id, actor="u1", stage_ordinal=1, decision="APPROVED")
            return "ok"
        except DomainError as exc:
            return exc.code

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = [f.result() for f in [pool.submit(click) for _ in range(4)]]

    assert results.count("ok") == 1
    assert set(results) <= {"ok", "ALREADY_DECIDED", "CONCURRENT_MODIFICATION"}
    history = [h for h in env.documents.get(doc_id).history if h.actor == "u1"]
    assert len(history) == 1
