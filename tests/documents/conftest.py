from __future__ import annotations

from datetime import datetime, timedelta
from itertools import count

import pytest

from src.approval_system.approval_system.dispatch.dispatcher import EventDispatcher
from src.approval_system.approval_system.documents.memory_document_repository import InMemoryDocumentRepository
from src.approval_system.approval_system.documents.queries import ApprovalQueries
from src.approval_system.approval_system.documents.service import ApprovalService
from src.approval_system.approval_system.organization.directory import Member, StaticOrganizationDirectory
from src.approval_system.approval_system.templates.memory_template_repository import InMemoryTemplateRepository
from src.approval_system.approval_system.templates.service import TemplateService

LEAVE_SCHEMA = {
    "title": "Leave",
    "sections": [
        {
            "title": "Leave",
            "fields": [
                {"key": "reason", "label": "Reason", "type": "text", "validation": {"required": True}},
                {"key": "days", "label": "Days", "type": "number", "validation": {"required": True, "min": 1}},
            ],
        }
    ],
}


class FakeClock:
    """Advances one minute per call; ``jump`` moves it further."""

    def __init__(self, start=datetime(2026, 3, 2, 9, 0, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now

    def jump(self, **kwargs):
        self.now += timedelta(**kwargs)


class Env:
    def __init__(self):
        ids = count(1)
        self.clock = FakeClock()
        self.events = []
        self.documents = InMemoryDocumentRepository()
        self.templates_repo = InMemoryTemplateRepository()
        self.directory = StaticOrganizationDirectory(
            [
                Member("creator", "acme", "Casey Creator"),
                Member("u1", "acme", "Manager One"),
                Member("u2", "acme", "Director Two"),
                Member("u3", "acme", "HR Three"),
                Member("outsider", "globex", "Other Org"),
                Member("gone", "acme", "Former Staff", is_active=False),
            ]
        )
        self.templates = TemplateService(
            self.templates_repo,
            self.documents,
            clock=self.clock,
            id_factory=lambda: f"tpl-{next(ids)}",
        )
        self.service = ApprovalService(
            self.documents,
            self.templates,
            self.directory,
            dispatcher=EventDispatcher([self.events.append]),
            clock=self.clock,
            id_factory=lambda: f"doc-{next(ids)}",
        )
        self.queries = ApprovalQueries(self.documents, clock=self.clock, urgent_after_days=3)
        self.route = ROUTE
        self.leave_id = self.templates.create_schema(LEAVE_SCHEMA, tenant_id="acme", name="Leave", code="LEAVE")

    def draft(self, data=None, creator="creator"):
        return self.service.create_draft(
            template_id=self.leave_id,
            creator=creator,
            data={"reason": "trip", "days": 2} if data is None else data,
            tenant_id="acme",
        )

    def submitted(self, route=None, data=None):
        doc_id = self.draft(data)
        self.service.submit_draft(doc_id, actor="creator", route_template=route or ROUTE)
        return doc_id


ROUTE = [
    {"type": "APPROVAL", "participants": ["u1", "u2"]},
    {"type": "REFERENCE", "participants": ["u3"]},
]


@pytest.fixture()
def env():
    return Env()
