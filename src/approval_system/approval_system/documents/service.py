from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_max_length
from ..core.enums import Decision, DocumentStatus, HistoryAction
from ..core.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..dispatch.dispatcher import EventDispatcher
from ..forms.validator import FieldError
from ..organization.directory import OrganizationDirectory
from ..routing.engine import RoutingEngine
from ..routing.events import Event
from ..routing.model import RouteTemplate
from ..templates.service import TemplateService
from .model import ApprovalDocument, DocumentSnapshot, SchemaRef
from .repository import DocumentRepository

logger = get_logger("documents.service")

RouteInput = Union[RouteTemplate, Mapping[str, Any], list]


class ApprovalService:
    """Boundary for document operations.

    Every transition is load -> engine -> save(expected_version) -> dispatch.
    Events go out only after the save succeeded.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        templates: TemplateService,
        directory: OrganizationDirectory,
        *,
        engine: Optional[RoutingEngine] = None,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], datetime] = now_local,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._documents = documents
        self._templates = templates
        self._directory = directory
        self._clock = clock
        self._engine = engine or RoutingEngine(clock=clock)
        self._dispatcher = dispatcher or EventDispatcher()
        self._new_id = id_factory

    # -------- drafts --------
    def create_draft(
        self,
        *,
        template_id: str,
        creator: str,
        data: Optional[Mapping[str, Any]] = None,
        title: str = "",
        tenant_id: Optional[str] = None,
    ) -> str:
        doc = self._new_document(template_id=template_id, creator=creator, data=data, title=title, tenant_id=tenant_id)
        self._documents.add(doc)
        logger.info("draft created", extra={"document_id": doc.document_id, "template_id": template_id})
        return doc.document_id

    def update_draft(
        self,
        document_id: str,
        *,
        actor: str,
        data: Optional[Mapping[str, Any]] = None,
        title: Optional[str] = None,
    ) -> DocumentSnapshot:
        doc = self._load_draft(document_id, actor)
        expected = doc.version
        if data is not None:
            doc.data = _as_payload(data)
        if title is not None:
            doc.title = require_max_length(str(title).strip(), "Title", 255)
        doc.record(HistoryAction.UPDATED, self._clock(), actor=doc.created_by)
        self._documents.save(doc, expected_version=expected)
        return DocumentSnapshot.of(doc)

    def delete_draft(self, document_id: str, *, actor: str) -> None:
        doc = self._load_draft(document_id, actor)
        if not self._documents.delete(doc.document_id, expected_version=doc.version):
            raise NotFoundError("Document not found")
        logger.info("draft deleted", extra={"document_id": doc.document_id})

    def submit_draft(self, document_id: str, *, actor: str, route_template: RouteInput) -> DocumentSnapshot:
        doc = self._load(document_id)
        if doc.created_by != str(actor):
            raise AuthorizationError("Only the creator can submit this document")
        expected = doc.version
        before = len(doc.history)
        try:
            events = self._submit(doc, route_template)
        except ValidationError:
            # The failed attempt stays in the draft's audit trail.
            if len(doc.history) > before:
                self._documents.save(doc, expected_version=expected)
            raise
        return self._commit(doc, expected, events)

    def submit_document(
        self,
        schema_id: str,
        payload: Mapping[str, Any],
        route_template: RouteInput,
        creator: str,
        *,
        title: str = "",
        tenant_id: Optional[str] = None,
    ) -> str:
        """Create and submit in one step; nothing is stored when validation fails."""
        doc = self._new_document(template_id=schema_id, creator=creator, data=payload, title=title, tenant_id=tenant_id)
        events = self._submit(doc, route_template)
        self._documents.add(doc)
        self._dispatcher.publish(events)
        return doc.document_id

    # -------- routing --------
    def decide(
        self,
        document_id: str,
        *,
        actor: str,
        stage_ordinal: int,
        decision: Decision | str,
        comment: Optional[str] = None,
    ) -> DocumentSnapshot:
        return self._transition(
            document_id,
            lambda doc: self._engine.decide(doc, str(actor), int(stage_ordinal), decision, comment),
        )

    def recall(self, document_id: str, *, actor: str) -> DocumentSnapshot:
        return self._transition(document_id, lambda doc: self._engine.recall(doc, str(actor)))

    def acknowledge(self, document_id: str, *, actor: str, stage_ordinal: int) -> DocumentSnapshot:
        return self._transition(
            document_id,
            lambda doc: self._engine.acknowledge(doc, str(actor), int(stage_ordinal)),
        )

    # -------- reads --------
    def get_document(self, document_id: str, *, actor: str) -> DocumentSnapshot:
        doc = self._load(document_id)
        actor = str(actor)
        involved = doc.created_by == actor or (doc.route is not None and doc.route.stages_for(actor))
        if not involved:
            raise AuthorizationError("You are not involved in this document")
        return DocumentSnapshot.of(doc)

    # -------- internals --------
    def _new_document(
        self,
        *,
        template_id: str,
        creator: str,
        data: Optional[Mapping[str, Any]],
        title: str,
        tenant_id: Optional[str],
    ) -> ApprovalDocument:
        template = self._templates.get(template_id, tenant_id=tenant_id)
        if not template.is_active:
            raise ValidationError(f"Template {template.code} is no longer active")
        now = self._clock()
        doc = ApprovalDocument(
            document_id=self._new_id(),
            schema_ref=SchemaRef(template_id=template.template_id, schema_version=template.schema_version),
            created_by=str(creator),
            created_at=now,
            title=require_max_length(str(title or template.name).strip(), "Title", 255),
            tenant_id=tenant_id,
            data=_as_payload(data or {}),
        )
        doc.record(HistoryAction.CREATED, now, actor=doc.created_by)
        return doc

    def _load(self, document_id: str) -> ApprovalDocument:
        doc = self._documents.get(str(document_id))
        if not doc:
            raise NotFoundError("Document not found")
        return doc

    def _load_draft(self, document_id: str, actor: str) -> ApprovalDocument:
        doc = self._load(document_id)
        if doc.created_by != str(actor):
            raise AuthorizationError("Only the creator can change a draft")
        if doc.status != DocumentStatus.DRAFT:
            raise InvalidStateError(f"Document is {doc.status.value}; only drafts can be changed")
        return doc

    def _submit(self, doc: ApprovalDocument, route_template: RouteInput) -> list[Event]:
        if doc.status != DocumentStatus.DRAFT:
            raise InvalidStateError(f"Only drafts can be submitted (status is {doc.status.value})")
        route = route_template if isinstance(route_template, RouteTemplate) else RouteTemplate.from_dict(route_template)
        route.check()
        self._check_participants(route, doc.tenant_id)
        schema = self._templates.get_schema(doc.schema_ref.template_id, doc.schema_ref.schema_version)
        return self._engine.submit(doc, schema, route)

    def _check_participants(self, route: RouteTemplate, tenant_id: Optional[str]) -> None:
        errors: list[FieldError] = []
        for user_id in sorted(route.participant_ids()):
            member = self._directory.get_member(user_id)
            if member is None or not member.is_active:
                errors.append(FieldError("route", f"{user_id} is not an active member"))
            elif tenant_id is not None and member.tenant_id != tenant_id:
                errors.append(FieldError("route", f"{user_id} belongs to another organization"))
        if errors:
            raise ValidationError("Route names unknown participants", errors=errors)

    def _transition(self, document_id: str, apply: Callable[[ApprovalDocument], list[Event]]) -> DocumentSnapshot:
        doc = self._load(document_id)
        expected = doc.version
        events = apply(doc)
        return self._commit(doc, expected, events)

    def _commit(self, doc: ApprovalDocument, expected: int, events: list[Event]) -> DocumentSnapshot:
        try:
            self._documents.save(doc, expected_version=expected)
        except ConcurrentModificationError:
            logger.warning("lost update", extra={"document_id": doc.document_id, "expected_version": expected})
            raise
        self._dispatcher.publish(events)
        return DocumentSnapshot.of(doc)


def _as_payload(data: Any) -> dict:
    if not isinstance(data, Mapping):
        raise ValidationError("Document data must be an object")
    return dict(data)
