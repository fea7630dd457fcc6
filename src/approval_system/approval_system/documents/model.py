from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import DocumentStatus, HistoryAction
from ..routing.model import Route, Stage


@dataclass(frozen=True)
class SchemaRef:
    """Template id plus the schema version the document was written against."""

    template_id: str
    schema_version: int


@dataclass(frozen=True)
class HistoryEntry:
    action: HistoryAction
    at: datetime
    actor: Optional[str] = None
    stage_ordinal: Optional[int] = None
    comment: Optional[str] = None


@dataclass
class ApprovalDocument:
    """Aggregate root: the document with its embedded route and audit trail.

    Only the creator mutates it while DRAFT; after submission every change
    goes through the routing engine.
    """

    document_id: str
    schema_ref: SchemaRef
    created_by: str
    created_at: datetime
    title: str = ""
    tenant_id: Optional[str] = None
    data: dict = field(default_factory=dict)
    status: DocumentStatus = DocumentStatus.DRAFT
    route: Optional[Route] = None
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    history: list[HistoryEntry] = field(default_factory=list)
    version: int = 0

    def record(
        self,
        action: HistoryAction,
        at: datetime,
        *,
        actor: Optional[str] = None,
        stage_ordinal: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        self.history.append(HistoryEntry(action=action, at=at, actor=actor, stage_ordinal=stage_ordinal, comment=comment))

    @property
    def current_stage(self) -> Optional[Stage]:
        return self.route.current_stage if self.route else None


@dataclass(frozen=True)
class DocumentSnapshot:
    """Read-only view returned to callers after a transition."""

    document_id: str
    status: DocumentStatus
    version: int
    current_stage_ordinal: Optional[int]
    completed_stages: int
    total_stages: int
    submitted_at: Optional[datetime]
    completed_at: Optional[datetime]
    document: dict[str, Any]

    @classmethod
    def of(cls, doc: ApprovalDocument) -> "DocumentSnapshot":
        from .mappers import document_to_dict

        current = doc.current_stage
        return cls(
            document_id=doc.document_id,
            status=doc.status,
            version=doc.version,
            current_stage_ordinal=current.ordinal if current else None,
            completed_stages=doc.route.completed_count if doc.route else 0,
            total_stages=doc.route.total_count if doc.route else 0,
            submitted_at=doc.submitted_at,
            completed_at=doc.completed_at,
            document=document_to_dict(doc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "status": self.status.value,
            "version": self.version,
            "current_stage_ordinal": self.current_stage_ordinal,
            "completed_stages": self.completed_stages,
            "total_stages": self.total_stages,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "document": self.document,
        }
