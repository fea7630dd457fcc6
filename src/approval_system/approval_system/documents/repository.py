from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import DocumentStatus
from .model import ApprovalDocument


@dataclass(frozen=True)
class DocumentFilter:
    """Conjunctive document criteria; ``None`` / empty means "any".

    ``participant`` matches documents whose route names the user in any stage.
    ``limit=None`` returns every match.
    """

    created_by: Optional[str] = None
    participant: Optional[str] = None
    tenant_id: Optional[str] = None
    template_id: Optional[str] = None
    statuses: tuple[DocumentStatus, ...] = ()
    since: Optional[datetime] = None
    offset: int = 0
    limit: Optional[int] = None

    def matches(self, doc: ApprovalDocument) -> bool:
        if self.created_by is not None and doc.created_by != self.created_by:
            return False
        if self.participant is not None and (doc.route is None or not doc.route.stages_for(self.participant)):
            return False
        if self.tenant_id is not None and doc.tenant_id != self.tenant_id:
            return False
        if self.template_id is not None and doc.schema_ref.template_id != self.template_id:
            return False
        if self.statuses and doc.status not in self.statuses:
            return False
        if self.since is not None and doc.created_at < self.since:
            return False
        return True


def sort_key(doc: ApprovalDocument) -> datetime:
    """Newest activity first: submission time, else creation time."""
    return doc.submitted_at or doc.created_at


class DocumentRepository(Protocol):
    """Storage of the document aggregate (document + route + history).

    ``save`` is a compare-and-swap on ``version``: it raises
    ConcurrentModificationError when the stored version differs from
    ``expected_version`` and bumps ``document.version`` on success.
    """

    def add(self, document: ApprovalDocument) -> None:
        raise NotImplementedError

    def get(self, document_id: str) -> Optional[ApprovalDocument]:
        raise NotImplementedError

    def save(self, document: ApprovalDocument, *, expected_version: int) -> None:
        raise NotImplementedError

    def delete(self, document_id: str, *, expected_version: int) -> bool:
        raise NotImplementedError

    def find(self, criteria: DocumentFilter) -> Sequence[ApprovalDocument]:
        """Matching documents ordered by ``sort_key`` descending, then paged."""

        raise NotImplementedError

    def count_by_status(self, criteria: DocumentFilter) -> dict[DocumentStatus, int]:
        """Number of matching documents per status (paging ignored)."""

        raise NotImplementedError

    def count_open_for_template(self, template_id: str) -> int:
        """Non-terminal documents (drafts included) referencing the template."""

        raise NotImplementedError
