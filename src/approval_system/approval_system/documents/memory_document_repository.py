from __future__ import annotations

import copy
import threading
from collections import Counter
from typing import Optional, Sequence

from ..core.enums import DocumentStatus
from ..core.exceptions import ConcurrentModificationError, NotFoundError
from .model import ApprovalDocument
from .repository import DocumentFilter, DocumentRepository, sort_key


class InMemoryDocumentRepository(DocumentRepository):
    """Thread-safe in-process store.

    Stored aggregates are deep-copied in and out so callers never share
    mutable state with the store; ``save`` checks the version under the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._docs: dict[str, ApprovalDocument] = {}

    def add(self, document: ApprovalDocument) -> None:
        with self._lock:
            if document.document_id in self._docs:
                raise ConcurrentModificationError(f"Document {document.document_id} already exists")
            document.version = 1
            self._docs[document.document_id] = copy.deepcopy(document)

    def get(self, document_id: str) -> Optional[ApprovalDocument]:
        with self._lock:
            doc = self._docs.get(str(document_id))
            return copy.deepcopy(doc) if doc else None

    def save(self, document: ApprovalDocument, *, expected_version: int) -> None:
        with self._lock:
            current = self._docs.get(document.document_id)
            if current is None:
                raise NotFoundError(f"Document {document.document_id} not found")
            if current.version != expected_version:
                raise ConcurrentModificationError(
                    f"Document {document.document_id} changed (expected v{expected_version}, found v{current.version})"
                )
            document.version = expected_version + 1
            self._docs[document.document_id] = copy.deepcopy(document)

    def delete(self, document_id: str, *, expected_version: int) -> bool:
        with self._lock:
            current = self._docs.get(str(document_id))
            if current is None:
                return False
            if current.version != expected_version:
                raise ConcurrentModificationError(f"Document {document_id} changed")
            del self._docs[str(document_id)]
            return True

    def find(self, criteria: DocumentFilter) -> Sequence[ApprovalDocument]:
        with self._lock:
            rows = [copy.deepcopy(d) for d in self._docs.values() if criteria.matches(d)]
        rows.sort(key=sort_key, reverse=True)
        start = max(int(criteria.offset), 0)
        end = None if criteria.limit is None else start + int(criteria.limit)
        return rows[start:end]

    def count_by_status(self, criteria: DocumentFilter) -> dict[DocumentStatus, int]:
        with self._lock:
            return dict(Counter(d.status for d in self._docs.values() if criteria.matches(d)))

    def count_open_for_template(self, template_id: str) -> int:
        with self._lock:
            return sum(
                1
                for d in self._docs.values()
                if d.schema_ref.template_id == template_id and not d.status.is_terminal
            )
