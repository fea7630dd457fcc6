"""
Read-side projections: outbox, inbox, pending, drafts, statistics.

Nothing here mutates a document. ``pending`` lists exactly the documents on
which ``decide`` would accept the actor and is never truncated; the display
lists (inbox, outbox, drafts) are paged. Urgency is derived from the age of
``submitted_at`` at read time.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..common.datetime_utils import isoformat_or_none, now_local, subtract_months
from ..core.constants import DEFAULT_PAGE_SIZE, DEFAULT_URGENT_AFTER_DAYS, MAX_PAGE_SIZE
from ..core.enums import DocumentStatus
from ..core.exceptions import ValidationError
from .model import ApprovalDocument
from .repository import DocumentFilter, DocumentRepository

STATISTICS_PERIODS = ("week", "month", "quarter", "year")


def _summary(doc: ApprovalDocument) -> dict:
    route = doc.route
    current = doc.current_stage
    return {
        "document_id": doc.document_id,
        "title": doc.title,
        "template_id": doc.schema_ref.template_id,
        "status": doc.status.value,
        "created_by": doc.created_by,
        "created_at": isoformat_or_none(doc.created_at),
        "submitted_at": isoformat_or_none(doc.submitted_at),
        "completed_at": isoformat_or_none(doc.completed_at),
        "current_stage_ordinal": current.ordinal if current else None,
        "completed_stages": route.completed_count if route else 0,
        "total_stages": route.total_count if route else 0,
    }


def _parse_status(value: Any) -> tuple[DocumentStatus, ...]:
    if value in (None, ""):
        return ()
    try:
        return (DocumentStatus(str(value).upper()),)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}") from None


def _positive_int(value: Any, name: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a valid number") from None
    if n < 1:
        raise ValidationError(f"{name} must be at least 1")
    return n


def _percent(part: int, total: int) -> int:
    # half-up rounding of 100 * part / total
    return (200 * part + total) // (2 * total)


def period_start(now: datetime, period: str) -> datetime:
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return subtract_months(now, 1)
    if period == "quarter":
        return subtract_months(now, 3)
    if period == "year":
        return subtract_months(now, 12)
    raise ValidationError(f"Invalid period: {period} (expected one of {', '.join(STATISTICS_PERIODS)})")


class ApprovalQueries:
    def __init__(
        self,
        documents: DocumentRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        urgent_after_days: int = DEFAULT_URGENT_AFTER_DAYS,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._documents = documents
        self._clock = clock
        self._urgent_after = timedelta(days=int(urgent_after_days))
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    def _paging(self, page: Any, limit: Any) -> tuple[int, int]:
        page_n = _positive_int(page, "Page", 1)
        limit_n = _positive_int(limit, "Limit", self._page_size)
        if limit_n > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be at most {MAX_PAGE_SIZE}")
        return (page_n - 1) * limit_n, limit_n

    def is_urgent(self, doc: ApprovalDocument, now: Optional[datetime] = None) -> bool:
        if doc.submitted_at is None or not doc.status.is_routing:
            return False
        return (now or self._clock()) - doc.submitted_at > self._urgent_after

    def outbox(
        self, actor: str, *, status: Any = None, template_id: Optional[str] = None, page: Any = 1, limit: Any = None
    ) -> list[dict]:
        offset, limit_n = self._paging(page, limit)
        criteria = DocumentFilter(
            created_by=str(actor),
            statuses=_parse_status(status),
            template_id=template_id or None,
            offset=offset,
            limit=limit_n,
        )
        return [_summary(d) for d in self._documents.find(criteria)]

    def drafts(self, actor: str, *, template_id: Optional[str] = None, page: Any = 1, limit: Any = None) -> list[dict]:
        offset, limit_n = self._paging(page, limit)
        criteria = DocumentFilter(
            created_by=str(actor),
            statuses=(DocumentStatus.DRAFT,),
            template_id=template_id or None,
            offset=offset,
            limit=limit_n,
        )
        return [_summary(d) for d in self._documents.find(criteria)]

    def _inbox_items(self, actor: str, status: Any = None, template_id: Optional[str] = None) -> list[dict]:
        criteria = DocumentFilter(participant=actor, statuses=_parse_status(status), template_id=template_id or None)
        out: list[dict] = []
        for d in self._documents.find(criteria):
            for stage in d.route.stages_for(actor):
                if stage.is_blocking:
                    continue
                item = _summary(d)
                item.update(
                    stage_ordinal=stage.ordinal,
                    stage_type=stage.type.value,
                    stage_status=stage.status.value,
                    acknowledged=not stage.participant(actor).is_pending,
                )
                out.append(item)
        return out

    def inbox(
        self, actor: str, *, status: Any = None, template_id: Optional[str] = None, page: Any = 1, limit: Any = None
    ) -> list[dict]:
        """Informational stages naming the actor; one item per stage."""
        offset, limit_n = self._paging(page, limit)
        return self._inbox_items(str(actor), status, template_id)[offset : offset + limit_n]

    def pending(self, actor: str) -> list[dict]:
        actor = str(actor)
        now = self._clock()
        criteria = DocumentFilter(
            participant=actor,
            statuses=(DocumentStatus.SUBMITTED, DocumentStatus.IN_PROGRESS),
        )
        out: list[dict] = []
        for d in self._documents.find(criteria):
            stage = d.current_stage
            if stage is None:
                continue
            participant = stage.participant(actor)
            if participant is None or not participant.is_pending:
                continue
            item = _summary(d)
            item.update(
                stage_ordinal=stage.ordinal,
                stage_type=stage.type.value,
                is_urgent=self.is_urgent(d, now),
            )
            out.append(item)
        return out

    def counts(self, actor: str) -> dict[str, int]:
        actor = str(actor)
        pending = self.pending(actor)
        outbox = self._documents.count_by_status(DocumentFilter(created_by=actor))
        return {
            "inbox": len(self._inbox_items(actor)),
            "outbox": sum(outbox.values()),
            "pending": len(pending),
            "urgent": sum(1 for p in pending if p["is_urgent"]),
            "drafts": outbox.get(DocumentStatus.DRAFT, 0),
        }

    def statistics(
        self,
        tenant_id: Optional[str],
        period: Optional[str] = None,
        *,
        template_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> dict:
        """Documents created within ``period`` counted per status.

        ``percentages`` is None when nothing matched. A None tenant counts
        every tenant (single-tenant deployments).
        """
        period = (period or "month").lower()
        since = period_start(self._clock(), period)
        by_status = self._documents.count_by_status(
            DocumentFilter(
                tenant_id=tenant_id,
                template_id=template_id or None,
                created_by=user_id or None,
                since=since,
            )
        )
        counts = {s.value: by_status.get(s, 0) for s in DocumentStatus}
        total = sum(counts.values())
        return {
            "period": period,
            "since": isoformat_or_none(since),
            "total": total,
            "by_status": counts,
            "percentages": {k: _percent(v, total) for k, v in counts.items()} if total else None,
        }
