"""JSON-safe mapping of the document aggregate (storage rows and API output)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import isoformat_or_none
from ..core.enums import Decision, DocumentStatus, HistoryAction, StageStatus, StageType
from ..routing.model import Participant, Route, Stage
from .model import ApprovalDocument, HistoryEntry, SchemaRef


def _dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def route_to_list(route: Optional[Route]) -> Optional[list[dict]]:
    if route is None:
        return None
    return [
        {
            "type": s.type.value,
            "ordinal": s.ordinal,
            "status": s.status.value,
            "participants": [
                {
                    "user_id": p.user_id,
                    "decision": p.decision.value,
                    "decided_at": isoformat_or_none(p.decided_at),
                    "comment": p.comment,
                }
                for p in s.participants
            ],
        }
        for s in route.stages
    ]


def route_from_list(rows: Optional[list]) -> Optional[Route]:
    if rows is None:
        return None
    return Route(
        stages=[
            Stage(
                type=StageType(r["type"]),
                ordinal=int(r["ordinal"]),
                status=StageStatus(r["status"]),
                participants=[
                    Participant(
                        user_id=str(p["user_id"]),
                        decision=Decision(p["decision"]),
                        decided_at=_dt(p.get("decided_at")),
                        comment=p.get("comment"),
                    )
                    for p in r.get("participants") or []
                ],
            )
            for r in rows
        ]
    )


def history_to_list(history: list[HistoryEntry]) -> list[dict]:
    return [
        {
            "action": h.action.value,
            "at": h.at.isoformat(),
            "actor": h.actor,
            "stage_ordinal": h.stage_ordinal,
            "comment": h.comment,
        }
        for h in history
    ]


def history_from_list(rows: Optional[list]) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            action=HistoryAction(r["action"]),
            at=_dt(r["at"]),
            actor=r.get("actor"),
            stage_ordinal=r.get("stage_ordinal"),
            comment=r.get("comment"),
        )
        for r in rows or []
    ]


def document_to_dict(doc: ApprovalDocument) -> dict:
    return {
        "document_id": doc.document_id,
        "tenant_id": doc.tenant_id,
        "title": doc.title,
        "template_id": doc.schema_ref.template_id,
        "schema_version": doc.schema_ref.schema_version,
        "created_by": doc.created_by,
        "created_at": doc.created_at.isoformat(),
        "status": doc.status.value,
        "data": doc.data,
        "route": route_to_list(doc.route),
        "submitted_at": isoformat_or_none(doc.submitted_at),
        "completed_at": isoformat_or_none(doc.completed_at),
        "history": history_to_list(doc.history),
        "version": doc.version,
    }


def document_from_dict(data: Mapping[str, Any]) -> ApprovalDocument:
    return ApprovalDocument(
        document_id=str(data["document_id"]),
        tenant_id=data.get("tenant_id"),
        title=data.get("title") or "",
        schema_ref=SchemaRef(template_id=str(data["template_id"]), schema_version=int(data["schema_version"])),
        created_by=str(data["created_by"]),
        created_at=_dt(data["created_at"]),
        status=DocumentStatus(data["status"]),
        data=dict(data.get("data") or {}),
        route=route_from_list(data.get("route")),
        submitted_at=_dt(data.get("submitted_at")),
        completed_at=_dt(data.get("completed_at")),
        history=history_from_list(data.get("history")),
        version=int(data.get("version") or 0),
    )
