from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from ..core.enums import DocumentStatus
from ..core.exceptions import ConcurrentModificationError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json
from .mappers import document_from_dict, history_to_list, route_to_list
from .model import ApprovalDocument
from .repository import DocumentFilter, DocumentRepository

_COLUMNS = """
    document_id, tenant_id, template_id, schema_version, title, created_by,
    status, data, route, history, created_at, submitted_at, completed_at, version
"""

_OPEN_STATUSES = tuple(s.value for s in DocumentStatus if not s.is_terminal)


def _dumps(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value, ensure_ascii=False)


def _where(criteria: DocumentFilter) -> tuple[str, list[Any]]:
    clauses = ["1=1"]
    params: list[Any] = []
    if criteria.created_by is not None:
        clauses.append("created_by=%s")
        params.append(str(criteria.created_by))
    if criteria.participant is not None:
        clauses.append("JSON_CONTAINS(JSON_EXTRACT(route, '$[*].participants[*].user_id'), JSON_QUOTE(%s))")
        params.append(str(criteria.participant))
    if criteria.tenant_id is not None:
        clauses.append("tenant_id=%s")
        params.append(str(criteria.tenant_id))
    if criteria.template_id is not None:
        clauses.append("template_id=%s")
        params.append(str(criteria.template_id))
    if criteria.statuses:
        clauses.append(f"status IN ({','.join(['%s'] * len(criteria.statuses))})")
        params.extend(s.value for s in criteria.statuses)
    if criteria.since is not None:
        clauses.append("created_at>=%s")
        params.append(criteria.since)
    return " AND ".join(clauses), params


class MySQLDocumentRepository(DocumentRepository):
    """Stores each aggregate as one row; route and history are JSON columns."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _row_to_document(r: dict[str, Any]) -> ApprovalDocument:
        data = dict(r)
        data["data"] = load_json(r["data"]) or {}
        data["route"] = load_json(r.get("route"))
        data["history"] = load_json(r["history"]) or []
        return document_from_dict(data)

    def add(self, document: ApprovalDocument) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO approval_documents({_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    document.document_id,
                    document.tenant_id,
                    document.schema_ref.template_id,
                    int(document.schema_ref.schema_version),
                    document.title,
                    document.created_by,
                    document.status.value,
                    _dumps(document.data),
                    _dumps(route_to_list(document.route)),
                    _dumps(history_to_list(document.history)),
                    document.created_at,
                    document.submitted_at,
                    document.completed_at,
                    1,
                ),
            )
        document.version = 1

    def get(self, document_id: str) -> Optional[ApprovalDocument]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM approval_documents WHERE document_id=%s",
                (str(document_id),),
            )
            r = fetchone(cur)
            return self._row_to_document(r) if r else None

    def save(self, document: ApprovalDocument, *, expected_version: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE approval_documents
                SET title=%s, status=%s, data=%s, route=%s, history=%s,
                    submitted_at=%s, completed_at=%s, version=version+1
                WHERE document_id=%s AND version=%s
                """,
                (
                    document.title,
                    document.status.value,
                    _dumps(document.data),
                    _dumps(route_to_list(document.route)),
                    _dumps(history_to_list(document.history)),
                    document.submitted_at,
                    document.completed_at,
                    document.document_id,
                    int(expected_version),
                ),
            )
            if cur.rowcount == 0:
                cur.execute("SELECT version FROM approval_documents WHERE document_id=%s", (document.document_id,))
                r = fetchone(cur)
                if not r:
                    raise NotFoundError(f"Document {document.document_id} not found")
                raise ConcurrentModificationError(
                    f"Document {document.document_id} changed (expected v{expected_version}, found v{r['version']})"
                )
        document.version = int(expected_version) + 1

    def delete(self, document_id: str, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM approval_documents WHERE document_id=%s AND version=%s",
                (str(document_id), int(expected_version)),
            )
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT version FROM approval_documents WHERE document_id=%s", (str(document_id),))
            if fetchone(cur):
                raise ConcurrentModificationError(f"Document {document_id} changed")
            return False

    def find(self, criteria: DocumentFilter) -> Sequence[ApprovalDocument]:
        where, params = _where(criteria)
        sql = f"""
            SELECT {_COLUMNS}
            FROM approval_documents
            WHERE {where}
            ORDER BY COALESCE(submitted_at, created_at) DESC
        """
        if criteria.limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params += [int(criteria.limit), max(int(criteria.offset), 0)]
        elif criteria.offset:
            # MySQL has no OFFSET without LIMIT
            sql += " LIMIT 18446744073709551615 OFFSET %s"
            params.append(int(criteria.offset))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [self._row_to_document(r) for r in fetchall(cur)]

    def count_by_status(self, criteria: DocumentFilter) -> dict[DocumentStatus, int]:
        where, params = _where(criteria)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT status, COUNT(*) AS n FROM approval_documents WHERE {where} GROUP BY status",
                tuple(params),
            )
            return {DocumentStatus(r["status"]): int(r["n"]) for r in fetchall(cur)}

    def count_open_for_template(self, template_id: str) -> int:
        placeholders = ",".join(["%s"] * len(_OPEN_STATUSES))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS n FROM approval_documents WHERE template_id=%s AND status IN ({placeholders})",
                (str(template_id), *_OPEN_STATUSES),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0
