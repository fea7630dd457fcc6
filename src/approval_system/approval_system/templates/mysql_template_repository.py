from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json
from .model import FormTemplate
from .repository import TemplateRepository

_SELECT = """
    SELECT t.template_id, t.tenant_id, t.code, t.name, t.description, t.icon,
           t.is_active, t.created_by, t.created_at, t.updated_at,
           v.schema_version, v.definition
    FROM form_templates t
    JOIN form_template_versions v ON v.template_id = t.template_id
"""


class MySQLTemplateRepository(TemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _row_to_template(r: dict[str, Any]) -> FormTemplate:
        return FormTemplate(
            template_id=str(r["template_id"]),
            tenant_id=r.get("tenant_id"),
            code=r["code"],
            name=r["name"],
            description=r.get("description"),
            icon=r.get("icon"),
            definition=load_json(r["definition"]) or {},
            schema_version=int(r["schema_version"]),
            is_active=bool(r["is_active"]),
            created_by=r.get("created_by"),
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    def add(self, template: FormTemplate) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO form_templates(
                    template_id, tenant_id, code, name, description, icon,
                    schema_version, is_active, created_by, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    template.template_id,
                    template.tenant_id,
                    template.code,
                    template.name,
                    template.description,
                    template.icon,
                    int(template.schema_version),
                    1 if template.is_active else 0,
                    template.created_by,
                    template.created_at,
                ),
            )
            self._insert_version(cur, template)

    @staticmethod
    def _insert_version(cur, template: FormTemplate) -> None:
        cur.execute(
            """
            INSERT INTO form_template_versions(template_id, schema_version, definition, created_at)
            VALUES(%s,%s,%s,%s)
            """,
            (
                template.template_id,
                int(template.schema_version),
                json.dumps(template.definition, ensure_ascii=False),
                template.updated_at or template.created_at,
            ),
        )

    def get(self, template_id: str) -> Optional[FormTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE t.template_id=%s AND v.schema_version=t.schema_version",
                (str(template_id),),
            )
            r = fetchone(cur)
            return self._row_to_template(r) if r else None

    def get_version(self, template_id: str, schema_version: int) -> Optional[FormTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE t.template_id=%s AND v.schema_version=%s",
                (str(template_id), int(schema_version)),
            )
            r = fetchone(cur)
            return self._row_to_template(r) if r else None

    def find_by_code(self, *, tenant_id: Optional[str], code: str) -> Optional[FormTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + " WHERE t.tenant_id <=> %s AND t.code=%s AND v.schema_version=t.schema_version",
                (tenant_id, code),
            )
            r = fetchone(cur)
            return self._row_to_template(r) if r else None

    def list_for_tenant(self, tenant_id: Optional[str], *, include_inactive: bool = False) -> Sequence[FormTemplate]:
        clauses = ["v.schema_version=t.schema_version", "(t.tenant_id IS NULL OR t.tenant_id <=> %s)"]
        params: list[object] = [tenant_id]
        if not include_inactive:
            clauses.append("t.is_active=1")

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE {where} ORDER BY t.tenant_id IS NOT NULL, t.name",
                tuple(params),
            )
            return [self._row_to_template(r) for r in fetchall(cur)]

    def add_version(self, template: FormTemplate) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            self._insert_version(cur, template)
            cur.execute(
                """
                UPDATE form_templates
                SET schema_version=%s, name=%s, description=%s, icon=%s, updated_at=%s
                WHERE template_id=%s
                """,
                (
                    int(template.schema_version),
                    template.name,
                    template.description,
                    template.icon,
                    template.updated_at,
                    template.template_id,
                ),
            )

    def set_active(self, template_id: str, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE form_templates SET is_active=%s WHERE template_id=%s",
                (1 if is_active else 0, str(template_id)),
            )
            return cur.rowcount > 0
