from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .directory import Member, OrganizationDirectory


class MySQLOrganizationDirectory(OrganizationDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_member(self, user_id: str) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, tenant_id, full_name, is_active FROM users WHERE user_id=%s",
                (str(user_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Member(
                user_id=str(r["user_id"]),
                tenant_id=r.get("tenant_id"),
                full_name=r["full_name"],
                is_active=bool(r["is_active"]),
            )
