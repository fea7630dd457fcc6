from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Mapping

import mysql.connector

from ..common.logging_config import get_logger
from .connection import DBConfig

logger = get_logger("database.bootstrap")

SCHEMA_PATH = Path(__file__).resolve().parents[4] / "database" / "schema.sql"


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside quotes; ``--`` line comments are dropped."""
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    sql = re.sub(r"(?m)^\s*--.*$", "", sql)
    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: Mapping) -> None:
    target = DBConfig.from_mapping(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = _connect(DBConfig.from_mapping(db_config))
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied", extra={"schema_path": str(schema_path)})


def upsert_members(db_config: Mapping, members: Iterable[Mapping]) -> int:
    """Insert or refresh rows of the ``users`` table read by the directory."""
    conn = _connect(DBConfig.from_mapping(db_config))
    count = 0
    try:
        cur = conn.cursor()
        for m in members:
            cur.execute(
                """
                INSERT INTO users (user_id, tenant_id, full_name, is_active)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE tenant_id=VALUES(tenant_id), full_name=VALUES(full_name), is_active=VALUES(is_active)
                """,
                (str(m["user_id"]), m.get("tenant_id"), m["full_name"], 1 if m.get("is_active", True) else 0),
            )
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def list_tables(db_config: Mapping) -> list[str]:
    conn = _connect(DBConfig.from_mapping(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
