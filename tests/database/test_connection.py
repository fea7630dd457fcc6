from __future__ import annotations

from src.approval_system.approval_system.database.connection import DatabaseConnection, DBConfig


def test_one_instance_per_distinct_config():
    primary = DBConfig.from_mapping({"host": "db-a", "database": "approvals"})
    same = DBConfig.from_mapping({"host": "db-a", "database": "approvals"})
    other = DBConfig.from_mapping({"host": "db-b", "database": "approvals"})

    first = DatabaseConnection.get_instance(primary)

    assert DatabaseConnection.get_instance(same) is first
    second = DatabaseConnection.get_instance(other)
    assert second is not first
    assert (first.config.host, second.config.host) == ("db-a", "db-b")
