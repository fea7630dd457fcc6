"""Seed demo members and the system form templates into MySQL."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.approval_system.approval_system.container import build_container
from src.approval_system.approval_system.database.bootstrap import upsert_members

DEMO_MEMBERS = (
    {"user_id": "admin", "tenant_id": "acme", "full_name": "Admin Demo"},
    {"user_id": "manager", "tenant_id": "acme", "full_name": "Team Manager"},
    {"user_id": "director", "tenant_id": "acme", "full_name": "Finance Director"},
    {"user_id": "staff", "tenant_id": "acme", "full_name": "Staff Member"},
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    members = upsert_members(db_config, DEMO_MEMBERS)
    container = build_container(db_config=db_config, storage_backend="mysql")
    created = container.template_service.install_defaults()

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(members={members}, new templates={len(created)})"
    )


if __name__ == "__main__":
    main()
