"""Example: drive the approval workflow through the service layer (no Flask, no database).

Controllers are thin; every rule lives in the services and the routing engine.
"""

from src.approval_system.approval_system.common.logging_config import configure_logging
from src.approval_system.approval_system.container import build_container
from src.approval_system.approval_system.organization.directory import Member, StaticOrganizationDirectory


def main():
    configure_logging("INFO")
    directory = StaticOrganizationDirectory(
        [
            Member("staff", "acme", "Staff Member"),
            Member("manager", "acme", "Team Manager"),
            Member("director", "acme", "Finance Director"),
            Member("hr", "acme", "HR Officer"),
        ]
    )
    container = build_container(storage_backend="memory", directory=directory)
    templates = container.template_service
    templates.install_defaults()
    remote_work = next(t for t in templates.list_for_tenant("acme") if t.code == "REMOTE_WORK")

    service = container.approval_service
    document_id = service.submit_document(
        remote_work.template_id,
        {
            "work_date": "2026-11-02",
            "work_type": "full_day",
            "reason": "Waiting for a delivery",
            "work_plan": "Quarterly report review",
            "contact_number": "+84 912 345 678",
            "work_location": "Home",
        },
        [
            {"type": "APPROVAL", "participants": ["manager", "director"]},
            {"type": "REFERENCE", "participants": ["hr"]},
        ],
        "staff",
        tenant_id="acme",
    )

    service.decide(document_id, actor="manager", stage_ordinal=1, decision="APPROVED")
    snapshot = service.decide(document_id, actor="director", stage_ordinal=1, decision="APPROVED")
    print(snapshot.status.value, f"{snapshot.completed_stages}/{snapshot.total_stages}")
    print(container.approval_queries.counts("hr"))


if __name__ == "__main__":
    main()
