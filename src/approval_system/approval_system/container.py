from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .common.datetime_utils import now_local
from .core.constants import DEFAULT_PAGE_SIZE, DEFAULT_URGENT_AFTER_DAYS
from .database.connection import DBConfig, DatabaseConnection
from .dispatch.dispatcher import EventDispatcher, LoggingNotifier
from .documents.memory_document_repository import InMemoryDocumentRepository
from .documents.mysql_document_repository import MySQLDocumentRepository
from .documents.queries import ApprovalQueries
from .documents.repository import DocumentRepository
from .documents.service import ApprovalService
from .forms.factory import ValueStrategyFactory
from .forms.validator import SchemaValidator
from .organization.directory import OrganizationDirectory, StaticOrganizationDirectory
from .organization.mysql_organization_directory import MySQLOrganizationDirectory
from .routing.engine import RoutingEngine
from .templates.memory_template_repository import InMemoryTemplateRepository
from .templates.mysql_template_repository import MySQLTemplateRepository
from .templates.repository import TemplateRepository
from .templates.service import TemplateService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    templates_repo: TemplateRepository
    documents_repo: DocumentRepository
    directory: OrganizationDirectory

    dispatcher: EventDispatcher
    engine: RoutingEngine
    template_service: TemplateService
    approval_service: ApprovalService
    approval_queries: ApprovalQueries


def build_container(
    *,
    db_config: Optional[dict] = None,
    storage_backend: str = "mysql",
    urgent_after_days: int = DEFAULT_URGENT_AFTER_DAYS,
    page_size: int = DEFAULT_PAGE_SIZE,
    dispatch_async: bool = False,
    directory: Optional[OrganizationDirectory] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if storage_backend == "mysql":
        if not db_config:
            raise ValueError("db_config is required for the mysql storage backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
        templates_repo: TemplateRepository = MySQLTemplateRepository(conn)
        documents_repo: DocumentRepository = MySQLDocumentRepository(conn)
        directory = directory or MySQLOrganizationDirectory(conn)
    elif storage_backend == "memory":
        templates_repo = InMemoryTemplateRepository()
        documents_repo = InMemoryDocumentRepository()
        directory = directory or StaticOrganizationDirectory()
    else:
        raise ValueError(f"Unknown storage backend: {storage_backend!r}")

    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="dispatch") if dispatch_async else None
    dispatcher = EventDispatcher([LoggingNotifier()], executor=executor)

    validator = SchemaValidator(ValueStrategyFactory())
    engine = RoutingEngine(clock=clock, validator=validator)
    template_service = TemplateService(templates_repo, documents_repo, validator=validator, clock=clock)
    approval_service = ApprovalService(
        documents_repo,
        template_service,
        directory,
        engine=engine,
        dispatcher=dispatcher,
        clock=clock,
    )
    approval_queries = ApprovalQueries(
        documents_repo, clock=clock, urgent_after_days=urgent_after_days, page_size=page_size
    )

    return Container(
        conn=conn,
        templates_repo=templates_repo,
        documents_repo=documents_repo,
        directory=directory,
        dispatcher=dispatcher,
        engine=engine,
        template_service=template_service,
        approval_service=approval_service,
        approval_queries=approval_queries,
    )
