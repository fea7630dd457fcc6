from __future__ import annotations

import importlib
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http import register_error_handlers
from .common.logging_config import configure_logging, get_logger
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .documents.controller import register as register_documents
from .organization.directory import OrganizationDirectory
from .templates.controller import register as register_templates

logger = get_logger("main")


def create_app(
    settings_module: Optional[str] = None,
    *,
    directory: Optional[OrganizationDirectory] = None,
) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    db_config = getattr(settings, "DB_CONFIG", None)
    storage_backend = getattr(settings, "STORAGE_BACKEND", "mysql")
    logger.info("starting", extra={"settings": settings_module, "storage_backend": storage_backend})

    if storage_backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("schema ready", extra={"tables": len(list_tables(db_config))})

    container = build_container(
        db_config=db_config,
        storage_backend=storage_backend,
        urgent_after_days=int(getattr(settings, "URGENT_AFTER_DAYS", 3)),
        page_size=int(getattr(settings, "PAGE_SIZE", 20)),
        dispatch_async=bool(getattr(settings, "DISPATCH_ASYNC", False)),
        directory=directory,
    )
    if bool(getattr(settings, "AUTO_INSTALL_TEMPLATES", True)):
        container.template_service.install_defaults()
    app.extensions["approval_container"] = container

    register_error_handlers(app)
    register_templates(app, container)
    register_documents(app, container)

    return app


def get_container(app: Flask) -> Container:
    return app.extensions["approval_container"]
