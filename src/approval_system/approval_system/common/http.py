"""JSON helpers shared by the controllers."""

from __future__ import annotations

from functools import wraps
from typing import Any

from flask import Flask, jsonify, request, session

from ..core.exceptions import (
    AlreadyDecidedError,
    AuthorizationError,
    ConcurrentModificationError,
    DomainError,
    DuplicateTemplateError,
    InvalidStateError,
    NotAParticipantError,
    NotFoundError,
    RecallNotAllowedError,
    SchemaDefinitionError,
    StageNotActiveError,
    TemplateInUseError,
    ValidationError,
)
from .logging_config import get_logger

logger = get_logger("http")

# First match wins, so subclasses must precede their bases.
STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 422),
    (SchemaDefinitionError, 400),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (NotAParticipantError, 403),
    (InvalidStateError, 409),
    (StageNotActiveError, 409),
    (AlreadyDecidedError, 409),
    (RecallNotAllowedError, 409),
    (DuplicateTemplateError, 409),
    (TemplateInUseError, 409),
    (ConcurrentModificationError, 409),
)


def status_for(error: DomainError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def error_body(error: DomainError) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error.code, "message": str(error)}
    if isinstance(error, ValidationError) and error.errors:
        body["errors"] = [e.to_dict() if hasattr(e, "to_dict") else e for e in error.errors]
    if getattr(error, "retryable", False):
        body["retryable"] = True
    return body


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        logger.warning(
            "request rejected",
            extra={"path": request.path, "error_code": error.code, "status": status},
        )
        return jsonify(error_body(error)), status


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "error": "UNAUTHENTICATED", "message": "Login required"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> str:
    return str(session["user_id"])


def current_tenant_id() -> str | None:
    tenant = session.get("tenant_id")
    return str(tenant) if tenant is not None else None


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
