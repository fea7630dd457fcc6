from __future__ import annotations

import re
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import MAX_TEMPLATE_CODE_PREFIX
from ..core.exceptions import AuthorizationError, DuplicateTemplateError, NotFoundError, TemplateInUseError
from ..documents.repository import DocumentRepository
from ..forms.model import FormSchema, parse_schema
from ..forms.validator import SchemaValidator, ValidationResult
from .defaults import DEFAULT_TEMPLATES
from .model import FormTemplate
from .repository import TemplateRepository

logger = get_logger("templates.service")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_template_code(name: str, at: datetime) -> str:
    """``OFFICESUPP_lq3k9z1a``: up to 10 letters of the name plus a base-36 millisecond stamp."""
    prefix = re.sub(r"[^0-9A-Za-z]", "", name or "")[:MAX_TEMPLATE_CODE_PREFIX].upper() or "FORM"
    return f"{prefix}_{_base36(int(at.timestamp() * 1000))}"


class TemplateService:
    def __init__(
        self,
        templates: TemplateRepository,
        documents: DocumentRepository,
        *,
        validator: Optional[SchemaValidator] = None,
        clock: Callable[[], datetime] = now_local,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._templates = templates
        self._documents = documents
        self._validator = validator or SchemaValidator()
        self._clock = clock
        self._new_id = id_factory

    def create_schema(
        self,
        definition: Mapping[str, Any],
        *,
        tenant_id: Optional[str],
        name: str,
        code: Optional[str] = None,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        created_by: Optional[str] = None,
        is_active: bool = True,
    ) -> str:
        name = require_max_length(require_non_empty(name, "Template name"), "Template name", 255)
        parse_schema(definition)

        now = self._clock()
        code = (code or "").strip() or generate_template_code(name, now)
        if self._templates.find_by_code(tenant_id=tenant_id, code=code):
            raise DuplicateTemplateError(f"Template with code {code} already exists")

        template = FormTemplate(
            template_id=self._new_id(),
            tenant_id=tenant_id,
            code=code,
            name=name,
            definition=dict(definition),
            schema_version=1,
            description=description,
            icon=icon,
            is_active=bool(is_active),
            created_by=created_by,
            created_at=now,
        )
        self._templates.add(template)
        logger.info("template created", extra={"template_id": template.template_id, "code": code, "tenant_id": tenant_id})
        return template.template_id

    def get(self, template_id: str, *, tenant_id: Optional[str]) -> FormTemplate:
        template = self._templates.get(str(template_id))
        if not template or not template.visible_to(tenant_id):
            raise NotFoundError("Form template not found")
        return template

    def _owned(self, template_id: str, tenant_id: Optional[str]) -> FormTemplate:
        template = self.get(template_id, tenant_id=tenant_id)
        if template.tenant_id != tenant_id:
            raise AuthorizationError("System templates cannot be changed by a tenant")
        return template

    def get_schema(self, template_id: str, schema_version: Optional[int] = None) -> FormSchema:
        if schema_version is None:
            template = self._templates.get(str(template_id))
        else:
            template = self._templates.get_version(str(template_id), int(schema_version))
        if not template:
            raise NotFoundError(f"Form template {template_id} (v{schema_version}) not found")
        return template.schema

    def list_for_tenant(self, tenant_id: Optional[str], *, include_inactive: bool = False) -> Sequence[FormTemplate]:
        return self._templates.list_for_tenant(tenant_id, include_inactive=include_inactive)

    def revise_schema(
        self,
        template_id: str,
        definition: Mapping[str, Any],
        *,
        tenant_id: Optional[str],
        name: Optional[str] = None,
        description: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> FormTemplate:
        current = self._owned(template_id, tenant_id)
        parse_schema(definition)

        revised = replace(
            current,
            definition=dict(definition),
            schema_version=current.schema_version + 1,
            name=require_non_empty(name, "Template name") if name is not None else current.name,
            description=description if description is not None else current.description,
            icon=icon if icon is not None else current.icon,
            updated_at=self._clock(),
        )
        self._templates.add_version(revised)
        logger.info(
            "template revised",
            extra={"template_id": revised.template_id, "schema_version": revised.schema_version},
        )
        return revised

    def deactivate(self, template_id: str, *, tenant_id: Optional[str]) -> None:
        template = self._owned(template_id, tenant_id)
        in_use = self._documents.count_open_for_template(template.template_id)
        if in_use:
            raise TemplateInUseError(f"Template is used by {in_use} open document(s)")
        self._templates.set_active(template.template_id, False)
        logger.info("template deactivated", extra={"template_id": template.template_id})

    def clone(self, template_id: str, *, tenant_id: Optional[str], new_name: str, created_by: Optional[str] = None) -> str:
        original = self.get(template_id, tenant_id=tenant_id)
        return self.create_schema(
            original.definition,
            tenant_id=tenant_id,
            name=new_name,
            description=f"{original.description} (copy)" if original.description else None,
            icon=original.icon,
            created_by=created_by,
        )

    def validate_payload(self, template_id: str, payload: Any, *, tenant_id: Optional[str]) -> ValidationResult:
        """Dry run of submission validation, used by form autosave/preview."""
        template = self.get(template_id, tenant_id=tenant_id)
        return self._validator.validate(template.schema, payload)

    def install_defaults(self) -> list[str]:
        """Create missing system templates; existing codes are left untouched."""
        created: list[str] = []
        for entry in DEFAULT_TEMPLATES:
            if self._templates.find_by_code(tenant_id=None, code=entry["code"]):
                continue
            created.append(
                self.create_schema(
                    entry["schema"],
                    tenant_id=None,
                    name=entry["name"],
                    code=entry["code"],
                    description=entry.get("description"),
                    icon=entry.get("icon"),
                )
            )
        if created:
            logger.info("system templates installed", extra={"count": len(created)})
        return created
