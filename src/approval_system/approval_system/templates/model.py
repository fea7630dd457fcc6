from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Any, Optional

from ..forms.model import FormSchema, parse_schema


@dataclass(frozen=True)
class FormTemplate:
    """A published form definition.

    ``tenant_id`` None marks a system template shared by every tenant.
    ``schema_version`` grows by one on each revision; older versions stay
    stored so in-flight documents keep validating against what they used.
    """

    template_id: str
    tenant_id: Optional[str]
    code: str
    name: str
    definition: dict[str, Any]
    schema_version: int = 1
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def is_system(self) -> bool:
        return self.tenant_id is None

    @cached_property
    def schema(self) -> FormSchema:
        return parse_schema(self.definition)

    def visible_to(self, tenant_id: Optional[str]) -> bool:
        return self.is_system or self.tenant_id == tenant_id

    def to_dict(self, *, include_definition: bool = True) -> dict[str, Any]:
        data = {
            "template_id": self.template_id,
            "tenant_id": self.tenant_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "schema_version": self.schema_version,
            "is_active": self.is_active,
            "is_system": self.is_system,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_definition:
            data["definition"] = self.definition
        return data
