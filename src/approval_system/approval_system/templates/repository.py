from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import FormTemplate


class TemplateRepository(Protocol):
    def add(self, template: FormTemplate) -> None:
        raise NotImplementedError

    def get(self, template_id: str) -> Optional[FormTemplate]:
        """Latest version of the template."""

        raise NotImplementedError

    def get_version(self, template_id: str, schema_version: int) -> Optional[FormTemplate]:
        raise NotImplementedError

    def find_by_code(self, *, tenant_id: Optional[str], code: str) -> Optional[FormTemplate]:
        raise NotImplementedError

    def list_for_tenant(self, tenant_id: Optional[str], *, include_inactive: bool = False) -> Sequence[FormTemplate]:
        """Templates of the tenant plus system templates."""

        raise NotImplementedError

    def add_version(self, template: FormTemplate) -> None:
        """Store a revision and make it the latest one."""

        raise NotImplementedError

    def set_active(self, template_id: str, is_active: bool) -> bool:
        raise NotImplementedError
