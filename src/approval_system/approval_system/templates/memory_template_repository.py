from __future__ import annotations

import threading
from dataclasses import replace
from typing import Optional, Sequence

from .model import FormTemplate
from .repository import TemplateRepository


class InMemoryTemplateRepository(TemplateRepository):
    """Dict-backed store used by tests and the ``memory`` storage backend."""

    def __init__(self):
        self._lock = threading.Lock()
        self._versions: dict[str, dict[int, FormTemplate]] = {}
        self._heads: dict[str, FormTemplate] = {}

    def add(self, template: FormTemplate) -> None:
        with self._lock:
            self._versions[template.template_id] = {template.schema_version: template}
            self._heads[template.template_id] = template

    def get(self, template_id: str) -> Optional[FormTemplate]:
        return self._heads.get(template_id)

    def get_version(self, template_id: str, schema_version: int) -> Optional[FormTemplate]:
        return self._versions.get(template_id, {}).get(int(schema_version))

    def find_by_code(self, *, tenant_id: Optional[str], code: str) -> Optional[FormTemplate]:
        for t in self._heads.values():
            if t.tenant_id == tenant_id and t.code == code:
                return t
        return None

    def list_for_tenant(self, tenant_id: Optional[str], *, include_inactive: bool = False) -> Sequence[FormTemplate]:
        rows = [t for t in self._heads.values() if t.visible_to(tenant_id) and (include_inactive or t.is_active)]
        rows.sort(key=lambda t: (t.tenant_id is not None, t.name))
        return rows

    def add_version(self, template: FormTemplate) -> None:
        with self._lock:
            self._versions.setdefault(template.template_id, {})[template.schema_version] = template
            self._heads[template.template_id] = template

    def set_active(self, template_id: str, is_active: bool) -> bool:
        with self._lock:
            head = self._heads.get(template_id)
            if head is None:
                return False
            self._heads[template_id] = replace(head, is_active=bool(is_active))
            return True
