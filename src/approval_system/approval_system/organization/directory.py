from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol


@dataclass(frozen=True)
class Member:
    user_id: str
    tenant_id: Optional[str]
    full_name: str
    is_active: bool = True


class OrganizationDirectory(Protocol):
    """Read-only lookup of the people a route may name."""

    def get_member(self, user_id: str) -> Optional[Member]:
        raise NotImplementedError


class StaticOrganizationDirectory(OrganizationDirectory):
    def __init__(self, members: Iterable[Member] = ()):
        self._members = {m.user_id: m for m in members}

    def get_member(self, user_id: str) -> Optional[Member]:
        return self._members.get(str(user_id))

    def add(self, member: Member) -> None:
        self._members[member.user_id] = member
