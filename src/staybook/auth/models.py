"""
staybook.auth.models

The authenticated caller (`Principal`) handed to routers and services.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

ADMIN_ROLES = frozenset({"ADMIN", "SUPER_ADMIN"})


@dataclass(frozen=True, slots=True)
class Principal:
    user_id: uuid.UUID
    # Snapshot from the access token; a role change takes effect at next login.
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return bool(self.roles & ADMIN_ROLES)

    def has_role(self, role: str) -> bool:
        return role in self.roles
