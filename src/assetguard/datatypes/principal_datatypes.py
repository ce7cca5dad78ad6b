"""Authenticated principal passed into administrative operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    MEMBER = "member"
    PARTNER = "partner"
    SUPPORT = "support"
    ADMIN = "admin"
    FOUNDER = "founder"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class Principal:
    """Caller identity with its role attribute."""

    user_id: str
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
