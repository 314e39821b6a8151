"""Role checks: salespeople work on their own records, admins on everything."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import PermissionDeniedError


class Role(str, Enum):
    ADMIN = "admin"
    SALESPERSON = "salesperson"


@dataclass(frozen=True)
class Actor:
    id: str
    email: str
    name: str
    role: Role = Role.SALESPERSON

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def ensure_owner_or_admin(actor: Actor, owner_id: str | None, action: str) -> None:
    if actor.is_admin or owner_id == actor.id:
        return
    raise PermissionDeniedError(f"Not allowed to {action}")


def ensure_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only administrators can {action}")
