"""Per-request caller identity, derived once from a verified credential."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NoReturn


class Role(str, Enum):
    TECH = "tech"
    SUPERVISOR = "supervisor"
    REPAIR = "repair"
    ADMIN = "admin"

    @property
    def is_elevated(self) -> bool:
        """Repair and admin hold unconditional write rights."""
        return self in (Role.REPAIR, Role.ADMIN)


class UnknownRoleError(ValueError):
    """Raised when a credential carries a role outside the closed set."""


def parse_role(raw: object) -> Role:
    try:
        return Role(str(raw).strip().lower())
    except ValueError as exc:
        raise UnknownRoleError(f"unknown role {raw!r}") from exc


def unhandled_role(role: Role) -> NoReturn:
    """Terminal branch for role dispatch; reaching it means a role was added without a rule."""
    raise AssertionError(f"no rule for role {role!r}")


@dataclass(frozen=True)
class Identity:
    """
    Who is calling.

    Immutable for the lifetime of a request and never persisted by the core.
    """

    user_id: str
    role: Role

    def to_dict(self) -> dict[str, object]:
        return {"user_id": self.user_id, "role": self.role.value}
