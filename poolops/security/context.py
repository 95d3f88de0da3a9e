from __future__ import annotations

from dataclasses import dataclass

from poolops.core.identity import Identity, Role
from poolops.core.resources import Region


@dataclass(frozen=True)
class AuthzContext:
    """
    Per-request authorization context.

    Small enough to be attached to:
    - request.state (FastAPI request lifetime)
    - Session.info (SQLAlchemy session lifetime), where the scope filters read it
    """

    identity: Identity

    # The caller's own profile region; only supervisors' property scope uses it.
    region: Region | None = None

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    @property
    def role(self) -> Role:
        return self.identity.role
