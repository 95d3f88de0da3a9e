from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, contains_eager

from poolops.core import authorize_mutation
from poolops.core.identity import Role
from poolops.core.resources import ResourceType
from poolops.errors import BadRequestError, raise_for_verdict
from poolops.models.accounts import TechnicianProfile, User
from poolops.security.context import AuthzContext
from poolops.services.snapshots import fetch_profile, fetch_technician, profile_snapshot

logger = logging.getLogger(__name__)


def list_technicians(db: Session, include_inactive: bool = False) -> list[User]:
    """
    Technician and repair users with their profiles, as far as the caller may see them.

    Techs see themselves, supervisors their team, repair and admin everyone
    (all via the session scope filters).
    """

    stmt = (
        select(User)
        .join(User.technician_profile)
        .options(contains_eager(User.technician_profile))
        .where(User.role.in_([Role.TECH, Role.REPAIR]))
    )
    if not include_inactive:
        stmt = stmt.where(TechnicianProfile.active.is_(True))
    return list(db.scalars(stmt.order_by(User.email)).unique().all())


def update_technician(db: Session, authz: AuthzContext, user_id: str, payload: dict[str, Any]) -> User:
    row = fetch_profile(db, user_id)
    snapshot = profile_snapshot(row) if row is not None else None

    verdict = authorize_mutation(authz.identity, ResourceType.TECHNICIAN_PROFILE, snapshot, payload, region=authz.region)
    raise_for_verdict(verdict)

    applied = dict(verdict.applied)
    supervisor_id = applied.get("supervisor_id")
    if supervisor_id is not None:
        supervisor = db.get(User, supervisor_id)
        if supervisor is None or supervisor.role != Role.SUPERVISOR:
            raise BadRequestError("supervisor_id must reference a supervisor", code="INVALID_SUPERVISOR")

    for name, value in applied.items():
        setattr(row, name, value)
    db.commit()
    db.refresh(row)

    logger.info("Technician profile updated user=%s by=%s fields=%s", user_id, authz.user_id, sorted(applied))
    return fetch_technician(db, user_id)
