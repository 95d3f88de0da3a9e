from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from poolops.core import authorize_create, authorize_mutation, authorize_read
from poolops.core.identity import Role
from poolops.core.resources import AssignmentStatus, ResourceType
from poolops.core.resources import TechnicianProfile as ProfileSnapshot
from poolops.errors import BadRequestError, ConflictError, NotFoundError, raise_for_verdict
from poolops.models.accounts import User
from poolops.models.field import Assignment
from poolops.schemas.assignments import AssignmentCreate, AssignmentQuery
from poolops.security.context import AuthzContext
from poolops.services.snapshots import (
    assignment_snapshot,
    fetch_assignment,
    fetch_profile,
    fetch_property,
    profile_snapshot,
)

logger = logging.getLogger(__name__)

_WORKER_ROLES = (Role.TECH, Role.REPAIR)


def list_assignments(db: Session, query: AssignmentQuery) -> list[Assignment]:
    """Assignments visible to the session's caller; cancelled ones only on request."""

    stmt = select(Assignment)
    if query.status is not None:
        # An explicit status filter wins over include_canceled.
        stmt = stmt.where(Assignment.status == query.status)
    elif not query.include_canceled:
        stmt = stmt.where(Assignment.status != AssignmentStatus.CANCELLED)

    if query.technician_id:
        stmt = stmt.where(Assignment.technician_id == query.technician_id)
    if query.property_id:
        stmt = stmt.where(Assignment.property_id == query.property_id)
    if query.priority is not None:
        stmt = stmt.where(Assignment.priority == query.priority)

    return list(db.scalars(stmt.order_by(Assignment.scheduled_date, Assignment.id)).all())


def list_created_assignments(db: Session, include_canceled: bool = False) -> list[Assignment]:
    """Assignments the caller manages, newest first (supervisor: team, admin: all)."""

    stmt = select(Assignment)
    if not include_canceled:
        stmt = stmt.where(Assignment.status != AssignmentStatus.CANCELLED)
    return list(db.scalars(stmt.order_by(Assignment.created_at.desc(), Assignment.id)).all())


def get_assignment(db: Session, authz: AuthzContext, assignment_id: str) -> Assignment:
    row = fetch_assignment(db, assignment_id)
    snapshot = assignment_snapshot(db, row) if row is not None else None
    raise_for_verdict(authorize_read(authz.identity, ResourceType.ASSIGNMENT, snapshot, region=authz.region))
    return row


def create_assignment(db: Session, authz: AuthzContext, body: AssignmentCreate) -> Assignment:
    if fetch_property(db, body.property_id) is None:
        raise NotFoundError("Property not found")
    _require_worker(db, body.technician_id)

    profile = fetch_profile(db, body.technician_id)
    target = profile_snapshot(profile) if profile is not None else ProfileSnapshot(user_id=body.technician_id)
    raise_for_verdict(authorize_create(authz.identity, target))

    row = Assignment(
        property_id=body.property_id,
        technician_id=body.technician_id,
        scheduled_date=body.scheduled_date,
        priority=body.priority,
        notes=body.notes,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Assignment created id=%s by=%s role=%s", row.id, authz.user_id, authz.role.value)
    return row


def update_assignment(
    db: Session,
    authz: AuthzContext,
    assignment_id: str,
    payload: dict[str, Any],
    expected_version: int | None = None,
) -> Assignment:
    """
    Authorize and apply a PATCH.

    ``expected_version`` comes from ``If-Match``; when given, the update only
    proceeds if nobody else has written the assignment since the caller read it.
    """

    row = fetch_assignment(db, assignment_id)
    snapshot = assignment_snapshot(db, row) if row is not None else None

    verdict = authorize_mutation(authz.identity, ResourceType.ASSIGNMENT, snapshot, payload, region=authz.region)
    raise_for_verdict(verdict)
    if verdict.noop:
        return row

    if expected_version is not None and expected_version != row.version:
        raise ConflictError("Assignment was modified by someone else; reload and retry")

    applied = dict(verdict.applied)
    if "technician_id" in applied:
        _require_worker(db, applied["technician_id"])
    if "property_id" in applied and fetch_property(db, applied["property_id"]) is None:
        raise NotFoundError("Property not found")

    for name, value in applied.items():
        setattr(row, name, value)

    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.info("Concurrent update lost the race assignment=%s", assignment_id)
        raise ConflictError("Assignment was modified by someone else; reload and retry") from exc

    db.refresh(row)
    logger.info("Assignment updated id=%s by=%s fields=%s", row.id, authz.user_id, sorted(applied))
    return row


def _require_worker(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("Technician not found")
    if user.role not in _WORKER_ROLES:
        raise BadRequestError("technician_id must reference a technician or repair user", code="INVALID_TECHNICIAN")
    return user
