from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from poolops.core import authorize_read
from poolops.core.resources import AssignmentStatus, ResourceType
from poolops.errors import NotFoundError, raise_for_verdict
from poolops.models.field import Assignment, Property
from poolops.schemas.assignments import AssignmentOut
from poolops.schemas.properties import (
    PropertyCompletion,
    PropertyCompletionOut,
    PropertyCreate,
    PropertyDetailOut,
    PropertyOut,
)
from poolops.security.context import AuthzContext
from poolops.services.assignments import update_assignment
from poolops.services.snapshots import fetch_assignment, fetch_property, property_snapshot

logger = logging.getLogger(__name__)


def list_properties(db: Session, updated_since: datetime | None = None) -> list[Property]:
    stmt = select(Property)
    if updated_since is not None:
        stmt = stmt.where(Property.updated_at > updated_since)
    return list(db.scalars(stmt.order_by(Property.updated_at, Property.id)).all())


def get_property(db: Session, authz: AuthzContext, property_id: str) -> PropertyDetailOut:
    row = fetch_property(db, property_id)
    snapshot = property_snapshot(db, row) if row is not None else None
    raise_for_verdict(authorize_read(authz.identity, ResourceType.PROPERTY, snapshot, region=authz.region))

    # Nested assignments are scoped like any other assignment query.
    assignments = db.scalars(
        select(Assignment).where(Assignment.property_id == row.id).order_by(Assignment.scheduled_date)
    ).all()
    return PropertyDetailOut(
        **PropertyOut.model_validate(row).model_dump(),
        assignments=[AssignmentOut.model_validate(a) for a in assignments],
    )


def create_property(db: Session, authz: AuthzContext, body: PropertyCreate) -> Property:
    row = Property(**body.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Property created id=%s by=%s", row.id, authz.user_id)
    return row


def complete_service_visit(
    db: Session,
    authz: AuthzContext,
    property_id: str,
    body: PropertyCompletion,
) -> PropertyCompletionOut:
    """
    Close out a visit: complete one of the property's assignments.

    The change goes through the same gate as a PATCH, so the caller needs
    write access to the assignment, a legal transition to ``completed`` and
    (for an explicit ``completed_at``) a role allowed to set it.
    """

    row = fetch_property(db, property_id)
    snapshot = property_snapshot(db, row) if row is not None else None
    raise_for_verdict(authorize_read(authz.identity, ResourceType.PROPERTY, snapshot, region=authz.region))

    assignment = fetch_assignment(db, body.assignment_id)
    if assignment is None or assignment.property_id != row.id:
        raise NotFoundError("Assignment not found")

    payload: dict[str, object] = {"status": AssignmentStatus.COMPLETED}
    if body.notes is not None:
        payload["notes"] = body.notes
    if body.completed_at is not None:
        payload["completed_at"] = body.completed_at

    updated = update_assignment(db, authz, assignment.id, payload)
    logger.info("Service visit completed property=%s assignment=%s by=%s", row.id, updated.id, authz.user_id)
    return PropertyCompletionOut(message="Property service completed", assignment=AssignmentOut.model_validate(updated))
