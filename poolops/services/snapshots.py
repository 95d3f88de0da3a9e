"""
ORM rows -> core snapshots.

Everything here loads with the scope filters switched off: the authorization
core needs to see the real record to tell "missing" from "out of scope" and to
let supervisors reach unassigned technicians.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, contains_eager

from poolops.core import resources as core
from poolops.db.filters import SKIP_SCOPE
from poolops.models.accounts import TechnicianProfile, User
from poolops.models.field import Assignment, Property

_UNSCOPED = {SKIP_SCOPE: True}


def supervisor_of(db: Session, technician_id: str) -> str | None:
    stmt = select(TechnicianProfile.supervisor_id).where(TechnicianProfile.user_id == technician_id)
    return db.execute(stmt, execution_options=_UNSCOPED).scalar_one_or_none()


def fetch_assignment(db: Session, assignment_id: str) -> Assignment | None:
    return db.get(Assignment, assignment_id, execution_options=_UNSCOPED)


def fetch_property(db: Session, property_id: str) -> Property | None:
    return db.get(Property, property_id, execution_options=_UNSCOPED)


def fetch_profile(db: Session, user_id: str) -> TechnicianProfile | None:
    stmt = select(TechnicianProfile).where(TechnicianProfile.user_id == user_id)
    return db.execute(stmt, execution_options=_UNSCOPED).scalar_one_or_none()


def fetch_technician(db: Session, user_id: str) -> User | None:
    """A user together with their profile, loaded in one query."""

    stmt = (
        select(User)
        .join(User.technician_profile)
        .options(contains_eager(User.technician_profile))
        .where(User.id == user_id)
    )
    return db.execute(stmt, execution_options=_UNSCOPED).unique().scalar_one_or_none()


def assignment_snapshot(db: Session, row: Assignment) -> core.Assignment:
    return core.Assignment(
        id=row.id,
        property_id=row.property_id,
        technician_id=row.technician_id,
        technician_supervisor_id=supervisor_of(db, row.technician_id),
        status=row.status,
        priority=row.priority,
        scheduled_date=row.scheduled_date,
        completed_at=row.completed_at,
        canceled_at=row.canceled_at,
        canceled_reason=row.canceled_reason,
        notes=row.notes,
        version=row.version,
    )


def profile_snapshot(row: TechnicianProfile) -> core.TechnicianProfile:
    return core.TechnicianProfile(
        user_id=row.user_id,
        supervisor_id=row.supervisor_id,
        region=row.region,
        active=row.active,
        name=row.name,
        phone=row.phone,
        truck_id=row.truck_id,
    )


def property_snapshot(db: Session, row: Property) -> core.Property:
    stmt = (
        select(Assignment.technician_id, TechnicianProfile.supervisor_id)
        .outerjoin(TechnicianProfile, TechnicianProfile.user_id == Assignment.technician_id)
        .where(Assignment.property_id == row.id)
    )
    links = tuple(
        core.AssignmentLink(technician_id=technician_id, supervisor_id=supervisor_id)
        for technician_id, supervisor_id in db.execute(stmt, execution_options=_UNSCOPED)
    )
    return core.Property(id=row.id, region=row.region, links=links)
