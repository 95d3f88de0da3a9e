from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from poolops.core.identity import Role
from poolops.core.resources import AssignmentStatus, Priority, Region
from poolops.db.base import Base
from poolops.db.session import SessionLocal, engine
from poolops.models.accounts import TechnicianProfile, User
from poolops.models.field import Assignment, Property


def init_db(seed: bool = True) -> None:
    """
    Create tables and, when asked, seed a small demo roster.

    The seed is deterministic so the scope rules can be tried by hand:
    two supervisors with their own teams and regions, one unassigned
    technician, a repair user and an admin.
    """

    Base.metadata.create_all(bind=engine)
    if not seed:
        return

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Users
    admin = User(email="ada.admin@example.com", role=Role.ADMIN)
    sup_north = User(email="nora.north@example.com", role=Role.SUPERVISOR)
    sup_south = User(email="sam.south@example.com", role=Role.SUPERVISOR)
    tech_1 = User(email="tom.tech@example.com", role=Role.TECH)
    tech_2 = User(email="tina.tech@example.com", role=Role.TECH)
    tech_free = User(email="uma.unassigned@example.com", role=Role.TECH)
    repair = User(email="rex.repair@example.com", role=Role.REPAIR)
    db.add_all([admin, sup_north, sup_south, tech_1, tech_2, tech_free, repair])
    db.flush()

    # Profiles (supervisors carry a region; techs carry their supervisor)
    db.add_all(
        [
            TechnicianProfile(user_id=sup_north.id, region=Region.NORTH, name="Nora North"),
            TechnicianProfile(user_id=sup_south.id, region=Region.SOUTH, name="Sam South"),
            TechnicianProfile(user_id=tech_1.id, supervisor_id=sup_north.id, name="Tom", truck_id="T-01"),
            TechnicianProfile(user_id=tech_2.id, supervisor_id=sup_south.id, name="Tina", truck_id="T-02"),
            TechnicianProfile(user_id=tech_free.id, name="Uma"),
            TechnicianProfile(user_id=repair.id, name="Rex", truck_id="R-01"),
        ]
    )
    db.flush()

    # Properties
    lakeside = Property(name="Lakeside HOA", address="1 Lake Rd", region=Region.NORTH)
    palms = Property(name="Palms Resort", address="9 Palm Ave", region=Region.SOUTH)
    midtown = Property(name="Midtown Gym", address="40 Main St", region=Region.MID)
    db.add_all([lakeside, palms, midtown])
    db.flush()

    # Assignments
    tomorrow = datetime.now(timezone.utc).replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=1)
    db.add_all(
        [
            Assignment(property_id=lakeside.id, technician_id=tech_1.id, scheduled_date=tomorrow, priority=Priority.HIGH),
            Assignment(property_id=midtown.id, technician_id=tech_1.id, scheduled_date=tomorrow + timedelta(hours=3)),
            Assignment(
                property_id=palms.id,
                technician_id=tech_2.id,
                scheduled_date=tomorrow,
                status=AssignmentStatus.IN_PROGRESS,
            ),
            Assignment(property_id=palms.id, technician_id=repair.id, scheduled_date=tomorrow, priority=Priority.LOW),
        ]
    )

    db.commit()
