"""
Read-only snapshots of the resources the core reasons about.

Snapshots are built by the storage layer at fetch time. Relations that the
scope predicates need (an assignment's technician's supervisor, the
technicians serving a property) are denormalised onto the snapshot so the
core can decide without doing any I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ResourceType(str, Enum):
    ASSIGNMENT = "assignment"
    TECHNICIAN_PROFILE = "technician_profile"
    PROPERTY = "property"


class Region(str, Enum):
    NORTH = "north"
    MID = "mid"
    SOUTH = "south"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


@dataclass(frozen=True)
class TechnicianProfile:
    user_id: str
    supervisor_id: str | None = None
    region: Region | None = None
    active: bool = True
    name: str | None = None
    phone: str | None = None
    truck_id: str | None = None

    @property
    def is_unassigned(self) -> bool:
        return self.supervisor_id is None


@dataclass(frozen=True)
class AssignmentLink:
    """One assignment pointing at a property: who works it and who supervises them."""

    technician_id: str
    supervisor_id: str | None = None


@dataclass(frozen=True)
class Property:
    id: str
    region: Region | None = None
    links: tuple[AssignmentLink, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Assignment:
    id: str
    property_id: str
    technician_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    priority: Priority = Priority.MED
    scheduled_date: datetime | None = None
    technician_supervisor_id: str | None = None
    completed_at: datetime | None = None
    canceled_at: datetime | None = None
    canceled_reason: str | None = None
    notes: str | None = None
    version: int = 1


Snapshot = Assignment | TechnicianProfile | Property

