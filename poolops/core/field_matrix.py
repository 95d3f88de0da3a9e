"""
Field authorization matrix.

Two layers, both pure:

- ``check_field_authorization`` decides by field *name* which parts of a
  mutation payload a role may touch at all.
- ``check_field_values`` applies the value-level restrictions some roles carry
  (technicians never cancel, supervisors only cancel, supervisors may only
  claim or release technicians for themselves).

Fields are always inspected in declaration order, so when several fields are
illegal the first-declared one is reported.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .identity import Identity, Role, unhandled_role
from .resources import Assignment, AssignmentStatus, ResourceType, Snapshot, TechnicianProfile
from .verdicts import DenialCode, FieldCheck

logger = logging.getLogger(__name__)


ASSIGNMENT_FIELDS: tuple[str, ...] = (
    "technician_id",
    "property_id",
    "status",
    "priority",
    "scheduled_date",
    "notes",
    "canceled_reason",
    "completed_at",
)

PROFILE_FIELDS: tuple[str, ...] = (
    "supervisor_id",
    "region",
    "active",
    "name",
    "phone",
    "truck_id",
)

DECLARED_FIELDS: Mapping[ResourceType, tuple[str, ...]] = {
    ResourceType.ASSIGNMENT: ASSIGNMENT_FIELDS,
    ResourceType.TECHNICIAN_PROFILE: PROFILE_FIELDS,
    # Properties are created, never patched, through this service.
    ResourceType.PROPERTY: (),
}

_ASSIGNMENT_MATRIX: Mapping[Role, frozenset[str]] = {
    Role.TECH: frozenset({"status", "notes"}),
    Role.SUPERVISOR: frozenset({"priority", "scheduled_date", "notes", "status", "canceled_reason"}),
    Role.REPAIR: frozenset(ASSIGNMENT_FIELDS),
    Role.ADMIN: frozenset(ASSIGNMENT_FIELDS),
}

_PROFILE_MATRIX: Mapping[Role, frozenset[str]] = {
    Role.TECH: frozenset({"name", "phone", "truck_id"}),
    Role.SUPERVISOR: frozenset({"name", "phone", "truck_id", "active", "supervisor_id"}),
    Role.REPAIR: frozenset(PROFILE_FIELDS),
    Role.ADMIN: frozenset(PROFILE_FIELDS),
}

_ROLE_LABELS: Mapping[Role, str] = {
    Role.TECH: "Technicians",
    Role.SUPERVISOR: "Supervisors",
    Role.REPAIR: "Repair staff",
    Role.ADMIN: "Administrators",
}

TECH_CANNOT_CANCEL_MESSAGE = "Technicians cannot cancel assignments"


def permitted_fields(role: Role, resource_type: ResourceType) -> frozenset[str]:
    if resource_type is ResourceType.ASSIGNMENT:
        matrix = _ASSIGNMENT_MATRIX
    elif resource_type is ResourceType.TECHNICIAN_PROFILE:
        matrix = _PROFILE_MATRIX
    elif resource_type is ResourceType.PROPERTY:
        return frozenset()
    else:
        raise ValueError(f"unknown resource type {resource_type!r}")

    if role not in matrix:
        unhandled_role(role)
    return matrix[role]


def ordered_fields(resource_type: ResourceType, fields: Iterable[str]) -> list[str]:
    """Declared fields first, in declaration order; unknown fields after, sorted."""

    present = set(fields)
    declared = DECLARED_FIELDS[resource_type]
    ordered = [name for name in declared if name in present]
    ordered.extend(sorted(present.difference(declared)))
    return ordered


def check_field_authorization(role: Role, resource_type: ResourceType, fields: Iterable[str]) -> FieldCheck:
    """Deny the first field (in declaration order) that ``role`` may not set on ``resource_type``."""

    allowed = permitted_fields(role, resource_type)
    for name in ordered_fields(resource_type, fields):
        if name not in allowed:
            logger.debug("Field denied role=%s resource=%s field=%s", role.value, resource_type.value, name)
            return FieldCheck.deny(name, f"{_ROLE_LABELS[role]} cannot update the '{name}' field")
    return FieldCheck.allow()


def check_field_values(
    identity: Identity,
    resource_type: ResourceType,
    current: Snapshot,
    payload: Mapping[str, Any],
) -> FieldCheck:
    """Value-level restrictions layered on top of the name-level matrix."""

    if resource_type is ResourceType.ASSIGNMENT:
        if not isinstance(current, Assignment):
            raise TypeError(f"expected an Assignment snapshot, got {type(current).__name__}")
        return _check_assignment_values(identity, current, payload)
    if resource_type is ResourceType.TECHNICIAN_PROFILE:
        if not isinstance(current, TechnicianProfile):
            raise TypeError(f"expected a TechnicianProfile snapshot, got {type(current).__name__}")
        return _check_profile_values(identity, current, payload)
    return FieldCheck.allow()


def _check_assignment_values(identity: Identity, current: Assignment, payload: Mapping[str, Any]) -> FieldCheck:
    if "status" not in payload:
        return FieldCheck.allow()

    target = AssignmentStatus(payload["status"])
    role = identity.role
    if role is Role.TECH:
        if target is AssignmentStatus.CANCELLED:
            return FieldCheck.deny("status", TECH_CANNOT_CANCEL_MESSAGE, DenialCode.TECH_CANNOT_CANCEL)
        return FieldCheck.allow()
    if role is Role.SUPERVISOR:
        # Re-sending the current status is harmless; anything else must be a cancel.
        if target is not AssignmentStatus.CANCELLED and target is not current.status:
            return FieldCheck.deny("status", "Supervisors can only set status to 'cancelled'")
        return FieldCheck.allow()
    if role.is_elevated:
        return FieldCheck.allow()
    unhandled_role(role)


def _check_profile_values(identity: Identity, current: TechnicianProfile, payload: Mapping[str, Any]) -> FieldCheck:
    if identity.role is not Role.SUPERVISOR or "supervisor_id" not in payload:
        return FieldCheck.allow()

    me = identity.user_id
    requested = payload["supervisor_id"]
    if current.supervisor_id is None:
        if requested not in (None, me):
            return FieldCheck.deny("supervisor_id", "You can only assign unassigned technicians to yourself")
        return FieldCheck.allow()
    if current.supervisor_id == me:
        if requested not in (None, me):
            return FieldCheck.deny("supervisor_id", "You cannot assign your technicians to another supervisor")
        return FieldCheck.allow()
    return FieldCheck.deny("supervisor_id", "You cannot reassign another supervisor's technicians")
