"""
Authorization gate: the single decision function invoked before every write.

Order of checks (each one short-circuits):

1. resource missing                         -> NotFound
2. resource outside the caller's scope      -> NotFound   (no existence leak)
3. caller may see it but not write it       -> Forbidden
4. payload touches a field the role lacks   -> Forbidden(field)
5. illegal status change                    -> InvalidTransition
6. otherwise                                -> Allow(payload + derived fields)

The gate is pure and synchronous. It reads the snapshot and identity it is
given, performs no I/O and keeps no state between calls.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Mapping

from .field_matrix import check_field_authorization, check_field_values
from .identity import Identity, Role, unhandled_role
from .resources import (
    Assignment,
    AssignmentStatus,
    Region,
    ResourceType,
    Snapshot,
    TechnicianProfile,
)
from .scope import is_same_team, resolve_read_scope, resolve_write_scope
from .state_machine import apply_status_change
from .verdicts import Allow, DenialCode, Forbidden, InvalidTransition, NotFound, Verdict

logger = logging.getLogger(__name__)

_NOT_FOUND_MESSAGES: Mapping[ResourceType, str] = {
    ResourceType.ASSIGNMENT: "Assignment not found",
    ResourceType.TECHNICIAN_PROFILE: "Technician not found",
    ResourceType.PROPERTY: "Property not found",
}


def authorize_read(
    identity: Identity,
    resource_type: ResourceType,
    snapshot: Snapshot | None,
    *,
    region: Region | None = None,
) -> Allow | NotFound:
    """Fetch-by-id visibility: the record either exists in scope or is "not found"."""

    not_found = NotFound(message=_NOT_FOUND_MESSAGES[resource_type])
    if snapshot is None:
        return not_found
    if not resolve_read_scope(identity, resource_type, region=region).matches(snapshot):
        logger.debug("Read scoped out role=%s resource=%s", identity.role.value, resource_type.value)
        return not_found
    return Allow()


def authorize_mutation(
    identity: Identity,
    resource_type: ResourceType,
    snapshot: Snapshot | None,
    payload: Mapping[str, Any],
    *,
    region: Region | None = None,
    now: datetime | None = None,
) -> Verdict:
    not_found = NotFound(message=_NOT_FOUND_MESSAGES[resource_type])
    if snapshot is None:
        return not_found

    if not resolve_write_scope(identity, resource_type, region=region).matches(snapshot):
        logger.info(
            "Mutation scoped out user=%s role=%s resource=%s",
            identity.user_id,
            identity.role.value,
            resource_type.value,
        )
        return not_found

    ineligible = _check_write_eligibility(identity, snapshot)
    if ineligible is not None:
        logger.info("Mutation forbidden role=%s resource=%s code=%s", identity.role.value, resource_type.value, ineligible.code.value)
        return ineligible

    names = check_field_authorization(identity.role, resource_type, payload.keys())
    if not names.ok:
        return names.to_forbidden()

    normalized = dict(payload)
    if resource_type is ResourceType.ASSIGNMENT and "status" in normalized:
        try:
            normalized["status"] = AssignmentStatus(normalized["status"])
        except ValueError:
            return InvalidTransition(message=f"Unknown status '{normalized['status']}'")

    values = check_field_values(identity, resource_type, snapshot, normalized)
    if not values.ok:
        logger.info("Field value denied role=%s field=%s code=%s", identity.role.value, values.field, values.code.value)
        return values.to_forbidden()

    if isinstance(snapshot, Assignment):
        verdict = apply_status_change(identity.role, snapshot, normalized, now)
        if not verdict.allowed:
            logger.info("Transition rejected assignment=%s role=%s: %s", snapshot.id, identity.role.value, verdict.message)
        return verdict

    return Allow(applied=normalized)


def authorize_create(identity: Identity, technician: TechnicianProfile | None) -> Allow | Forbidden | NotFound:
    """May ``identity`` create an assignment for ``technician``?"""

    if technician is None:
        return NotFound(message="Technician not found")

    role = identity.role
    if role is Role.TECH:
        return Forbidden(message="Technicians cannot create assignments")
    if role is Role.SUPERVISOR:
        if not is_same_team(identity, technician):
            return Forbidden(
                message="You can only create assignments for your team members",
                code=DenialCode.NOT_SAME_TEAM,
            )
        return Allow()
    if role.is_elevated:
        return Allow()
    unhandled_role(role)


def _check_write_eligibility(identity: Identity, snapshot: Snapshot) -> Forbidden | None:
    role = identity.role
    if role.is_elevated:
        return None

    if isinstance(snapshot, Assignment):
        if role is Role.TECH:
            if snapshot.technician_id != identity.user_id:
                return Forbidden(message="You can only update your own assignments", code=DenialCode.NOT_OWNER)
            return None
        if role is Role.SUPERVISOR:
            if snapshot.technician_supervisor_id != identity.user_id:
                return Forbidden(message="You can only update your team's assignments", code=DenialCode.NOT_SAME_TEAM)
            return None
        unhandled_role(role)

    if isinstance(snapshot, TechnicianProfile):
        if role is Role.TECH:
            if snapshot.user_id != identity.user_id:
                return Forbidden(message="You can only update your own profile", code=DenialCode.NOT_OWNER)
            return None
        if role is Role.SUPERVISOR:
            if not (is_same_team(identity, snapshot) or snapshot.is_unassigned):
                return Forbidden(
                    message="You can only update technicians assigned to you or unassigned technicians",
                    code=DenialCode.NOT_SAME_TEAM,
                )
            return None
        unhandled_role(role)

    # Properties are only written by supervisors and admins.
    if role is Role.SUPERVISOR:
        return None
    return Forbidden(message="Insufficient permissions")
