"""
Tests for the authorization gate: end-to-end decisions over snapshots.

Covers the canonical field-service scenarios (tech starts work, supervisor
touches another team, supervisor cancels, tech tries to cancel) and the
ordering of checks.
"""
from __future__ import annotations

from datetime import datetime, timezone

from poolops.core import (
    Allow,
    Assignment,
    AssignmentLink,
    AssignmentStatus,
    DenialCode,
    Forbidden,
    Identity,
    InvalidTransition,
    NotFound,
    Property,
    Region,
    ResourceType,
    Role,
    TechnicianProfile,
    authorize_create,
    authorize_mutation,
    authorize_read,
)


NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

T1 = Identity(user_id="T1", role=Role.TECH)
S1 = Identity(user_id="S1", role=Role.SUPERVISOR)
REPAIR = Identity(user_id="R1", role=Role.REPAIR)
ADMIN = Identity(user_id="A1", role=Role.ADMIN)


def _assignment(**kwargs) -> Assignment:
    values = dict(id="A1", property_id="P1", technician_id="T1", technician_supervisor_id="S1")
    values.update(kwargs)
    return Assignment(**values)


def _mutate(identity, snapshot, payload, **kwargs):
    return authorize_mutation(identity, ResourceType.ASSIGNMENT, snapshot, payload, now=NOW, **kwargs)


def test_tech_starts_own_pending_assignment():
    verdict = _mutate(T1, _assignment(), {"status": "in_progress"})

    assert verdict == Allow(applied={"status": AssignmentStatus.IN_PROGRESS})


def test_supervisor_touching_other_team_gets_not_found():
    other_team = _assignment(technician_id="T2", technician_supervisor_id="S2")

    for payload in ({"status": "cancelled"}, {"notes": "x"}, {"technician_id": "T1"}, {}):
        verdict = _mutate(S1, other_team, payload)
        assert isinstance(verdict, NotFound)
        assert verdict.code is DenialCode.NOT_FOUND


def test_supervisor_cancels_own_team_assignment():
    verdict = _mutate(S1, _assignment(), {"status": "cancelled", "canceled_reason": "rescheduled"})

    assert isinstance(verdict, Allow)
    assert verdict.applied["status"] is AssignmentStatus.CANCELLED
    assert verdict.applied["canceled_at"] == NOW
    assert verdict.applied["canceled_reason"] == "rescheduled"


def test_tech_cannot_cancel_own_assignment():
    verdict = _mutate(T1, _assignment(), {"status": "cancelled"})

    assert isinstance(verdict, Forbidden)
    assert verdict.code is DenialCode.TECH_CANNOT_CANCEL
    assert verdict.message == "Technicians cannot cancel assignments"


def test_tech_cannot_cancel_even_when_already_cancelled():
    verdict = _mutate(T1, _assignment(status=AssignmentStatus.CANCELLED), {"status": "cancelled"})

    assert isinstance(verdict, Forbidden)


def test_repeated_cancel_by_supervisor_is_noop():
    cancelled = _assignment(status=AssignmentStatus.CANCELLED, canceled_at=datetime(2026, 5, 1, tzinfo=timezone.utc))

    verdict = _mutate(S1, cancelled, {"status": "cancelled"})

    assert verdict == Allow(applied={}, noop=True)


def test_field_violation_beats_legal_transition():
    verdict = _mutate(T1, _assignment(), {"status": "in_progress", "priority": "high"})

    assert isinstance(verdict, Forbidden)
    assert verdict.field == "priority"


def test_field_violation_beats_illegal_transition():
    verdict = _mutate(T1, _assignment(), {"status": "completed", "priority": "high"})

    assert isinstance(verdict, Forbidden)
    assert verdict.field == "priority"


def test_tech_completes_in_progress_work():
    verdict = _mutate(T1, _assignment(status=AssignmentStatus.IN_PROGRESS), {"status": "completed"})

    assert verdict.applied["completed_at"] == NOW


def test_missing_assignment_is_not_found():
    verdict = _mutate(ADMIN, None, {"notes": "x"})

    assert verdict == NotFound(message="Assignment not found")


def test_tech_cannot_see_someone_elses_assignment():
    verdict = _mutate(T1, _assignment(technician_id="T2"), {"notes": "x"})

    assert isinstance(verdict, NotFound)


def test_unknown_status_is_invalid_transition():
    verdict = _mutate(ADMIN, _assignment(), {"status": "paused"})

    assert isinstance(verdict, InvalidTransition)


def test_repair_reassigns_own_assignment():
    verdict = _mutate(REPAIR, _assignment(technician_id="R1"), {"technician_id": "T1"})

    assert verdict == Allow(applied={"technician_id": "T1"})


def test_admin_writes_any_field():
    verdict = _mutate(ADMIN, _assignment(), {"priority": "high", "property_id": "P2"})

    assert isinstance(verdict, Allow)


def test_supervisor_claims_unassigned_profile():
    unassigned = TechnicianProfile(user_id="T9")

    verdict = authorize_mutation(S1, ResourceType.TECHNICIAN_PROFILE, unassigned, {"supervisor_id": "S1"})

    assert verdict == Allow(applied={"supervisor_id": "S1"})


def test_supervisor_cannot_set_region_even_on_unassigned_profile():
    unassigned = TechnicianProfile(user_id="T9")

    verdict = authorize_mutation(S1, ResourceType.TECHNICIAN_PROFILE, unassigned, {"region": "north"})

    assert isinstance(verdict, Forbidden)
    assert verdict.field == "region"


def test_supervisor_may_edit_contact_details_of_unassigned_profile():
    unassigned = TechnicianProfile(user_id="T9")

    verdict = authorize_mutation(S1, ResourceType.TECHNICIAN_PROFILE, unassigned, {"phone": "555-0199", "active": False})

    assert verdict == Allow(applied={"phone": "555-0199", "active": False})


def test_tech_edits_own_contact_details():
    verdict = authorize_mutation(
        T1, ResourceType.TECHNICIAN_PROFILE, TechnicianProfile(user_id="T1", supervisor_id="S1"), {"phone": "555-0101"}
    )

    assert verdict == Allow(applied={"phone": "555-0101"})


def test_tech_cannot_change_own_supervisor():
    verdict = authorize_mutation(
        T1, ResourceType.TECHNICIAN_PROFILE, TechnicianProfile(user_id="T1", supervisor_id="S1"), {"supervisor_id": None}
    )

    assert isinstance(verdict, Forbidden)
    assert verdict.field == "supervisor_id"


def test_read_by_id_hides_out_of_scope_property():
    south = Property(id="P2", region=Region.SOUTH)
    north = Property(id="P1", region=Region.NORTH)
    worked = Property(id="P3", region=Region.SOUTH, links=(AssignmentLink("T1", "S1"),))

    assert isinstance(authorize_read(S1, ResourceType.PROPERTY, south, region=Region.NORTH), NotFound)
    assert isinstance(authorize_read(S1, ResourceType.PROPERTY, north, region=Region.NORTH), Allow)
    assert isinstance(authorize_read(S1, ResourceType.PROPERTY, worked, region=Region.NORTH), Allow)


def test_create_rules():
    own = TechnicianProfile(user_id="T1", supervisor_id="S1")
    other = TechnicianProfile(user_id="T2", supervisor_id="S2")

    assert isinstance(authorize_create(T1, own), Forbidden)
    assert isinstance(authorize_create(S1, own), Allow)
    assert authorize_create(S1, other).code is DenialCode.NOT_SAME_TEAM
    assert isinstance(authorize_create(REPAIR, other), Allow)
    assert isinstance(authorize_create(ADMIN, None), NotFound)


def test_admin_cannot_clear_completed_at_through_patch_body():
    from poolops.schemas.assignments import AssignmentUpdate

    completed = _assignment(status=AssignmentStatus.COMPLETED, completed_at=datetime(2026, 5, 1, tzinfo=timezone.utc))
    payload = AssignmentUpdate.model_validate({"completed_at": None}).to_payload()

    verdict = _mutate(ADMIN, completed, payload)

    assert isinstance(verdict, InvalidTransition)
