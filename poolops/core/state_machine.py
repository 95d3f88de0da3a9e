"""
Assignment lifecycle.

    pending ──> in_progress ──> completed
       │             │
       └──────┬──────┘
              v
          cancelled   (terminal)

Repair and admin may additionally move a non-cancelled assignment to any
status directly (re-opening a completed job, skipping ahead). Nobody leaves
``cancelled``; cancelling again is an idempotent no-op.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Mapping

from .field_matrix import TECH_CANNOT_CANCEL_MESSAGE
from .identity import Role
from .resources import Assignment, AssignmentStatus
from .verdicts import Allow, DenialCode, Forbidden, InvalidTransition

logger = logging.getLogger(__name__)

_EVERYONE = frozenset(Role)
_CANCELLERS = frozenset({Role.SUPERVISOR, Role.REPAIR, Role.ADMIN})

TRANSITIONS: Mapping[tuple[AssignmentStatus, AssignmentStatus], frozenset[Role]] = {
    (AssignmentStatus.PENDING, AssignmentStatus.IN_PROGRESS): _EVERYONE,
    (AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED): _EVERYONE,
    (AssignmentStatus.PENDING, AssignmentStatus.CANCELLED): _CANCELLERS,
    (AssignmentStatus.IN_PROGRESS, AssignmentStatus.CANCELLED): _CANCELLERS,
}

TERMINAL_STATUSES = frozenset({AssignmentStatus.CANCELLED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_transition_allowed(role: Role, current: AssignmentStatus, target: AssignmentStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if role in TRANSITIONS.get((current, target), frozenset()):
        return True
    # Direct override: repair/admin may set any status on a live assignment.
    return role.is_elevated


def apply_status_change(
    role: Role,
    current: Assignment,
    payload: Mapping[str, Any],
    now: datetime | None = None,
) -> Allow | Forbidden | InvalidTransition:
    """
    Validate the status change requested by ``payload`` and derive timestamps.

    Returns ``Allow`` carrying the payload to persist, or the reason the
    change is illegal. Field-level permissions are assumed to have been
    checked already.
    """

    now = now or utcnow()
    applied: dict[str, Any] = dict(payload)
    target = AssignmentStatus(payload["status"]) if "status" in payload else None

    if target is AssignmentStatus.CANCELLED and current.status is AssignmentStatus.CANCELLED:
        logger.debug("Repeated cancel on assignment=%s ignored", current.id)
        return Allow(applied={}, noop=True)

    if target is None or target is current.status:
        applied.pop("status", None)
        return _check_resulting_state(current.status, payload, applied)

    if role is Role.TECH and target is AssignmentStatus.CANCELLED:
        return Forbidden(message=TECH_CANNOT_CANCEL_MESSAGE, code=DenialCode.TECH_CANNOT_CANCEL, field="status")

    if not is_transition_allowed(role, current.status, target):
        return InvalidTransition(
            message=f"Invalid status transition from '{current.status.value}' to '{target.value}'"
        )

    applied["status"] = target
    if target is AssignmentStatus.COMPLETED:
        if payload.get("completed_at") is None and current.completed_at is None:
            applied["completed_at"] = now
    elif target is AssignmentStatus.CANCELLED:
        applied["canceled_at"] = now
        applied["completed_at"] = None
    elif current.status is AssignmentStatus.COMPLETED:
        # Re-opened by override; completed_at only exists on completed work.
        applied["completed_at"] = None

    return _check_resulting_state(target, payload, applied)


def _check_resulting_state(
    resulting: AssignmentStatus,
    payload: Mapping[str, Any],
    applied: dict[str, Any],
) -> Allow | InvalidTransition:
    if payload.get("canceled_reason") is not None and resulting is not AssignmentStatus.CANCELLED:
        return InvalidTransition(message="canceled_reason can only be set on cancelled assignments")
    if payload.get("completed_at") is not None and resulting is not AssignmentStatus.COMPLETED:
        return InvalidTransition(message="completed_at can only be set on completed assignments")
    if resulting is AssignmentStatus.COMPLETED and "completed_at" in applied and applied["completed_at"] is None:
        return InvalidTransition(message="completed_at is required on completed assignments")
    return Allow(applied=applied)
