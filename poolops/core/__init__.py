"""
Authorization core: scope resolution, field matrix, assignment state machine
and the gate composing them.

This package has no dependency on other poolops packages (db, security,
routers). Everything here is pure and synchronous; storage and transport
translate its verdicts at the boundary.
"""

from .field_matrix import check_field_authorization, check_field_values
from .gate import authorize_create, authorize_mutation, authorize_read
from .identity import Identity, Role, UnknownRoleError, parse_role
from .resources import (
    Assignment,
    AssignmentLink,
    AssignmentStatus,
    Priority,
    Property,
    Region,
    ResourceType,
    TechnicianProfile,
)
from .scope import ReadScope, is_same_team, resolve_read_scope, resolve_write_scope
from .state_machine import apply_status_change, is_transition_allowed
from .verdicts import Allow, DenialCode, FieldCheck, Forbidden, InvalidTransition, NotFound, Verdict

__all__ = [
    "Allow",
    "Assignment",
    "AssignmentLink",
    "AssignmentStatus",
    "DenialCode",
    "FieldCheck",
    "Forbidden",
    "Identity",
    "InvalidTransition",
    "NotFound",
    "Priority",
    "Property",
    "ReadScope",
    "Region",
    "ResourceType",
    "Role",
    "TechnicianProfile",
    "UnknownRoleError",
    "Verdict",
    "apply_status_change",
    "authorize_create",
    "authorize_mutation",
    "authorize_read",
    "check_field_authorization",
    "check_field_values",
    "is_same_team",
    "is_transition_allowed",
    "parse_role",
    "resolve_read_scope",
    "resolve_write_scope",
]
