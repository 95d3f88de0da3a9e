"""
Scope resolution: which records a caller may read, and who counts as "same team".

A read scope is a small, closed family of predicate objects. Each one can be
evaluated against an in-memory snapshot (``matches``) and is also translated
into SQL criteria by ``poolops.db.filters`` for list queries, so reads by id
and list reads agree on visibility.

Visibility failures are reported by callers as "not found", never as
"forbidden", so that out-of-scope records are indistinguishable from missing
ones.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .identity import Identity, Role, unhandled_role
from .resources import (
    Assignment,
    Property,
    Region,
    ResourceType,
    Snapshot,
    TechnicianProfile,
)

logger = logging.getLogger(__name__)


# ---- Predicates ----------------------------------------------------------------------


class ReadScope:
    """Base class for scope predicates."""

    def matches(self, snapshot: Snapshot) -> bool:  # pragma: no cover (abstract)
        raise NotImplementedError


@dataclass(frozen=True)
class AllRecords(ReadScope):
    def matches(self, snapshot: Snapshot) -> bool:
        return True


@dataclass(frozen=True)
class OwnRecords(ReadScope):
    """Assignments worked by ``user_id``, or the profile belonging to ``user_id``."""

    user_id: str

    def matches(self, snapshot: Snapshot) -> bool:
        if isinstance(snapshot, Assignment):
            return snapshot.technician_id == self.user_id
        if isinstance(snapshot, TechnicianProfile):
            return snapshot.user_id == self.user_id
        raise TypeError(f"OwnRecords does not apply to {type(snapshot).__name__}")


@dataclass(frozen=True)
class TeamRecords(ReadScope):
    """Profiles supervised by ``supervisor_id``, or assignments worked by them."""

    supervisor_id: str

    def matches(self, snapshot: Snapshot) -> bool:
        if isinstance(snapshot, Assignment):
            return snapshot.technician_supervisor_id == self.supervisor_id
        if isinstance(snapshot, TechnicianProfile):
            return snapshot.supervisor_id == self.supervisor_id
        raise TypeError(f"TeamRecords does not apply to {type(snapshot).__name__}")


@dataclass(frozen=True)
class UnassignedProfiles(ReadScope):
    def matches(self, snapshot: Snapshot) -> bool:
        if isinstance(snapshot, TechnicianProfile):
            return snapshot.supervisor_id is None
        raise TypeError(f"UnassignedProfiles does not apply to {type(snapshot).__name__}")


@dataclass(frozen=True)
class AssignedProperties(ReadScope):
    """Properties that appear in at least one assignment worked by ``technician_id``."""

    technician_id: str

    def matches(self, snapshot: Snapshot) -> bool:
        prop = _as_property(snapshot, self)
        return any(link.technician_id == self.technician_id for link in prop.links)


@dataclass(frozen=True)
class TeamProperties(ReadScope):
    """Properties serviced by at least one member of ``supervisor_id``'s team."""

    supervisor_id: str

    def matches(self, snapshot: Snapshot) -> bool:
        prop = _as_property(snapshot, self)
        return any(link.supervisor_id == self.supervisor_id for link in prop.links)


@dataclass(frozen=True)
class RegionProperties(ReadScope):
    region: Region

    def matches(self, snapshot: Snapshot) -> bool:
        return _as_property(snapshot, self).region == self.region


@dataclass(frozen=True)
class AnyOf(ReadScope):
    """Union of scopes."""

    scopes: tuple[ReadScope, ...]

    def matches(self, snapshot: Snapshot) -> bool:
        return any(scope.matches(snapshot) for scope in self.scopes)


def _as_property(snapshot: Snapshot, scope: ReadScope) -> Property:
    if not isinstance(snapshot, Property):
        raise TypeError(f"{type(scope).__name__} does not apply to {type(snapshot).__name__}")
    return snapshot


# ---- Resolution ----------------------------------------------------------------------


def resolve_read_scope(
    identity: Identity,
    resource_type: ResourceType,
    *,
    region: Region | None = None,
) -> ReadScope:
    """
    Compute the read scope for ``identity`` on ``resource_type``.

    ``region`` is the caller's own profile region. Only supervisors use it
    (property visibility); it is looked up by the caller because the core
    performs no I/O.
    """

    role = identity.role
    if role is Role.ADMIN:
        return AllRecords()
    if role is Role.TECH:
        return _tech_scope(identity, resource_type)
    if role is Role.REPAIR:
        return _repair_scope(identity, resource_type)
    if role is Role.SUPERVISOR:
        return _supervisor_scope(identity, resource_type, region)
    unhandled_role(role)


def resolve_write_scope(
    identity: Identity,
    resource_type: ResourceType,
    *,
    region: Region | None = None,
) -> ReadScope:
    """
    The records a caller may target with a mutation.

    Equal to the read scope, except that supervisors may also reach
    unassigned technician profiles in order to claim them onto their team.
    """

    scope = resolve_read_scope(identity, resource_type, region=region)
    if identity.role is Role.SUPERVISOR and resource_type is ResourceType.TECHNICIAN_PROFILE:
        return AnyOf((scope, UnassignedProfiles()))
    return scope


def _tech_scope(identity: Identity, resource_type: ResourceType) -> ReadScope:
    if resource_type is ResourceType.ASSIGNMENT:
        return OwnRecords(identity.user_id)
    if resource_type is ResourceType.TECHNICIAN_PROFILE:
        return OwnRecords(identity.user_id)
    if resource_type is ResourceType.PROPERTY:
        return AssignedProperties(identity.user_id)
    raise ValueError(f"unknown resource type {resource_type!r}")


def _repair_scope(identity: Identity, resource_type: ResourceType) -> ReadScope:
    # Repair staff work their own assigned jobs across teams, and manage
    # personnel and sites like an admin.
    if resource_type is ResourceType.ASSIGNMENT:
        return OwnRecords(identity.user_id)
    if resource_type in (ResourceType.TECHNICIAN_PROFILE, ResourceType.PROPERTY):
        return AllRecords()
    raise ValueError(f"unknown resource type {resource_type!r}")


def _supervisor_scope(identity: Identity, resource_type: ResourceType, region: Region | None) -> ReadScope:
    if resource_type in (ResourceType.ASSIGNMENT, ResourceType.TECHNICIAN_PROFILE):
        return TeamRecords(identity.user_id)
    if resource_type is ResourceType.PROPERTY:
        team = TeamProperties(identity.user_id)
        if region is None:
            # With no team members either, this matches nothing.
            return team
        return AnyOf((RegionProperties(region), team))
    raise ValueError(f"unknown resource type {resource_type!r}")


def is_same_team(identity: Identity, profile: TechnicianProfile) -> bool:
    """True when ``identity`` may manage ``profile`` as a member of its team."""

    role = identity.role
    if role in (Role.ADMIN, Role.REPAIR):
        return True
    if role is Role.SUPERVISOR:
        return profile.supervisor_id == identity.user_id
    if role is Role.TECH:
        return False
    unhandled_role(role)
