from __future__ import annotations

from sqlalchemy import ColumnElement, event, or_, select
from sqlalchemy.orm import Session, with_loader_criteria

from poolops.core.resources import ResourceType
from poolops.core.scope import (
    AllRecords,
    AnyOf,
    AssignedProperties,
    OwnRecords,
    ReadScope,
    RegionProperties,
    TeamProperties,
    TeamRecords,
    UnassignedProfiles,
    resolve_read_scope,
)
from poolops.models.accounts import TechnicianProfile
from poolops.models.field import Assignment, Property

SKIP_SCOPE = "skip_scope"

_ENTITIES: tuple[tuple[type, ResourceType], ...] = (
    (Assignment, ResourceType.ASSIGNMENT),
    (TechnicianProfile, ResourceType.TECHNICIAN_PROFILE),
    (Property, ResourceType.PROPERTY),
)

# Subqueries use the Core tables so the loader criteria below are not
# re-applied inside them.
_assignments = Assignment.__table__
_profiles = TechnicianProfile.__table__


def scope_criteria(entity: type, scope: ReadScope) -> ColumnElement[bool] | None:
    """
    Translate a core read scope into a WHERE clause for ``entity``.

    Returns None when the scope does not restrict anything.
    """

    if isinstance(scope, AllRecords):
        return None
    if isinstance(scope, AnyOf):
        parts = [scope_criteria(entity, s) for s in scope.scopes]
        if any(p is None for p in parts):
            return None
        return or_(*parts)

    if entity is Assignment:
        if isinstance(scope, OwnRecords):
            return Assignment.technician_id == scope.user_id
        if isinstance(scope, TeamRecords):
            team = select(_profiles.c.user_id).where(_profiles.c.supervisor_id == scope.supervisor_id)
            return Assignment.technician_id.in_(team)

    if entity is TechnicianProfile:
        if isinstance(scope, OwnRecords):
            return TechnicianProfile.user_id == scope.user_id
        if isinstance(scope, TeamRecords):
            return TechnicianProfile.supervisor_id == scope.supervisor_id
        if isinstance(scope, UnassignedProfiles):
            return TechnicianProfile.supervisor_id.is_(None)

    if entity is Property:
        if isinstance(scope, AssignedProperties):
            worked = select(_assignments.c.property_id).where(_assignments.c.technician_id == scope.technician_id)
            return Property.id.in_(worked)
        if isinstance(scope, TeamProperties):
            serviced = (
                select(_assignments.c.property_id)
                .join(_profiles, _profiles.c.user_id == _assignments.c.technician_id)
                .where(_profiles.c.supervisor_id == scope.supervisor_id)
            )
            return Property.id.in_(serviced)
        if isinstance(scope, RegionProperties):
            return Property.region == scope.region

    raise TypeError(f"no SQL translation for {type(scope).__name__} on {entity.__name__}")


@event.listens_for(Session, "do_orm_execute")
def _apply_authorization_filters(execute_state) -> None:
    """
    Transparent data scoping.

    Keeps query code in services unaware of roles:
        db.scalars(select(Assignment)).all()
    returns only the assignments the caller may see. Snapshot loading opts out
    with ``execution_options(skip_scope=True)``.
    """

    if not execute_state.is_select:
        return
    # Refreshing an object already in hand (Session.refresh, expired attributes)
    # must always find its row.
    if execute_state.is_column_load:
        return
    if execute_state.execution_options.get(SKIP_SCOPE, False):
        return

    authz = execute_state.session.info.get("authz")
    if authz is None:
        return

    options = []
    for entity, resource_type in _ENTITIES:
        scope = resolve_read_scope(authz.identity, resource_type, region=authz.region)
        criteria = scope_criteria(entity, scope)
        if criteria is not None:
            options.append(with_loader_criteria(entity, criteria, include_aliases=True))

    if options:
        execute_state.statement = execute_state.statement.options(*options)
