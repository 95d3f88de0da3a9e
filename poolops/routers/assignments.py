from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.orm import Session

from poolops.db.session import get_db
from poolops.errors import BadRequestError
from poolops.models.field import Assignment
from poolops.schemas.assignments import AssignmentCreate, AssignmentOut, AssignmentQuery, AssignmentUpdate
from poolops.security.context import AuthzContext
from poolops.security.dependencies import get_authz
from poolops.services import assignments as service

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _parse_if_match(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip().strip('"'))
    except ValueError as exc:
        raise BadRequestError("If-Match must carry the assignment version") from exc


@router.get("", response_model=list[AssignmentOut])
def list_assignments(query: Annotated[AssignmentQuery, Query()], db: Session = Depends(get_db)) -> list[Assignment]:
    # Tech sees own, supervisor sees team, admin sees all (scoped by poolops/db/filters.py).
    return service.list_assignments(db, query)


@router.get("/created", response_model=list[AssignmentOut])
def list_created_assignments(include_canceled: bool = False, db: Session = Depends(get_db)) -> list[Assignment]:
    # Route rules restrict this to supervisors and admins; the session scope does the rest.
    return service.list_created_assignments(db, include_canceled=include_canceled)


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    body: AssignmentCreate,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> Assignment:
    return service.create_assignment(db, authz, body)


@router.get("/{id}", response_model=AssignmentOut)
def get_assignment(
    id: str,
    response: Response,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> Assignment:
    row = service.get_assignment(db, authz, id)
    response.headers["ETag"] = f'"{row.version}"'
    return row


@router.patch("/{id}", response_model=AssignmentOut)
def update_assignment(
    id: str,
    body: AssignmentUpdate,
    response: Response,
    if_match: str | None = Header(default=None),
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> Assignment:
    row = service.update_assignment(db, authz, id, body.to_payload(), expected_version=_parse_if_match(if_match))
    response.headers["ETag"] = f'"{row.version}"'
    return row
