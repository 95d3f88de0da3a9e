from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from poolops.db.session import get_db
from poolops.models.field import Property
from poolops.schemas.properties import (
    PropertyCompletion,
    PropertyCompletionOut,
    PropertyCreate,
    PropertyDetailOut,
    PropertyOut,
)
from poolops.security.context import AuthzContext
from poolops.security.dependencies import get_authz
from poolops.services import properties as service

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("", response_model=list[PropertyOut])
def list_properties(updated_since: datetime | None = None, db: Session = Depends(get_db)) -> list[Property]:
    return service.list_properties(db, updated_since=updated_since)


@router.post("", response_model=PropertyOut, status_code=status.HTTP_201_CREATED)
def create_property(
    body: PropertyCreate,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> Property:
    return service.create_property(db, authz, body)


@router.get("/{id}", response_model=PropertyDetailOut)
def get_property(id: str, authz: AuthzContext = Depends(get_authz), db: Session = Depends(get_db)) -> PropertyDetailOut:
    # Out-of-scope properties are reported as "not found".
    return service.get_property(db, authz, id)


@router.post("/{id}/complete", response_model=PropertyCompletionOut)
def complete_service_visit(
    id: str,
    body: PropertyCompletion,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> PropertyCompletionOut:
    return service.complete_service_visit(db, authz, id, body)
