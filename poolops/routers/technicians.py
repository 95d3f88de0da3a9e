from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from poolops.db.session import get_db
from poolops.models.accounts import User
from poolops.schemas.technicians import TechnicianOut, TechnicianUpdate
from poolops.security.context import AuthzContext
from poolops.security.dependencies import get_authz
from poolops.services import technicians as service

router = APIRouter(prefix="/technicians", tags=["technicians"])


@router.get("", response_model=list[TechnicianOut])
def list_technicians(include_inactive: bool = False, db: Session = Depends(get_db)) -> list[User]:
    return service.list_technicians(db, include_inactive=include_inactive)


@router.patch("/{user_id}", response_model=TechnicianOut)
def update_technician(
    user_id: str,
    body: TechnicianUpdate,
    authz: AuthzContext = Depends(get_authz),
    db: Session = Depends(get_db),
) -> User:
    return service.update_technician(db, authz, user_id, body.to_payload())
