from __future__ import annotations

from fastapi import APIRouter, Depends

from poolops.models.accounts import User
from poolops.schemas.accounts import MeOut
from poolops.security.context import AuthzContext
from poolops.security.dependencies import get_authz, get_current_user

router = APIRouter(tags=["accounts"])


@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user), authz: AuthzContext = Depends(get_authz)) -> MeOut:
    return MeOut(id=user.id, email=user.email, role=user.role, is_active=user.is_active, region=authz.region)
