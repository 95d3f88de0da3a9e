from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from poolops.core.identity import Role
from poolops.core.resources import Region


class MeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: Role
    is_active: bool
    region: Region | None = None
