from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from poolops.core.identity import Role
from poolops.core.resources import Region


class TechnicianProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    supervisor_id: str | None
    region: Region | None
    active: bool
    name: str | None
    phone: str | None
    truck_id: str | None
    updated_at: datetime


class TechnicianOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: Role
    technician_profile: TechnicianProfileOut | None


class TechnicianUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    supervisor_id: str | None = None
    region: Region | None = None
    active: bool | None = None
    name: str | None = Field(default=None, min_length=1)
    phone: str | None = None
    truck_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude_unset=True)
        # supervisor_id=None is meaningful (release); a null "active" is not.
        if payload.get("active", False) is None:
            del payload["active"]
        return payload
