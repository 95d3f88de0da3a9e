from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from poolops.core.resources import Region
from poolops.schemas.assignments import AssignmentOut


class PropertyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str
    region: Region | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class PropertyDetailOut(PropertyOut):
    assignments: list[AssignmentOut] = Field(default_factory=list)


class PropertyCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    region: Region | None = None
    notes: str | None = None


class PropertyCompletion(BaseModel):
    """Body of a service visit report: which assignment it closes, and how."""

    model_config = ConfigDict(extra="forbid")

    assignment_id: str
    completed_at: datetime | None = None
    notes: str | None = None


class PropertyCompletionOut(BaseModel):
    message: str
    assignment: AssignmentOut
