from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from poolops.core.resources import AssignmentStatus, Priority

logger = logging.getLogger(__name__)

# Fields that cannot be cleared; an explicit null is treated as "not sent".
_NON_NULLABLE = ("status", "priority", "scheduled_date", "technician_id", "property_id")


def normalize_status(value: Any) -> Any:
    """Accept the legacy "canceled" spelling at the boundary; store only "cancelled"."""

    if value == "canceled":
        logger.warning("Deprecated status spelling 'canceled' received; use 'cancelled'")
        return AssignmentStatus.CANCELLED.value
    return value


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    technician_id: str
    status: AssignmentStatus
    priority: Priority
    scheduled_date: datetime
    completed_at: datetime | None
    canceled_at: datetime | None
    canceled_reason: str | None
    notes: str | None
    version: int
    created_at: datetime
    updated_at: datetime


class AssignmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    property_id: str
    technician_id: str
    scheduled_date: datetime
    priority: Priority = Priority.MED
    notes: str | None = None


class AssignmentUpdate(BaseModel):
    """
    PATCH body. Only the fields actually sent are considered by the
    authorization core, so unset and null are not the same thing.
    """

    model_config = ConfigDict(extra="forbid")

    status: AssignmentStatus | None = None
    priority: Priority | None = None
    scheduled_date: datetime | None = None
    technician_id: str | None = None
    property_id: str | None = None
    notes: str | None = None
    canceled_reason: str | None = None
    completed_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, value: Any) -> Any:
        return normalize_status(value)

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude_unset=True)
        for name in _NON_NULLABLE:
            if name in payload and payload[name] is None:
                del payload[name]
        return payload


class AssignmentQuery(BaseModel):
    technician_id: str | None = None
    property_id: str | None = None
    status: AssignmentStatus | None = None
    priority: Priority | None = None
    include_canceled: bool = Field(default=False, description="Include cancelled assignments")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, value: Any) -> Any:
        return normalize_status(value)
