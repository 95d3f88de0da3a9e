from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from poolops.core.identity import Role
from poolops.core.resources import Region
from poolops.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_column(enum_cls: type) -> Enum:
    # Store the lowercase values ("in_progress"), not the member names.
    return Enum(enum_cls, native_enum=False, values_callable=lambda members: [m.value for m in members])


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[Role] = mapped_column(enum_column(Role), default=Role.TECH, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    technician_profile: Mapped["TechnicianProfile | None"] = relationship(
        back_populates="user",
        foreign_keys="TechnicianProfile.user_id",
        uselist=False,
    )


class TechnicianProfile(Base):
    __tablename__ = "technician_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)

    # Null means "unassigned"; otherwise the supervising user's id (role must be supervisor).
    supervisor_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    region: Mapped[Region | None] = mapped_column(enum_column(Region), nullable=True, index=True)

    # Soft delete: profiles are deactivated, never removed.
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    truck_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="technician_profile", foreign_keys=[user_id])
