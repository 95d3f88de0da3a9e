"""Typed outcomes of authorization decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class DenialCode(str, Enum):
    """Stable, machine-checkable reason codes carried by every denial."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    NOT_OWNER = "NOT_OWNER"
    NOT_SAME_TEAM = "NOT_SAME_TEAM"
    FIELD_NOT_PERMITTED = "FIELD_NOT_PERMITTED"
    TECH_CANNOT_CANCEL = "TECH_CANNOT_CANCEL"
    INVALID_TRANSITION = "INVALID_TRANSITION"


@dataclass(frozen=True)
class Allow:
    """
    Mutation may proceed.

    ``applied`` is the payload to persist, augmented with derived fields
    (timestamps). ``noop`` marks an idempotent request that must not write.
    """

    applied: Mapping[str, Any] = field(default_factory=dict)
    noop: bool = False

    allowed = True


@dataclass(frozen=True)
class NotFound:
    """Resource is absent or outside the caller's scope; the two are indistinguishable."""

    message: str = "Not found"
    code: DenialCode = DenialCode.NOT_FOUND

    allowed = False


@dataclass(frozen=True)
class Forbidden:
    """Resource is visible but the caller may not make this change."""

    message: str
    code: DenialCode = DenialCode.FORBIDDEN
    field: str | None = None

    allowed = False


@dataclass(frozen=True)
class InvalidTransition:
    """Resource is visible and writable but the requested status change is illegal."""

    message: str
    code: DenialCode = DenialCode.INVALID_TRANSITION

    allowed = False


Verdict = Allow | NotFound | Forbidden | InvalidTransition


@dataclass(frozen=True)
class FieldCheck:
    """Result of a field-level check: ok, or the first offending field."""

    field: str | None = None
    message: str | None = None
    code: DenialCode = DenialCode.FIELD_NOT_PERMITTED

    @property
    def ok(self) -> bool:
        return self.field is None

    @classmethod
    def allow(cls) -> FieldCheck:
        return cls()

    @classmethod
    def deny(cls, field_name: str, message: str, code: DenialCode = DenialCode.FIELD_NOT_PERMITTED) -> FieldCheck:
        return cls(field=field_name, message=message, code=code)

    def to_forbidden(self) -> Forbidden:
        if self.ok:
            raise ValueError("cannot convert a passing FieldCheck into Forbidden")
        return Forbidden(message=self.message or f"Field '{self.field}' is not permitted", code=self.code, field=self.field)
