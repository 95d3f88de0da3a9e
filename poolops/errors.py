"""
API error types and their JSON rendering.

Every error response has the same body:

    {"error": "<CODE>", "message": "<text>", "details": <optional>}

``error`` is stable and machine-checkable; clients branch on it, not on the
message.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from poolops.core.verdicts import Forbidden, InvalidTransition, NotFound, Verdict

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class RateLimitedError(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("Too many requests. Please try again later.", details={"retry_after": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds


def raise_for_verdict(verdict: Verdict) -> None:
    """Translate a denial from the authorization core into the matching API error."""

    if verdict.allowed:
        return
    if isinstance(verdict, NotFound):
        raise NotFoundError(verdict.message, code=verdict.code.value)
    if isinstance(verdict, Forbidden):
        details = {"field": verdict.field} if verdict.field else None
        raise ForbiddenError(verdict.message, code=verdict.code.value, details=details)
    if isinstance(verdict, InvalidTransition):
        raise BadRequestError(verdict.message, code=verdict.code.value)
    raise TypeError(f"unexpected verdict {verdict!r}")


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
