"""
Domain errors for slot reservation.

Services raise these; `install_error_handlers` renders them as JSON
responses so routers stay thin.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
    ErrorKind.TIMEOUT: 503,
}


class ReservationError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict:
        return {"detail": self.message, "kind": self.kind.value, **self.extra}


class InvalidInput(ReservationError):
    kind = ErrorKind.INVALID_INPUT


class NotFound(ReservationError):
    kind = ErrorKind.NOT_FOUND


class Forbidden(ReservationError):
    kind = ErrorKind.FORBIDDEN


class SlotConflict(ReservationError):
    """Slot is booked or held by another user."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str, status: str, expires_in: Optional[int] = None):
        extra: dict[str, Any] = {"status": status}
        if expires_in is not None:
            extra["expires_in"] = expires_in
        super().__init__(message, **extra)
        self.status = status
        self.expires_in = expires_in


class StoreTimeout(ReservationError):
    """Storage or mutex deadline exceeded. Safe to retry."""

    kind = ErrorKind.TIMEOUT


class InternalError(ReservationError):
    kind = ErrorKind.INTERNAL


async def _reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        # details already logged where the error was raised
        payload = {"detail": "Internal server error", "kind": exc.kind.value}
    else:
        payload = exc.to_payload()
    headers = {"Retry-After": "1"} if exc.kind is ErrorKind.TIMEOUT else None
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content=payload,
        headers=headers,
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    return JSONResponse(
        status_code=STATUS_BY_KIND[ErrorKind.INVALID_INPUT],
        content={
            "detail": f"{field}: {first.get('msg', 'invalid value')}",
            "kind": ErrorKind.INVALID_INPUT.value,
        },
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, _reservation_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
