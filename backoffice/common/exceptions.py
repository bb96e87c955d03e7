"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://backoffice.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        extensions: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.extensions = extensions or {}
        super().__init__(detail)


class NotFoundException(AppException):
    """404: entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409: unique-constraint / duplicate."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class ForbiddenException(AppException):
    """403: insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422: business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


# ── Time & leave accounting errors ──────────────────────────────────

class AlreadyClockedIn(AppException):
    """409: an open session already exists for today."""

    def __init__(self, employee_id: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="already-clocked-in",
            title="Already Clocked In",
            detail=f"Employee '{employee_id}' is already clocked in. Clock out first.",
        )


class NoActiveSession(AppException):
    """409: clock-out without an open session."""

    def __init__(self, employee_id: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="no-active-session",
            title="No Active Session",
            detail=f"No active clock-in session found for employee '{employee_id}'.",
        )


class InvalidDateRange(AppException):
    """422: start date after end date."""

    def __init__(self, start_date: Any, end_date: Any) -> None:
        super().__init__(
            status_code=422,
            error_type="invalid-date-range",
            title="Invalid Date Range",
            detail=f"Start date {start_date} cannot be later than end date {end_date}.",
            errors={"start_date": ["Start date cannot be later than end date."]},
        )


class InvalidLeaveType(AppException):
    """422: unknown or inactive leave type."""

    def __init__(self, leave_type: str) -> None:
        super().__init__(
            status_code=422,
            error_type="invalid-leave-type",
            title="Invalid Leave Type",
            detail=f"Leave type '{leave_type}' does not exist or is inactive.",
            errors={"type": [f"'{leave_type}' is not an active leave type."]},
        )


class InsufficientLeaveBalance(AppException):
    """422: request would exceed the leave type's quota."""

    def __init__(self, leave_type: str, remaining_days: int, requested_days: int) -> None:
        self.remaining_days = remaining_days
        self.requested_days = requested_days
        super().__init__(
            status_code=422,
            error_type="insufficient-leave-balance",
            title="Insufficient Leave Balance",
            detail=(
                f"Insufficient {leave_type} balance. Remaining: {remaining_days} days, "
                f"Requested: {requested_days} days."
            ),
            errors={"balance": [f"Only {remaining_days} day(s) of {leave_type} remaining."]},
            extensions={
                "remaining_days": remaining_days,
                "requested_days": requested_days,
            },
        )


class InvalidStatusTransition(AppException):
    """409: leave request already decided."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            status_code=409,
            error_type="invalid-status-transition",
            title="Invalid Status Transition",
            detail=f"Leave request is already {current}; cannot change it to {requested}.",
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    body.update(exc.extensions)
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
