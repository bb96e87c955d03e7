"""Attendance router: clock in/out and daily logs.

All endpoints require authentication. Viewing another employee's logs
requires manager or above.
"""


import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.schemas import (
    ClockInRequest,
    DailyAttendanceRecord,
    SessionResponse,
)
from backoffice.attendance.service import AttendanceService
from backoffice.auth.dependencies import get_current_user, require_role
from backoffice.common.constants import UserRole
from backoffice.core_hr.models import Employee
from backoffice.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── POST /clock-in ──────────────────────────────────────────────────

@router.post("/clock-in", response_model=SessionResponse, status_code=201)
async def clock_in(
    request: Request,
    body: ClockInRequest = ClockInRequest(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Start a work session for the current user."""
    ip = request.client.host if request.client else None
    return await AttendanceService.clock_in(
        db,
        employee.id,
        source=body.source,
        ip_address=ip,
        latitude=body.latitude,
        longitude=body.longitude,
    )


# ── POST /clock-out ─────────────────────────────────────────────────

@router.post("/clock-out", response_model=SessionResponse)
async def clock_out(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Close the current user's open work session."""
    return await AttendanceService.clock_out(db, employee.id)


# ── GET /logs ───────────────────────────────────────────────────────

@router.get("/logs", response_model=list[DailyAttendanceRecord])
async def my_logs(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Daily attendance records for the current user, newest first."""
    return await AttendanceService.get_attendance_logs(db, employee.id)


# ── GET /logs/{employee_id} ─────────────────────────────────────────

@router.get("/logs/{employee_id}", response_model=list[DailyAttendanceRecord])
async def employee_logs(
    employee_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.get_attendance_logs(db, employee_id)
