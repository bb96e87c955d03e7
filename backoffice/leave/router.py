"""Leave router: request, approve/reject, balances, listings.

All endpoints require authentication. Manager-specific endpoints enforce role checks.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_role
from backoffice.common.constants import LeaveStatus, UserRole
from backoffice.common.pagination import PaginationParams
from backoffice.core_hr.models import Employee
from backoffice.database import get_db
from backoffice.leave.schemas import (
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestListOut,
    LeaveRequestOut,
    LeaveStatusUpdate,
    PendingLeaveOut,
)
from backoffice.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /request ───────────────────────────────────────────────────

@router.post("/request", response_model=LeaveRequestOut, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Request leave. Validates the date range, the leave type and the remaining quota."""
    return await LeaveService.request_leave(
        db,
        employee.id,
        body.start_date,
        body.end_date,
        body.type,
        body.reason,
    )


# ── PATCH /{id}/status ──────────────────────────────────────────────

@router.patch("/{request_id}/status", response_model=LeaveRequestOut)
async def update_leave_status(
    request_id: uuid.UUID,
    body: LeaveStatusUpdate,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending leave request."""
    return await LeaveService.update_status(
        db, request_id, body.status, reviewer_id=employee.id,
    )


# ── GET /summary ────────────────────────────────────────────────────

@router.get("/summary", response_model=list[LeaveBalanceOut])
async def my_summary(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_summary(db, employee.id)


# ── GET /summary/{employee_id} ──────────────────────────────────────

@router.get("/summary/{employee_id}", response_model=list[LeaveBalanceOut])
async def employee_summary(
    employee_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_summary(db, employee_id)


# ── GET /my-leaves ──────────────────────────────────────────────────

@router.get("/my-leaves", response_model=list[LeaveRequestOut])
async def my_leaves(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The current user's leave requests, latest start date first."""
    return await LeaveService.get_employee_leaves(db, employee.id)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[PendingLeaveOut])
async def pending_leaves(
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_pending_leaves(db)


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=LeaveRequestListOut)
async def list_requests(
    status: Optional[LeaveStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_leave_requests(
        db,
        status=status,
        employee_id=employee_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )
