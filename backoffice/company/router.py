"""Settings router: company schedule and the leave-type catalog.

Reads are open to every authenticated user; writes require admin.
"""


import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_role
from backoffice.common.constants import UserRole
from backoffice.company.schemas import (
    CompanySettingsOut,
    CompanySettingsUpdate,
    LeaveTypeCreate,
    LeaveTypeOut,
    LeaveTypeUpdate,
    LeaveUtilizationOut,
)
from backoffice.company.service import CompanySettingsService, LeaveTypeCatalog
from backoffice.core_hr.models import Employee
from backoffice.database import get_db

router = APIRouter(prefix="", tags=["settings"])


# ── GET /company ────────────────────────────────────────────────────

@router.get("/company", response_model=CompanySettingsOut)
async def get_company_settings(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CompanySettingsService.get_company_settings(db)


# ── PUT /company ────────────────────────────────────────────────────

@router.put("/company", response_model=CompanySettingsOut)
async def update_company_settings(
    body: CompanySettingsUpdate,
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Update schedule fields. Start time must precede end time."""
    return await CompanySettingsService.update_company_settings(
        db, body, actor_id=employee.id,
    )


# ── GET /leave-types ────────────────────────────────────────────────

@router.get("/leave-types", response_model=list[LeaveTypeOut])
async def list_leave_types(
    active: bool = Query(False, description="Only active leave types"),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveTypeCatalog.list_leave_types(db, active_only=active)


# ── POST /leave-types ───────────────────────────────────────────────

@router.post("/leave-types", response_model=LeaveTypeOut, status_code=201)
async def create_leave_type(
    body: LeaveTypeCreate,
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveTypeCatalog.create_leave_type(db, body, actor_id=employee.id)


# ── PUT /leave-types/{id} ───────────────────────────────────────────

@router.put("/leave-types/{leave_type_id}", response_model=LeaveTypeOut)
async def update_leave_type(
    leave_type_id: uuid.UUID,
    body: LeaveTypeUpdate,
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveTypeCatalog.update_leave_type(
        db, leave_type_id, body, actor_id=employee.id,
    )


# ── DELETE /leave-types/{id} ────────────────────────────────────────

@router.delete("/leave-types/{leave_type_id}", status_code=204)
async def delete_leave_type(
    leave_type_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await LeaveTypeCatalog.delete_leave_type(db, leave_type_id, actor_id=employee.id)
    return Response(status_code=204)


# ── GET /leave-types/{name}/utilization ─────────────────────────────

@router.get("/leave-types/{name}/utilization", response_model=list[LeaveUtilizationOut])
async def leave_utilization(
    name: str,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Approved days of one leave type, per employee."""
    return await LeaveTypeCatalog.get_leave_utilization(db, name)
