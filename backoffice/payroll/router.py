"""Payroll router: monthly payroll and sales BI reports. Admin only."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import require_role
from backoffice.common.constants import UserRole
from backoffice.core_hr.models import Employee
from backoffice.database import get_db
from backoffice.payroll.schemas import CommissionReport, LaborAnalytics, PayrollRecord
from backoffice.payroll.service import PayrollService

router = APIRouter(prefix="", tags=["payroll"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PayrollRecord)
async def generate_payroll(
    employee_id: uuid.UUID = Query(...),
    month: int = Query(..., description="Calendar month, 1-12"),
    year: int = Query(..., ge=1970, le=9999),
    commission_rate: Optional[float] = Query(None, ge=0, le=1),
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Payroll for one employee and month: base pay, commission, unpaid-leave deductions."""
    return await PayrollService.generate_payroll(
        db, employee_id, month, year, commission_rate=commission_rate,
    )


# ── GET /commissions ────────────────────────────────────────────────

@router.get("/commissions", response_model=CommissionReport)
async def commissions(
    employee_id: uuid.UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    commission_rate: Optional[float] = Query(None, ge=0, le=1),
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await PayrollService.calculate_commissions(
        db, employee_id, start_date, end_date, commission_rate,
    )


# ── GET /labor-analytics ────────────────────────────────────────────

@router.get("/labor-analytics", response_model=LaborAnalytics)
async def labor_analytics(
    employee: Employee = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Total sales, worked hours, and sales per man-hour."""
    return await PayrollService.get_labor_analytics(db)
