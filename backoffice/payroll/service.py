"""Payroll service: monthly pay, commission reports and labor analytics.

All money is Decimal and rounded to cents only on output. The payroll period
is a calendar month in the company timezone.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.models import AttendanceSession
from backoffice.common.constants import LeaveStatus
from backoffice.common.exceptions import (
    InvalidDateRange,
    NotFoundException,
    ValidationException,
)
from backoffice.common.timeutils import (
    at_local_time,
    duration_ms,
    inclusive_day_count,
    month_bounds,
)
from backoffice.config import settings
from backoffice.core_hr.models import Employee
from backoffice.leave.models import LeaveRequest
from backoffice.payroll.schemas import CommissionReport, LaborAnalytics, PayrollRecord
from backoffice.sales.service import SalesService

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_MS_PER_HOUR = Decimal(3_600_000)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _rate(commission_rate: Optional[Union[float, Decimal]]) -> Decimal:
    if commission_rate is None:
        commission_rate = settings.COMMISSION_RATE
    # str() keeps 0.05 from becoming 0.05000000000000000277…
    return Decimal(str(commission_rate))


def _local_window(start: date, end: date):
    """UTC bounds ``[start 00:00, end+1 00:00)`` of an inclusive local date range."""
    return (
        at_local_time(start, time.min),
        at_local_time(end + timedelta(days=1), time.min),
    )


class PayrollService:
    """Business logic for payroll and sales-driven reports."""

    # ── Payroll ──────────────────────────────────────────────────────

    @staticmethod
    async def _unpaid_days(
        db: AsyncSession,
        employee_id: uuid.UUID,
        month_start: date,
        month_end: date,
    ) -> int:
        """Approved unpaid leave lying entirely inside the month."""
        result = await db.execute(
            select(LeaveRequest.start_date, LeaveRequest.end_date).where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.leave_type == settings.UNPAID_LEAVE_TYPE,
                LeaveRequest.start_date >= month_start,
                LeaveRequest.end_date <= month_end,
            )
        )
        return sum(inclusive_day_count(start, end) for start, end in result.all())

    @staticmethod
    async def generate_payroll(
        db: AsyncSession,
        employee_id: uuid.UUID,
        month: int,
        year: int,
        *,
        commission_rate: Optional[Union[float, Decimal]] = None,
    ) -> PayrollRecord:
        """Compute pay for *month* (1–12) of *year*.

        net = base + rate × sales − unpaid_days × (base / days_per_month)
        """
        if not 1 <= month <= 12:
            raise ValidationException({"month": ["Month must be between 1 and 12."]})

        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", employee_id)

        month_start, month_end = month_bounds(year, month)
        window_start, window_end = _local_window(month_start, month_end)

        rate = _rate(commission_rate)
        total_sales = await SalesService.get_sales_total(db, employee_id, window_start, window_end)
        unpaid_days = await PayrollService._unpaid_days(db, employee_id, month_start, month_end)

        base_pay = Decimal(employee.salary or 0)
        commission = total_sales * rate
        daily_rate = base_pay / Decimal(settings.PAYROLL_DAYS_PER_MONTH)
        deductions = daily_rate * unpaid_days
        net_salary = base_pay + commission - deductions

        logger.info(
            "Payroll %04d-%02d for %s: base=%s commission=%s deductions=%s",
            year, month, employee_id, base_pay, _money(commission), _money(deductions),
        )
        return PayrollRecord(
            employee_id=employee.id,
            employee_name=employee.full_name,
            month=month,
            year=year,
            base_pay=_money(base_pay),
            commission=_money(commission),
            deductions=_money(deductions),
            net_salary=_money(net_salary),
            unpaid_days=unpaid_days,
            total_sales=_money(total_sales),
            commission_rate=rate,
        )

    # ── Reports ──────────────────────────────────────────────────────

    @staticmethod
    async def calculate_commissions(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
        commission_rate: Optional[Union[float, Decimal]] = None,
    ) -> CommissionReport:
        """Commission on the employee's sales between two local dates, inclusive."""
        if start_date > end_date:
            raise InvalidDateRange(start_date, end_date)

        window_start, window_end = _local_window(start_date, end_date)
        rate = _rate(commission_rate)
        total_sales = await SalesService.get_sales_total(db, employee_id, window_start, window_end)
        count = await SalesService.get_sales_count(db, employee_id, window_start, window_end)
        return CommissionReport(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            total_sales=_money(total_sales),
            commission_rate=rate,
            commission_amount=_money(total_sales * rate),
            count=count,
        )

    @staticmethod
    async def get_labor_analytics(db: AsyncSession) -> LaborAnalytics:
        """All-time sales per worked hour. Open sessions are not counted."""
        total_sales = await SalesService.get_sales_total(db, None)

        result = await db.execute(
            select(AttendanceSession.clock_in, AttendanceSession.clock_out).where(
                AttendanceSession.clock_out.is_not(None),
            )
        )
        total_ms = sum(max(0, duration_ms(ci, co)) for ci, co in result.all())
        total_hours = Decimal(total_ms) / _MS_PER_HOUR

        per_hour = total_sales / total_hours if total_hours > 0 else Decimal("0")
        return LaborAnalytics(
            total_sales=_money(total_sales),
            total_hours=_money(total_hours),
            sales_per_man_hour=_money(per_hour),
        )
