"""Payroll Pydantic v2 schemas: derived payroll and BI report shapes."""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel


class PayrollRecord(BaseModel):
    """Monthly pay for one employee. Derived on every request, never stored."""

    employee_id: uuid.UUID
    employee_name: str
    month: int
    year: int
    base_pay: Decimal
    commission: Decimal
    deductions: Decimal
    net_salary: Decimal
    unpaid_days: int

    # Inputs, for auditability
    total_sales: Decimal
    commission_rate: Decimal


class CommissionReport(BaseModel):
    employee_id: uuid.UUID
    start_date: dt.date
    end_date: dt.date
    total_sales: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    count: int


class LaborAnalytics(BaseModel):
    total_sales: Decimal
    total_hours: Decimal
    sales_per_man_hour: Decimal
