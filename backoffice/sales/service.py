"""Sales read interface consumed by payroll and the commission reports.

Sale creation belongs to the POS checkout flow.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.sales.models import Sale


def _window(query, start: Optional[datetime], end: Optional[datetime]):
    """Restrict *query* to sales in ``[start, end)``."""
    if start is not None:
        query = query.where(Sale.timestamp >= start)
    if end is not None:
        query = query.where(Sale.timestamp < end)
    return query


class SalesService:

    @staticmethod
    async def get_sales_total(
        db: AsyncSession,
        employee_id: Optional[uuid.UUID],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Decimal:
        """Sum of ``total_amount`` for one employee (or everyone when
        *employee_id* is None) in ``[start, end)``."""
        query = select(func.coalesce(func.sum(Sale.total_amount), 0))
        if employee_id is not None:
            query = query.where(Sale.employee_id == employee_id)
        result = await db.execute(_window(query, start, end))
        return Decimal(str(result.scalar_one()))

    @staticmethod
    async def get_sales_count(
        db: AsyncSession,
        employee_id: Optional[uuid.UUID],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        query = select(func.count(Sale.id))
        if employee_id is not None:
            query = query.where(Sale.employee_id == employee_id)
        result = await db.execute(_window(query, start, end))
        return int(result.scalar_one())
