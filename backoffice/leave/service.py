"""Leave service layer: quota-checked requests, approvals, balances.

Business logic:
  - Whole-day leave; day counts are inclusive calendar days
  - Quota is checked at request time against the approved days of that type
  - Status moves exactly once, from pending to approved or rejected
  - Balances are derived from approved requests on every read
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import LeaveStatus
from backoffice.common.exceptions import (
    InsufficientLeaveBalance,
    InvalidDateRange,
    InvalidLeaveType,
    InvalidStatusTransition,
    NotFoundException,
    ValidationException,
)
from backoffice.common.pagination import paginate
from backoffice.common.timeutils import inclusive_day_count, to_local_date, utcnow
from backoffice.company.service import LeaveTypeCatalog
from backoffice.config import settings
from backoffice.core_hr.models import Employee
from backoffice.leave.models import LeaveRequest, LeaveType
from backoffice.leave.schemas import (
    LeaveBalanceOut,
    LeaveRequestListOut,
    LeaveRequestOut,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: requests, status changes, balances, listings."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _lock_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        result = await db.execute(
            select(Employee).where(Employee.id == employee_id).with_for_update()
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", employee_id)
        return employee

    @staticmethod
    async def _approved_days(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: Optional[str] = None,
    ) -> dict[str, int]:
        """Approved inclusive day counts per leave type name."""
        query = select(
            LeaveRequest.leave_type, LeaveRequest.start_date, LeaveRequest.end_date,
        ).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.approved,
        )
        if leave_type is not None:
            query = query.where(LeaveRequest.leave_type == leave_type)

        taken: dict[str, int] = {}
        for name, start, end in (await db.execute(query)).all():
            taken[name] = taken.get(name, 0) + inclusive_day_count(start, end)
        return taken

    @staticmethod
    async def _check_balance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        requested_days: int,
    ) -> None:
        taken = (await LeaveService._approved_days(db, employee_id, leave_type.name)).get(
            leave_type.name, 0,
        )
        if taken + requested_days > leave_type.days_allowed:
            raise InsufficientLeaveBalance(
                leave_type.name,
                remaining_days=max(0, leave_type.days_allowed - taken),
                requested_days=requested_days,
            )

    # ─────────────────────────────────────────────────────────────────
    # Request
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def request_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start_date: Union[date, datetime],
        end_date: Union[date, datetime],
        leave_type: str,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Create a pending leave request after date and quota validation."""
        start = to_local_date(start_date)
        end = to_local_date(end_date)
        if start > end:
            raise InvalidDateRange(start, end)
        duration = inclusive_day_count(start, end)

        lt = await LeaveTypeCatalog.get_active_leave_type(db, leave_type)
        if lt is None:
            raise InvalidLeaveType(leave_type)

        # Sum-compare-insert must not interleave with another request by the same employee
        await LeaveService._lock_employee(db, employee_id)
        await LeaveService._check_balance(db, employee_id, lt, duration)

        req = LeaveRequest(
            employee_id=employee_id,
            start_date=start,
            end_date=end,
            leave_type=lt.name,
            reason=reason,
            status=LeaveStatus.pending,
        )
        db.add(req)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=employee_id,
            new_values={
                "leave_type": lt.name,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "days": duration,
            },
        )
        logger.info(
            "Leave requested by %s: %s %s..%s (%d days)",
            employee_id, lt.name, start, end, duration,
        )
        return req

    # ─────────────────────────────────────────────────────────────────
    # Status
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_status(
        db: AsyncSession,
        request_id: uuid.UUID,
        status: LeaveStatus,
        *,
        reviewer_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        """Approve or reject a pending request."""
        if status == LeaveStatus.pending:
            raise ValidationException(
                {"status": ["A request can only be moved to approved or rejected."]},
            )

        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.id == request_id).with_for_update()
        )
        req = result.scalars().first()
        if req is None:
            raise NotFoundException("LeaveRequest", request_id)
        if req.status != LeaveStatus.pending:
            raise InvalidStatusTransition(req.status.value, status.value)

        if status == LeaveStatus.approved and settings.LEAVE_REVALIDATE_ON_APPROVAL:
            lt = await LeaveTypeCatalog.get_active_leave_type(db, req.leave_type)
            if lt is None:
                raise InvalidLeaveType(req.leave_type)
            await LeaveService._lock_employee(db, req.employee_id)
            await LeaveService._check_balance(db, req.employee_id, lt, req.total_days)

        req.status = status
        req.reviewed_by = reviewer_id
        req.reviewed_at = now or utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="approve" if status == LeaveStatus.approved else "reject",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=reviewer_id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": status.value},
        )
        logger.info("Leave request %s %s by %s", req.id, status.value, reviewer_id)
        return req

    # ─────────────────────────────────────────────────────────────────
    # Balances
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_summary(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> list[LeaveBalanceOut]:
        """One balance per active leave type, by name."""
        leave_types = await LeaveTypeCatalog.list_active_leave_types(db)
        taken = await LeaveService._approved_days(db, employee_id)
        return [
            LeaveBalanceOut(
                name=lt.name,
                days_allowed=lt.days_allowed,
                days_taken=taken.get(lt.name, 0),
                days_remaining=max(0, lt.days_allowed - taken.get(lt.name, 0)),
            )
            for lt in leave_types
        ]

    # ─────────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_employee_leaves(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> list[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.start_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_pending_leaves(db: AsyncSession) -> list[LeaveRequest]:
        """All pending requests, oldest first, with the employee loaded."""
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.pending)
            .options(selectinload(LeaveRequest.employee))
            .order_by(LeaveRequest.created_at.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_leave_requests(
        db: AsyncSession,
        *,
        status: Optional[LeaveStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> LeaveRequestListOut:
        query = select(LeaveRequest)
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        query = query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.created_at.desc())

        rows, meta = await paginate(db, query, page, page_size)
        return LeaveRequestListOut(
            data=[LeaveRequestOut.model_validate(r) for r in rows],
            meta=meta,
        )
