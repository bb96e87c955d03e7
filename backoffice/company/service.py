"""Company settings service: schedule snapshots, settings administration,
and the leave-type catalog.

The schedule is read fresh on every call so a settings change takes effect on
the very next clock action or sweep.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import LeaveStatus, WEEKDAY_NAMES
from backoffice.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from backoffice.common.timeutils import inclusive_day_count
from backoffice.company.models import CompanySettings
from backoffice.company.schemas import (
    CompanySettingsUpdate,
    LeaveTypeCreate,
    LeaveTypeUpdate,
    LeaveUtilizationOut,
    Schedule,
)
from backoffice.core_hr.models import Employee
from backoffice.leave.models import LeaveRequest, LeaveType

logger = logging.getLogger(__name__)


def _settings_snapshot(row: CompanySettings) -> dict:
    return {
        "company_name": row.company_name,
        "work_days": list(row.work_days or []),
        "work_start_time": row.work_start_time.isoformat(timespec="minutes"),
        "work_end_time": row.work_end_time.isoformat(timespec="minutes"),
        "enable_overtime": row.enable_overtime,
    }


# ═════════════════════════════════════════════════════════════════════
# ScheduleProvider
# ═════════════════════════════════════════════════════════════════════


class ScheduleProvider:
    """Read-only access to the working schedule."""

    @staticmethod
    async def get_schedule(db: AsyncSession) -> Schedule:
        """Current schedule, or the Mon–Fri 09:00–17:00 default when no
        settings row exists. Never writes."""
        result = await db.execute(select(CompanySettings).limit(1))
        row = result.scalars().first()
        if row is None:
            return Schedule()
        return Schedule(
            work_days=tuple(row.work_days or ()),
            work_start_time=row.work_start_time,
            work_end_time=row.work_end_time,
            enable_overtime=row.enable_overtime,
        )


# ═════════════════════════════════════════════════════════════════════
# CompanySettingsService
# ═════════════════════════════════════════════════════════════════════


class CompanySettingsService:

    @staticmethod
    async def get_company_settings(db: AsyncSession) -> CompanySettings:
        """Return the settings row, creating it with defaults if absent."""
        result = await db.execute(select(CompanySettings).limit(1))
        row = result.scalars().first()
        if row is None:
            row = CompanySettings()
            db.add(row)
            await db.flush()
            logger.info("Created default company settings %s", row.id)
        return row

    @staticmethod
    async def update_company_settings(
        db: AsyncSession,
        data: CompanySettingsUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> CompanySettings:
        row = await CompanySettingsService.get_company_settings(db)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        errors: dict[str, list[str]] = {}
        start = changes.get("work_start_time", row.work_start_time)
        end = changes.get("work_end_time", row.work_end_time)
        if start >= end:
            errors["work_start_time"] = [
                "Work start time cannot be later than or equal to work end time.",
            ]
        if "work_days" in changes:
            unknown = [d for d in changes["work_days"] if d not in WEEKDAY_NAMES]
            if unknown:
                errors["work_days"] = [f"'{d}' is not a weekday name." for d in unknown]
            # Keep calendar order, drop duplicates
            changes["work_days"] = [d for d in WEEKDAY_NAMES if d in changes["work_days"]]
        if errors:
            raise ValidationException(errors)

        old_values = _settings_snapshot(row)
        for field, value in changes.items():
            setattr(row, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="company_settings",
            entity_id=row.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=_settings_snapshot(row),
        )
        logger.info("Company settings updated by %s: %s", actor_id, sorted(changes))
        return row


# ═════════════════════════════════════════════════════════════════════
# LeaveTypeCatalog
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeCatalog:
    """CRUD over leave types plus per-type utilization."""

    @staticmethod
    async def list_leave_types(
        db: AsyncSession,
        *,
        active_only: bool = False,
    ) -> list[LeaveType]:
        query = select(LeaveType).order_by(LeaveType.name)
        if active_only:
            query = query.where(LeaveType.active.is_(True))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_active_leave_types(db: AsyncSession) -> list[LeaveType]:
        return await LeaveTypeCatalog.list_leave_types(db, active_only=True)

    @staticmethod
    async def get_active_leave_type(db: AsyncSession, name: str) -> Optional[LeaveType]:
        result = await db.execute(
            select(LeaveType).where(LeaveType.name == name, LeaveType.active.is_(True))
        )
        return result.scalars().first()

    @staticmethod
    async def _get_or_404(db: AsyncSession, leave_type_id: uuid.UUID) -> LeaveType:
        leave_type = await db.get(LeaveType, leave_type_id)
        if leave_type is None:
            raise NotFoundException("LeaveType", leave_type_id)
        return leave_type

    @staticmethod
    async def _ensure_name_free(
        db: AsyncSession,
        name: str,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        result = await db.execute(select(LeaveType).where(LeaveType.name == name))
        existing = result.scalars().first()
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("name", name)

    @staticmethod
    async def create_leave_type(
        db: AsyncSession,
        data: LeaveTypeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveType:
        await LeaveTypeCatalog._ensure_name_free(db, data.name)
        leave_type = LeaveType(
            name=data.name,
            days_allowed=data.days_allowed,
            active=data.active,
        )
        db.add(leave_type)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            new_values=data.model_dump(),
        )
        logger.info("Leave type %s created (%d days)", leave_type.name, leave_type.days_allowed)
        return leave_type

    @staticmethod
    async def update_leave_type(
        db: AsyncSession,
        leave_type_id: uuid.UUID,
        data: LeaveTypeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveType:
        leave_type = await LeaveTypeCatalog._get_or_404(db, leave_type_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            await LeaveTypeCatalog._ensure_name_free(
                db, changes["name"], exclude_id=leave_type.id,
            )

        old_values = {
            "name": leave_type.name,
            "days_allowed": leave_type.days_allowed,
            "active": leave_type.active,
        }
        for field, value in changes.items():
            setattr(leave_type, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return leave_type

    @staticmethod
    async def delete_leave_type(
        db: AsyncSession,
        leave_type_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        leave_type = await LeaveTypeCatalog._get_or_404(db, leave_type_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            old_values={"name": leave_type.name, "days_allowed": leave_type.days_allowed},
        )
        await db.delete(leave_type)
        await db.flush()
        logger.info("Leave type %s deleted", leave_type.name)

    @staticmethod
    async def get_leave_utilization(
        db: AsyncSession,
        name: str,
    ) -> list[LeaveUtilizationOut]:
        """Approved days of leave type *name* per employee, most days first."""
        result = await db.execute(
            select(LeaveRequest, Employee)
            .join(Employee, LeaveRequest.employee_id == Employee.id)
            .where(
                LeaveRequest.leave_type == name,
                LeaveRequest.status == LeaveStatus.approved,
            )
        )

        totals: dict[uuid.UUID, LeaveUtilizationOut] = {}
        for req, emp in result.all():
            entry = totals.get(emp.id)
            if entry is None:
                entry = totals[emp.id] = LeaveUtilizationOut(
                    employee_id=emp.id,
                    employee_name=emp.full_name,
                    days_taken=0,
                )
            entry.days_taken += inclusive_day_count(req.start_date, req.end_date)

        return sorted(totals.values(), key=lambda u: (-u.days_taken, u.employee_name))
