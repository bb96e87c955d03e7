"""Attendance service layer: clock in/out, stale-session closing, daily logs.

Business logic:
  - One open session per employee; clock-in serializes on the employee row
  - A session left open from a previous day is closed by the closing rule
    before a new one starts
  - Daily records (late / off-day / overtime) are derived on every read
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from backoffice.attendance.models import AttendanceSession
from backoffice.attendance.schemas import DailyAttendanceRecord, SessionResponse
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import END_OF_DAY
from backoffice.common.exceptions import (
    AlreadyClockedIn,
    NoActiveSession,
    NotFoundException,
)
from backoffice.common.timeutils import (
    as_utc,
    at_local_time,
    duration_ms,
    local_date,
    local_time,
    utcnow,
)
from backoffice.company.schemas import Schedule
from backoffice.company.service import ScheduleProvider
from backoffice.config import settings
from backoffice.core_hr.models import Employee

logger = logging.getLogger(__name__)

_MIN_SESSION = timedelta(seconds=1)


def resolve_close_time(
    clock_in: datetime,
    schedule: Schedule,
    tz: Optional[ZoneInfo] = None,
) -> datetime:
    """UTC instant at which an unattended session should be closed.

    Overtime enabled: 23:59:59.999 local on the clock-in date. Otherwise the
    scheduled end time on that date. A result at or before ``clock_in``
    becomes ``clock_in + 1s``.
    """
    clock_in = as_utc(clock_in)
    day = local_date(clock_in, tz)
    at = END_OF_DAY if schedule.enable_overtime else schedule.work_end_time
    close_at = at_local_time(day, at, tz)
    if close_at <= clock_in:
        close_at = clock_in + _MIN_SESSION
    return close_at


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Async attendance operations: clock in/out and daily logs."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _lock_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        """SELECT … FOR UPDATE on the employee row; concurrent clock actions
        for the same employee queue here."""
        result = await db.execute(
            select(Employee).where(Employee.id == employee_id).with_for_update()
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", employee_id)
        return employee

    @staticmethod
    async def _get_open_session(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Optional[AttendanceSession]:
        result = await db.execute(
            select(AttendanceSession)
            .where(
                AttendanceSession.employee_id == employee_id,
                AttendanceSession.clock_out.is_(None),
            )
            .order_by(AttendanceSession.clock_in.desc())
            .limit(1)
            .with_for_update()
        )
        return result.scalars().first()

    @staticmethod
    async def _close_if_open(
        db: AsyncSession,
        session: AttendanceSession,
        close_at: datetime,
    ) -> bool:
        """Set ``clock_out`` only while the row is still open. Returns False
        when another writer closed it first."""
        result = await db.execute(
            update(AttendanceSession)
            .where(
                AttendanceSession.id == session.id,
                AttendanceSession.clock_out.is_(None),
            )
            .values(clock_out=close_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(session, "clock_out", close_at)
        return True

    @staticmethod
    async def close_session(
        db: AsyncSession,
        session: AttendanceSession,
        close_at: datetime,
        *,
        reason: str,
    ) -> bool:
        """Close an open session at *close_at* and record an ``auto_close``
        audit entry. Returns False (and records nothing) if it was already
        closed."""
        if not await AttendanceService._close_if_open(db, session, close_at):
            logger.info("Session %s already closed, skipping %s", session.id, reason)
            return False
        await create_audit_entry(
            db,
            action="auto_close",
            entity_type="attendance_session",
            entity_id=session.id,
            new_values={
                "clock_in": as_utc(session.clock_in).isoformat(),
                "clock_out": close_at.isoformat(),
                "reason": reason,
            },
        )
        logger.info(
            "Auto-closed session %s for employee %s at %s (%s)",
            session.id, session.employee_id, close_at.isoformat(), reason,
        )
        return True

    # ─────────────────────────────────────────────────────────────────
    # Clock in / out
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        source: str = "web",
        ip_address: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceSession:
        """Open a new session. A stale session from an earlier day is closed
        first; an open session from today raises ``AlreadyClockedIn``."""
        now = as_utc(now) if now is not None else utcnow()
        tz = settings.company_tz

        await AttendanceService._lock_employee(db, employee_id)
        open_session = await AttendanceService._get_open_session(db, employee_id)

        if open_session is not None:
            if local_date(open_session.clock_in, tz) >= local_date(now, tz):
                raise AlreadyClockedIn(employee_id)
            schedule = await ScheduleProvider.get_schedule(db)
            await AttendanceService.close_session(
                db,
                open_session,
                resolve_close_time(open_session.clock_in, schedule, tz),
                reason="stale_on_clock_in",
            )

        session = AttendanceSession(
            employee_id=employee_id,
            clock_in=now,
            source=source,
            ip_address=ip_address,
            latitude=latitude,
            longitude=longitude,
        )
        db.add(session)
        try:
            await db.flush()
        except IntegrityError as exc:
            # Lost a race against a concurrent clock-in on the open-session index
            raise AlreadyClockedIn(employee_id) from exc

        await create_audit_entry(
            db,
            action="clock_in",
            entity_type="attendance_session",
            entity_id=session.id,
            actor_id=employee_id,
            new_values={"clock_in": now.isoformat(), "source": source},
            ip_address=ip_address,
        )
        logger.info("Employee %s clocked in at %s", employee_id, now.isoformat())
        return session

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceSession:
        """Close the employee's most recent open session at ``now``."""
        now = as_utc(now) if now is not None else utcnow()

        await AttendanceService._lock_employee(db, employee_id)
        session = await AttendanceService._get_open_session(db, employee_id)
        if session is None:
            raise NoActiveSession(employee_id)

        if not await AttendanceService._close_if_open(db, session, now):
            raise NoActiveSession(employee_id)

        await create_audit_entry(
            db,
            action="clock_out",
            entity_type="attendance_session",
            entity_id=session.id,
            actor_id=employee_id,
            new_values={"clock_out": now.isoformat()},
        )
        logger.info("Employee %s clocked out at %s", employee_id, now.isoformat())
        return session

    # ─────────────────────────────────────────────────────────────────
    # Logs
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_attendance_logs(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> list[DailyAttendanceRecord]:
        """Fold the employee's sessions into one record per local calendar
        day, most recent day first."""
        tz = settings.company_tz
        schedule = await ScheduleProvider.get_schedule(db)
        expected_ms = schedule.expected_daily_ms

        result = await db.execute(
            select(AttendanceSession)
            .where(AttendanceSession.employee_id == employee_id)
            .order_by(AttendanceSession.clock_in.asc())
        )

        days: dict = {}
        for session in result.scalars().all():
            clock_in = as_utc(session.clock_in)
            day = local_date(clock_in, tz)

            record = days.get(day)
            if record is None:
                is_off_day = not schedule.is_work_day(day)
                record = days[day] = DailyAttendanceRecord(
                    date=day,
                    first_clock_in=clock_in,
                    is_off_day=is_off_day,
                    is_late=(
                        not is_off_day
                        and local_time(clock_in, tz) > schedule.work_start_time
                    ),
                )
            record.sessions.append(SessionResponse.model_validate(session))

            if session.clock_out is None:
                record.is_active = True
                record.last_clock_out = None
                continue

            clock_out = as_utc(session.clock_out)
            record.total_duration_ms += max(0, duration_ms(clock_in, clock_out))
            if not record.is_active and (
                record.last_clock_out is None or clock_out > record.last_clock_out
            ):
                record.last_clock_out = clock_out

        for record in days.values():
            record.overtime_duration_ms = max(0, record.total_duration_ms - expected_ms)

        return sorted(days.values(), key=lambda r: r.date, reverse=True)
