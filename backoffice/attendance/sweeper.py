"""Reconciliation sweeper: closes sessions nobody clocked out of.

Runs on an APScheduler interval job started from the application lifespan.
Each open session is reconciled in its own short transaction, so one bad row
never blocks the rest of the sweep.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.attendance.models import AttendanceSession
from backoffice.attendance.service import AttendanceService, resolve_close_time
from backoffice.common.timeutils import as_utc, at_local_time, local_date, utcnow
from backoffice.company.schemas import Schedule
from backoffice.company.service import ScheduleProvider
from backoffice.config import settings
from backoffice.core_hr.models import Employee
from backoffice.database import async_session_factory

logger = logging.getLogger(__name__)

SWEEPER_JOB_ID = "attendance-reconciliation"


def close_time_for(
    clock_in: datetime,
    schedule: Schedule,
    now: datetime,
    tz: Optional[ZoneInfo] = None,
) -> Optional[datetime]:
    """When the sweeper should close a session opened at *clock_in*, or None
    to leave it open.

    - clocked in on an earlier (or later) local day: closing rule
    - clocked in today, overtime off, past the scheduled end: closing rule
    - clocked in today otherwise: leave open
    """
    clock_in = as_utc(clock_in)
    today = local_date(now, tz)
    if local_date(clock_in, tz) != today:
        return resolve_close_time(clock_in, schedule, tz)
    if schedule.enable_overtime:
        return None
    if now > at_local_time(today, schedule.work_end_time, tz):
        return resolve_close_time(clock_in, schedule, tz)
    return None


class ReconciliationSweeper:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        tz: Optional[ZoneInfo] = None,
    ) -> None:
        self._session_factory = session_factory
        self._tz = tz

    async def _open_sessions(self) -> list[tuple[uuid.UUID, uuid.UUID]]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AttendanceSession.id, AttendanceSession.employee_id)
                .where(AttendanceSession.clock_out.is_(None))
            )
            return [(row.id, row.employee_id) for row in result.all()]

    async def _reconcile(
        self,
        session_id: uuid.UUID,
        employee_id: uuid.UUID,
        now: datetime,
    ) -> bool:
        tz = self._tz or settings.company_tz
        async with self._session_factory() as db:
            async with db.begin():
                # Employee row first, same lock order as clock in/out
                await db.execute(
                    select(Employee.id).where(Employee.id == employee_id).with_for_update()
                )
                # Re-check: a clock-out may have landed since the scan
                result = await db.execute(
                    select(AttendanceSession)
                    .where(
                        AttendanceSession.id == session_id,
                        AttendanceSession.clock_out.is_(None),
                    )
                    .with_for_update()
                )
                session = result.scalars().first()
                if session is None:
                    return False

                schedule = await ScheduleProvider.get_schedule(db)
                close_at = close_time_for(session.clock_in, schedule, now, tz)
                if close_at is None:
                    return False

                return await AttendanceService.close_session(
                    db, session, close_at, reason="sweeper",
                )

    async def run(self, now: Optional[datetime] = None) -> int:
        """Close every open session that should no longer be open. Returns
        the number of sessions closed."""
        now = as_utc(now) if now is not None else utcnow()
        closed = 0
        for session_id, employee_id in await self._open_sessions():
            try:
                if await self._reconcile(session_id, employee_id, now):
                    closed += 1
            except Exception:
                logger.exception("Failed to reconcile attendance session %s", session_id)

        if closed:
            logger.info("Sweeper closed %d attendance session(s)", closed)
        else:
            logger.debug("Sweeper found nothing to close")
        return closed


# ── Scheduler wiring (called from main.py lifespan) ─────────────────

def start_sweeper(
    interval_seconds: int = 60,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> AsyncIOScheduler:
    """Register the sweeper as an interval job and start the scheduler.
    Must be called with the event loop running."""
    sweeper = ReconciliationSweeper(session_factory)
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        sweeper.run,
        "interval",
        seconds=interval_seconds,
        id=SWEEPER_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Attendance sweeper started (every %ds)", interval_seconds)
    return scheduler
