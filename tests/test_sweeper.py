"""Reconciliation sweeper tests: which open sessions get closed, when,
and that a second run changes nothing."""

from __future__ import annotations

from datetime import time
from unittest.mock import patch

from sqlalchemy import select

from backoffice.attendance.models import AttendanceSession
from backoffice.attendance.service import AttendanceService
from backoffice.attendance.sweeper import (
    SWEEPER_JOB_ID,
    ReconciliationSweeper,
    close_time_for,
    start_sweeper,
)
from backoffice.common.audit import AuditTrail
from backoffice.company.schemas import Schedule
from tests.conftest import COMPANY_TZ, as_aware, create_employee, local_dt, set_schedule


async def _open(db, emp_id, clock_in) -> AttendanceSession:
    session = AttendanceSession(employee_id=emp_id, clock_in=clock_in)
    db.add(session)
    await db.commit()
    return session


async def _reload(session_factory, session_id) -> AttendanceSession:
    async with session_factory() as fresh:
        return await fresh.get(AttendanceSession, session_id)


# ═════════════════════════════════════════════════════════════════════
# Decision table
# ═════════════════════════════════════════════════════════════════════


class TestCloseTimeFor:

    def test_previous_day_closed_by_closing_rule(self):
        schedule = Schedule(work_end_time=time(17, 0))
        close_at = close_time_for(
            local_dt(2024, 1, 1, 9), schedule, local_dt(2024, 1, 2, 8), COMPANY_TZ,
        )
        assert close_at == local_dt(2024, 1, 1, 17)

    def test_previous_day_with_overtime_closed_at_end_of_day(self):
        schedule = Schedule(enable_overtime=True)
        close_at = close_time_for(
            local_dt(2024, 1, 1, 9), schedule, local_dt(2024, 1, 2, 8), COMPANY_TZ,
        )
        assert close_at == local_dt(2024, 1, 1, 23, 59, 59, 999000)

    def test_today_before_end_left_open(self):
        schedule = Schedule(work_end_time=time(17, 0))
        assert close_time_for(
            local_dt(2024, 1, 1, 9), schedule, local_dt(2024, 1, 1, 16, 59), COMPANY_TZ,
        ) is None

    def test_today_past_end_closed_at_end(self):
        schedule = Schedule(work_end_time=time(17, 0))
        close_at = close_time_for(
            local_dt(2024, 1, 1, 9), schedule, local_dt(2024, 1, 1, 17, 1), COMPANY_TZ,
        )
        assert close_at == local_dt(2024, 1, 1, 17)

    def test_today_with_overtime_left_open(self):
        schedule = Schedule(work_end_time=time(17, 0), enable_overtime=True)
        assert close_time_for(
            local_dt(2024, 1, 1, 9), schedule, local_dt(2024, 1, 1, 22), COMPANY_TZ,
        ) is None

    def test_today_started_after_end_gets_one_second(self):
        schedule = Schedule(work_end_time=time(17, 0))
        close_at = close_time_for(
            local_dt(2024, 1, 1, 18), schedule, local_dt(2024, 1, 1, 19), COMPANY_TZ,
        )
        assert close_at == local_dt(2024, 1, 1, 18, 0, 1)


# ═════════════════════════════════════════════════════════════════════
# Runs
# ═════════════════════════════════════════════════════════════════════


async def test_sweeper_closes_stale_and_leaves_current(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0))
    other = await create_employee(db, first_name="Other")
    stale = await _open(db, test_employee["id"], local_dt(2024, 1, 1, 9))
    current = await _open(db, other["id"], local_dt(2024, 1, 2, 9))

    closed = await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 10))

    assert closed == 1
    assert as_aware((await _reload(session_factory, stale.id)).clock_out) == local_dt(2024, 1, 1, 17)
    assert (await _reload(session_factory, current.id)).clock_out is None


async def test_sweeper_closes_today_after_end_without_overtime(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0), enable_overtime=False)
    session = await _open(db, test_employee["id"], local_dt(2024, 1, 2, 9))

    closed = await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 17, 30))

    assert closed == 1
    assert as_aware((await _reload(session_factory, session.id)).clock_out) == local_dt(2024, 1, 2, 17)


async def test_sweeper_leaves_today_open_with_overtime(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0), enable_overtime=True)
    session = await _open(db, test_employee["id"], local_dt(2024, 1, 2, 9))

    closed = await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 21))

    assert closed == 0
    assert (await _reload(session_factory, session.id)).clock_out is None


async def test_second_run_changes_nothing(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0))
    session = await _open(db, test_employee["id"], local_dt(2024, 1, 1, 9))
    sweeper = ReconciliationSweeper(session_factory)
    now = local_dt(2024, 1, 2, 10)

    assert await sweeper.run(now=now) == 1
    first_close = (await _reload(session_factory, session.id)).clock_out

    assert await sweeper.run(now=now) == 0
    assert (await _reload(session_factory, session.id)).clock_out == first_close

    async with session_factory() as fresh:
        audits = (await fresh.execute(
            select(AuditTrail).where(AuditTrail.action == "auto_close")
        )).scalars().all()
    assert len(audits) == 1


async def test_sweeper_skips_failing_session(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0))
    other = await create_employee(db, first_name="Other")
    broken = await _open(db, test_employee["id"], local_dt(2024, 1, 1, 9))
    healthy = await _open(db, other["id"], local_dt(2024, 1, 1, 10))

    from backoffice.attendance import sweeper as sweeper_module

    real_close_time_for = sweeper_module.close_time_for

    def flaky_close_time_for(clock_in, schedule, now, tz=None):
        if as_aware(clock_in) == local_dt(2024, 1, 1, 9):
            raise RuntimeError("boom")
        return real_close_time_for(clock_in, schedule, now, tz)

    with patch.object(sweeper_module, "close_time_for", flaky_close_time_for):
        closed = await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 10))

    assert closed == 1
    assert (await _reload(session_factory, broken.id)).clock_out is None
    assert (await _reload(session_factory, healthy.id)).clock_out is not None


async def test_clock_out_between_scan_and_close(db, session_factory, test_employee):
    await set_schedule(db, end=time(17, 0))
    session = await _open(db, test_employee["id"], local_dt(2024, 1, 1, 9))
    scan = ReconciliationSweeper._open_sessions

    async def scan_then_clock_out(self):
        found = await scan(self)
        async with session_factory() as other:
            await AttendanceService.clock_out(
                other, test_employee["id"], now=local_dt(2024, 1, 1, 16),
            )
            await other.commit()
        return found

    with patch.object(ReconciliationSweeper, "_open_sessions", scan_then_clock_out):
        closed = await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 10))

    assert closed == 0
    assert as_aware((await _reload(session_factory, session.id)).clock_out) == local_dt(2024, 1, 1, 16)


async def test_sweeper_with_nothing_open(session_factory):
    assert await ReconciliationSweeper(session_factory).run(now=local_dt(2024, 1, 2, 10)) == 0


async def test_start_sweeper_registers_interval_job(session_factory):
    scheduler = start_sweeper(30, session_factory)
    try:
        job = scheduler.get_job(SWEEPER_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval.total_seconds() == 30
    finally:
        scheduler.shutdown(wait=False)
