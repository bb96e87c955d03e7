"""Company settings, schedule snapshots and leave-type catalog tests."""

from __future__ import annotations

import uuid
from datetime import date, time

import pytest
from sqlalchemy import func, select

from backoffice.common.constants import LeaveStatus
from backoffice.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from backoffice.company.models import CompanySettings
from backoffice.company.schemas import (
    CompanySettingsUpdate,
    LeaveTypeCreate,
    LeaveTypeUpdate,
    Schedule,
)
from backoffice.company.service import (
    CompanySettingsService,
    LeaveTypeCatalog,
    ScheduleProvider,
)
from backoffice.leave.models import LeaveRequest
from tests.conftest import create_employee, create_leave_type, set_schedule


# ═════════════════════════════════════════════════════════════════════
# 1. SCHEDULE
# ═════════════════════════════════════════════════════════════════════


class TestSchedule:

    def test_defaults(self):
        schedule = Schedule()
        assert schedule.work_days == ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
        assert schedule.work_start_time == time(9, 0)
        assert schedule.work_end_time == time(17, 0)
        assert schedule.enable_overtime is False
        assert schedule.expected_daily_ms == 8 * 3_600_000

    def test_is_work_day(self):
        schedule = Schedule()
        assert schedule.is_work_day(date(2024, 1, 1)) is True    # Monday
        assert schedule.is_work_day(date(2024, 1, 6)) is False   # Saturday

    def test_inverted_hours_expect_nothing(self):
        schedule = Schedule(work_start_time=time(18, 0), work_end_time=time(9, 0))
        assert schedule.expected_daily_ms == 0


async def test_schedule_defaults_without_writing(db):
    schedule = await ScheduleProvider.get_schedule(db)

    assert schedule == Schedule()
    count = (await db.execute(select(func.count()).select_from(CompanySettings))).scalar_one()
    assert count == 0


async def test_schedule_reflects_stored_settings(db):
    await set_schedule(db, work_days=["Monday"], start=time(8, 0), end=time(12, 0), enable_overtime=True)

    schedule = await ScheduleProvider.get_schedule(db)

    assert schedule.work_days == ("Monday",)
    assert schedule.expected_daily_ms == 4 * 3_600_000
    assert schedule.enable_overtime is True


# ═════════════════════════════════════════════════════════════════════
# 2. COMPANY SETTINGS
# ═════════════════════════════════════════════════════════════════════


async def test_get_creates_default_row(db):
    row = await CompanySettingsService.get_company_settings(db)
    await db.commit()

    assert row.company_name == "My Company"
    assert row.work_days == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    again = await CompanySettingsService.get_company_settings(db)
    assert again.id == row.id


async def test_update_settings(db):
    row = await CompanySettingsService.update_company_settings(
        db,
        CompanySettingsUpdate(
            company_name="Corner Shop",
            work_days=["Saturday", "Monday", "Monday"],
            work_start_time=time(10, 0),
            work_end_time=time(19, 0),
            enable_overtime=True,
        ),
    )
    await db.commit()

    assert row.company_name == "Corner Shop"
    assert row.work_days == ["Monday", "Saturday"]
    assert row.enable_overtime is True
    schedule = await ScheduleProvider.get_schedule(db)
    assert schedule.work_end_time == time(19, 0)


async def test_update_rejects_start_not_before_end(db):
    with pytest.raises(ValidationException) as exc_info:
        await CompanySettingsService.update_company_settings(
            db, CompanySettingsUpdate(work_start_time=time(17, 0)),
        )
    assert "work_start_time" in exc_info.value.errors


async def test_update_rejects_unknown_weekday(db):
    with pytest.raises(ValidationException) as exc_info:
        await CompanySettingsService.update_company_settings(
            db, CompanySettingsUpdate(work_days=["Monday", "Funday"]),
        )
    assert "work_days" in exc_info.value.errors


# ═════════════════════════════════════════════════════════════════════
# 3. LEAVE-TYPE CATALOG
# ═════════════════════════════════════════════════════════════════════


async def test_create_and_list(db):
    await LeaveTypeCatalog.create_leave_type(db, LeaveTypeCreate(name="SICK", days_allowed=5))
    await LeaveTypeCatalog.create_leave_type(db, LeaveTypeCreate(name="ANNUAL", days_allowed=20))
    await LeaveTypeCatalog.create_leave_type(
        db, LeaveTypeCreate(name="LEGACY", days_allowed=1, active=False),
    )
    await db.commit()

    all_types = await LeaveTypeCatalog.list_leave_types(db)
    active = await LeaveTypeCatalog.list_active_leave_types(db)

    assert [t.name for t in all_types] == ["ANNUAL", "LEGACY", "SICK"]
    assert [t.name for t in active] == ["ANNUAL", "SICK"]


async def test_duplicate_name_conflicts(db):
    await create_leave_type(db, "SICK", 5)
    with pytest.raises(ConflictError):
        await LeaveTypeCatalog.create_leave_type(db, LeaveTypeCreate(name="SICK", days_allowed=3))


async def test_update_leave_type(db):
    lt = await create_leave_type(db, "SICK", 5)
    updated = await LeaveTypeCatalog.update_leave_type(
        db, lt.id, LeaveTypeUpdate(days_allowed=8, active=False),
    )
    assert updated.days_allowed == 8
    assert updated.active is False
    assert updated.name == "SICK"


async def test_rename_to_existing_conflicts(db):
    await create_leave_type(db, "SICK", 5)
    annual = await create_leave_type(db, "ANNUAL", 20)
    with pytest.raises(ConflictError):
        await LeaveTypeCatalog.update_leave_type(db, annual.id, LeaveTypeUpdate(name="SICK"))


async def test_rename_to_own_name_is_fine(db):
    sick = await create_leave_type(db, "SICK", 5)
    updated = await LeaveTypeCatalog.update_leave_type(db, sick.id, LeaveTypeUpdate(name="SICK"))
    assert updated.name == "SICK"


async def test_delete_leave_type(db):
    lt = await create_leave_type(db, "SICK", 5)
    await LeaveTypeCatalog.delete_leave_type(db, lt.id)
    await db.commit()
    assert await LeaveTypeCatalog.list_leave_types(db) == []


async def test_update_or_delete_unknown(db):
    with pytest.raises(NotFoundException):
        await LeaveTypeCatalog.update_leave_type(db, uuid.uuid4(), LeaveTypeUpdate(days_allowed=1))
    with pytest.raises(NotFoundException):
        await LeaveTypeCatalog.delete_leave_type(db, uuid.uuid4())


async def test_utilization_per_employee(db):
    ana = await create_employee(db, first_name="Ana", last_name="A")
    ben = await create_employee(db, first_name="Ben", last_name="B")
    for emp, start, end, status in [
        (ana, date(2024, 1, 1), date(2024, 1, 3), LeaveStatus.approved),
        (ana, date(2024, 2, 1), date(2024, 2, 1), LeaveStatus.approved),
        (ben, date(2024, 1, 1), date(2024, 1, 1), LeaveStatus.approved),
        (ben, date(2024, 3, 1), date(2024, 3, 9), LeaveStatus.pending),
    ]:
        db.add(LeaveRequest(
            employee_id=emp["id"], leave_type="SICK", start_date=start, end_date=end, status=status,
        ))
    await db.commit()

    usage = await LeaveTypeCatalog.get_leave_utilization(db, "SICK")

    assert [(u.employee_name, u.days_taken) for u in usage] == [("Ana A", 4), ("Ben B", 1)]


# ═════════════════════════════════════════════════════════════════════
# 4. HTTP API
# ═════════════════════════════════════════════════════════════════════


class TestSettingsAPI:

    async def test_read_company_settings(self, client, auth_headers):
        resp = await client.get("/api/v1/settings/company", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["work_start_time"] == "09:00:00"

    async def test_update_requires_admin(self, client, manager_headers):
        resp = await client.put(
            "/api/v1/settings/company", json={"enable_overtime": True}, headers=manager_headers,
        )
        assert resp.status_code == 403

    async def test_admin_updates_company_settings(self, client, admin_headers):
        resp = await client.put(
            "/api/v1/settings/company",
            json={"work_start_time": "08:00", "work_end_time": "16:00", "enable_overtime": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["enable_overtime"] is True

    async def test_invalid_hours_422(self, client, admin_headers):
        resp = await client.put(
            "/api/v1/settings/company",
            json={"work_start_time": "18:00", "work_end_time": "09:00"},
            headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["type"].endswith("/validation-error")

    async def test_leave_type_crud(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/settings/leave-types", json={"name": "SICK", "days_allowed": 5},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        lt_id = resp.json()["id"]

        dup = await client.post(
            "/api/v1/settings/leave-types", json={"name": "SICK", "days_allowed": 1},
            headers=admin_headers,
        )
        assert dup.status_code == 409

        resp = await client.put(
            f"/api/v1/settings/leave-types/{lt_id}", json={"days_allowed": 7},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["days_allowed"] == 7

        resp = await client.get(
            "/api/v1/settings/leave-types", params={"active": "true"}, headers=admin_headers,
        )
        assert [t["name"] for t in resp.json()] == ["SICK"]

        resp = await client.delete(f"/api/v1/settings/leave-types/{lt_id}", headers=admin_headers)
        assert resp.status_code == 204

    async def test_employee_cannot_create_leave_type(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/settings/leave-types", json={"name": "SICK", "days_allowed": 5},
            headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_utilization_requires_manager(self, client, auth_headers, manager_headers):
        url = "/api/v1/settings/leave-types/SICK/utilization"
        assert (await client.get(url, headers=auth_headers)).status_code == 403
        resp = await client.get(url, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json() == []
