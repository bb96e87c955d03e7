"""Company settings Pydantic v2 schemas, plus the Schedule snapshot used by
the attendance engine and the sweeper."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backoffice.common.constants import (
    DEFAULT_WORK_DAYS,
    DEFAULT_WORK_END,
    DEFAULT_WORK_START,
    WEEKDAY_NAMES,
)


# ═════════════════════════════════════════════════════════════════════
# Schedule snapshot
# ═════════════════════════════════════════════════════════════════════


class Schedule(BaseModel):
    """Immutable view of the working schedule at the moment it was read."""

    model_config = ConfigDict(frozen=True)

    work_days: tuple[str, ...] = DEFAULT_WORK_DAYS
    work_start_time: time = DEFAULT_WORK_START
    work_end_time: time = DEFAULT_WORK_END
    enable_overtime: bool = False

    def is_work_day(self, day: date) -> bool:
        return WEEKDAY_NAMES[day.weekday()] in self.work_days

    @property
    def expected_daily_ms(self) -> int:
        """Scheduled working time per day in milliseconds (never negative)."""
        anchor = date(2000, 1, 1)
        delta = datetime.combine(anchor, self.work_end_time) - datetime.combine(
            anchor, self.work_start_time,
        )
        return max(0, int(delta.total_seconds() * 1000))


# ═════════════════════════════════════════════════════════════════════
# Company settings
# ═════════════════════════════════════════════════════════════════════


class CompanySettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_name: str
    work_days: list[str]
    work_start_time: time
    work_end_time: time
    enable_overtime: bool
    updated_at: Optional[datetime] = None


class CompanySettingsUpdate(BaseModel):
    """Partial update: omitted fields keep their current value."""

    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    work_days: Optional[list[str]] = None
    work_start_time: Optional[time] = None
    work_end_time: Optional[time] = None
    enable_overtime: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Leave-type catalog
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    days_allowed: int = Field(..., ge=0, le=366)
    active: bool = True


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    days_allowed: Optional[int] = Field(None, ge=0, le=366)
    active: Optional[bool] = None


class LeaveTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    days_allowed: int
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeaveUtilizationOut(BaseModel):
    """Approved days of one leave type taken by one employee."""

    employee_id: uuid.UUID
    employee_name: str
    days_taken: int
