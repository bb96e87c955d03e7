"""Attendance Pydantic v2 schemas: clock requests, sessions, daily records."""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.common.timeutils import as_utc


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class ClockInRequest(BaseModel):
    source: str = Field("web", max_length=20, description="web | mobile | kiosk")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class SessionResponse(BaseModel):
    """One clock-in/clock-out pair, timestamps in UTC."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    clock_in: dt.datetime
    clock_out: Optional[dt.datetime] = None
    source: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("clock_in", "clock_out")
    @classmethod
    def _to_utc(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v) if v is not None else None


class DailyAttendanceRecord(BaseModel):
    """Per-day fold of an employee's sessions. Derived on every read."""

    date: dt.date
    first_clock_in: dt.datetime
    last_clock_out: Optional[dt.datetime] = None
    total_duration_ms: int = 0
    is_active: bool = False
    is_off_day: bool = False
    is_late: bool = False
    overtime_duration_ms: int = 0
    sessions: list[SessionResponse] = Field(default_factory=list)
