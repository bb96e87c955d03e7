"""Enums and constants for the back office: matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum
from datetime import time


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ── Schedule ────────────────────────────────────────────────────────

class Weekday(str, enum.Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"


# Index matches date.weekday() (0=Mon … 6=Sun)
WEEKDAY_NAMES: tuple[str, ...] = tuple(day.value for day in Weekday)

DEFAULT_COMPANY_NAME = "My Company"
DEFAULT_WORK_DAYS: tuple[str, ...] = WEEKDAY_NAMES[:5]
DEFAULT_WORK_START = time(9, 0)
DEFAULT_WORK_END = time(17, 0)

# Overtime-enabled stale sessions close at the last millisecond of their day
END_OF_DAY = time(23, 59, 59, 999000)


# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
