"""Leave Pydantic v2 schemas: request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.common.constants import LeaveStatus
from backoffice.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for requesting leave. Datetimes are accepted and truncated to
    their calendar date by the service; ordering is checked there too."""

    start_date: Union[dt.datetime, dt.date] = Field(..., description="First day of leave (inclusive)")
    end_date: Union[dt.datetime, dt.date] = Field(..., description="Last day of leave (inclusive)")
    type: str = Field(..., min_length=1, max_length=100, description="Leave type name")
    reason: Optional[str] = Field(None, max_length=1000)


class LeaveStatusUpdate(BaseModel):
    status: LeaveStatus

    @field_validator("status", mode="before")
    @classmethod
    def _lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    start_date: dt.date
    end_date: dt.date
    leave_type: str
    reason: Optional[str] = None
    status: LeaveStatus
    total_days: int
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None


class PendingLeaveOut(LeaveRequestOut):
    """Pending request with the requesting employee embedded."""

    employee: EmployeeBrief


class LeaveRequestListOut(BaseModel):
    data: list[LeaveRequestOut]
    meta: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    """Usage of one active leave type by one employee. Derived on every read."""

    name: str
    days_allowed: int
    days_taken: int
    days_remaining: int
