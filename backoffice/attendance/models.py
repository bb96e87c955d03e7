"""Attendance ORM model: AttendanceSession (one clock-in/clock-out pair)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.common.timeutils import utcnow
from backoffice.database import Base

if TYPE_CHECKING:
    from backoffice.core_hr.models import Employee


class AttendanceSession(Base):
    """A single worked interval. ``clock_out`` is NULL while the session is open.

    At most one open session per employee, enforced by the partial unique
    index below.
    """

    __tablename__ = "attendance_sessions"
    __table_args__ = (
        sa.Index(
            "uq_attendance_open_session",
            "employee_id",
            unique=True,
            postgresql_where=sa.text("clock_out IS NULL"),
            sqlite_where=sa.text("clock_out IS NULL"),
        ),
        sa.Index("ix_attendance_sessions_employee_clock_in", "employee_id", "clock_in"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    clock_in: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    clock_out: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    latitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    longitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    source: Mapped[str] = mapped_column(sa.String(20), default="web")
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow
    )

    employee: Mapped["Employee"] = relationship(back_populates="attendance_sessions")

    def __repr__(self) -> str:
        return f"<AttendanceSession {self.employee_id} {self.clock_in} -> {self.clock_out}>"
