"""Company ORM model: CompanySettings (single row)."""

from __future__ import annotations

import uuid
from datetime import datetime, time

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import (
    DEFAULT_COMPANY_NAME,
    DEFAULT_WORK_DAYS,
    DEFAULT_WORK_END,
    DEFAULT_WORK_START,
)
from backoffice.common.timeutils import utcnow
from backoffice.database import Base


class CompanySettings(Base):
    """Working schedule and company identity. The table holds at most one row."""

    __tablename__ = "company_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_name: Mapped[str] = mapped_column(
        sa.String(255), nullable=False, default=DEFAULT_COMPANY_NAME,
    )
    # Weekday names, e.g. ["Monday", "Tuesday", ...]
    work_days: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=lambda: list(DEFAULT_WORK_DAYS),
    )
    work_start_time: Mapped[time] = mapped_column(
        sa.Time, nullable=False, default=DEFAULT_WORK_START,
    )
    work_end_time: Mapped[time] = mapped_column(
        sa.Time, nullable=False, default=DEFAULT_WORK_END,
    )
    enable_overtime: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return (
            f"<CompanySettings {self.company_name} "
            f"{self.work_start_time}-{self.work_end_time} overtime={self.enable_overtime}>"
        )
