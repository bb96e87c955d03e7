"""Sales ORM model: Sale (header only; line items live with the POS)."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.common.timeutils import utcnow
from backoffice.database import Base

if TYPE_CHECKING:
    from backoffice.core_hr.models import Employee


class Sale(Base):
    __tablename__ = "sales"
    __table_args__ = (
        sa.Index("ix_sales_employee_timestamp", "employee_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    employee: Mapped["Employee"] = relationship(back_populates="sales")
