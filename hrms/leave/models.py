"""Leave ORM models: LeaveType, LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import OrgScopedMixin
from hrms.database import Base


class LeaveType(Base, OrgScopedMixin):
    __tablename__ = "leave_types"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    color: Mapped[Optional[str]] = mapped_column(sa.String(20))
    icon: Mapped[Optional[str]] = mapped_column(sa.String(50))
    category: Mapped[Optional[str]] = mapped_column(sa.String(50))

    # Accrual / balance configuration
    accrual_method: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="none")
    accrual_rate: Mapped[Optional[float]] = mapped_column(sa.Float)
    initial_balance: Mapped[Optional[float]] = mapped_column(sa.Float)
    max_balance: Mapped[Optional[float]] = mapped_column(sa.Float)
    allow_carry_forward: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    carry_forward_limit: Mapped[Optional[float]] = mapped_column(sa.Float)
    allow_encashment: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    # Request rules
    requires_approval: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    requires_documentation: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    min_advance_notice_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    max_consecutive_days: Mapped[Optional[int]] = mapped_column(sa.Integer)

    def __repr__(self) -> str:
        return f"<LeaveType {self.code!r}>"


class LeaveRequest(Base, OrgScopedMixin):
    __tablename__ = "leave_requests"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("leave_types.id"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_days: Mapped[float] = mapped_column(sa.Float, nullable=False)
    is_half_day: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    half_day_period: Mapped[Optional[str]] = mapped_column(sa.String(20))
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="PENDING")

    # Handover
    handover_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    handover_notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Decision
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    approver_comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    rejected_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.Index("ix_leave_requests_org_status", "organisation_id", "status"),
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(foreign_keys=[employee_id], viewonly=True)
    leave: Mapped["LeaveType"] = relationship(viewonly=True)
    handover_employee: Mapped[Optional["Employee"]] = relationship(
        foreign_keys=[handover_to], viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.employee_id} {self.start_date}..{self.end_date} {self.status}>"
