"""Attendance ORM models: Shift, AttendancePolicy, WorkDayRule, Holiday,
AttendanceRecord."""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import OrgScopedMixin
from hrms.database import Base


class Shift(Base, OrgScopedMixin):
    __tablename__ = "shifts"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    # "HH:MM", 24h clock; end < start means an overnight shift
    start: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    end: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    grace_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<Shift {self.name!r} {self.start}-{self.end}>"


class AttendancePolicy(Base, OrgScopedMixin):
    """Attendance configuration: geo-fencing, selfie, allowed check-in channels."""

    __tablename__ = "attendance_rules"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    geo_tracking_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    geo_radius_meters: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=100)
    latitude: Mapped[Optional[str]] = mapped_column(sa.String(32))
    longitude: Mapped[Optional[str]] = mapped_column(sa.String(32))
    selfie_required: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    web_attendance_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    mobile_attendance_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    regularization_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    grace_period_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    overtime_threshold_hours: Mapped[Optional[float]] = mapped_column(sa.Float)
    break_management_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<AttendancePolicy {self.name!r}>"


class WorkDayRule(Base, OrgScopedMixin):
    __tablename__ = "working_day_rules"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    workweek: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="five_days")
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<WorkDayRule {self.name!r} {self.workweek}>"


class Holiday(Base, OrgScopedMixin):
    __tablename__ = "holidays"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="normal")
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_recurring: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    __table_args__ = (
        sa.Index("ix_holidays_org_date", "organisation_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Holiday {self.name!r} {self.date}>"


class AttendanceRecord(Base, OrgScopedMixin):
    """One employee's attendance for one calendar day."""

    __tablename__ = "attendance_records"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="present")
    check_in_time: Mapped[Optional[dt.time]] = mapped_column(sa.Time)
    check_out_time: Mapped[Optional[dt.time]] = mapped_column(sa.Time)
    total_hours: Mapped[Optional[float]] = mapped_column(sa.Float)
    late_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    early_departure: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="web")
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.Index("ix_attendance_records_employee_date", "employee_id", "date"),
        sa.Index("ix_attendance_records_org_date", "organisation_id", "date"),
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(viewonly=True)

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.employee_id} {self.date} {self.status}>"
