"""Payroll ORM models: SalaryComponentType, SalaryComponent, PayrollCycle, Payroll.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import OrgScopedMixin
from hrms.database import Base


class SalaryComponentType(Base, OrgScopedMixin):
    """Component definition (e.g. HRA as EARNING, PF as DEDUCTION)."""

    __tablename__ = "salary_component_types"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    type: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="EARNING")
    sequence: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    def __repr__(self) -> str:
        return f"<SalaryComponentType {self.name!r} {self.type}>"


class SalaryComponent(Base, OrgScopedMixin):
    """A component assigned to one employee, fixed amount or % of basic."""

    __tablename__ = "salary_components"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    salary_component_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("salary_component_types.id"), nullable=False,
    )
    calculation: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="FIXED")
    value: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)
    formula: Mapped[Optional[str]] = mapped_column(sa.String(255))
    is_taxable: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    # Relationships
    employee: Mapped["Employee"] = relationship(viewonly=True)
    salary_component_type: Mapped["SalaryComponentType"] = relationship(viewonly=True)


class PayrollCycle(Base, OrgScopedMixin):
    __tablename__ = "payroll_cycles"

    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    pay_period_start: Mapped[date] = mapped_column(sa.Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="DRAFT")
    salary_month: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    salary_year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    working_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    # Sum of net_salary over the cycle's live payrolls, kept in sync by PayrollService
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<PayrollCycle {self.name!r} {self.salary_month}/{self.salary_year}>"


class Payroll(Base, OrgScopedMixin):
    """One employee's pay slip within a payroll cycle."""

    __tablename__ = "payrolls"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payroll_cycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("payroll_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="DRAFT")

    # Day counts
    working_days: Mapped[Optional[int]] = mapped_column(sa.Integer)
    present_days: Mapped[Optional[float]] = mapped_column(sa.Float)
    absent_days: Mapped[Optional[float]] = mapped_column(sa.Float)
    leave_days: Mapped[Optional[float]] = mapped_column(sa.Float)

    # Amounts
    basic_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)
    total_allowances: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)
    total_deductions: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)
    gross_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)
    net_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=0)

    payment_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    payment_method: Mapped[Optional[str]] = mapped_column(sa.String(30))
    remarks: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Relationships
    employee: Mapped["Employee"] = relationship(viewonly=True)
    payroll_cycle: Mapped["PayrollCycle"] = relationship(viewonly=True)

    def __repr__(self) -> str:
        return f"<Payroll {self.employee_id} cycle={self.payroll_cycle_id} {self.status}>"
