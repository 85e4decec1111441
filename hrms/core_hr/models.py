"""Core HR ORM models: Department, Designation, Employee, EmployeeDocument.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import OrgScopedMixin
from hrms.database import Base


class Department(Base, OrgScopedMixin):
    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Relationships
    designations: Mapped[list["Designation"]] = relationship(
        primaryjoin="and_(Designation.department_id == Department.id, Designation.delete_flag.is_(False))",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


class Designation(Base, OrgScopedMixin):
    __tablename__ = "designations"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    positions: Mapped[Optional[int]] = mapped_column(sa.Integer)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )

    # Relationships
    department: Mapped[Optional["Department"]] = relationship(viewonly=True)

    def __repr__(self) -> str:
        return f"<Designation {self.name!r}>"


class Employee(Base, OrgScopedMixin):
    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    mobile: Mapped[Optional[str]] = mapped_column(sa.String(20))
    password_hash: Mapped[Optional[str]] = mapped_column(sa.String(255))
    included_in_payroll: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="active")

    # Personal
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    gender: Mapped[Optional[str]] = mapped_column(sa.String(20))
    address: Mapped[Optional[str]] = mapped_column(sa.Text)
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    state: Mapped[Optional[str]] = mapped_column(sa.String(100))
    country: Mapped[Optional[str]] = mapped_column(sa.String(100))
    pin_code: Mapped[Optional[str]] = mapped_column(sa.String(20))
    emergency_contact: Mapped[Optional[str]] = mapped_column(sa.String(100))
    pan_number: Mapped[Optional[str]] = mapped_column(sa.String(20))
    adhaar_number: Mapped[Optional[str]] = mapped_column(sa.String(20))
    image: Mapped[Optional[str]] = mapped_column(sa.String(500))

    # Employment
    joining_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    designation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("designations.id"),
    )
    shift_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("shifts.id"),
    )
    attendance_rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("attendance_rules.id"),
    )
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("branches.id"),
    )

    # Compensation
    bank_details: Mapped[Optional[dict]] = mapped_column(JSONB)
    ctc: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    basic_salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))

    # Login
    otp_hash: Mapped[Optional[str]] = mapped_column(sa.String(128))
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    last_login_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.Index("ix_employees_org_code", "organisation_id", "code"),
        sa.Index("ix_employees_email", "email"),
        sa.Index("ix_employees_mobile", "mobile"),
    )

    # Relationships
    organisation: Mapped["Organisation"] = relationship(viewonly=True)
    department: Mapped[Optional["Department"]] = relationship(viewonly=True)
    designation: Mapped[Optional["Designation"]] = relationship(viewonly=True)
    shift: Mapped[Optional["Shift"]] = relationship(viewonly=True)
    attendance_rule: Mapped[Optional["AttendancePolicy"]] = relationship(viewonly=True)
    branch: Mapped[Optional["Branch"]] = relationship(viewonly=True)

    def __repr__(self) -> str:
        return f"<Employee {self.code!r} {self.name!r}>"


class EmployeeDocument(Base, OrgScopedMixin):
    """Uploaded file attached to an employee (ID proof, contract, ...)."""

    __tablename__ = "employee_documents"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type: Mapped[str] = mapped_column(sa.String(30), nullable=False, default="other")
    file_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    stored_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    content_type: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<EmployeeDocument {self.file_name!r}>"
