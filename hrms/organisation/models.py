"""Organisation ORM models: Organisation (tenant), Branch."""

from __future__ import annotations

import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.models import FlagsMixin, OrgScopedMixin
from hrms.database import Base


class Organisation(Base, FlagsMixin):
    """Top-level tenant; every other business row hangs off one."""

    __tablename__ = "organisations"

    admin_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(sa.String(50))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    plan: Mapped[str] = mapped_column(sa.String(30), nullable=False, default="free")
    active_modules: Mapped[Optional[list]] = mapped_column(JSONB)
    half_day_threshold_hours: Mapped[Optional[float]] = mapped_column(sa.Float)
    # Not a DB-level FK: working_day_rules already references organisations
    default_working_day_rule_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    time_zone: Mapped[str] = mapped_column(sa.String(64), nullable=False, default="Asia/Kolkata")
    time_zone_offset: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="+05:30")

    # Employee code generation
    is_employee_code_generation_type_auto: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False,
    )
    employee_code_prefix: Mapped[Optional[str]] = mapped_column(sa.String(20))
    employee_code_from: Mapped[Optional[int]] = mapped_column(sa.Integer)
    employee_code_current: Mapped[Optional[int]] = mapped_column(sa.Integer)
    employee_code_to: Mapped[Optional[int]] = mapped_column(sa.Integer)

    # Relationships
    admin: Mapped["Admin"] = relationship(back_populates="organisations")
    branches: Mapped[list["Branch"]] = relationship(
        primaryjoin="and_(Branch.organisation_id == Organisation.id, Branch.delete_flag.is_(False))",
        viewonly=True,
    )
    departments: Mapped[list["Department"]] = relationship(
        primaryjoin="and_(Department.organisation_id == Organisation.id, Department.delete_flag.is_(False))",
        viewonly=True,
    )
    designations: Mapped[list["Designation"]] = relationship(
        primaryjoin="and_(Designation.organisation_id == Organisation.id, Designation.delete_flag.is_(False))",
        viewonly=True,
    )
    employees: Mapped[list["Employee"]] = relationship(
        primaryjoin="and_(Employee.organisation_id == Organisation.id, Employee.delete_flag.is_(False))",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Organisation {self.name!r}>"


class Branch(Base, OrgScopedMixin):
    """A physical office location under an organisation."""

    __tablename__ = "branches"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(sa.Text)
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    state: Mapped[Optional[str]] = mapped_column(sa.String(100))
    country: Mapped[Optional[str]] = mapped_column(sa.String(100))
    pin_code: Mapped[Optional[str]] = mapped_column(sa.String(20))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))
    email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    manager_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    latitude: Mapped[Optional[str]] = mapped_column(sa.String(32))
    longitude: Mapped[Optional[str]] = mapped_column(sa.String(32))
    is_head_office: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Branch {self.code!r}>"
