"""Dashboard service — read-only aggregation queries across HR modules.

All methods are static async, following the project convention.
Counts are computed at DB level with COUNT / SUM.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.schemas import AttendanceOut
from hrms.attendance.service import AttendanceService
from hrms.common.audit import AuditTrail
from hrms.common.constants import AttendanceStatus, EmployeeStatus, LeaveStatus
from hrms.core_hr.models import Department, Employee
from hrms.leave.models import LeaveRequest
from hrms.leave.schemas import LeaveRequestOut
from hrms.payroll.models import Payroll, PayrollCycle
from hrms.payroll.schemas import PayrollOut

RECENT_LIMIT = 5


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


class DashboardService:
    """Async dashboard aggregation queries."""

    @staticmethod
    async def admin_stats(db: AsyncSession, organisation_id: uuid.UUID) -> dict[str, Any]:
        """Organisation KPIs for the admin landing page."""
        today = date.today()
        live_employees = (
            Employee.organisation_id == organisation_id,
            Employee.delete_flag.is_(False),
        )

        total_employees = (
            await db.execute(select(func.count()).select_from(Employee).where(*live_employees))
        ).scalar_one()
        active_employees = (
            await db.execute(
                select(func.count()).select_from(Employee).where(
                    *live_employees,
                    Employee.active_flag.is_(True),
                    Employee.status == EmployeeStatus.active.value,
                ),
            )
        ).scalar_one()
        departments = (
            await db.execute(
                select(func.count()).select_from(Department).where(
                    Department.organisation_id == organisation_id,
                    Department.delete_flag.is_(False),
                ),
            )
        ).scalar_one()
        present_today = (
            await db.execute(
                select(func.count()).select_from(AttendanceRecord).where(
                    AttendanceRecord.organisation_id == organisation_id,
                    AttendanceRecord.delete_flag.is_(False),
                    AttendanceRecord.date == today,
                    AttendanceRecord.status.in_([
                        AttendanceStatus.present.value, AttendanceStatus.half_day.value,
                    ]),
                ),
            )
        ).scalar_one()
        pending_leaves = (
            await db.execute(
                select(func.count()).select_from(LeaveRequest).where(
                    LeaveRequest.organisation_id == organisation_id,
                    LeaveRequest.delete_flag.is_(False),
                    LeaveRequest.status == LeaveStatus.pending.value,
                ),
            )
        ).scalar_one()

        latest_cycle = (
            await db.execute(
                select(PayrollCycle)
                .where(
                    PayrollCycle.organisation_id == organisation_id,
                    PayrollCycle.delete_flag.is_(False),
                )
                .order_by(PayrollCycle.pay_period_start.desc(), PayrollCycle.id)
                .limit(1),
            )
        ).scalars().first()

        recent_leaves = (
            await db.execute(
                select(LeaveRequest)
                .where(
                    LeaveRequest.organisation_id == organisation_id,
                    LeaveRequest.delete_flag.is_(False),
                )
                .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id)
                .limit(RECENT_LIMIT),
            )
        ).scalars().all()

        recent_activities = (
            await db.execute(
                select(AuditTrail)
                .where(AuditTrail.organisation_id == organisation_id)
                .order_by(AuditTrail.created_at.desc(), AuditTrail.id)
                .limit(RECENT_LIMIT),
            )
        ).scalars().all()

        return {
            "total_employees": total_employees,
            "active_employees": active_employees,
            "departments": departments,
            "present_today": present_today,
            "pending_leaves": pending_leaves,
            "total_payroll": float(latest_cycle.amount) if latest_cycle else 0.0,
            "latest_payroll_cycle": (
                {"id": str(latest_cycle.id), "name": latest_cycle.name} if latest_cycle else None
            ),
            "recent_leaves": [
                LeaveRequestOut.model_validate(item).model_dump(mode="json") for item in recent_leaves
            ],
            "recent_activities": [
                {
                    "id": str(entry.id),
                    "action": entry.action,
                    "entity_type": entry.entity_type,
                    "entity_id": str(entry.entity_id),
                    "actor_id": str(entry.actor_id) if entry.actor_id else None,
                    "actor_role": entry.actor_role,
                    "created_at": entry.created_at.isoformat(),
                }
                for entry in recent_activities
            ],
        }

    @staticmethod
    async def attendance_stats(
        db: AsyncSession,
        organisation_id: uuid.UUID,
        year: int,
        month: int,
    ) -> dict[str, Any]:
        """Attendance rate of a month compared with the month before."""
        prev_year, prev_month = _previous_month(year, month)
        current = await AttendanceService.month_rate(db, organisation_id, year, month)
        previous = await AttendanceService.month_rate(db, organisation_id, prev_year, prev_month)
        return {
            "year": year,
            "month": month,
            "attendance_rate": current,
            "previous_attendance_rate": previous,
            "change": round(current - previous, 2),
        }

    @staticmethod
    async def employee_stats(
        db: AsyncSession,
        organisation_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> dict[str, Any]:
        """The calling employee's own leave, payroll and attendance summary."""
        leave_counts = dict(
            (
                await db.execute(
                    select(LeaveRequest.status, func.count())
                    .where(
                        LeaveRequest.organisation_id == organisation_id,
                        LeaveRequest.employee_id == employee_id,
                        LeaveRequest.delete_flag.is_(False),
                    )
                    .group_by(LeaveRequest.status),
                )
            ).all(),
        )

        latest_payroll = (
            await db.execute(
                select(Payroll)
                .join(PayrollCycle, PayrollCycle.id == Payroll.payroll_cycle_id)
                .where(
                    Payroll.organisation_id == organisation_id,
                    Payroll.employee_id == employee_id,
                    Payroll.delete_flag.is_(False),
                )
                .order_by(PayrollCycle.pay_period_start.desc(), Payroll.id)
                .limit(1),
            )
        ).scalars().first()

        today_record = (
            await db.execute(
                select(AttendanceRecord).where(
                    AttendanceRecord.organisation_id == organisation_id,
                    AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.delete_flag.is_(False),
                    AttendanceRecord.date == date.today(),
                ),
            )
        ).scalars().first()

        return {
            "pending_leaves": leave_counts.get(LeaveStatus.pending.value, 0),
            "approved_leaves": leave_counts.get(LeaveStatus.approved.value, 0),
            "latest_payroll": (
                PayrollOut.model_validate(latest_payroll).model_dump(mode="json")
                if latest_payroll else None
            ),
            "today_attendance": (
                AttendanceOut.model_validate(today_record).model_dump(mode="json")
                if today_record else None
            ),
        }
