"""Dashboard router — read-only endpoints for dashboard widgets.

``/dashboard/stats`` and ``/dashboard/attendance-stats`` are admin views;
``/dashboard/employee`` is the employee's own summary.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.responses import envelope
from hrms.dashboard.service import DashboardService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["dashboard"])


class DashboardRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None


class AttendanceStatsRequest(DashboardRequest):
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=1970, le=2100)


# ── POST /dashboard/stats ───────────────────────────────────────────

@router.post("/dashboard/stats")
async def dashboard_stats(
    body: DashboardRequest,
    principal: Principal = Depends(require_permission("dashboard", "stats")),
    db: AsyncSession = Depends(get_db),
):
    """KPI summary: head count, present today, pending leave, payroll."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    stats = await DashboardService.admin_stats(db, org_id)
    return envelope(stats, "Dashboard stats fetched successfully.")


# ── POST /dashboard/attendance-stats ────────────────────────────────

@router.post("/dashboard/attendance-stats")
async def dashboard_attendance_stats(
    body: AttendanceStatsRequest,
    principal: Principal = Depends(require_permission("dashboard", "attendance_stats")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    today = date.today()
    stats = await DashboardService.attendance_stats(
        db, org_id, body.year or today.year, body.month or today.month,
    )
    return envelope(stats, "Attendance stats fetched successfully.")


# ── POST /dashboard/employee ────────────────────────────────────────

@router.post("/dashboard/employee")
async def dashboard_employee(
    body: DashboardRequest,
    principal: Principal = Depends(require_permission("dashboard", "employee")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    stats = await DashboardService.employee_stats(db, org_id, principal.id)
    return envelope(stats, "Employee dashboard fetched successfully.")
