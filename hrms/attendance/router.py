"""Attendance router — shifts, attendance rules, working-day rules, holidays
and daily attendance.

Routes:
    /shifts/*                                  — CRUD
    /attendance_rules/*                        — CRUD (attendance policies)
    /working_day_rules/create|list             — create, list
    /working_day_rule/update|one|delete        — single-rule actions
    /holidays/*                                — CRUD (delete also via POST)
    /attendance/*                              — CRUD on daily records
    /attendance/day                            — everyone's status on one day
    /attendance/statistics                     — counts for one day
    /attendance/calendar                       — one employee's month
"""


from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.schemas import (
    AttendanceCalendarRequest,
    AttendanceCreate,
    AttendanceDayRequest,
    AttendanceListRequest,
    AttendancePolicyCreate,
    AttendancePolicyListRequest,
    AttendancePolicyUpdate,
    AttendanceStatisticsRequest,
    AttendanceUpdate,
    HolidayCreate,
    HolidayListRequest,
    HolidayUpdate,
    ShiftCreate,
    ShiftUpdate,
    WorkDayRuleCreate,
    WorkDayRuleListRequest,
    WorkDayRuleUpdate,
)
from hrms.attendance.service import (
    AttendancePolicyService,
    AttendanceService,
    HolidayService,
    ShiftService,
    WorkDayRuleService,
)
from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.exceptions import ValidationException
from hrms.common.responses import envelope
from hrms.common.router import register_crud_routes
from hrms.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ═════════════════════════════════════════════════════════════════════
# Configuration resources
# ═════════════════════════════════════════════════════════════════════

register_crud_routes(
    router,
    resource="shifts",
    service=ShiftService,
    create_schema=ShiftCreate,
    update_schema=ShiftUpdate,
)

register_crud_routes(
    router,
    resource="attendance_rules",
    service=AttendancePolicyService,
    create_schema=AttendancePolicyCreate,
    update_schema=AttendancePolicyUpdate,
    list_schema=AttendancePolicyListRequest,
)

register_crud_routes(
    router,
    resource="working_day_rules",
    service=WorkDayRuleService,
    create_schema=WorkDayRuleCreate,
    update_schema=WorkDayRuleUpdate,
    list_schema=WorkDayRuleListRequest,
    paths={
        "update": "/working_day_rule/update",
        "one": "/working_day_rule/one",
        "delete": "/working_day_rule/delete",
    },
)

register_crud_routes(
    router,
    resource="holidays",
    service=HolidayService,
    create_schema=HolidayCreate,
    update_schema=HolidayUpdate,
    list_schema=HolidayListRequest,
    delete_methods=("PATCH", "POST"),
)


# ═════════════════════════════════════════════════════════════════════
# Attendance records: fixed paths first
# ═════════════════════════════════════════════════════════════════════


# ── POST /attendance/day ────────────────────────────────────────────

@router.post("/attendance/day")
async def attendance_for_day(
    body: AttendanceDayRequest,
    principal: Principal = Depends(require_permission("attendance", "day")),
    db: AsyncSession = Depends(get_db),
):
    """Every active employee with that day's record, or ``absent``."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    rows = await AttendanceService.day(db, org_id, body)
    return envelope(
        [row.model_dump(mode="json") for row in rows],
        "Attendance for the day fetched successfully.",
    )


# ── POST /attendance/statistics ─────────────────────────────────────

@router.post("/attendance/statistics")
async def attendance_statistics(
    body: AttendanceStatisticsRequest,
    principal: Principal = Depends(require_permission("attendance", "statistics")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    stats = await AttendanceService.statistics(db, org_id, body.date)
    return envelope(stats.model_dump(mode="json"), "Attendance statistics fetched successfully.")


# ── POST /attendance/calendar ───────────────────────────────────────

@router.post("/attendance/calendar")
async def attendance_calendar(
    body: AttendanceCalendarRequest,
    principal: Principal = Depends(require_permission("attendance", "calendar")),
    db: AsyncSession = Depends(get_db),
):
    """Per-day status for one employee and month; employees get their own."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    if principal.is_admin:
        if body.employee_id is None:
            raise ValidationException({"employee_id": ["This field is required."]})
        employee_id = body.employee_id
    else:
        employee_id = principal.id
    days = await AttendanceService.calendar(db, org_id, employee_id, body.year, body.month)
    return envelope(
        [day.model_dump(mode="json") for day in days],
        "Attendance calendar fetched successfully.",
    )


register_crud_routes(
    router,
    resource="attendance",
    service=AttendanceService,
    create_schema=AttendanceCreate,
    update_schema=AttendanceUpdate,
    list_schema=AttendanceListRequest,
)
