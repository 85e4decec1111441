"""Attendance service layer — shifts, policies, work-day rules, holidays
and daily attendance records.

Derived record fields:
  - ``total_hours``: check-out minus check-in; a check-out at or before the
    check-in is taken to be on the next day.
  - ``late_minutes``: minutes after shift start plus grace.
  - ``early_departure``: check-out before shift end.
  - ``status`` (when not given): ``present``, or ``half-day`` when
    ``total_hours`` is below the organisation's half-day threshold.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, time
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendancePolicy, AttendanceRecord, Holiday, Shift, WorkDayRule
from hrms.attendance.schemas import (
    AttendanceDayRequest,
    AttendanceDayRow,
    AttendanceOut,
    AttendancePolicyOut,
    AttendanceStatistics,
    CalendarDay,
    HolidayOut,
    ShiftOut,
    WorkDayRuleOut,
)
from hrms.common.constants import AttendanceStatus, LeaveStatus, Workweek
from hrms.common.crud import CrudService
from hrms.common.exceptions import ConflictError, NotFoundException, ValidationException
from hrms.common.validators import coordinate_errors, parse_hhmm
from hrms.core_hr.models import Employee
from hrms.core_hr.schemas import EmployeeBrief
from hrms.leave.models import LeaveRequest
from hrms.organisation.models import Organisation

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

# weekday() numbers treated as off days
WEEKEND_DAYS = {
    Workweek.five_days.value: {5, 6},
    Workweek.six_days.value: {6},
    Workweek.seven_days.value: set(),
}


# ═════════════════════════════════════════════════════════════════════
# Configuration resources
# ═════════════════════════════════════════════════════════════════════


class ShiftService(CrudService):
    model = Shift
    entity_name = "Shift"
    entity_type = "shift"
    out_schema = ShiftOut
    unique_fields = ("name",)
    default_sort = "start"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        if values["start"] == values["end"]:
            raise ValidationException({"end": ["Shift end must differ from its start."]})

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        await _ensure_unassigned(db, Employee.shift_id, obj)


class AttendancePolicyService(CrudService):
    model = AttendancePolicy
    entity_name = "Attendance rule"
    entity_type = "attendance_rule"
    out_schema = AttendancePolicyOut
    search_columns = ("name", "description")
    unique_fields = ("name",)
    default_sort = "name"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        errors = coordinate_errors(values)
        if values.get("geo_tracking_enabled"):
            for field in ("latitude", "longitude"):
                if values.get(field) in (None, ""):
                    errors.setdefault(field, []).append(
                        "Required when geo tracking is enabled.",
                    )
        if errors:
            raise ValidationException(errors)

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        await _ensure_unassigned(db, Employee.attendance_rule_id, obj)


class WorkDayRuleService(CrudService):
    model = WorkDayRule
    entity_name = "Working day rule"
    entity_type = "working_day_rule"
    out_schema = WorkDayRuleOut
    unique_fields = ("name",)
    default_sort = "name"

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        result = await db.execute(
            select(Organisation.id).where(Organisation.default_working_day_rule_id == obj.id),
        )
        if result.first() is not None:
            raise ConflictError(
                "working_day_rule", obj.name,
                detail=f"Working day rule '{obj.name}' is the organisation default.",
            )


class HolidayService(CrudService):
    model = Holiday
    entity_name = "Holiday"
    entity_type = "holiday"
    out_schema = HolidayOut
    search_columns = ("name", "description")
    default_sort = "date"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        query = select(func.count()).select_from(Holiday).where(
            Holiday.organisation_id == organisation_id,
            Holiday.delete_flag.is_(False),
            Holiday.date == values["date"],
        )
        if instance is not None:
            query = query.where(Holiday.id != instance.id)
        if (await db.execute(query)).scalar_one():
            raise ConflictError("date", values["date"].isoformat())


async def _ensure_unassigned(db: AsyncSession, column, obj) -> None:
    result = await db.execute(
        select(func.count()).select_from(Employee).where(
            column == obj.id,
            Employee.delete_flag.is_(False),
        ),
    )
    in_use = result.scalar_one()
    if in_use:
        raise ConflictError(
            obj.__tablename__, obj.name,
            detail=f"'{obj.name}' is still assigned to {in_use} employee(s).",
        )


# ═════════════════════════════════════════════════════════════════════
# Attendance records
# ═════════════════════════════════════════════════════════════════════


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def worked_hours(check_in: Optional[time], check_out: Optional[time]) -> Optional[float]:
    """Hours between check-in and check-out, overnight aware."""
    if check_in is None or check_out is None:
        return None
    span = _minutes(check_out) - _minutes(check_in)
    if span <= 0:
        span += MINUTES_PER_DAY
    return round(span / 60, 2)


def late_minutes(check_in: Optional[time], shift: Optional[Shift]) -> int:
    """Minutes past shift start plus grace (0 when on time or no shift)."""
    if check_in is None or shift is None:
        return 0
    diff = _minutes(check_in) - _minutes(parse_hhmm(shift.start))
    # Check-in shortly after midnight for a late-evening shift
    if diff < -MINUTES_PER_DAY // 2:
        diff += MINUTES_PER_DAY
    return max(diff - (shift.grace_minutes or 0), 0)


def left_early(check_out: Optional[time], shift: Optional[Shift]) -> bool:
    if check_out is None or shift is None:
        return False
    before_end = (_minutes(parse_hhmm(shift.end)) - _minutes(check_out)) % MINUTES_PER_DAY
    return 0 < before_end < MINUTES_PER_DAY // 2


class AttendanceService(CrudService):
    model = AttendanceRecord
    entity_name = "Attendance"
    entity_type = "attendance"
    out_schema = AttendanceOut
    search_columns = ("notes", "source")
    references = {"employee_id": Employee}
    includes = {"employee": EmployeeBrief}
    owner_field = "employee_id"
    default_sort = "-date"

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        if values.get("employee_id") is None:
            raise ValidationException({"employee_id": ["This field is required."]})
        employee = await _find_employee(db, organisation_id, values["employee_id"])
        if employee is None:
            raise ValidationException(
                {"employee_id": [f"Employee '{values['employee_id']}' does not exist."]},
            )
        if principal is not None and not principal.is_admin:
            await _check_channel(db, employee, values.get("source"))
        await _derive(db, organisation_id, employee, values, status_given=values.get("status") is not None)

    @classmethod
    async def before_update(cls, db, obj, principal, changes) -> None:
        merged = {
            "check_in_time": changes.get("check_in_time", obj.check_in_time),
            "check_out_time": changes.get("check_out_time", obj.check_out_time),
            "status": changes.get("status", obj.status),
        }
        if merged["check_out_time"] is not None and merged["check_in_time"] is None:
            raise ValidationException({"check_out_time": ["check_out_time requires check_in_time."]})
        employee = await _load_employee(db, obj.organisation_id, obj.employee_id)
        status_given = "status" in changes or obj.status not in (
            AttendanceStatus.present.value, AttendanceStatus.half_day.value,
        )
        await _derive(db, obj.organisation_id, employee, merged, status_given=status_given)
        changes.update(merged)

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        query = select(func.count()).select_from(AttendanceRecord).where(
            AttendanceRecord.organisation_id == organisation_id,
            AttendanceRecord.delete_flag.is_(False),
            AttendanceRecord.employee_id == values["employee_id"],
            AttendanceRecord.date == values["date"],
        )
        if instance is not None:
            query = query.where(AttendanceRecord.id != instance.id)
        if (await db.execute(query)).scalar_one():
            raise ConflictError(
                "date", values["date"].isoformat(),
                detail="Attendance for this employee and date already exists.",
            )

    # ── Day view ────────────────────────────────────────────────────

    @classmethod
    async def day(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        req: AttendanceDayRequest,
    ) -> list[AttendanceDayRow]:
        """Every active employee's status on ``req.date`` (``absent`` when unrecorded)."""
        query = (
            select(Employee, AttendanceRecord)
            .outerjoin(
                AttendanceRecord,
                and_(
                    AttendanceRecord.employee_id == Employee.id,
                    AttendanceRecord.date == req.date,
                    AttendanceRecord.delete_flag.is_(False),
                ),
            )
            .where(*_active_employees(organisation_id))
            .order_by(Employee.name, Employee.id)
        )
        if req.department_id is not None:
            query = query.where(Employee.department_id == req.department_id)
        if req.branch_id is not None:
            query = query.where(Employee.branch_id == req.branch_id)
        rows = (await db.execute(query)).all()
        on_leave = await _employees_on_leave(db, organisation_id, req.date)

        result = []
        for employee, record in rows:
            if record is not None:
                status = record.status
            elif employee.id in on_leave:
                status = AttendanceStatus.on_leave.value
            else:
                status = AttendanceStatus.absent.value
            result.append(AttendanceDayRow(
                employee_id=employee.id,
                employee_name=employee.name,
                employee_code=employee.code,
                department_id=employee.department_id,
                status=status,
                check_in_time=record.check_in_time if record else None,
                check_out_time=record.check_out_time if record else None,
                total_hours=record.total_hours if record else None,
                late_minutes=record.late_minutes if record else 0,
                record_id=record.id if record else None,
            ))
        return result

    # ── Statistics ──────────────────────────────────────────────────

    @classmethod
    async def statistics(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        day: Optional[date] = None,
    ) -> AttendanceStatistics:
        day = day or date.today()
        total = (
            await db.execute(
                select(func.count()).select_from(Employee).where(*_active_employees(organisation_id)),
            )
        ).scalar_one()

        records = (
            await db.execute(
                select(AttendanceRecord.employee_id, AttendanceRecord.status, AttendanceRecord.late_minutes)
                .join(Employee, Employee.id == AttendanceRecord.employee_id)
                .where(
                    AttendanceRecord.organisation_id == organisation_id,
                    AttendanceRecord.delete_flag.is_(False),
                    AttendanceRecord.date == day,
                    *_active_employees(organisation_id),
                ),
            )
        ).all()

        counts = {status.value: 0 for status in AttendanceStatus}
        late = 0
        recorded = set()
        for employee_id, status, late_by in records:
            recorded.add(employee_id)
            counts[status] = counts.get(status, 0) + 1
            if late_by:
                late += 1
        on_leave = counts[AttendanceStatus.on_leave.value] + len(
            await _employees_on_leave(db, organisation_id, day) - recorded,
        )
        present = counts[AttendanceStatus.present.value]
        half_day = counts[AttendanceStatus.half_day.value]
        absent = max(total - present - half_day - on_leave, 0)

        return AttendanceStatistics(
            date=day,
            total_employees=total,
            present=present,
            absent=absent,
            half_day=half_day,
            on_leave=on_leave,
            late=late,
            attendance_rate=round((present + half_day) / total * 100, 2) if total else 0.0,
        )

    @classmethod
    async def month_rate(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        year: int,
        month: int,
    ) -> float:
        """Attended employee-days over working employee-days for one month (%)."""
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        last = min(last, date.today())
        if last < first:
            return 0.0

        workweek = await _organisation_workweek(db, organisation_id)
        working_days = {
            date.fromordinal(d) for d in range(first.toordinal(), last.toordinal() + 1)
            if date.fromordinal(d).weekday() not in WEEKEND_DAYS[workweek]
        }
        headcount = (
            await db.execute(
                select(func.count()).select_from(Employee).where(*_active_employees(organisation_id)),
            )
        ).scalar_one()
        if not working_days or not headcount:
            return 0.0

        per_day = await db.execute(
            select(AttendanceRecord.date, func.count())
            .join(Employee, Employee.id == AttendanceRecord.employee_id)
            .where(
                AttendanceRecord.organisation_id == organisation_id,
                AttendanceRecord.delete_flag.is_(False),
                AttendanceRecord.date >= first,
                AttendanceRecord.date <= last,
                AttendanceRecord.status.in_([
                    AttendanceStatus.present.value, AttendanceStatus.half_day.value,
                ]),
                *_active_employees(organisation_id),
            )
            .group_by(AttendanceRecord.date),
        )
        attended = sum(count for day, count in per_day.all() if day in working_days)
        return round(attended / (len(working_days) * headcount) * 100, 2)

    # ── Calendar ────────────────────────────────────────────────────

    @classmethod
    async def calendar(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
        month: int,
    ) -> list[CalendarDay]:
        """One entry per day of the month merging records, holidays, leave and weekends."""
        employee = await _load_employee(db, organisation_id, employee_id)
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        today = date.today()

        records = {
            r.date: r
            for r in (
                await db.execute(
                    select(AttendanceRecord).where(
                        AttendanceRecord.employee_id == employee.id,
                        AttendanceRecord.delete_flag.is_(False),
                        AttendanceRecord.date >= first,
                        AttendanceRecord.date <= last,
                    ),
                )
            ).scalars()
        }
        holidays = await _holidays_in_month(db, organisation_id, year, month)
        leave_days = await _leave_days(db, employee.id, first, last)
        off_days = WEEKEND_DAYS[await _organisation_workweek(db, organisation_id)]

        days = []
        for ordinal in range(first.toordinal(), last.toordinal() + 1):
            day = date.fromordinal(ordinal)
            record = records.get(day)
            holiday = holidays.get(day)
            is_weekend = day.weekday() in off_days
            if record is not None:
                status = record.status
            elif day > today or (employee.joining_date and day < employee.joining_date):
                status = None
            elif holiday is not None:
                status = "holiday"
            elif is_weekend:
                status = AttendanceStatus.weekend.value
            elif day in leave_days:
                status = AttendanceStatus.on_leave.value
            else:
                status = AttendanceStatus.absent.value
            days.append(CalendarDay(
                date=day,
                status=status,
                holiday=holiday,
                is_weekend=is_weekend,
                check_in_time=record.check_in_time if record else None,
                check_out_time=record.check_out_time if record else None,
                total_hours=record.total_hours if record else None,
            ))
        return days


# ── Helpers ─────────────────────────────────────────────────────────

def _active_employees(organisation_id: uuid.UUID) -> tuple:
    return (
        Employee.organisation_id == organisation_id,
        Employee.delete_flag.is_(False),
        Employee.active_flag.is_(True),
        Employee.status.in_(["active", "on_leave"]),
    )


async def _find_employee(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    employee_id: uuid.UUID,
) -> Optional[Employee]:
    result = await db.execute(
        select(Employee).where(
            Employee.id == employee_id,
            Employee.organisation_id == organisation_id,
            Employee.delete_flag.is_(False),
        ),
    )
    return result.scalars().first()


async def _load_employee(db: AsyncSession, organisation_id: uuid.UUID, employee_id: uuid.UUID) -> Employee:
    employee = await _find_employee(db, organisation_id, employee_id)
    if employee is None:
        raise NotFoundException("Employee", employee_id)
    return employee


async def _check_channel(db: AsyncSession, employee: Employee, source: Optional[str]) -> None:
    """Reject self-service check-ins through a channel the policy disables."""
    if employee.attendance_rule_id is None:
        return
    policy = await db.get(AttendancePolicy, employee.attendance_rule_id)
    if policy is None or policy.delete_flag:
        return
    if source == "web" and not policy.web_attendance_enabled:
        raise ValidationException({"source": ["Web attendance is disabled by your attendance rule."]})
    if source == "mobile" and not policy.mobile_attendance_enabled:
        raise ValidationException({"source": ["Mobile attendance is disabled by your attendance rule."]})


async def _derive(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    employee: Employee,
    values: dict[str, Any],
    *,
    status_given: bool,
) -> None:
    shift = None
    if employee.shift_id is not None:
        shift = await db.get(Shift, employee.shift_id)

    check_in = values.get("check_in_time")
    check_out = values.get("check_out_time")
    values["total_hours"] = worked_hours(check_in, check_out)
    values["late_minutes"] = late_minutes(check_in, shift)
    values["early_departure"] = left_early(check_out, shift)

    if status_given:
        return
    status = AttendanceStatus.present.value
    if values["total_hours"] is not None:
        organisation = await db.get(Organisation, organisation_id)
        threshold = organisation.half_day_threshold_hours if organisation else None
        if threshold and values["total_hours"] < threshold:
            status = AttendanceStatus.half_day.value
    values["status"] = status


async def _organisation_workweek(db: AsyncSession, organisation_id: uuid.UUID) -> str:
    organisation = await db.get(Organisation, organisation_id)
    if organisation is not None and organisation.default_working_day_rule_id is not None:
        rule = await db.get(WorkDayRule, organisation.default_working_day_rule_id)
        if rule is not None and not rule.delete_flag:
            return rule.workweek
    return Workweek.five_days.value


async def _holidays_in_month(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    year: int,
    month: int,
) -> dict[date, str]:
    result = await db.execute(
        select(Holiday).where(
            Holiday.organisation_id == organisation_id,
            Holiday.delete_flag.is_(False),
            Holiday.active_flag.is_(True),
        ),
    )
    holidays: dict[date, str] = {}
    for holiday in result.scalars():
        if holiday.date.month != month:
            continue
        if holiday.date.year == year:
            holidays[holiday.date] = holiday.name
        elif holiday.is_recurring and holiday.date.year < year:
            try:
                holidays.setdefault(holiday.date.replace(year=year), holiday.name)
            except ValueError:
                # 29 February in a non-leap year
                continue
    return holidays


async def _employees_on_leave(db: AsyncSession, organisation_id: uuid.UUID, day: date) -> set[uuid.UUID]:
    result = await db.execute(
        select(LeaveRequest.employee_id).where(
            LeaveRequest.organisation_id == organisation_id,
            LeaveRequest.delete_flag.is_(False),
            LeaveRequest.status == LeaveStatus.approved.value,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        ),
    )
    return set(result.scalars().all())


async def _leave_days(db: AsyncSession, employee_id: uuid.UUID, first: date, last: date) -> set[date]:
    result = await db.execute(
        select(LeaveRequest.start_date, LeaveRequest.end_date).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.delete_flag.is_(False),
            LeaveRequest.status == LeaveStatus.approved.value,
            LeaveRequest.start_date <= last,
            LeaveRequest.end_date >= first,
        ),
    )
    days: set[date] = set()
    for start, end in result.all():
        for ordinal in range(max(start, first).toordinal(), min(end, last).toordinal() + 1):
            days.add(date.fromordinal(ordinal))
    return days
