"""Attendance Pydantic v2 schemas: shifts, policies, work-day rules,
holidays and daily attendance records."""


import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hrms.common.constants import AttendanceStatus, HolidayType, Workweek
from hrms.common.pagination import ListRequest
from hrms.common.schemas import InputSchema, RecordOut, UpdateSchema
from hrms.common.validators import is_hhmm


# ═════════════════════════════════════════════════════════════════════
# Shift
# ═════════════════════════════════════════════════════════════════════


class _ShiftTimes(BaseModel):
    @field_validator("start", "end", check_fields=False)
    @classmethod
    def _hhmm(cls, value):
        if value is not None and not is_hhmm(value):
            raise ValueError("Time must use the 24h HH:MM format.")
        return value


class ShiftCreate(InputSchema, _ShiftTimes):
    name: str = Field(min_length=1, max_length=100)
    start: str
    end: str
    grace_minutes: int = Field(default=0, ge=0, le=240)
    description: Optional[str] = None


class ShiftUpdate(UpdateSchema, _ShiftTimes):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start: Optional[str] = None
    end: Optional[str] = None
    grace_minutes: Optional[int] = Field(default=None, ge=0, le=240)
    description: Optional[str] = None


class ShiftOut(RecordOut):
    name: str
    start: str
    end: str
    grace_minutes: int
    description: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Attendance policy
# ═════════════════════════════════════════════════════════════════════


class AttendancePolicyCreate(InputSchema):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    geo_tracking_enabled: bool = False
    geo_radius_meters: int = Field(default=100, ge=1)
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    selfie_required: bool = False
    web_attendance_enabled: bool = True
    mobile_attendance_enabled: bool = True
    regularization_enabled: bool = False
    grace_period_minutes: int = Field(default=0, ge=0)
    overtime_threshold_hours: Optional[float] = Field(default=None, ge=0, le=24)
    break_management_enabled: bool = False


class AttendancePolicyUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    geo_tracking_enabled: Optional[bool] = None
    geo_radius_meters: Optional[int] = Field(default=None, ge=1)
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    selfie_required: Optional[bool] = None
    web_attendance_enabled: Optional[bool] = None
    mobile_attendance_enabled: Optional[bool] = None
    regularization_enabled: Optional[bool] = None
    grace_period_minutes: Optional[int] = Field(default=None, ge=0)
    overtime_threshold_hours: Optional[float] = Field(default=None, ge=0, le=24)
    break_management_enabled: Optional[bool] = None


class AttendancePolicyOut(RecordOut):
    name: str
    description: Optional[str] = None
    geo_tracking_enabled: bool
    geo_radius_meters: int
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    selfie_required: bool
    web_attendance_enabled: bool
    mobile_attendance_enabled: bool
    regularization_enabled: bool
    grace_period_minutes: int
    overtime_threshold_hours: Optional[float] = None
    break_management_enabled: bool


class AttendancePolicyListRequest(ListRequest):
    geo_tracking_enabled: Optional[bool] = None
    selfie_required: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Work-day rule
# ═════════════════════════════════════════════════════════════════════


class WorkDayRuleCreate(InputSchema):
    name: str = Field(min_length=1, max_length=100)
    workweek: Workweek = Workweek.five_days
    description: Optional[str] = None


class WorkDayRuleUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    workweek: Optional[Workweek] = None
    description: Optional[str] = None


class WorkDayRuleOut(RecordOut):
    name: str
    workweek: str
    description: Optional[str] = None


class WorkDayRuleListRequest(ListRequest):
    workweek: Optional[Workweek] = None


# ═════════════════════════════════════════════════════════════════════
# Holiday
# ═════════════════════════════════════════════════════════════════════


class HolidayCreate(InputSchema):
    name: str = Field(min_length=1, max_length=200)
    date: dt.date
    type: HolidayType = HolidayType.normal
    description: Optional[str] = None
    is_recurring: bool = False


class HolidayUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    type: Optional[HolidayType] = None
    description: Optional[str] = None
    is_recurring: Optional[bool] = None


class HolidayOut(RecordOut):
    name: str
    date: dt.date
    type: str
    description: Optional[str] = None
    is_recurring: bool


class HolidayListRequest(ListRequest):
    type: Optional[HolidayType] = None
    is_recurring: Optional[bool] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None

    filter_aliases = {"date_from": "date__from", "date_to": "date__to"}


# ═════════════════════════════════════════════════════════════════════
# Attendance record
# ═════════════════════════════════════════════════════════════════════


class AttendanceCreate(InputSchema):
    # Employees may omit it; their own id is used
    employee_id: Optional[uuid.UUID] = None
    date: dt.date
    status: Optional[AttendanceStatus] = None
    check_in_time: Optional[dt.time] = None
    check_out_time: Optional[dt.time] = None
    source: str = Field(default="web", max_length=20)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_out_needs_check_in(self):
        if self.check_out_time is not None and self.check_in_time is None:
            raise ValueError("check_out_time requires check_in_time.")
        return self


class AttendanceUpdate(UpdateSchema):
    status: Optional[AttendanceStatus] = None
    check_in_time: Optional[dt.time] = None
    check_out_time: Optional[dt.time] = None
    source: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None


class AttendanceOut(RecordOut):
    employee_id: uuid.UUID
    date: dt.date
    status: str
    check_in_time: Optional[dt.time] = None
    check_out_time: Optional[dt.time] = None
    total_hours: Optional[float] = None
    late_minutes: int
    early_departure: bool
    source: str
    notes: Optional[str] = None


class AttendanceListRequest(ListRequest):
    employee_id: Optional[uuid.UUID] = None
    status: Optional[AttendanceStatus] = None
    date: Optional[dt.date] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None

    filter_aliases = {"date_from": "date__from", "date_to": "date__to"}


class AttendanceDayRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None
    date: dt.date
    department_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None


class AttendanceDayRow(BaseModel):
    """One employee's status on the requested day."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    employee_name: str
    employee_code: str
    department_id: Optional[uuid.UUID] = None
    status: str
    check_in_time: Optional[dt.time] = None
    check_out_time: Optional[dt.time] = None
    total_hours: Optional[float] = None
    late_minutes: int = 0
    record_id: Optional[uuid.UUID] = None


class AttendanceStatisticsRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None
    date: Optional[dt.date] = None


class AttendanceStatistics(BaseModel):
    date: dt.date
    total_employees: int
    present: int
    absent: int
    half_day: int
    on_leave: int
    late: int
    attendance_rate: float


class AttendanceCalendarRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None
    employee_id: Optional[uuid.UUID] = None
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970, le=2100)


class CalendarDay(BaseModel):
    date: dt.date
    # None for days that have not happened yet
    status: Optional[str] = None
    holiday: Optional[str] = None
    is_weekend: bool = False
    check_in_time: Optional[dt.time] = None
    check_out_time: Optional[dt.time] = None
    total_hours: Optional[float] = None
