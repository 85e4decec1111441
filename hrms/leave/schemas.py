"""Leave Pydantic v2 schemas — leave types and leave requests."""


import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from hrms.common.constants import AccrualMethod, LeaveStatus
from hrms.common.pagination import ListRequest
from hrms.common.schemas import InputSchema, RecordOut, UpdateSchema


# ═════════════════════════════════════════════════════════════════════
# Leave type
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeCreate(InputSchema):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=20)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=50)
    accrual_method: AccrualMethod = AccrualMethod.none
    accrual_rate: Optional[float] = Field(default=None, ge=0)
    initial_balance: Optional[float] = Field(default=None, ge=0)
    max_balance: Optional[float] = Field(default=None, ge=0)
    allow_carry_forward: bool = False
    carry_forward_limit: Optional[float] = Field(default=None, ge=0)
    allow_encashment: bool = False
    requires_approval: bool = True
    requires_documentation: bool = False
    min_advance_notice_days: Optional[int] = Field(default=None, ge=0)
    max_consecutive_days: Optional[int] = Field(default=None, ge=1)


class LeaveTypeUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=50)
    accrual_method: Optional[AccrualMethod] = None
    accrual_rate: Optional[float] = Field(default=None, ge=0)
    initial_balance: Optional[float] = Field(default=None, ge=0)
    max_balance: Optional[float] = Field(default=None, ge=0)
    allow_carry_forward: Optional[bool] = None
    carry_forward_limit: Optional[float] = Field(default=None, ge=0)
    allow_encashment: Optional[bool] = None
    requires_approval: Optional[bool] = None
    requires_documentation: Optional[bool] = None
    min_advance_notice_days: Optional[int] = Field(default=None, ge=0)
    max_consecutive_days: Optional[int] = Field(default=None, ge=1)


class LeaveTypeOut(RecordOut):
    name: str
    code: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    category: Optional[str] = None
    accrual_method: str
    accrual_rate: Optional[float] = None
    initial_balance: Optional[float] = None
    max_balance: Optional[float] = None
    allow_carry_forward: bool
    carry_forward_limit: Optional[float] = None
    allow_encashment: bool
    requires_approval: bool
    requires_documentation: bool
    min_advance_notice_days: Optional[int] = None
    max_consecutive_days: Optional[int] = None


class LeaveTypeListRequest(ListRequest):
    category: Optional[str] = None
    requires_approval: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Leave request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(InputSchema):
    # Employees may omit it; their own id is used
    employee_id: Optional[uuid.UUID] = None
    leave_id: uuid.UUID
    start_date: date
    end_date: date
    is_half_day: bool = False
    half_day_period: Optional[Literal["first_half", "second_half"]] = None
    reason: Optional[str] = Field(default=None, max_length=2000)
    comments: Optional[str] = None
    handover_to: Optional[uuid.UUID] = None
    handover_notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date.")
        if self.is_half_day and self.start_date != self.end_date:
            raise ValueError("A half-day request must start and end on the same day.")
        return self


class LeaveStatusUpdate(InputSchema):
    id: uuid.UUID
    status: LeaveStatus
    approver_comments: Optional[str] = Field(default=None, max_length=2000)


class LeaveRequestOut(RecordOut):
    employee_id: uuid.UUID
    leave_id: uuid.UUID
    start_date: date
    end_date: date
    total_days: float
    is_half_day: bool
    half_day_period: Optional[str] = None
    reason: Optional[str] = None
    comments: Optional[str] = None
    status: str
    handover_to: Optional[uuid.UUID] = None
    handover_notes: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    approver_comments: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class LeaveRequestListRequest(ListRequest):
    employee_id: Optional[uuid.UUID] = None
    leave_id: Optional[uuid.UUID] = None
    status: Optional[LeaveStatus] = None
    is_half_day: Optional[bool] = None
    # Requests overlapping [date_from, date_to]
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    department_id: Optional[uuid.UUID] = None


class LeaveStatisticsRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None
    employee_id: Optional[uuid.UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
