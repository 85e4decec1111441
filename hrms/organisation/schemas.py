"""Organisation / Branch Pydantic v2 schemas."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from hrms.common.constants import OrganisationPlan
from hrms.common.pagination import ListRequest
from hrms.common.schemas import InputSchema, RecordOut, UpdateSchema


# ═════════════════════════════════════════════════════════════════════
# Organisation
# ═════════════════════════════════════════════════════════════════════


class _EmployeeCodeRange(BaseModel):
    @model_validator(mode="after")
    def _check_code_range(self):
        start = getattr(self, "employee_code_from", None)
        end = getattr(self, "employee_code_to", None)
        if start is not None and end is not None and end < start:
            raise ValueError("employee_code_to must be greater than or equal to employee_code_from.")
        return self


class OrganisationCreate(InputSchema, _EmployeeCodeRange):
    name: str = Field(min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    plan: OrganisationPlan = OrganisationPlan.free
    active_modules: Optional[list[str]] = None
    half_day_threshold_hours: Optional[float] = Field(default=None, ge=0, le=24)
    default_working_day_rule_id: Optional[uuid.UUID] = None
    time_zone: str = "Asia/Kolkata"
    time_zone_offset: str = Field(default="+05:30", pattern=r"^[+-]\d{2}:\d{2}$")
    is_employee_code_generation_type_auto: bool = False
    employee_code_prefix: Optional[str] = Field(default=None, max_length=20)
    employee_code_from: Optional[int] = Field(default=None, ge=0)
    employee_code_to: Optional[int] = Field(default=None, ge=0)


class OrganisationUpdate(UpdateSchema, _EmployeeCodeRange):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    plan: Optional[OrganisationPlan] = None
    active_modules: Optional[list[str]] = None
    half_day_threshold_hours: Optional[float] = Field(default=None, ge=0, le=24)
    default_working_day_rule_id: Optional[uuid.UUID] = None
    time_zone: Optional[str] = None
    time_zone_offset: Optional[str] = Field(default=None, pattern=r"^[+-]\d{2}:\d{2}$")
    is_employee_code_generation_type_auto: Optional[bool] = None
    employee_code_prefix: Optional[str] = Field(default=None, max_length=20)
    employee_code_from: Optional[int] = Field(default=None, ge=0)
    employee_code_current: Optional[int] = Field(default=None, ge=0)
    employee_code_to: Optional[int] = Field(default=None, ge=0)


class OrganisationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    admin_id: uuid.UUID
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    plan: str
    active_modules: Optional[list[str]] = None
    half_day_threshold_hours: Optional[float] = None
    default_working_day_rule_id: Optional[uuid.UUID] = None
    time_zone: str
    time_zone_offset: str
    is_employee_code_generation_type_auto: bool
    employee_code_prefix: Optional[str] = None
    employee_code_from: Optional[int] = None
    employee_code_current: Optional[int] = None
    employee_code_to: Optional[int] = None
    active_flag: bool
    delete_flag: bool
    created_at: datetime
    modified_at: datetime


class OrganisationListRequest(ListRequest):
    plan: Optional[OrganisationPlan] = None


# ═════════════════════════════════════════════════════════════════════
# Branch
# ═════════════════════════════════════════════════════════════════════


class BranchCreate(InputSchema):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    manager_name: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    is_head_office: bool = False


class BranchUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    manager_name: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    is_head_office: Optional[bool] = None


class BranchOut(RecordOut):
    name: str
    code: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    manager_name: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    is_head_office: bool


class BranchListRequest(ListRequest):
    city: Optional[str] = None
    is_head_office: Optional[bool] = None
