"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
  - *Brief             → compact representation embedded in other responses
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hrms.common.constants import DocumentType, EmployeeStatus, GenderType
from hrms.common.pagination import ListRequest
from hrms.common.schemas import InputSchema, RecordOut, UpdateSchema


# ═════════════════════════════════════════════════════════════════════
# Shared / embedded
# ═════════════════════════════════════════════════════════════════════


class BankDetails(BaseModel):
    """Bank account block (stored as JSONB)."""

    account_holder_name: Optional[str] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    ifsc_code: Optional[str] = None
    branch_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(InputSchema):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class DepartmentUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class DepartmentOut(RecordOut):
    name: str
    description: Optional[str] = None


class DepartmentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


# ═════════════════════════════════════════════════════════════════════
# Designation
# ═════════════════════════════════════════════════════════════════════


class DesignationCreate(InputSchema):
    name: str = Field(min_length=1, max_length=200)
    positions: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None


class DesignationUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    positions: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None


class DesignationOut(RecordOut):
    name: str
    positions: Optional[int] = None
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None


class DesignationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    department_id: Optional[uuid.UUID] = None


class DesignationListRequest(ListRequest):
    department_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class _EmployeeFields(InputSchema):
    @field_validator("email", check_fields=False)
    @classmethod
    def _lower_email(cls, value):
        return value.lower() if value else value

    @field_validator("date_of_birth", check_fields=False)
    @classmethod
    def _dob_in_past(cls, value):
        if value is not None and value >= date.today():
            raise ValueError("date_of_birth must be in the past.")
        return value


class EmployeeCreate(_EmployeeFields):
    name: str = Field(min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)
    email: EmailStr
    mobile: Optional[str] = Field(default=None, min_length=6, max_length=20)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    included_in_payroll: bool = True
    status: EmployeeStatus = EmployeeStatus.active

    date_of_birth: Optional[date] = None
    gender: Optional[GenderType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    emergency_contact: Optional[str] = None
    pan_number: Optional[str] = Field(default=None, max_length=20)
    adhaar_number: Optional[str] = Field(default=None, max_length=20)
    image: Optional[str] = None

    joining_date: Optional[date] = None
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    shift_id: Optional[uuid.UUID] = None
    attendance_rule_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None

    bank_details: Optional[BankDetails] = None
    ctc: Optional[float] = Field(default=None, ge=0)
    basic_salary: Optional[float] = Field(default=None, ge=0)


class EmployeeUpdate(UpdateSchema, _EmployeeFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    mobile: Optional[str] = Field(default=None, min_length=6, max_length=20)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    included_in_payroll: Optional[bool] = None
    status: Optional[EmployeeStatus] = None

    date_of_birth: Optional[date] = None
    gender: Optional[GenderType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    emergency_contact: Optional[str] = None
    pan_number: Optional[str] = Field(default=None, max_length=20)
    adhaar_number: Optional[str] = Field(default=None, max_length=20)
    image: Optional[str] = None

    joining_date: Optional[date] = None
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    shift_id: Optional[uuid.UUID] = None
    attendance_rule_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None

    bank_details: Optional[BankDetails] = None
    ctc: Optional[float] = Field(default=None, ge=0)
    basic_salary: Optional[float] = Field(default=None, ge=0)


class EmployeeBulkChanges(InputSchema):
    """Fields an admin may set on many employees at once."""

    status: Optional[EmployeeStatus] = None
    included_in_payroll: Optional[bool] = None
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    shift_id: Optional[uuid.UUID] = None
    attendance_rule_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    active_flag: Optional[bool] = None


class EmployeeUpdateMany(InputSchema):
    ids: list[uuid.UUID] = Field(min_length=1, max_length=500)
    changes: EmployeeBulkChanges


class EmployeeOut(RecordOut):
    name: str
    code: str
    email: str
    mobile: Optional[str] = None
    included_in_payroll: bool
    status: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None
    emergency_contact: Optional[str] = None
    pan_number: Optional[str] = None
    adhaar_number: Optional[str] = None
    image: Optional[str] = None
    joining_date: Optional[date] = None
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    shift_id: Optional[uuid.UUID] = None
    attendance_rule_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    bank_details: Optional[BankDetails] = None
    ctc: Optional[float] = None
    basic_salary: Optional[float] = None
    last_login_at: Optional[datetime] = None


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    email: str
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    image: Optional[str] = None


class EmployeeListRequest(ListRequest):
    department_id: Optional[uuid.UUID] = None
    designation_id: Optional[uuid.UUID] = None
    shift_id: Optional[uuid.UUID] = None
    attendance_rule_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    status: Optional[EmployeeStatus] = None
    gender: Optional[GenderType] = None
    included_in_payroll: Optional[bool] = None
    joining_date_from: Optional[date] = None
    joining_date_to: Optional[date] = None

    filter_aliases = {
        "joining_date_from": "joining_date__from",
        "joining_date_to": "joining_date__to",
    }


# ═════════════════════════════════════════════════════════════════════
# Employee documents
# ═════════════════════════════════════════════════════════════════════


class EmployeeDocumentOut(RecordOut):
    employee_id: uuid.UUID
    document_type: str
    file_name: str
    content_type: str
    size_bytes: int


class EmployeeDocumentListRequest(ListRequest):
    employee_id: Optional[uuid.UUID] = None
    document_type: Optional[DocumentType] = None
