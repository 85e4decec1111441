"""Payroll Pydantic v2 schemas — component types, employee components,
payroll cycles and payrolls."""


import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from hrms.common.constants import (
    CalculationType,
    PayrollCycleStatus,
    PayrollStatus,
    SalaryComponentKind,
)
from hrms.common.pagination import ListRequest
from hrms.common.schemas import InputSchema, RecordOut, UpdateSchema


# ═════════════════════════════════════════════════════════════════════
# Salary component type
# ═════════════════════════════════════════════════════════════════════


class SalaryComponentTypeCreate(InputSchema):
    name: str = Field(min_length=1, max_length=100)
    type: SalaryComponentKind = SalaryComponentKind.earning
    sequence: int = Field(default=0, ge=0)
    description: Optional[str] = None


class SalaryComponentTypeUpdate(UpdateSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[SalaryComponentKind] = None
    sequence: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class SalaryComponentTypeOut(RecordOut):
    name: str
    type: str
    sequence: int
    description: Optional[str] = None


class SalaryComponentTypeListRequest(ListRequest):
    type: Optional[SalaryComponentKind] = None


# ═════════════════════════════════════════════════════════════════════
# Salary component
# ═════════════════════════════════════════════════════════════════════


class _PercentageCap(BaseModel):
    @model_validator(mode="after")
    def _cap_percentage(self):
        calculation = getattr(self, "calculation", None)
        value = getattr(self, "value", None)
        if calculation == CalculationType.percentage.value and value is not None and value > 100:
            raise ValueError("A PERCENTAGE component cannot exceed 100.")
        return self


class SalaryComponentCreate(InputSchema, _PercentageCap):
    employee_id: uuid.UUID
    salary_component_type_id: uuid.UUID
    calculation: CalculationType = CalculationType.fixed
    value: float = Field(ge=0)
    formula: Optional[str] = Field(default=None, max_length=255)
    is_taxable: bool = True


class SalaryComponentUpdate(UpdateSchema, _PercentageCap):
    salary_component_type_id: Optional[uuid.UUID] = None
    calculation: Optional[CalculationType] = None
    value: Optional[float] = Field(default=None, ge=0)
    formula: Optional[str] = Field(default=None, max_length=255)
    is_taxable: Optional[bool] = None


class SalaryComponentOut(RecordOut):
    employee_id: uuid.UUID
    salary_component_type_id: uuid.UUID
    calculation: str
    value: float
    formula: Optional[str] = None
    is_taxable: bool


class SalaryComponentListRequest(ListRequest):
    employee_id: Optional[uuid.UUID] = None
    salary_component_type_id: Optional[uuid.UUID] = None
    calculation: Optional[CalculationType] = None


# ═════════════════════════════════════════════════════════════════════
# Payroll cycle
# ═════════════════════════════════════════════════════════════════════


class _PayPeriod(BaseModel):
    @model_validator(mode="after")
    def _check_period(self):
        start = getattr(self, "pay_period_start", None)
        end = getattr(self, "pay_period_end", None)
        if start is not None and end is not None and end < start:
            raise ValueError("pay_period_end must be on or after pay_period_start.")
        return self


class PayrollCycleCreate(InputSchema, _PayPeriod):
    name: str = Field(min_length=1, max_length=100)
    pay_period_start: date
    pay_period_end: date
    status: PayrollCycleStatus = PayrollCycleStatus.draft
    salary_month: int = Field(ge=1, le=12)
    salary_year: int = Field(ge=2000, le=2100)
    working_days: Optional[int] = Field(default=None, ge=0, le=31)


class PayrollCycleUpdate(UpdateSchema, _PayPeriod):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    pay_period_start: Optional[date] = None
    pay_period_end: Optional[date] = None
    status: Optional[PayrollCycleStatus] = None
    salary_month: Optional[int] = Field(default=None, ge=1, le=12)
    salary_year: Optional[int] = Field(default=None, ge=2000, le=2100)
    working_days: Optional[int] = Field(default=None, ge=0, le=31)


class PayrollCycleOut(RecordOut):
    name: str
    pay_period_start: date
    pay_period_end: date
    status: str
    salary_month: int
    salary_year: int
    working_days: Optional[int] = None
    amount: float


class PayrollCycleListRequest(ListRequest):
    status: Optional[PayrollCycleStatus] = None
    salary_month: Optional[int] = Field(default=None, ge=1, le=12)
    salary_year: Optional[int] = None


# ═════════════════════════════════════════════════════════════════════
# Payroll
# ═════════════════════════════════════════════════════════════════════


class PayrollCreate(InputSchema):
    employee_id: uuid.UUID
    payroll_cycle_id: uuid.UUID
    status: PayrollStatus = PayrollStatus.draft
    working_days: Optional[int] = Field(default=None, ge=0, le=31)
    present_days: Optional[float] = Field(default=None, ge=0)
    absent_days: Optional[float] = Field(default=None, ge=0)
    leave_days: Optional[float] = Field(default=None, ge=0)
    # Omitted amounts are derived from the employee and their components
    basic_salary: Optional[float] = Field(default=None, ge=0)
    total_allowances: Optional[float] = Field(default=None, ge=0)
    total_deductions: Optional[float] = Field(default=None, ge=0)
    net_salary: Optional[float] = None
    payment_date: Optional[date] = None
    payment_method: Optional[str] = Field(default=None, max_length=30)
    remarks: Optional[str] = None


class PayrollUpdate(UpdateSchema):
    status: Optional[PayrollStatus] = None
    working_days: Optional[int] = Field(default=None, ge=0, le=31)
    present_days: Optional[float] = Field(default=None, ge=0)
    absent_days: Optional[float] = Field(default=None, ge=0)
    leave_days: Optional[float] = Field(default=None, ge=0)
    basic_salary: Optional[float] = Field(default=None, ge=0)
    total_allowances: Optional[float] = Field(default=None, ge=0)
    total_deductions: Optional[float] = Field(default=None, ge=0)
    net_salary: Optional[float] = None
    payment_date: Optional[date] = None
    payment_method: Optional[str] = Field(default=None, max_length=30)
    remarks: Optional[str] = None


class PayrollOut(RecordOut):
    employee_id: uuid.UUID
    payroll_cycle_id: uuid.UUID
    status: str
    working_days: Optional[int] = None
    present_days: Optional[float] = None
    absent_days: Optional[float] = None
    leave_days: Optional[float] = None
    basic_salary: float
    total_allowances: float
    total_deductions: float
    gross_salary: float
    net_salary: float
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    remarks: Optional[str] = None


class PayrollListRequest(ListRequest):
    employee_id: Optional[uuid.UUID] = None
    payroll_cycle_id: Optional[uuid.UUID] = None
    status: Optional[PayrollStatus] = None


class PayrollDownloadRequest(BaseModel):
    organisation_id: Optional[uuid.UUID] = None
    payroll_cycle_id: Optional[uuid.UUID] = None
