"""Enums and constants for HRMS."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    employee = "employee"


# ── Employee / Core HR ──────────────────────────────────────────────

class GenderType(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"


class EmployeeStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    on_leave = "on_leave"
    terminated = "terminated"


class DocumentType(str, enum.Enum):
    id_proof = "id_proof"
    address_proof = "address_proof"
    education = "education"
    experience = "experience"
    contract = "contract"
    other = "other"


class OrganisationPlan(str, enum.Enum):
    free = "free"
    basic = "basic"
    premium = "premium"
    enterprise = "enterprise"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    half_day = "half-day"
    on_leave = "on-leave"
    weekend = "weekend"


class Workweek(str, enum.Enum):
    five_days = "five_days"
    six_days = "six_days"
    seven_days = "seven_days"


class HolidayType(str, enum.Enum):
    normal = "normal"
    special = "special"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"
    cancelled = "CANCELLED"


class AccrualMethod(str, enum.Enum):
    none = "none"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


# ── Payroll ─────────────────────────────────────────────────────────

class SalaryComponentKind(str, enum.Enum):
    earning = "EARNING"
    deduction = "DEDUCTION"


class CalculationType(str, enum.Enum):
    fixed = "FIXED"
    percentage = "PERCENTAGE"


class PayrollCycleStatus(str, enum.Enum):
    draft = "DRAFT"
    active = "ACTIVE"
    paid = "PAID"
    cancelled = "CANCELLED"


class PayrollStatus(str, enum.Enum):
    draft = "DRAFT"
    processing = "PROCESSING"
    calculated = "CALCULATED"
    paid = "PAID"
    cancelled = "CANCELLED"


# ── Permissions ─────────────────────────────────────────────────────

_CRUD = ["create", "update", "list", "one", "delete"]
_READ = ["list", "one"]

PERMISSIONS: dict[UserRole, dict[str, list[str]]] = {
    UserRole.admin: {
        "organisations": _CRUD,
        "branches": _CRUD,
        "departments": _CRUD,
        "designations": _CRUD + ["employee_count"],
        "employees": _CRUD + ["update_many", "statistics", "export"],
        "employee_documents": ["list", "upload", "download", "delete"],
        "shifts": _CRUD,
        "attendance_rules": _CRUD,
        "working_day_rules": _CRUD,
        "holidays": _CRUD,
        "attendance": _CRUD + ["day", "statistics", "calendar"],
        "leaves": _CRUD,
        "leave_requests": ["create", "list", "one", "delete", "update_status", "statistics"],
        "salary_component_types": _CRUD,
        "salary_components": _CRUD,
        "payroll_cycles": _CRUD,
        "payrolls": _CRUD + ["download"],
        "dashboard": ["stats", "attendance_stats"],
    },
    UserRole.employee: {
        "branches": _READ,
        "departments": _READ,
        "designations": _READ,
        "employees": _READ,
        "employee_documents": ["list", "download"],
        "shifts": _READ,
        "attendance_rules": _READ,
        "working_day_rules": _READ,
        "holidays": _READ,
        "attendance": ["create", "list", "one", "calendar"],
        "leaves": _READ,
        "leave_requests": ["create", "list", "one", "update_status", "statistics"],
        "salary_component_types": _READ,
        "salary_components": _READ,
        "payroll_cycles": _READ,
        "payrolls": _READ,
        "dashboard": ["employee"],
    },
}


# ── Misc ────────────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
TIME_FORMAT = "%H:%M"
