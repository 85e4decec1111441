"""Common module — shared utilities for HRMS."""

from hrms.common.audit import AuditTrail, create_audit_entry
from hrms.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    AttendanceStatus,
    EmployeeStatus,
    LeaveStatus,
    PayrollCycleStatus,
    UserRole,
)
from hrms.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import (
    DeleteRequest,
    ListRequest,
    OneRequest,
    PageInfo,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AttendanceStatus",
    "EmployeeStatus",
    "LeaveStatus",
    "PayrollCycleStatus",
    "UserRole",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "DeleteRequest",
    "ListRequest",
    "OneRequest",
    "PageInfo",
    "paginate",
]
