"""Client module — async API client with persisted auth state."""

from __future__ import annotations

import os
from typing import Optional

import httpx

from hrms.client.auth_token import AuthToken
from hrms.client.branch import BranchState
from hrms.client.config import client_settings
from hrms.client.http import ApiError, HttpClient, format_api_error
from hrms.client.latest import LatestRequest
from hrms.client.local_data import LocalCollection, LocalData
from hrms.client.services import (
    AttendanceService,
    AuthService,
    DesignationService,
    EmployeeService,
    LeaveRequestService,
    PayrollCycleService,
    ResourceService,
)
from hrms.client.store import LocalStore


class HrmsClient:
    """One object per signed-in user: store, auth state, HTTP and services."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        store_path: Optional[str | os.PathLike] = client_settings.STORE_PATH,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.store = LocalStore(store_path)
        self.auth_token = AuthToken(self.store)
        self.branch = BranchState(self.store)
        self.local = LocalData(self.store)
        self.http = HttpClient(self.auth_token, base_url, timeout, transport)

        self.auth = AuthService(self.http, self.auth_token, self.branch)
        self.organisations = ResourceService(
            self.http, "organisations", "Organisation", with_organisation=False,
        )
        self.branches = ResourceService(self.http, "branches", "Branch")
        self.departments = ResourceService(
            self.http, "departments", "Department",
            conflict_message="Department with this name already exists",
        )
        self.designations = DesignationService(self.http)
        self.employees = EmployeeService(self.http)
        self.shifts = ResourceService(self.http, "shifts", "Shift")
        self.attendance_rules = ResourceService(self.http, "attendance_rules", "Attendance policy")
        self.working_day_rules = ResourceService(
            self.http, "working_day_rules", "Working day rule",
            paths={
                "update": "/working_day_rule/update",
                "one": "/working_day_rule/one",
                "delete": "/working_day_rule/delete",
            },
        )
        self.holidays = ResourceService(
            self.http, "holidays", "Holiday",
            conflict_message="A holiday already exists on this date",
        )
        self.attendance = AttendanceService(self.http)
        self.leaves = ResourceService(self.http, "leaves", "Leave type")
        self.leave_requests = LeaveRequestService(self.http)
        self.salary_component_types = ResourceService(
            self.http, "salary_component_types", "Salary component type",
        )
        self.salary_components = ResourceService(self.http, "salary_components", "Salary component")
        self.payroll_cycles = PayrollCycleService(self.http)
        self.payrolls = ResourceService(self.http, "payrolls", "Payroll")

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "HrmsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


__all__ = [
    "ApiError",
    "AuthToken",
    "BranchState",
    "HrmsClient",
    "HttpClient",
    "LatestRequest",
    "LocalCollection",
    "LocalData",
    "LocalStore",
    "ResourceService",
    "format_api_error",
]
