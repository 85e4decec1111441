"""Resource services: thin wrappers over the action-style CRUD endpoints.

Every service maps API failures onto resource-specific messages, e.g. for
employees a 404 reads "Employee not found" and a 409 "Employee with this
email already exists".
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from hrms.client.auth_token import AuthToken
from hrms.client.branch import BranchState
from hrms.client.http import ApiError, HttpClient

logger = logging.getLogger(__name__)

AUTH_MESSAGES = {
    401: "Invalid credentials",
    429: "Too many login attempts. Please try again later.",
}


class ResourceService:
    """``/<base>/create|update|list|one|delete`` for one resource."""

    def __init__(
        self,
        http: HttpClient,
        base: str,
        label: str,
        *,
        paths: Optional[dict[str, str]] = None,
        conflict_message: Optional[str] = None,
        with_organisation: bool = True,
    ) -> None:
        self.http = http
        self.base = base.strip("/")
        self.label = label
        self.paths = paths or {}
        self.conflict_message = conflict_message or f"{label} already exists"
        self.with_organisation = with_organisation

    def path(self, action: str) -> str:
        return self.paths.get(action, f"/{self.base}/{action}")

    def error_message(self, error: ApiError) -> str:
        status_code = error.status_code
        if status_code == 404:
            return f"{self.label} not found"
        if status_code == 422:
            return error.server_message or "Validation failed"
        if status_code == 409:
            return error.server_message or self.conflict_message
        if status_code is not None and status_code >= 500:
            return f"{self.label} service unavailable. Please try again later."
        if status_code in (401, 403, 429):
            return error.message
        return f"{self.label} operation failed"

    async def call(self, method: str, path: str, body: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        try:
            return await self.http.request(
                method, path, json=body, with_organisation=self.with_organisation, **kwargs,
            )
        except ApiError as exc:
            raise ApiError(exc.status_code, self.error_message(exc), exc.payload) from exc

    # ── CRUD ────────────────────────────────────────────────────────

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        return await self.call("POST", self.path("create"), values)

    async def update(self, id: str, changes: dict[str, Any]) -> dict[str, Any]:
        return await self.call("PUT", self.path("update"), {"id": str(id), **changes})

    async def list(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        sort: Optional[dict[str, str]] = None,
        include: Optional[list[str]] = None,
        **filters: Any,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"page": page, "page_size": page_size, **filters}
        if search:
            body["search"] = search
        if sort:
            body["sort"] = sort
        if include:
            body["include"] = include
        return await self.call("POST", self.path("list"), body)

    async def one(self, id: str, include: Optional[list[str]] = None) -> dict[str, Any]:
        return await self.call("POST", self.path("one"), {"id": str(id), "include": include or []})

    async def delete(self, id: str) -> dict[str, Any]:
        return await self.call("PATCH", self.path("delete"), {"id": str(id)})


class EmployeeService(ResourceService):
    def __init__(self, http: HttpClient) -> None:
        super().__init__(
            http, "employees", "Employee",
            conflict_message="Employee with this email already exists",
        )

    async def statistics(self) -> dict[str, Any]:
        return await self.call("POST", "/employees/statistics", {})

    async def update_many(self, ids: list[str], changes: dict[str, Any]) -> dict[str, Any]:
        return await self.call(
            "PUT", "/employees/update-many", {"ids": [str(i) for i in ids], "changes": changes},
        )

    async def export(self, **filters: Any) -> str:
        response = await self.call("POST", "/employees/export", filters, raw=True)
        return response.text

    async def upload_document(
        self,
        employee_id: str,
        document_type: str,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        try:
            return await self.http.request(
                "POST",
                "/employees/documents/upload",
                data={"employee_id": str(employee_id), "document_type": document_type},
                files={"file": (filename, content, content_type)},
            )
        except ApiError as exc:
            raise ApiError(exc.status_code, self.error_message(exc), exc.payload) from exc


class DesignationService(ResourceService):
    def __init__(self, http: HttpClient) -> None:
        super().__init__(http, "designations", "Designation")

    async def list_with_employee_count(self, **filters: Any) -> dict[str, Any]:
        return await self.call("POST", "/designations/list-with-employee-count", filters)


class LeaveRequestService(ResourceService):
    def __init__(self, http: HttpClient) -> None:
        super().__init__(
            http, "leave_requests", "Leave request",
            paths={"list": "/requests/list", "one": "/requests/one"},
            conflict_message="Leave request overlaps an existing request",
        )

    async def update_status(self, id: str, status: str, comments: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {"id": str(id), "status": status}
        if comments is not None:
            body["approver_comments"] = comments
        return await self.call("PUT", "/requests/update_status", body)

    async def approve(self, id: str, comments: Optional[str] = None) -> dict[str, Any]:
        return await self.update_status(id, "APPROVED", comments)

    async def reject(self, id: str, comments: Optional[str] = None) -> dict[str, Any]:
        return await self.update_status(id, "REJECTED", comments)

    async def cancel(self, id: str) -> dict[str, Any]:
        return await self.update_status(id, "CANCELLED")

    async def statistics(self, **filters: Any) -> dict[str, Any]:
        return await self.call("POST", "/requests/statistics", filters)


class PayrollCycleService(ResourceService):
    def __init__(self, http: HttpClient) -> None:
        super().__init__(http, "payroll_cycles", "Payroll cycle")

    async def set_status(self, id: str, status: str) -> dict[str, Any]:
        return await self.update(id, {"status": status})


class AttendanceService(ResourceService):
    def __init__(self, http: HttpClient) -> None:
        super().__init__(
            http, "attendance", "Attendance",
            conflict_message="Attendance for this date already exists",
        )

    async def day(self, date: str, **filters: Any) -> dict[str, Any]:
        return await self.call("POST", "/attendance/day", {"date": date, **filters})

    async def statistics(self, date: Optional[str] = None) -> dict[str, Any]:
        return await self.call("POST", "/attendance/statistics", {"date": date} if date else {})

    async def calendar(self, year: int, month: int, employee_id: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {"year": year, "month": month}
        if employee_id:
            body["employee_id"] = str(employee_id)
        return await self.call("POST", "/attendance/calendar", body)


class AuthService:
    """Login / logout, keeping :class:`AuthToken` and the branch selection in step."""

    def __init__(self, http: HttpClient, auth: AuthToken, branch: Optional[BranchState] = None) -> None:
        self.http = http
        self.auth = auth
        self.branch = branch

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self.http.post(path, body, with_organisation=False)
        except ApiError as exc:
            status_code = exc.status_code
            if status_code in AUTH_MESSAGES:
                message = AUTH_MESSAGES[status_code]
            elif status_code is not None and status_code >= 500:
                message = "Authentication service unavailable. Please try again later."
            else:
                message = exc.message
            raise ApiError(status_code, message, exc.payload) from exc

    async def _login(self, path: str, password: str, email: Optional[str], mobile: Optional[str]) -> dict[str, Any]:
        body: dict[str, Any] = {"password": password}
        if email:
            body["email"] = email
        if mobile:
            body["mobile"] = mobile
        response = await self._post(path, body)
        self.auth.process_login_response(response)
        return response

    async def login_admin(self, password: str, email: Optional[str] = None, mobile: Optional[str] = None) -> dict[str, Any]:
        return await self._login("/auth/admin/login", password, email, mobile)

    async def login_employee(self, password: str, email: Optional[str] = None, mobile: Optional[str] = None) -> dict[str, Any]:
        return await self._login("/auth/employee/login", password, email, mobile)

    async def register(self, email: str, full_name: str, password: str, **extra: Any) -> dict[str, Any]:
        return await self._post(
            "/auth/admin/register",
            {"email": email, "full_name": full_name, "password": password, **extra},
        )

    async def verify(self, email: str, otp: str) -> dict[str, Any]:
        response = await self._post("/auth/admin/verify", {"email": email, "otp": otp})
        self.auth.process_login_response(response)
        return response

    async def refresh(self) -> dict[str, Any]:
        response = await self._post("/auth/refresh", {"refresh_token": self.auth.refresh_token or ""})
        data = response.get("data") or {}
        self.auth.set_tokens(data["access_token"], data.get("refresh_token"))
        return response

    async def profile(self) -> dict[str, Any]:
        return await self.http.get("/auth/profile", with_organisation=False)

    async def logout(self) -> None:
        """Revoke the session server-side; local state is cleared regardless."""
        try:
            if self.auth.token:
                await self.http.post("/auth/logout", {}, with_organisation=False)
        except ApiError as exc:
            logger.info("Logout request failed (%s); clearing local state", exc.message)
        finally:
            self.auth.clear()
            if self.branch is not None:
                self.branch.clear()
