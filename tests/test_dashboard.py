"""Tests for the dashboard endpoints.

Covers:
  - /dashboard/stats KPIs for admins
  - /dashboard/attendance-stats month-over-month rate
  - /dashboard/employee self summary
  - Role restrictions
"""

from __future__ import annotations

import uuid
from datetime import date

from hrms.attendance.models import AttendanceRecord
from hrms.core_hr.models import Employee
from tests.conftest import _make_employee, insert

API = "/api/v1"


async def _leave_type(client, headers):
    resp = await client.post(
        f"{API}/leaves/create", json={"name": "Casual Leave", "code": "CL"}, headers=headers,
    )
    return resp.json()["data"]


def _present(organisation_id, employee_id, day: date) -> dict:
    return dict(
        id=uuid.uuid4(),
        organisation_id=organisation_id,
        employee_id=employee_id,
        date=day,
        status="present",
    )


async def _paid_cycle_with_payroll(client, headers, employee_id):
    cycle = (
        await client.post(
            f"{API}/payroll_cycles/create",
            json={
                "name": "July 2024",
                "pay_period_start": "2024-07-01",
                "pay_period_end": "2024-07-31",
                "salary_month": 7,
                "salary_year": 2024,
            },
            headers=headers,
        )
    ).json()["data"]
    await client.post(
        f"{API}/payrolls/create",
        json={
            "employee_id": str(employee_id),
            "payroll_cycle_id": cycle["id"],
            "basic_salary": 42000,
            "total_allowances": 0,
            "total_deductions": 2000,
        },
        headers=headers,
    )
    return cycle


# ═════════════════════════════════════════════════════════════════════
# 1. Admin stats
# ═════════════════════════════════════════════════════════════════════


class TestAdminStats:
    async def test_empty_organisation(self, client, admin_headers):
        resp = await client.post(f"{API}/dashboard/stats", json={}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_employees"] == 0
        assert data["total_payroll"] == 0.0
        assert data["latest_payroll_cycle"] is None
        assert data["recent_leaves"] == []

    async def test_counts(self, client, db, admin_headers, employee_headers, test_org, test_employee):
        await insert(db, Employee, _make_employee(test_org["id"], email="gone@acme.io", status="terminated"))
        await client.post(
            f"{API}/attendance/create",
            json={
                "employee_id": str(test_employee["id"]),
                "date": date.today().isoformat(),
                "check_in_time": "09:00:00",
            },
            headers=admin_headers,
        )
        leave_type = await _leave_type(client, admin_headers)
        await client.post(
            f"{API}/leave_requests/create",
            json={"leave_id": leave_type["id"], "start_date": "2024-09-02", "end_date": "2024-09-03"},
            headers=employee_headers,
        )
        cycle = await _paid_cycle_with_payroll(client, admin_headers, test_employee["id"])

        resp = await client.post(f"{API}/dashboard/stats", json={}, headers=admin_headers)
        data = resp.json()["data"]
        assert data["total_employees"] == 2
        assert data["active_employees"] == 1
        assert data["departments"] == 1
        assert data["present_today"] == 1
        assert data["pending_leaves"] == 1
        assert data["total_payroll"] == 40000.0
        assert data["latest_payroll_cycle"] == {"id": cycle["id"], "name": "July 2024"}
        assert len(data["recent_leaves"]) == 1
        assert "payroll" in {a["entity_type"] for a in data["recent_activities"]}

    async def test_employee_forbidden(self, client, employee_headers):
        resp = await client.post(f"{API}/dashboard/stats", json={}, headers=employee_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 2. Attendance stats
# ═════════════════════════════════════════════════════════════════════


class TestAttendanceStats:
    async def test_month_over_month(self, client, admin_headers, test_employee):
        # June 2024 has 20 weekdays; two attended days for one employee
        for day, out_time in (("2024-06-03", "18:00:00"), ("2024-06-04", "13:00:00")):
            await client.post(
                f"{API}/attendance/create",
                json={
                    "employee_id": str(test_employee["id"]),
                    "date": day,
                    "check_in_time": "09:00:00",
                    "check_out_time": out_time,
                },
                headers=admin_headers,
            )
        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2024, "month": 6}, headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["attendance_rate"] == 10.0
        assert data["previous_attendance_rate"] == 0.0
        assert data["change"] == 10.0

    async def test_only_active_employees_on_working_days_count(
        self, client, db, admin_headers, test_org, test_employee,
    ):
        org_id = test_org["id"]
        gone = _make_employee(org_id, email="gone@acme.io", delete_flag=True, active_flag=False)
        await insert(db, Employee, gone)
        weekdays = [
            d for d in (date(2024, 6, day) for day in range(1, 31)) if d.weekday() < 5
        ]
        for day in weekdays:
            await insert(db, AttendanceRecord, _present(org_id, gone["id"], day))
        for day in weekdays[:10]:
            await insert(db, AttendanceRecord, _present(org_id, test_employee["id"], day))
        # Saturday and Sunday are outside the five-day week
        for day in (date(2024, 6, 1), date(2024, 6, 2)):
            await insert(db, AttendanceRecord, _present(org_id, test_employee["id"], day))

        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2024, "month": 6}, headers=admin_headers,
        )
        assert resp.json()["data"]["attendance_rate"] == 50.0

    async def test_absent_records_not_counted(self, client, admin_headers, test_employee):
        await client.post(
            f"{API}/attendance/create",
            json={"employee_id": str(test_employee["id"]), "date": "2024-06-03", "status": "absent"},
            headers=admin_headers,
        )
        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2024, "month": 6}, headers=admin_headers,
        )
        assert resp.json()["data"]["attendance_rate"] == 0.0

    async def test_january_compares_with_december(self, client, admin_headers, test_employee):
        await client.post(
            f"{API}/attendance/create",
            json={"employee_id": str(test_employee["id"]), "date": "2023-12-04"},
            headers=admin_headers,
        )
        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2024, "month": 1}, headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["previous_attendance_rate"] > 0
        assert data["change"] < 0

    async def test_future_month_is_zero(self, client, admin_headers, test_employee):
        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2100, "month": 1}, headers=admin_headers,
        )
        assert resp.json()["data"]["attendance_rate"] == 0.0

    async def test_invalid_month(self, client, admin_headers):
        resp = await client.post(
            f"{API}/dashboard/attendance-stats", json={"year": 2024, "month": 13}, headers=admin_headers,
        )
        assert resp.status_code == 422


# ═════════════════════════════════════════════════════════════════════
# 3. Employee dashboard
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeDashboard:
    async def test_empty(self, client, employee_headers):
        resp = await client.post(f"{API}/dashboard/employee", json={}, headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "pending_leaves": 0,
            "approved_leaves": 0,
            "latest_payroll": None,
            "today_attendance": None,
        }

    async def test_summary(self, client, admin_headers, employee_headers, test_employee):
        leave_type = await _leave_type(client, admin_headers)
        await client.post(
            f"{API}/leave_requests/create",
            json={"leave_id": leave_type["id"], "start_date": "2024-09-02", "end_date": "2024-09-03"},
            headers=employee_headers,
        )
        await client.post(
            f"{API}/attendance/create",
            json={"date": date.today().isoformat(), "check_in_time": "09:00:00", "source": "mobile"},
            headers=employee_headers,
        )
        await _paid_cycle_with_payroll(client, admin_headers, test_employee["id"])

        resp = await client.post(f"{API}/dashboard/employee", json={}, headers=employee_headers)
        data = resp.json()["data"]
        assert data["pending_leaves"] == 1
        assert data["latest_payroll"]["net_salary"] == 40000
        assert data["today_attendance"]["source"] == "mobile"

    async def test_admin_forbidden(self, client, admin_headers):
        resp = await client.post(f"{API}/dashboard/employee", json={}, headers=admin_headers)
        assert resp.status_code == 403
