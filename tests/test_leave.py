"""Tests for the leave module.

Covers:
  - Leave type CRUD and balance rules
  - Applying for leave: day counting, half days, overlap, notice, auto-approval
  - PENDING → APPROVED / REJECTED / CANCELLED transitions and who may make them
  - Request listing filters and statistics
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select

from hrms.common.audit import AuditTrail
from hrms.core_hr.models import Employee
from tests.conftest import _make_employee, insert

API = "/api/v1"


async def _create_leave_type(client, headers, **overrides):
    body = {"name": "Casual Leave", "code": "CL", **overrides}
    return await client.post(f"{API}/leaves/create", json=body, headers=headers)


async def _apply(client, headers, leave_id, start="2024-07-01", end="2024-07-03", **overrides):
    body = {"leave_id": leave_id, "start_date": start, "end_date": end, **overrides}
    return await client.post(f"{API}/leave_requests/create", json=body, headers=headers)


async def _set_status(client, headers, request_id, status, **extra):
    return await client.put(
        f"{API}/requests/update_status",
        json={"id": request_id, "status": status, **extra},
        headers=headers,
    )


# ═════════════════════════════════════════════════════════════════════
# 1. Leave types
# ═════════════════════════════════════════════════════════════════════


class TestLeaveTypes:
    async def test_create_defaults(self, client, admin_headers):
        resp = await _create_leave_type(client, admin_headers)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["accrual_method"] == "none"
        assert data["requires_approval"] is True
        assert resp.json()["message"] == "Leave created successfully."

    async def test_code_unique(self, client, admin_headers):
        await _create_leave_type(client, admin_headers)
        resp = await _create_leave_type(client, admin_headers, name="Other", code="cl")
        assert resp.status_code == 409

    async def test_initial_balance_capped(self, client, admin_headers):
        resp = await _create_leave_type(client, admin_headers, initial_balance=15, max_balance=10)
        assert resp.status_code == 422
        assert "initial_balance" in resp.json()["errors"]

    async def test_carry_forward_limit_needs_flag(self, client, admin_headers):
        resp = await _create_leave_type(client, admin_headers, carry_forward_limit=5)
        assert resp.status_code == 422
        resp = await _create_leave_type(
            client, admin_headers, carry_forward_limit=5, allow_carry_forward=True,
        )
        assert resp.status_code == 201

    async def test_update_checks_stored_balance(self, client, admin_headers):
        leave_type = (await _create_leave_type(client, admin_headers, max_balance=10)).json()["data"]
        resp = await client.put(
            f"{API}/leaves/update",
            json={"id": leave_type["id"], "initial_balance": 12},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_employee_reads_types(self, client, admin_headers, employee_headers):
        await _create_leave_type(client, admin_headers)
        resp = await client.post(f"{API}/leaves/list", json={}, headers=employee_headers)
        assert [t["code"] for t in resp.json()["data"]] == ["CL"]
        resp = await _create_leave_type(client, employee_headers, code="SL")
        assert resp.status_code == 403

    async def test_type_with_open_requests_not_deleted(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        await _apply(client, employee_headers, leave_type["id"])
        resp = await client.patch(f"{API}/leaves/delete", json={"id": leave_type["id"]}, headers=admin_headers)
        assert resp.status_code == 409

    async def test_type_with_closed_requests_deleted(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        request = (await _apply(client, employee_headers, leave_type["id"])).json()["data"]
        await _set_status(client, admin_headers, request["id"], "REJECTED")
        resp = await client.patch(f"{API}/leaves/delete", json={"id": leave_type["id"]}, headers=admin_headers)
        assert resp.status_code == 200


# ═════════════════════════════════════════════════════════════════════
# 2. Applying for leave
# ═════════════════════════════════════════════════════════════════════


class TestApply:
    async def test_employee_applies_for_self(self, client, admin_headers, employee_headers, test_employee):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"], reason="Family function")
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["employee_id"] == str(test_employee["id"])
        assert data["total_days"] == 3.0
        assert data["status"] == "PENDING"

    async def test_half_day(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(
            client, employee_headers, leave_type["id"],
            start="2024-07-05", end="2024-07-05", is_half_day=True, half_day_period="first_half",
        )
        data = resp.json()["data"]
        assert data["total_days"] == 0.5
        assert data["half_day_period"] == "first_half"

    async def test_half_day_spanning_days_rejected(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"], is_half_day=True)
        assert resp.status_code == 422

    async def test_end_before_start(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"], start="2024-07-05", end="2024-07-01")
        assert resp.status_code == 422

    async def test_admin_must_name_employee(self, client, admin_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(client, admin_headers, leave_type["id"])
        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]

    async def test_unknown_leave_type(self, client, employee_headers):
        resp = await _apply(client, employee_headers, "00000000-0000-0000-0000-000000000001")
        assert resp.status_code == 422
        assert "leave_id" in resp.json()["errors"]

    async def test_inactive_leave_type(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        await client.put(
            f"{API}/leaves/update", json={"id": leave_type["id"], "active_flag": False}, headers=admin_headers,
        )
        resp = await _apply(client, employee_headers, leave_type["id"])
        assert resp.status_code == 422

    async def test_overlap_conflicts(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        await _apply(client, employee_headers, leave_type["id"])
        resp = await _apply(client, employee_headers, leave_type["id"], start="2024-07-03", end="2024-07-04")
        assert resp.status_code == 409

    async def test_cancelled_request_frees_dates(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        first = (await _apply(client, employee_headers, leave_type["id"])).json()["data"]
        await _set_status(client, employee_headers, first["id"], "CANCELLED")
        resp = await _apply(client, employee_headers, leave_type["id"])
        assert resp.status_code == 201

    async def test_max_consecutive_days(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers, max_consecutive_days=2)).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"])
        assert resp.status_code == 422
        assert "end_date" in resp.json()["errors"]

    async def test_notice_applies_to_employees(self, client, admin_headers, employee_headers, test_employee):
        leave_type = (
            await _create_leave_type(client, admin_headers, min_advance_notice_days=7)
        ).json()["data"]
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        resp = await _apply(client, employee_headers, leave_type["id"], start=tomorrow, end=tomorrow)
        assert resp.status_code == 422
        assert "start_date" in resp.json()["errors"]

        resp = await _apply(
            client, admin_headers, leave_type["id"], start=tomorrow, end=tomorrow,
            employee_id=str(test_employee["id"]),
        )
        assert resp.status_code == 201

    async def test_auto_approved_type(self, client, admin_headers, employee_headers):
        leave_type = (
            await _create_leave_type(client, admin_headers, name="Birthday", code="BD", requires_approval=False)
        ).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"], start="2024-07-10", end="2024-07-10")
        data = resp.json()["data"]
        assert data["status"] == "APPROVED"
        assert data["approved_at"] is not None

    async def test_handover_to_self_rejected(self, client, admin_headers, employee_headers, test_employee):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        resp = await _apply(client, employee_headers, leave_type["id"], handover_to=str(test_employee["id"]))
        assert resp.status_code == 422
        assert "handover_to" in resp.json()["errors"]

    async def test_handover_include(self, client, db, admin_headers, employee_headers, test_org):
        colleague = _make_employee(test_org["id"], email="cover@acme.io", name="Cover Person")
        await insert(db, Employee, colleague)
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        request = (
            await _apply(client, employee_headers, leave_type["id"], handover_to=str(colleague["id"]))
        ).json()["data"]

        resp = await client.post(
            f"{API}/requests/one",
            json={"id": request["id"], "include": ["handover_employee", "leave"]},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["handover_employee"]["name"] == "Cover Person"
        assert data["leave"]["code"] == "CL"


# ═════════════════════════════════════════════════════════════════════
# 3. Status transitions
# ═════════════════════════════════════════════════════════════════════


class TestStatusTransitions:
    async def _pending(self, client, admin_headers, employee_headers):
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        return (await _apply(client, employee_headers, leave_type["id"])).json()["data"]

    async def test_admin_approves(self, client, db, admin_headers, employee_headers, test_admin):
        request = await self._pending(client, admin_headers, employee_headers)
        resp = await _set_status(
            client, admin_headers, request["id"], "APPROVED", approver_comments="Enjoy",
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Leave request approved successfully."
        assert body["data"]["status"] == "APPROVED"
        assert body["data"]["approved_by"] == str(test_admin["id"])
        assert body["data"]["approver_comments"] == "Enjoy"

        result = await db.execute(
            select(AuditTrail).where(AuditTrail.action == "update_status"),
        )
        entry = result.scalars().one()
        assert entry.old_values == {"status": "PENDING"}

    async def test_admin_rejects(self, client, admin_headers, employee_headers):
        request = await self._pending(client, admin_headers, employee_headers)
        resp = await _set_status(client, admin_headers, request["id"], "REJECTED")
        data = resp.json()["data"]
        assert data["status"] == "REJECTED"
        assert data["rejected_at"] is not None

    async def test_employee_cannot_approve(self, client, admin_headers, employee_headers):
        request = await self._pending(client, admin_headers, employee_headers)
        resp = await _set_status(client, employee_headers, request["id"], "APPROVED")
        assert resp.status_code == 403

    async def test_employee_cancels_own(self, client, admin_headers, employee_headers):
        request = await self._pending(client, admin_headers, employee_headers)
        resp = await _set_status(client, employee_headers, request["id"], "CANCELLED")
        assert resp.json()["data"]["status"] == "CANCELLED"
        assert resp.json()["message"] == "Leave request cancelled successfully."

    async def test_decided_request_is_final(self, client, admin_headers, employee_headers):
        request = await self._pending(client, admin_headers, employee_headers)
        await _set_status(client, admin_headers, request["id"], "APPROVED")
        resp = await _set_status(client, admin_headers, request["id"], "CANCELLED")
        assert resp.status_code == 422
        resp = await _set_status(client, admin_headers, request["id"], "PENDING")
        assert resp.status_code == 422

    async def test_cannot_touch_colleagues_request(
        self, client, db, admin_headers, test_org, employee_headers,
    ):
        colleague = _make_employee(test_org["id"], email="colleague@acme.io")
        await insert(db, Employee, colleague)
        leave_type = (await _create_leave_type(client, admin_headers)).json()["data"]
        request = (
            await _apply(client, admin_headers, leave_type["id"], employee_id=str(colleague["id"]))
        ).json()["data"]
        resp = await _set_status(client, employee_headers, request["id"], "CANCELLED")
        assert resp.status_code == 404

    async def test_employee_cannot_delete(self, client, admin_headers, employee_headers):
        request = await self._pending(client, admin_headers, employee_headers)
        resp = await client.patch(
            f"{API}/leave_requests/delete", json={"id": request["id"]}, headers=employee_headers,
        )
        assert resp.status_code == 403
        resp = await client.patch(
            f"{API}/leave_requests/delete", json={"id": request["id"]}, headers=admin_headers,
        )
        assert resp.status_code == 200


# ═════════════════════════════════════════════════════════════════════
# 4. Listing and statistics
# ═════════════════════════════════════════════════════════════════════


class TestListingAndStatistics:
    async def _seed(self, client, db, admin_headers, test_org, test_employee):
        other = _make_employee(test_org["id"], email="other@acme.io", name="Other Person")
        await insert(db, Employee, other)
        casual = (await _create_leave_type(client, admin_headers)).json()["data"]
        sick = (await _create_leave_type(client, admin_headers, name="Sick Leave", code="SL")).json()["data"]

        first = (
            await _apply(client, admin_headers, casual["id"], employee_id=str(test_employee["id"]))
        ).json()["data"]
        await _apply(
            client, admin_headers, sick["id"], start="2024-08-01", end="2024-08-01",
            employee_id=str(other["id"]),
        )
        await _set_status(client, admin_headers, first["id"], "APPROVED")
        return casual, sick, other

    async def test_filters(self, client, db, admin_headers, test_org, test_employee):
        casual, sick, other = await self._seed(client, db, admin_headers, test_org, test_employee)

        resp = await client.post(f"{API}/requests/list", json={"status": "PENDING"}, headers=admin_headers)
        assert [r["employee_id"] for r in resp.json()["data"]] == [str(other["id"])]

        resp = await client.post(f"{API}/requests/list", json={"leave_id": casual["id"]}, headers=admin_headers)
        assert resp.json()["page_info"]["total_count"] == 1

        resp = await client.post(
            f"{API}/requests/list",
            json={"date_from": "2024-07-02", "date_to": "2024-07-31"},
            headers=admin_headers,
        )
        assert [r["leave_id"] for r in resp.json()["data"]] == [casual["id"]]

        resp = await client.post(
            f"{API}/requests/list",
            json={"department_id": str(test_employee["department_id"])},
            headers=admin_headers,
        )
        assert [r["employee_id"] for r in resp.json()["data"]] == [str(test_employee["id"])]

    async def test_newest_start_first(self, client, db, admin_headers, test_org, test_employee):
        await self._seed(client, db, admin_headers, test_org, test_employee)
        resp = await client.post(f"{API}/requests/list", json={}, headers=admin_headers)
        assert [r["start_date"] for r in resp.json()["data"]] == ["2024-08-01", "2024-07-01"]

    async def test_employee_sees_own_requests(
        self, client, db, admin_headers, employee_headers, test_org, test_employee,
    ):
        await self._seed(client, db, admin_headers, test_org, test_employee)
        resp = await client.post(f"{API}/requests/list", json={}, headers=employee_headers)
        assert [r["employee_id"] for r in resp.json()["data"]] == [str(test_employee["id"])]

    async def test_statistics(self, client, db, admin_headers, test_org, test_employee):
        casual, sick, _ = await self._seed(client, db, admin_headers, test_org, test_employee)
        resp = await client.post(f"{API}/requests/statistics", json={}, headers=admin_headers)
        stats = resp.json()["data"]
        assert stats["total"] == 2
        assert stats["pending"] == 1
        assert stats["approved"] == 1
        assert stats["total_days_requested"] == 4.0
        assert stats["average_processing_time"] >= 0

        by_type = {row["leave_name"]: row for row in stats["leave_type_distribution"]}
        assert by_type["Casual Leave"]["days"] == 3.0
        assert by_type["Sick Leave"]["count"] == 1

        by_department = {row["department_name"]: row["count"] for row in stats["department_distribution"]}
        assert by_department == {"Engineering": 1, "Unassigned": 1}

    async def test_employee_statistics_are_own(
        self, client, db, admin_headers, employee_headers, test_org, test_employee,
    ):
        await self._seed(client, db, admin_headers, test_org, test_employee)
        resp = await client.post(f"{API}/requests/statistics", json={}, headers=employee_headers)
        assert resp.json()["data"]["total"] == 1
