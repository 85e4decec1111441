"""Tests for the core HR module — departments, designations, employees, documents.

Covers:
  - Department CRUD, name uniqueness and delete protection
  - Designation uniqueness per department, employee counts and vacancies
  - Employee create / update / list / one / delete, code generation,
    global email uniqueness, cross-field checks, bulk update,
    statistics and CSV export
  - Employee documents: upload, list, download, delete
  - Employees only ever see their own record
"""

from __future__ import annotations

import csv
import io
import uuid

from hrms.core_hr.models import Department, Designation, Employee
from tests.conftest import (
    _make_department,
    _make_designation,
    _make_employee,
    insert,
)

API = "/api/v1"


def _employee_payload(**overrides) -> dict:
    payload = {
        "name": "Nisha Rao",
        "code": "E-100",
        "email": "nisha.rao@acme.io",
        "mobile": "9000000100",
        "password": "nisha-pass-123",
        "joining_date": "2024-03-01",
    }
    payload.update(overrides)
    return payload


async def _create_employee(client, headers, **overrides):
    return await client.post(f"{API}/employees/create", json=_employee_payload(**overrides), headers=headers)


# ═════════════════════════════════════════════════════════════════════
# 1. Departments
# ═════════════════════════════════════════════════════════════════════


class TestDepartments:
    async def test_create_department(self, client, admin_headers):
        resp = await client.post(
            f"{API}/departments/create",
            json={"name": "  Finance  ", "description": "Money"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["name"] == "Finance"

    async def test_duplicate_name_conflicts(self, client, admin_headers, test_department):
        resp = await client.post(
            f"{API}/departments/create", json={"name": "engineering"}, headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["type"] == "conflict"

    async def test_blank_name_rejected(self, client, admin_headers):
        resp = await client.post(f"{API}/departments/create", json={"name": ""}, headers=admin_headers)
        assert resp.status_code == 422

    async def test_list_sorted_by_name_with_designations(
        self, client, admin_headers, test_department, test_designation,
    ):
        await client.post(f"{API}/departments/create", json={"name": "Admin"}, headers=admin_headers)
        resp = await client.post(
            f"{API}/departments/list", json={"include": ["designations"]}, headers=admin_headers,
        )
        data = resp.json()["data"]
        assert [d["name"] for d in data] == ["Admin", "Engineering"]
        assert data[0]["designations"] == []
        assert data[1]["designations"][0]["name"] == "Software Engineer"

    async def test_delete_in_use_department_conflicts(self, client, admin_headers, test_department, test_employee):
        resp = await client.patch(
            f"{API}/departments/delete", json={"id": str(test_department["id"])}, headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_delete_unused_department(self, client, admin_headers, test_department):
        resp = await client.patch(
            f"{API}/departments/delete", json={"id": str(test_department["id"])}, headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"id": str(test_department["id"])}

        resp = await client.post(
            f"{API}/departments/one", json={"id": str(test_department["id"])}, headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_deactivate_through_update(self, client, admin_headers, test_department):
        resp = await client.put(
            f"{API}/departments/update",
            json={"id": str(test_department["id"]), "active_flag": False},
            headers=admin_headers,
        )
        assert resp.json()["data"]["active_flag"] is False

        resp = await client.post(f"{API}/departments/list", json={"active_flag": True}, headers=admin_headers)
        assert resp.json()["data"] == []

    async def test_unknown_id_not_found(self, client, admin_headers):
        resp = await client.post(
            f"{API}/departments/one", json={"id": str(uuid.uuid4())}, headers=admin_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["title"] == "Department Not Found"


# ═════════════════════════════════════════════════════════════════════
# 2. Designations
# ═════════════════════════════════════════════════════════════════════


class TestDesignations:
    async def test_unknown_department_rejected(self, client, admin_headers):
        resp = await client.post(
            f"{API}/designations/create",
            json={"name": "Analyst", "department_id": str(uuid.uuid4())},
            headers=admin_headers,
        )
        assert resp.status_code == 422
        assert "department_id" in resp.json()["errors"]

    async def test_name_unique_within_department(self, client, db, admin_headers, test_org, test_designation):
        resp = await client.post(
            f"{API}/designations/create",
            json={"name": "software engineer", "department_id": str(test_designation["department_id"])},
            headers=admin_headers,
        )
        assert resp.status_code == 409

        other = _make_department(test_org["id"], name="Research")
        await insert(db, Department, other)
        resp = await client.post(
            f"{API}/designations/create",
            json={"name": "Software Engineer", "department_id": str(other["id"])},
            headers=admin_headers,
        )
        assert resp.status_code == 201

    async def test_list_with_employee_count(self, client, admin_headers, test_designation, test_employee):
        resp = await client.post(
            f"{API}/designations/list-with-employee-count", json={}, headers=admin_headers,
        )
        assert resp.status_code == 200
        item = resp.json()["data"][0]
        assert item["employee_count"] == 1
        assert item["vacancies"] == 4

    async def test_filter_by_department(self, client, db, admin_headers, test_org, test_designation):
        await insert(db, Designation, _make_designation(test_org["id"], name="Floating"))
        resp = await client.post(
            f"{API}/designations/list",
            json={"department_id": str(test_designation["department_id"]), "include": ["department"]},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert [d["name"] for d in data] == ["Software Engineer"]
        assert data[0]["department"]["name"] == "Engineering"

    async def test_employee_cannot_count(self, client, employee_headers):
        resp = await client.post(
            f"{API}/designations/list-with-employee-count", json={}, headers=employee_headers,
        )
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 3. Employees
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeCreate:
    async def test_create_employee(self, client, admin_headers, test_department, test_designation):
        resp = await _create_employee(
            client, admin_headers,
            department_id=str(test_department["id"]),
            designation_id=str(test_designation["id"]),
            bank_details={"bank_name": "HDFC", "ifsc_code": "HDFC0001"},
            basic_salary=42000,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["code"] == "E-100"
        assert data["status"] == "active"
        assert data["bank_details"]["bank_name"] == "HDFC"
        assert data["basic_salary"] == 42000
        assert "password" not in data
        assert "password_hash" not in data

    async def test_created_employee_can_log_in(self, client, admin_headers):
        await _create_employee(client, admin_headers)
        resp = await client.post(
            f"{API}/auth/employee/login",
            json={"email": "NISHA.RAO@acme.io", "password": "nisha-pass-123"},
        )
        assert resp.status_code == 200

    async def test_code_required_without_auto_generation(self, client, admin_headers):
        resp = await _create_employee(client, admin_headers, code=None)
        assert resp.status_code == 422
        assert "code" in resp.json()["errors"]

    async def test_auto_generated_codes(self, client, admin_headers, test_org):
        await client.put(
            f"{API}/organisations/update",
            json={
                "id": str(test_org["id"]),
                "is_employee_code_generation_type_auto": True,
                "employee_code_prefix": "ACME-",
                "employee_code_from": 7,
                "employee_code_to": 8,
            },
            headers=admin_headers,
        )
        first = await _create_employee(client, admin_headers, code=None)
        second = await _create_employee(
            client, admin_headers, code=None, email="second@acme.io", mobile="9000000101",
        )
        third = await _create_employee(
            client, admin_headers, code=None, email="third@acme.io", mobile="9000000102",
        )
        assert first.json()["data"]["code"] == "ACME-7"
        assert second.json()["data"]["code"] == "ACME-8"
        assert third.status_code == 422

    async def test_email_unique_across_organisations(self, client, admin_headers, test_employee):
        resp = await _create_employee(client, admin_headers, email=test_employee["email"].upper())
        assert resp.status_code == 409
        assert "email" in resp.json()["errors"]

    async def test_code_unique_in_organisation(self, client, admin_headers, test_employee):
        resp = await _create_employee(client, admin_headers, code=test_employee["code"])
        assert resp.status_code == 409

    async def test_designation_must_match_department(self, client, db, admin_headers, test_org, test_designation):
        other = _make_department(test_org["id"], name="Sales")
        await insert(db, Department, other)
        resp = await _create_employee(
            client, admin_headers,
            department_id=str(other["id"]),
            designation_id=str(test_designation["id"]),
        )
        assert resp.status_code == 422
        assert "designation_id" in resp.json()["errors"]

    async def test_date_of_birth_in_future_rejected(self, client, admin_headers):
        resp = await _create_employee(client, admin_headers, date_of_birth="2999-01-01")
        assert resp.status_code == 422

    async def test_joining_before_birth_rejected(self, client, admin_headers):
        resp = await _create_employee(
            client, admin_headers, date_of_birth="2000-01-01", joining_date="1999-06-01",
        )
        assert resp.status_code == 422
        assert "joining_date" in resp.json()["errors"]

    async def test_employee_cannot_create(self, client, employee_headers):
        resp = await _create_employee(client, employee_headers)
        assert resp.status_code == 403


class TestEmployeeReadUpdate:
    async def test_list_filters_and_search(self, client, db, admin_headers, test_org, test_employee):
        await insert(db, Employee, _make_employee(
            test_org["id"], email="zara@acme.io", name="Zara Khan", status="on_leave",
        ))

        resp = await client.post(f"{API}/employees/list", json={"status": "on_leave"}, headers=admin_headers)
        assert [e["name"] for e in resp.json()["data"]] == ["Zara Khan"]

        resp = await client.post(f"{API}/employees/list", json={"search": "zara"}, headers=admin_headers)
        assert resp.json()["page_info"]["total_count"] == 1

        resp = await client.post(
            f"{API}/employees/list",
            json={"department_id": str(test_employee["department_id"])},
            headers=admin_headers,
        )
        assert [e["id"] for e in resp.json()["data"]] == [str(test_employee["id"])]

    async def test_joining_date_range(self, client, db, admin_headers, test_org, test_employee):
        await insert(db, Employee, _make_employee(
            test_org["id"], email="late@acme.io", name="Late Joiner", joining_date=None,
        ))
        resp = await client.post(
            f"{API}/employees/list",
            json={"joining_date_from": "2024-01-01", "joining_date_to": "2024-12-31"},
            headers=admin_headers,
        )
        assert [e["id"] for e in resp.json()["data"]] == [str(test_employee["id"])]

    async def test_one_with_includes(self, client, admin_headers, test_employee):
        resp = await client.post(
            f"{API}/employees/one",
            json={"id": str(test_employee["id"]), "include": ["department", "designation", "shift"]},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["department"]["name"] == "Engineering"
        assert data["designation"]["name"] == "Software Engineer"
        assert data["shift"] is None

    async def test_includes_skip_soft_deleted_rows(
        self, client, db, admin_headers, test_employee, test_department, test_designation,
    ):
        department = await db.get(Department, test_department["id"])
        department.delete_flag = True
        designation = await db.get(Designation, test_designation["id"])
        designation.delete_flag = True
        await db.commit()

        resp = await client.post(
            f"{API}/employees/one",
            json={"id": str(test_employee["id"]), "include": ["department", "designation"]},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["department"] is None
        assert data["designation"] is None

    async def test_employee_sees_only_self(self, client, db, employee_headers, test_org, test_employee):
        colleague = _make_employee(test_org["id"], email="colleague@acme.io", name="Colleague")
        await insert(db, Employee, colleague)

        resp = await client.post(f"{API}/employees/list", json={}, headers=employee_headers)
        assert [e["id"] for e in resp.json()["data"]] == [str(test_employee["id"])]

        resp = await client.post(
            f"{API}/employees/one", json={"id": str(colleague["id"])}, headers=employee_headers,
        )
        assert resp.status_code == 404

    async def test_update_employee(self, client, admin_headers, test_employee):
        resp = await client.put(
            f"{API}/employees/update",
            json={"id": str(test_employee["id"]), "city": "Pune", "status": "on_leave"},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["city"] == "Pune"
        assert data["status"] == "on_leave"
        assert data["email"] == test_employee["email"]

    async def test_update_to_taken_email_conflicts(self, client, db, admin_headers, test_org, test_employee):
        await insert(db, Employee, _make_employee(test_org["id"], email="taken@acme.io"))
        resp = await client.put(
            f"{API}/employees/update",
            json={"id": str(test_employee["id"]), "email": "taken@acme.io"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_update_keeping_own_email(self, client, admin_headers, test_employee):
        resp = await client.put(
            f"{API}/employees/update",
            json={"id": str(test_employee["id"]), "email": test_employee["email"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200

    async def test_update_null_name_rejected(self, client, admin_headers, test_employee):
        resp = await client.put(
            f"{API}/employees/update",
            json={"id": str(test_employee["id"]), "name": None},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_delete_frees_email(self, client, admin_headers, test_employee):
        resp = await client.patch(
            f"{API}/employees/delete", json={"id": str(test_employee["id"])}, headers=admin_headers,
        )
        assert resp.status_code == 200
        resp = await _create_employee(client, admin_headers, email=test_employee["email"])
        assert resp.status_code == 201


class TestEmployeeBulkAndReports:
    async def test_update_many(self, client, db, admin_headers, test_org, test_employee):
        other = _make_employee(test_org["id"], email="other@acme.io")
        await insert(db, Employee, other)

        resp = await client.put(
            f"{API}/employees/update-many",
            json={
                "ids": [str(test_employee["id"]), str(other["id"])],
                "changes": {"included_in_payroll": False},
            },
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "2 employee(s) updated successfully."
        assert all(e["included_in_payroll"] is False for e in resp.json()["data"])

    async def test_update_many_requires_changes(self, client, admin_headers, test_employee):
        resp = await client.put(
            f"{API}/employees/update-many",
            json={"ids": [str(test_employee["id"])], "changes": {}},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_update_many_unknown_id(self, client, admin_headers, test_employee):
        resp = await client.put(
            f"{API}/employees/update-many",
            json={"ids": [str(test_employee["id"]), str(uuid.uuid4())], "changes": {"status": "inactive"}},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_statistics(self, client, db, admin_headers, test_org, test_employee):
        await insert(db, Employee, _make_employee(
            test_org["id"], email="away@acme.io", status="inactive", included_in_payroll=False,
        ))
        resp = await client.post(f"{API}/employees/statistics", json={}, headers=admin_headers)
        stats = resp.json()["data"]
        assert stats["total_employees"] == 2
        assert stats["active_employees"] == 1
        assert stats["inactive_employees"] == 1
        assert stats["included_in_payroll"] == 1
        assert stats["by_status"] == {"active": 1, "inactive": 1}
        names = {d["department_name"]: d["count"] for d in stats["by_department"]}
        assert names == {"Engineering": 1, "Unassigned": 1}

    async def test_export_csv(self, client, admin_headers, test_employee):
        resp = await client.post(f"{API}/employees/export", json={}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        rows = list(csv.reader(io.StringIO(resp.text)))
        assert rows[0][:3] == ["code", "name", "email"]
        assert rows[1][0] == test_employee["code"]
        assert rows[1][4] == "Engineering"
        assert rows[1][5] == "Software Engineer"

    async def test_employee_cannot_export(self, client, employee_headers):
        resp = await client.post(f"{API}/employees/export", json={}, headers=employee_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 4. Employee documents
# ═════════════════════════════════════════════════════════════════════


async def _upload(client, headers, employee_id, *, content=b"%PDF-1.4 test", content_type="application/pdf"):
    return await client.post(
        f"{API}/employees/documents/upload",
        data={"employee_id": str(employee_id), "document_type": "id_proof"},
        files={"file": ("passport.pdf", content, content_type)},
        headers=headers,
    )


class TestEmployeeDocuments:
    async def test_upload_list_download_delete(self, client, admin_headers, test_employee, upload_dir):
        resp = await _upload(client, admin_headers, test_employee["id"])
        assert resp.status_code == 201
        document = resp.json()["data"]
        assert document["file_name"] == "passport.pdf"
        assert document["size_bytes"] == len(b"%PDF-1.4 test")
        assert document["document_type"] == "id_proof"

        resp = await client.post(
            f"{API}/employees/documents",
            json={"employee_id": str(test_employee["id"])},
            headers=admin_headers,
        )
        assert [d["id"] for d in resp.json()["data"]] == [document["id"]]

        resp = await client.get(
            f"{API}/employees/documents/{document['id']}/download", headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.content == b"%PDF-1.4 test"

        resp = await client.patch(
            f"{API}/employees/documents/delete", json={"id": document["id"]}, headers=admin_headers,
        )
        assert resp.status_code == 200
        resp = await client.get(
            f"{API}/employees/documents/{document['id']}/download", headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_disallowed_type(self, client, admin_headers, test_employee, upload_dir):
        resp = await _upload(client, admin_headers, test_employee["id"], content_type="text/plain")
        assert resp.status_code == 422
        assert "file" in resp.json()["errors"]

    async def test_empty_file(self, client, admin_headers, test_employee, upload_dir):
        resp = await _upload(client, admin_headers, test_employee["id"], content=b"")
        assert resp.status_code == 422

    async def test_unknown_employee(self, client, admin_headers, test_org, upload_dir):
        resp = await _upload(client, admin_headers, uuid.uuid4())
        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]

    async def test_employee_sees_own_documents_only(
        self, client, db, admin_headers, employee_headers, test_org, test_employee, upload_dir,
    ):
        colleague = _make_employee(test_org["id"], email="colleague@acme.io")
        await insert(db, Employee, colleague)
        own = (await _upload(client, admin_headers, test_employee["id"])).json()["data"]
        theirs = (await _upload(client, admin_headers, colleague["id"])).json()["data"]

        resp = await client.post(f"{API}/employees/documents", json={}, headers=employee_headers)
        assert [d["id"] for d in resp.json()["data"]] == [own["id"]]

        resp = await client.get(
            f"{API}/employees/documents/{theirs['id']}/download", headers=employee_headers,
        )
        assert resp.status_code == 404

    async def test_employee_cannot_upload(self, client, employee_headers, test_employee, upload_dir):
        resp = await _upload(client, employee_headers, test_employee["id"])
        assert resp.status_code == 403
