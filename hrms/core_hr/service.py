"""Core HR service layer — business logic for departments, designations,
employees and employee documents.

All methods are async and accept an ``AsyncSession`` as the first argument.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import uuid
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendancePolicy, Shift
from hrms.attendance.schemas import AttendancePolicyOut, ShiftOut
from hrms.auth.security import hash_password
from hrms.common.constants import EmployeeStatus
from hrms.common.crud import CrudService
from hrms.common.exceptions import ConflictError, ValidationException
from hrms.common.filters import apply_search, apply_sorting
from hrms.common.pagination import PageInfo, paginate
from hrms.config import settings
from hrms.core_hr.models import Department, Designation, Employee, EmployeeDocument
from hrms.core_hr.schemas import (
    DepartmentBrief,
    DepartmentOut,
    DesignationBrief,
    DesignationListRequest,
    DesignationOut,
    EmployeeDocumentOut,
    EmployeeOut,
)
from hrms.organisation.models import Branch
from hrms.organisation.schemas import BranchOut
from hrms.organisation.service import allocate_employee_code

logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES = {
    "image/jpeg",
    "image/png",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

EXPORT_COLUMNS = (
    "code", "name", "email", "mobile", "department", "designation",
    "branch", "status", "joining_date", "included_in_payroll",
)


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService(CrudService):
    model = Department
    entity_name = "Department"
    entity_type = "department"
    out_schema = DepartmentOut
    search_columns = ("name", "description")
    unique_fields = ("name",)
    includes = {"designations": DesignationBrief}
    default_sort = "name"

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        result = await db.execute(
            select(func.count()).select_from(Employee).where(
                Employee.department_id == obj.id,
                Employee.delete_flag.is_(False),
            ),
        )
        in_use = result.scalar_one()
        if in_use:
            raise ConflictError(
                "department", obj.name,
                detail=f"Department '{obj.name}' still has {in_use} employee(s) assigned.",
            )


# ═════════════════════════════════════════════════════════════════════
# DesignationService
# ═════════════════════════════════════════════════════════════════════


class DesignationService(CrudService):
    model = Designation
    entity_name = "Designation"
    entity_type = "designation"
    out_schema = DesignationOut
    search_columns = ("name", "description")
    references = {"department_id": Department}
    includes = {"department": DepartmentBrief}
    default_sort = "name"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        # Name is unique within a department
        query = select(func.count()).select_from(Designation).where(
            Designation.organisation_id == organisation_id,
            Designation.delete_flag.is_(False),
            func.lower(Designation.name) == values["name"].lower(),
        )
        if values.get("department_id") is None:
            query = query.where(Designation.department_id.is_(None))
        else:
            query = query.where(Designation.department_id == values["department_id"])
        if instance is not None:
            query = query.where(Designation.id != instance.id)
        if (await db.execute(query)).scalar_one():
            raise ConflictError("name", values["name"])

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        result = await db.execute(
            select(func.count()).select_from(Employee).where(
                Employee.designation_id == obj.id,
                Employee.delete_flag.is_(False),
            ),
        )
        in_use = result.scalar_one()
        if in_use:
            raise ConflictError(
                "designation", obj.name,
                detail=f"Designation '{obj.name}' still has {in_use} employee(s) assigned.",
            )

    @classmethod
    async def list_with_employee_count(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        req: DesignationListRequest,
    ) -> tuple[list[dict[str, Any]], PageInfo]:
        """Page of designations, each with its live ``employee_count``."""
        rows, page_info = await cls.list_rows(db, organisation_id, None, req)
        counts: dict[uuid.UUID, int] = {}
        if rows:
            result = await db.execute(
                select(Employee.designation_id, func.count())
                .where(
                    Employee.organisation_id == organisation_id,
                    Employee.delete_flag.is_(False),
                    Employee.designation_id.in_([row.id for row in rows]),
                )
                .group_by(Employee.designation_id),
            )
            counts = {designation_id: count for designation_id, count in result.all()}

        data = []
        for row in rows:
            item = cls.serialize(row, req.include)
            item["employee_count"] = counts.get(row.id, 0)
            if row.positions is not None:
                item["vacancies"] = max(row.positions - item["employee_count"], 0)
            data.append(item)
        return data, page_info


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService(CrudService):
    model = Employee
    entity_name = "Employee"
    entity_type = "employee"
    out_schema = EmployeeOut
    search_columns = ("name", "code", "email", "mobile")
    unique_fields = ("code",)
    global_unique_fields = ("email", "mobile")
    references = {
        "department_id": Department,
        "designation_id": Designation,
        "shift_id": Shift,
        "attendance_rule_id": AttendancePolicy,
        "branch_id": Branch,
    }
    includes = {
        "department": DepartmentOut,
        "designation": DesignationOut,
        "shift": ShiftOut,
        "attendance_rule": AttendancePolicyOut,
        "branch": BranchOut,
    }
    # Employees see only their own record
    owner_field = "id"
    default_sort = "name"

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        password = values.pop("password", None)
        if password:
            values["password_hash"] = hash_password(password)
        if not values.get("code"):
            code = await allocate_employee_code(db, organisation_id)
            if code is None:
                raise ValidationException(
                    {"code": ["Employee code is required when automatic generation is off."]},
                )
            values["code"] = code

    @classmethod
    async def before_update(cls, db, obj, principal, changes) -> None:
        password = changes.pop("password", None)
        if password:
            changes["password_hash"] = hash_password(password)

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        designation_id = values.get("designation_id")
        department_id = values.get("department_id")
        if designation_id is not None and department_id is not None:
            result = await db.execute(
                select(Designation.department_id).where(Designation.id == designation_id),
            )
            owner = result.scalar_one_or_none()
            if owner is not None and owner != department_id:
                raise ValidationException(
                    {"designation_id": ["Designation belongs to a different department."]},
                )
        dob = values.get("date_of_birth")
        joining = values.get("joining_date")
        if dob is not None and joining is not None and joining <= dob:
            raise ValidationException(
                {"joining_date": ["Must be after date_of_birth."]},
            )

    # ── Bulk ────────────────────────────────────────────────────────

    @classmethod
    async def update_many(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal,
        ids: Sequence[uuid.UUID],
        changes: dict[str, Any],
    ) -> list[Employee]:
        """Apply the same partial update to every employee in *ids*."""
        if not changes:
            raise ValidationException({"changes": ["At least one field must be set."]})
        updated = []
        for employee_id in dict.fromkeys(ids):
            updated.append(await cls.update(db, organisation_id, principal, employee_id, dict(changes)))
        logger.info("Bulk-updated %d employees in organisation %s", len(updated), organisation_id)
        return updated

    # ── Reporting ───────────────────────────────────────────────────

    @classmethod
    async def statistics(cls, db: AsyncSession, organisation_id: uuid.UUID) -> dict[str, Any]:
        """Head-count totals for the organisation."""
        live = (
            Employee.organisation_id == organisation_id,
            Employee.delete_flag.is_(False),
        )
        today = date.today()
        month_start = today.replace(day=1)

        totals = (
            await db.execute(
                select(
                    func.count().label("total"),
                    func.sum(case(
                        (
                            (Employee.active_flag.is_(True))
                            & (Employee.status == EmployeeStatus.active.value),
                            1,
                        ),
                        else_=0,
                    )).label("active"),
                    func.sum(case((Employee.included_in_payroll.is_(True), 1), else_=0)).label("in_payroll"),
                    func.sum(case((Employee.joining_date >= month_start, 1), else_=0)).label("new_joiners"),
                ).where(*live),
            )
        ).one()

        by_status = (
            await db.execute(
                select(Employee.status, func.count()).where(*live).group_by(Employee.status),
            )
        ).all()

        by_department = (
            await db.execute(
                select(Employee.department_id, Department.name, func.count())
                .select_from(Employee)
                .outerjoin(Department, Department.id == Employee.department_id)
                .where(*live)
                .group_by(Employee.department_id, Department.name)
                .order_by(func.count().desc()),
            )
        ).all()

        total = totals.total or 0
        active = totals.active or 0
        return {
            "total_employees": total,
            "active_employees": active,
            "inactive_employees": total - active,
            "included_in_payroll": totals.in_payroll or 0,
            "new_joiners_this_month": totals.new_joiners or 0,
            "by_status": {status: count for status, count in by_status},
            "by_department": [
                {
                    "department_id": str(department_id) if department_id else None,
                    "department_name": name or "Unassigned",
                    "count": count,
                }
                for department_id, name, count in by_department
            ],
        }

    @classmethod
    async def export_csv(cls, db: AsyncSession, organisation_id: uuid.UUID, req) -> str:
        """Render every employee matching *req* (ignoring paging) as CSV."""
        query = cls.base_query(organisation_id)
        query = cls.apply_list_filters(query, req)
        query = apply_search(query, Employee, req.search, cls.search_columns)
        query = apply_sorting(query, Employee, req.sort, default=cls.default_sort)
        employees = (await db.execute(query)).scalars().all()

        names = {}
        for model in (Department, Designation, Branch):
            result = await db.execute(
                select(model.id, model.name).where(model.organisation_id == organisation_id),
            )
            names[model] = dict(result.all())

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        for emp in employees:
            writer.writerow([
                emp.code,
                emp.name,
                emp.email,
                emp.mobile or "",
                names[Department].get(emp.department_id, ""),
                names[Designation].get(emp.designation_id, ""),
                names[Branch].get(emp.branch_id, ""),
                emp.status,
                emp.joining_date.isoformat() if emp.joining_date else "",
                "yes" if emp.included_in_payroll else "no",
            ])
        logger.info("Exported %d employees of organisation %s", len(employees), organisation_id)
        return buffer.getvalue()


# ═════════════════════════════════════════════════════════════════════
# EmployeeDocumentService
# ═════════════════════════════════════════════════════════════════════


class EmployeeDocumentService(CrudService):
    model = EmployeeDocument
    entity_name = "Employee document"
    entity_type = "employee_document"
    out_schema = EmployeeDocumentOut
    search_columns = ("file_name",)
    references = {"employee_id": Employee}
    owner_field = "employee_id"

    @staticmethod
    def storage_dir(organisation_id: uuid.UUID) -> str:
        return os.path.join(settings.UPLOAD_DIR, "employee_documents", str(organisation_id))

    @classmethod
    def file_path(cls, document: EmployeeDocument) -> str:
        return os.path.join(cls.storage_dir(document.organisation_id), document.stored_name)

    @classmethod
    async def upload(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal,
        *,
        employee_id: uuid.UUID,
        document_type: str,
        file_name: Optional[str],
        content_type: Optional[str],
        contents: bytes,
    ) -> EmployeeDocument:
        """Validate and store an uploaded file, then record it."""
        if content_type not in ALLOWED_DOCUMENT_TYPES:
            raise ValidationException(
                {"file": [f"File type '{content_type}' not allowed. Accepted: JPEG, PNG, PDF, DOC, DOCX."]},
            )
        max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if len(contents) > max_size:
            raise ValidationException(
                {"file": [f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB."]},
            )
        if not contents:
            raise ValidationException({"file": ["File is empty."]})

        # UUID-only stored name; the original name is kept for display
        ext = os.path.splitext(file_name or "")[1].lower()
        stored_name = f"{uuid.uuid4().hex}{ext}"

        document = await cls.create(
            db,
            organisation_id,
            principal,
            {
                "employee_id": employee_id,
                "document_type": document_type,
                "file_name": os.path.basename(file_name or stored_name),
                "stored_name": stored_name,
                "content_type": content_type,
                "size_bytes": len(contents),
            },
        )

        upload_dir = cls.storage_dir(organisation_id)
        os.makedirs(upload_dir, exist_ok=True)
        with open(os.path.join(upload_dir, stored_name), "wb") as f:
            f.write(contents)
        return document
