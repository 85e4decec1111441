"""Core HR router — Department, Designation, Employee and document endpoints.

Routes:
    /departments/*                          — CRUD
    /designations/*                         — CRUD
    /designations/list-with-employee-count  — designations + head count
    /employees/*                            — CRUD (employees read their own record)
    /employees/update-many                  — bulk update
    /employees/statistics                   — head-count totals
    /employees/export                       — CSV download
    /employees/documents[/upload|/delete]   — uploaded files
    /employees/documents/{id}/download      — file download
"""


import os
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.constants import DocumentType
from hrms.common.exceptions import NotFoundException
from hrms.common.pagination import DeleteRequest
from hrms.common.responses import envelope
from hrms.common.router import register_crud_routes
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    DesignationCreate,
    DesignationListRequest,
    DesignationUpdate,
    EmployeeCreate,
    EmployeeDocumentListRequest,
    EmployeeListRequest,
    EmployeeUpdate,
    EmployeeUpdateMany,
)
from hrms.core_hr.service import (
    DepartmentService,
    DesignationService,
    EmployeeDocumentService,
    EmployeeService,
)
from hrms.database import get_db

router = APIRouter(prefix="", tags=["core-hr"])


class _OrganisationBody(BaseModel):
    organisation_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Departments
# ═════════════════════════════════════════════════════════════════════

register_crud_routes(
    router,
    resource="departments",
    service=DepartmentService,
    create_schema=DepartmentCreate,
    update_schema=DepartmentUpdate,
)


# ═════════════════════════════════════════════════════════════════════
# Designations
# ═════════════════════════════════════════════════════════════════════

@router.post("/designations/list-with-employee-count")
async def list_designations_with_employee_count(
    body: DesignationListRequest,
    principal: Principal = Depends(require_permission("designations", "employee_count")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    data, page_info = await DesignationService.list_with_employee_count(db, org_id, body)
    return envelope(data, "Designation list fetched successfully.", page_info)


register_crud_routes(
    router,
    resource="designations",
    service=DesignationService,
    create_schema=DesignationCreate,
    update_schema=DesignationUpdate,
    list_schema=DesignationListRequest,
)


# ═════════════════════════════════════════════════════════════════════
# Employees — fixed paths first so they are not shadowed
# ═════════════════════════════════════════════════════════════════════


# ── PUT /employees/update-many ──────────────────────────────────────

@router.put("/employees/update-many")
async def update_many_employees(
    body: EmployeeUpdateMany,
    principal: Principal = Depends(require_permission("employees", "update_many")),
    db: AsyncSession = Depends(get_db),
):
    """Apply the same changes to several employees."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    changes = body.changes.model_dump(exclude_unset=True, exclude={"organisation_id"})
    employees = await EmployeeService.update_many(db, org_id, principal, body.ids, changes)
    return envelope(
        [EmployeeService.serialize(emp) for emp in employees],
        f"{len(employees)} employee(s) updated successfully.",
    )


# ── POST /employees/statistics ──────────────────────────────────────

@router.post("/employees/statistics")
async def employee_statistics(
    body: _OrganisationBody,
    principal: Principal = Depends(require_permission("employees", "statistics")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    stats = await EmployeeService.statistics(db, org_id)
    return envelope(stats, "Employee statistics fetched successfully.")


# ── POST /employees/export ──────────────────────────────────────────

@router.post("/employees/export")
async def export_employees(
    body: EmployeeListRequest,
    principal: Principal = Depends(require_permission("employees", "export")),
    db: AsyncSession = Depends(get_db),
):
    """Download the filtered employee list as CSV."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    content = await EmployeeService.export_csv(db, org_id, body)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="employees.csv"'},
    )


# ── POST /employees/documents ───────────────────────────────────────

@router.post("/employees/documents")
async def list_employee_documents(
    body: EmployeeDocumentListRequest,
    principal: Principal = Depends(require_permission("employee_documents", "list")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    rows, page_info = await EmployeeDocumentService.list_rows(db, org_id, principal, body)
    return envelope(
        [EmployeeDocumentService.serialize(row) for row in rows],
        "Employee document list fetched successfully.",
        page_info,
    )


# ── POST /employees/documents/upload ────────────────────────────────

@router.post("/employees/documents/upload", status_code=201)
async def upload_employee_document(
    employee_id: uuid.UUID = Form(...),
    document_type: DocumentType = Form(DocumentType.other),
    organisation_id: Optional[uuid.UUID] = Form(None),
    file: UploadFile = File(...),
    principal: Principal = Depends(require_permission("employee_documents", "upload")),
    db: AsyncSession = Depends(get_db),
):
    """Attach a file (JPEG, PNG, PDF, DOC, DOCX) to an employee."""
    org_id = await resolve_organisation(db, principal, organisation_id)
    contents = await file.read()
    document = await EmployeeDocumentService.upload(
        db,
        org_id,
        principal,
        employee_id=employee_id,
        document_type=document_type.value,
        file_name=file.filename,
        content_type=file.content_type,
        contents=contents,
    )
    return envelope(
        EmployeeDocumentService.serialize(document),
        "Employee document uploaded successfully.",
    )


# ── GET /employees/documents/{document_id}/download ─────────────────

@router.get("/employees/documents/{document_id}/download")
async def download_employee_document(
    document_id: uuid.UUID,
    organisation_id: Optional[uuid.UUID] = None,
    principal: Principal = Depends(require_permission("employee_documents", "download")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, organisation_id)
    document = await EmployeeDocumentService.get(db, org_id, principal, document_id)
    path = EmployeeDocumentService.file_path(document)
    if not os.path.isfile(path):
        raise NotFoundException("File", document_id)
    return FileResponse(path, media_type=document.content_type, filename=document.file_name)


# ── PATCH /employees/documents/delete ───────────────────────────────

@router.patch("/employees/documents/delete")
async def delete_employee_document(
    body: DeleteRequest,
    principal: Principal = Depends(require_permission("employee_documents", "delete")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    document = await EmployeeDocumentService.soft_delete(db, org_id, principal, body.id)
    return envelope({"id": str(document.id)}, "Employee document deleted successfully.")


register_crud_routes(
    router,
    resource="employees",
    service=EmployeeService,
    create_schema=EmployeeCreate,
    update_schema=EmployeeUpdate,
    list_schema=EmployeeListRequest,
)
