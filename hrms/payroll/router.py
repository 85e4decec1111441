"""Payroll router — salary component types, salary components, payroll
cycles and payrolls.

Routes:
    /salary_component_types/*   — CRUD
    /salary_components/*        — CRUD
    /payroll_cycles/*           — CRUD (amount is derived)
    /payrolls/*                 — CRUD (employees read their own)
    /payrolls/download          — CSV export
"""


from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.router import register_crud_routes
from hrms.database import get_db
from hrms.payroll.schemas import (
    PayrollCreate,
    PayrollCycleCreate,
    PayrollCycleListRequest,
    PayrollCycleUpdate,
    PayrollDownloadRequest,
    PayrollListRequest,
    PayrollUpdate,
    SalaryComponentCreate,
    SalaryComponentListRequest,
    SalaryComponentTypeCreate,
    SalaryComponentTypeListRequest,
    SalaryComponentTypeUpdate,
    SalaryComponentUpdate,
)
from hrms.payroll.service import (
    PayrollCycleService,
    PayrollService,
    SalaryComponentService,
    SalaryComponentTypeService,
)

router = APIRouter(prefix="", tags=["payroll"])


register_crud_routes(
    router,
    resource="salary_component_types",
    service=SalaryComponentTypeService,
    create_schema=SalaryComponentTypeCreate,
    update_schema=SalaryComponentTypeUpdate,
    list_schema=SalaryComponentTypeListRequest,
)

register_crud_routes(
    router,
    resource="salary_components",
    service=SalaryComponentService,
    create_schema=SalaryComponentCreate,
    update_schema=SalaryComponentUpdate,
    list_schema=SalaryComponentListRequest,
)

register_crud_routes(
    router,
    resource="payroll_cycles",
    service=PayrollCycleService,
    create_schema=PayrollCycleCreate,
    update_schema=PayrollCycleUpdate,
    list_schema=PayrollCycleListRequest,
)


# ── POST /payrolls/download ─────────────────────────────────────────

@router.post("/payrolls/download")
async def download_payrolls(
    body: PayrollDownloadRequest,
    principal: Principal = Depends(require_permission("payrolls", "download")),
    db: AsyncSession = Depends(get_db),
):
    """Payroll register as CSV, optionally for one cycle."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    content = await PayrollService.export_csv(db, org_id, principal, body.payroll_cycle_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="payrolls.csv"'},
    )


register_crud_routes(
    router,
    resource="payrolls",
    service=PayrollService,
    create_schema=PayrollCreate,
    update_schema=PayrollUpdate,
    list_schema=PayrollListRequest,
)
