"""Organisation router — admin-owned tenants and their branches.

Routes:
    /organisations/create|update|list|one|delete  — admin only
    /branches/create|update|list|one|delete       — per-organisation CRUD
"""


from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_role
from hrms.common.constants import UserRole
from hrms.common.pagination import DeleteRequest, OneRequest
from hrms.common.responses import envelope
from hrms.common.router import register_crud_routes
from hrms.database import get_db
from hrms.organisation.schemas import (
    BranchCreate,
    BranchListRequest,
    BranchUpdate,
    OrganisationCreate,
    OrganisationListRequest,
    OrganisationOut,
    OrganisationUpdate,
)
from hrms.organisation.service import BranchService, OrganisationService, serialize_organisation

router = APIRouter(prefix="", tags=["organisations"])

_admin = require_role(UserRole.admin)


# ── POST /organisations/create ──────────────────────────────────────

@router.post("/organisations/create", status_code=201)
async def create_organisation(
    body: OrganisationCreate,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create another organisation owned by the calling admin."""
    organisation = await OrganisationService.create_organisation(
        db, principal.id, body.model_dump(),
    )
    return envelope(
        OrganisationOut.model_validate(organisation).model_dump(mode="json"),
        "Organisation created successfully.",
    )


# ── PUT /organisations/update ───────────────────────────────────────

@router.put("/organisations/update")
async def update_organisation(
    body: OrganisationUpdate,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True, exclude={"id", "organisation_id"})
    organisation = await OrganisationService.update_organisation(db, principal.id, body.id, changes)
    return envelope(
        OrganisationOut.model_validate(organisation).model_dump(mode="json"),
        "Organisation updated successfully.",
    )


# ── POST /organisations/list ────────────────────────────────────────

@router.post("/organisations/list")
async def list_organisations(
    body: OrganisationListRequest,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    """List the organisations the calling admin owns."""
    rows, page_info = await OrganisationService.list_organisations(db, principal.id, body)
    return envelope(
        [serialize_organisation(row, body.include) for row in rows],
        "Organisation list fetched successfully.",
        page_info,
    )


# ── POST /organisations/one ─────────────────────────────────────────

@router.post("/organisations/one")
async def get_organisation(
    body: OneRequest,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    organisation = await OrganisationService.get_organisation(
        db, principal.id, body.id, body.include,
    )
    return envelope(
        serialize_organisation(organisation, body.include),
        "Organisation fetched successfully.",
    )


# ── PATCH /organisations/delete ─────────────────────────────────────

@router.patch("/organisations/delete")
async def delete_organisation(
    body: DeleteRequest,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    organisation = await OrganisationService.delete_organisation(db, principal.id, body.id)
    return envelope({"id": str(organisation.id)}, "Organisation deleted successfully.")


# ═════════════════════════════════════════════════════════════════════
# Branches
# ═════════════════════════════════════════════════════════════════════

register_crud_routes(
    router,
    resource="branches",
    service=BranchService,
    create_schema=BranchCreate,
    update_schema=BranchUpdate,
    list_schema=BranchListRequest,
)
