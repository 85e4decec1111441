"""Leave router — leave types and leave requests.

Routes:
    /leaves/create|update|list|one|delete   — leave types
    /leave_requests/create                  — apply for leave
    /requests/update_status                 — approve / reject / cancel
    /requests/list, /requests/one           — read requests
    /leave_requests/delete                  — soft delete (admin)
    /requests/statistics                    — counts and distributions
"""


from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.responses import envelope
from hrms.common.router import register_crud_routes
from hrms.database import get_db
from hrms.leave.schemas import (
    LeaveRequestCreate,
    LeaveRequestListRequest,
    LeaveStatisticsRequest,
    LeaveStatusUpdate,
    LeaveTypeCreate,
    LeaveTypeListRequest,
    LeaveTypeUpdate,
)
from hrms.leave.service import LeaveRequestService, LeaveTypeService

router = APIRouter(prefix="", tags=["leave"])


register_crud_routes(
    router,
    resource="leaves",
    service=LeaveTypeService,
    create_schema=LeaveTypeCreate,
    update_schema=LeaveTypeUpdate,
    list_schema=LeaveTypeListRequest,
)

register_crud_routes(
    router,
    resource="leave_requests",
    service=LeaveRequestService,
    create_schema=LeaveRequestCreate,
    list_schema=LeaveRequestListRequest,
    actions=("create", "list", "one", "delete"),
    paths={
        "list": "/requests/list",
        "one": "/requests/one",
    },
)


# ── PUT /requests/update_status ─────────────────────────────────────

@router.put("/requests/update_status")
async def update_leave_status(
    body: LeaveStatusUpdate,
    principal: Principal = Depends(require_permission("leave_requests", "update_status")),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject (admin), or cancel (owner or admin) a pending request."""
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    leave_request = await LeaveRequestService.update_status(
        db, org_id, principal, body.id, body.status, body.approver_comments,
    )
    return envelope(
        LeaveRequestService.serialize(leave_request),
        f"Leave request {body.status.lower()} successfully.",
    )


# ── POST /requests/statistics ───────────────────────────────────────

@router.post("/requests/statistics")
async def leave_statistics(
    body: LeaveStatisticsRequest,
    principal: Principal = Depends(require_permission("leave_requests", "statistics")),
    db: AsyncSession = Depends(get_db),
):
    org_id = await resolve_organisation(db, principal, body.organisation_id)
    stats = await LeaveRequestService.statistics(db, org_id, principal, body)
    return envelope(stats, "Leave statistics fetched successfully.")
