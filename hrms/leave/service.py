"""Leave service layer — leave types and the leave-request workflow.

Request lifecycle::

    PENDING ──► APPROVED   (admin)
       │    ──► REJECTED   (admin)
       └──► CANCELLED      (owner or admin)

Types that do not require approval are created APPROVED.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.audit import create_audit_entry
from hrms.common.constants import LeaveStatus
from hrms.common.crud import CrudService
from hrms.common.exceptions import ConflictError, ForbiddenException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.models import as_utc
from hrms.core_hr.models import Department, Employee
from hrms.core_hr.schemas import EmployeeBrief
from hrms.leave.models import LeaveRequest, LeaveType
from hrms.leave.schemas import LeaveRequestOut, LeaveStatisticsRequest, LeaveTypeOut

logger = logging.getLogger(__name__)

OPEN_STATUSES = (LeaveStatus.pending.value, LeaveStatus.approved.value)

# current status → {target status: admin only?}
TRANSITIONS = {
    LeaveStatus.pending.value: {
        LeaveStatus.approved.value: True,
        LeaveStatus.rejected.value: True,
        LeaveStatus.cancelled.value: False,
    },
}


class LeaveTypeService(CrudService):
    model = LeaveType
    entity_name = "Leave"
    entity_type = "leave_type"
    out_schema = LeaveTypeOut
    search_columns = ("name", "code", "category")
    unique_fields = ("code",)
    default_sort = "name"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        if (
            values.get("max_balance") is not None
            and values.get("initial_balance") is not None
            and values["initial_balance"] > values["max_balance"]
        ):
            raise ValidationException(
                {"initial_balance": ["Must not exceed max_balance."]},
            )
        if values.get("carry_forward_limit") is not None and not values.get("allow_carry_forward"):
            raise ValidationException(
                {"carry_forward_limit": ["Only allowed when allow_carry_forward is set."]},
            )

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        result = await db.execute(
            select(func.count()).select_from(LeaveRequest).where(
                LeaveRequest.leave_id == obj.id,
                LeaveRequest.delete_flag.is_(False),
                LeaveRequest.status.in_(OPEN_STATUSES),
            ),
        )
        open_requests = result.scalar_one()
        if open_requests:
            raise ConflictError(
                "leave", obj.code,
                detail=f"Leave '{obj.name}' has {open_requests} open request(s).",
            )


class LeaveRequestService(CrudService):
    model = LeaveRequest
    entity_name = "Leave request"
    entity_type = "leave_request"
    out_schema = LeaveRequestOut
    search_columns = ("reason", "comments")
    references = {"employee_id": Employee, "leave_id": LeaveType, "handover_to": Employee}
    includes = {
        "employee": EmployeeBrief,
        "leave": LeaveTypeOut,
        "handover_employee": EmployeeBrief,
    }
    owner_field = "employee_id"
    default_sort = "-start_date"

    @classmethod
    def apply_list_filters(cls, query, req):
        filters = req.filters()
        date_from = filters.pop("date_from", None)
        date_to = filters.pop("date_to", None)
        department_id = filters.pop("department_id", None)
        if date_from is not None:
            query = query.where(LeaveRequest.end_date >= date_from)
        if date_to is not None:
            query = query.where(LeaveRequest.start_date <= date_to)
        if department_id is not None:
            query = query.where(
                LeaveRequest.employee_id.in_(
                    select(Employee.id).where(Employee.department_id == department_id),
                ),
            )
        return apply_filters(query, LeaveRequest, filters)

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        if values.get("employee_id") is None:
            raise ValidationException({"employee_id": ["This field is required."]})
        if values.get("handover_to") is not None and values["handover_to"] == values["employee_id"]:
            raise ValidationException({"handover_to": ["Cannot hand over to yourself."]})

        leave_type = await db.get(LeaveType, values["leave_id"])
        if (
            leave_type is None
            or leave_type.organisation_id != organisation_id
            or leave_type.delete_flag
        ):
            raise ValidationException({"leave_id": [f"LeaveType '{values['leave_id']}' does not exist."]})
        if not leave_type.active_flag:
            raise ValidationException({"leave_id": [f"Leave '{leave_type.name}' is not active."]})

        start, end = values["start_date"], values["end_date"]
        if values.get("is_half_day"):
            values["total_days"] = 0.5
        else:
            values["half_day_period"] = None
            values["total_days"] = float((end - start).days + 1)

        if leave_type.max_consecutive_days and values["total_days"] > leave_type.max_consecutive_days:
            raise ValidationException(
                {"end_date": [f"At most {leave_type.max_consecutive_days} consecutive day(s) allowed."]},
            )
        is_admin = principal is not None and principal.is_admin
        if leave_type.min_advance_notice_days and not is_admin:
            if (start - date.today()).days < leave_type.min_advance_notice_days:
                raise ValidationException(
                    {"start_date": [f"Requires {leave_type.min_advance_notice_days} day(s) notice."]},
                )

        await _check_overlap(db, organisation_id, values["employee_id"], start, end)

        if leave_type.requires_approval:
            values["status"] = LeaveStatus.pending.value
        else:
            values["status"] = LeaveStatus.approved.value
            values["approved_at"] = datetime.now(timezone.utc)

    # ── Workflow ────────────────────────────────────────────────────

    @classmethod
    async def update_status(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal,
        request_id: uuid.UUID,
        status: str,
        approver_comments: Optional[str] = None,
    ) -> LeaveRequest:
        """Move a request along PENDING → APPROVED / REJECTED / CANCELLED."""
        leave_request = await cls.get(db, organisation_id, principal, request_id)
        allowed = TRANSITIONS.get(leave_request.status, {})
        if status not in allowed:
            raise ValidationException(
                {"status": [f"Cannot change a {leave_request.status} request to {status}."]},
            )
        if allowed[status] and not principal.is_admin:
            raise ForbiddenException(detail="Only an admin can approve or reject leave requests.")

        old_status = leave_request.status
        now = datetime.now(timezone.utc)
        leave_request.status = status
        if status == LeaveStatus.approved.value:
            leave_request.approved_at = now
        elif status == LeaveStatus.rejected.value:
            leave_request.rejected_at = now
        else:
            leave_request.cancelled_at = now
        if principal.is_admin:
            leave_request.approved_by = principal.id
        if approver_comments is not None:
            leave_request.approver_comments = approver_comments
        leave_request.modified_at = now
        leave_request.modified_by = principal.id
        await db.flush()

        await create_audit_entry(
            db,
            action="update_status",
            entity_type=cls.entity_type,
            entity_id=leave_request.id,
            organisation_id=organisation_id,
            actor_id=principal.id,
            actor_role=principal.role.value,
            old_values={"status": old_status},
            new_values={"status": status, "approver_comments": approver_comments},
        )
        logger.info("Leave request %s: %s -> %s by %s", leave_request.id, old_status, status, principal.id)
        return leave_request

    # ── Statistics ──────────────────────────────────────────────────

    @classmethod
    async def statistics(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal,
        req: LeaveStatisticsRequest,
    ) -> dict[str, Any]:
        query = cls.base_query(organisation_id, principal)
        if req.employee_id is not None:
            query = query.where(LeaveRequest.employee_id == req.employee_id)
        if req.date_from is not None:
            query = query.where(LeaveRequest.end_date >= req.date_from)
        if req.date_to is not None:
            query = query.where(LeaveRequest.start_date <= req.date_to)
        requests = (await db.execute(query)).scalars().all()

        by_status = {status.value: 0 for status in LeaveStatus}
        total_days = 0.0
        processing_hours = []
        by_type: dict[uuid.UUID, dict[str, Any]] = {}
        by_employee: dict[uuid.UUID, int] = {}
        for item in requests:
            by_status[item.status] = by_status.get(item.status, 0) + 1
            total_days += item.total_days
            decided_at = item.approved_at or item.rejected_at
            if decided_at is not None and item.status != LeaveStatus.cancelled.value:
                delta = as_utc(decided_at) - as_utc(item.created_at)
                processing_hours.append(max(delta.total_seconds(), 0) / 3600)
            bucket = by_type.setdefault(item.leave_id, {"count": 0, "days": 0.0})
            bucket["count"] += 1
            bucket["days"] += item.total_days
            by_employee[item.employee_id] = by_employee.get(item.employee_id, 0) + 1

        type_names = {}
        if by_type:
            result = await db.execute(
                select(LeaveType.id, LeaveType.name).where(LeaveType.id.in_(list(by_type))),
            )
            type_names = dict(result.all())

        departments: dict[Optional[uuid.UUID], dict[str, Any]] = {}
        if by_employee:
            result = await db.execute(
                select(Employee.id, Employee.department_id, Department.name)
                .outerjoin(Department, Department.id == Employee.department_id)
                .where(Employee.id.in_(list(by_employee))),
            )
            for employee_id, department_id, name in result.all():
                bucket = departments.setdefault(
                    department_id, {"department_name": name or "Unassigned", "count": 0},
                )
                bucket["count"] += by_employee[employee_id]

        return {
            "total": len(requests),
            "pending": by_status[LeaveStatus.pending.value],
            "approved": by_status[LeaveStatus.approved.value],
            "rejected": by_status[LeaveStatus.rejected.value],
            "cancelled": by_status[LeaveStatus.cancelled.value],
            "total_days_requested": total_days,
            "average_processing_time": (
                round(sum(processing_hours) / len(processing_hours), 2) if processing_hours else 0.0
            ),
            "leave_type_distribution": [
                {
                    "leave_id": str(leave_id),
                    "leave_name": type_names.get(leave_id, ""),
                    "count": bucket["count"],
                    "days": bucket["days"],
                }
                for leave_id, bucket in by_type.items()
            ],
            "department_distribution": [
                {
                    "department_id": str(department_id) if department_id else None,
                    **bucket,
                }
                for department_id, bucket in departments.items()
            ],
        }


async def _check_overlap(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    employee_id: uuid.UUID,
    start: date,
    end: date,
) -> None:
    result = await db.execute(
        select(LeaveRequest.id).where(
            LeaveRequest.organisation_id == organisation_id,
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.delete_flag.is_(False),
            LeaveRequest.status.in_(OPEN_STATUSES),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        ),
    )
    if result.first() is not None:
        raise ConflictError(
            "start_date", start.isoformat(),
            detail="The employee already has a pending or approved leave in this period.",
        )
