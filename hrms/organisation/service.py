"""Organisation service layer — tenant CRUD, branches, employee-code allocation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.attendance.models import WorkDayRule
from hrms.auth.schemas import AdminInfo
from hrms.common.audit import create_audit_entry
from hrms.common.crud import CrudService
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import PageInfo, paginate
from hrms.common.responses import column_values
from hrms.common.validators import coordinate_errors
from hrms.core_hr.schemas import DepartmentOut, DesignationOut, EmployeeBrief
from hrms.organisation.models import Branch, Organisation
from hrms.organisation.schemas import BranchOut, OrganisationListRequest, OrganisationOut

logger = logging.getLogger(__name__)

ORGANISATION_INCLUDES = ("admin", "branches", "departments", "designations", "employees")


class OrganisationService:
    """Organisations are owned by an admin rather than scoped to a tenant."""

    @staticmethod
    async def list_organisations(
        db: AsyncSession,
        admin_id: uuid.UUID,
        req: OrganisationListRequest,
    ) -> tuple[Sequence[Organisation], PageInfo]:
        query = select(Organisation).where(
            Organisation.admin_id == admin_id,
            Organisation.delete_flag.is_(False),
        )
        query = apply_filters(query, Organisation, req.filters())
        query = apply_search(query, Organisation, req.search, ["name", "code", "description"])
        query = apply_sorting(query, Organisation, req.sort, default="created_at")
        return await paginate(
            db, query, page=req.page, page_size=req.page_size,
            options=_load_options(req.include),
        )

    @staticmethod
    async def get_organisation(
        db: AsyncSession,
        admin_id: uuid.UUID,
        organisation_id: uuid.UUID,
        include: Iterable[str] = (),
    ) -> Organisation:
        query = select(Organisation).where(
            Organisation.id == organisation_id,
            Organisation.admin_id == admin_id,
            Organisation.delete_flag.is_(False),
        )
        options = _load_options(include)
        if options:
            query = query.options(*options).execution_options(populate_existing=True)
        organisation = (await db.execute(query)).scalars().first()
        if organisation is None:
            raise NotFoundException("Organisation", organisation_id)
        return organisation

    @staticmethod
    async def create_organisation(
        db: AsyncSession,
        admin_id: uuid.UUID,
        values: dict[str, Any],
    ) -> Organisation:
        values = dict(values)
        values.pop("organisation_id", None)
        _init_code_counter(values)

        organisation = Organisation(
            **values,
            admin_id=admin_id,
            created_by=admin_id,
            modified_by=admin_id,
        )
        db.add(organisation)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="organisation",
            entity_id=organisation.id,
            organisation_id=organisation.id,
            actor_id=admin_id,
            actor_role="admin",
            new_values=column_values(organisation),
        )
        logger.info("Admin %s created organisation %s", admin_id, organisation.id)
        return organisation

    @staticmethod
    async def update_organisation(
        db: AsyncSession,
        admin_id: uuid.UUID,
        organisation_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Organisation:
        organisation = await OrganisationService.get_organisation(db, admin_id, organisation_id)

        rule_id = changes.get("default_working_day_rule_id")
        if rule_id is not None:
            result = await db.execute(
                select(WorkDayRule.id).where(
                    WorkDayRule.id == rule_id,
                    WorkDayRule.organisation_id == organisation.id,
                    WorkDayRule.delete_flag.is_(False),
                ),
            )
            if result.scalar_one_or_none() is None:
                raise ValidationException(
                    {"default_working_day_rule_id": [f"WorkDayRule '{rule_id}' does not exist."]},
                )

        start = changes.get("employee_code_from", organisation.employee_code_from)
        end = changes.get("employee_code_to", organisation.employee_code_to)
        if start is not None and end is not None and end < start:
            raise ValidationException(
                {"employee_code_to": ["Must be greater than or equal to employee_code_from."]},
            )
        if changes.get("is_employee_code_generation_type_auto") and organisation.employee_code_current is None:
            changes.setdefault("employee_code_current", start if start is not None else 1)

        old_values = column_values(organisation)
        for key, value in changes.items():
            if key == "name" and value is None:
                continue
            setattr(organisation, key, value)
        organisation.modified_at = datetime.now(timezone.utc)
        organisation.modified_by = admin_id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="organisation",
            entity_id=organisation.id,
            organisation_id=organisation.id,
            actor_id=admin_id,
            actor_role="admin",
            old_values=old_values,
            new_values=column_values(organisation),
        )
        return organisation

    @staticmethod
    async def delete_organisation(
        db: AsyncSession,
        admin_id: uuid.UUID,
        organisation_id: uuid.UUID,
    ) -> Organisation:
        organisation = await OrganisationService.get_organisation(db, admin_id, organisation_id)
        organisation.delete_flag = True
        organisation.active_flag = False
        organisation.modified_at = datetime.now(timezone.utc)
        organisation.modified_by = admin_id
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="organisation",
            entity_id=organisation.id,
            organisation_id=organisation.id,
            actor_id=admin_id,
            actor_role="admin",
        )
        logger.info("Admin %s deleted organisation %s", admin_id, organisation.id)
        return organisation


# ── Employee code allocation ────────────────────────────────────────

async def allocate_employee_code(db: AsyncSession, organisation_id: uuid.UUID) -> Optional[str]:
    """Return the next automatic employee code and advance the counter.

    Returns None when the organisation does not generate codes automatically.
    Raises ValidationException once the configured range is exhausted.
    """
    result = await db.execute(
        select(Organisation)
        .where(Organisation.id == organisation_id)
        .with_for_update(),
    )
    organisation = result.scalars().one()
    if not organisation.is_employee_code_generation_type_auto:
        return None

    current = organisation.employee_code_current
    if current is None:
        current = organisation.employee_code_from if organisation.employee_code_from is not None else 1
    if organisation.employee_code_to is not None and current > organisation.employee_code_to:
        raise ValidationException(
            {"code": ["Employee code range is exhausted; raise employee_code_to."]},
        )

    organisation.employee_code_current = current + 1
    await db.flush()
    return f"{organisation.employee_code_prefix or ''}{current}"


def _init_code_counter(values: dict[str, Any]) -> None:
    if values.get("is_employee_code_generation_type_auto") and values.get("employee_code_current") is None:
        start = values.get("employee_code_from")
        values["employee_code_current"] = start if start is not None else 1


def _load_options(include: Iterable[str]) -> list:
    unknown = [name for name in include if name not in ORGANISATION_INCLUDES]
    if unknown:
        raise ValidationException(
            {"include": [f"Unknown relation '{name}'." for name in unknown]},
        )
    return [selectinload(getattr(Organisation, name)) for name in include]


# ═════════════════════════════════════════════════════════════════════
# BranchService
# ═════════════════════════════════════════════════════════════════════


class BranchService(CrudService):
    model = Branch
    entity_name = "Branch"
    entity_type = "branch"
    out_schema = BranchOut
    search_columns = ("name", "code", "city", "manager_name")
    unique_fields = ("code",)
    default_sort = "name"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        errors = coordinate_errors(values)
        if errors:
            raise ValidationException(errors)


def serialize_organisation(organisation: Organisation, include: Iterable[str] = ()) -> dict[str, Any]:
    """Render an organisation plus any ``include``-d relations."""
    schemas = {
        "admin": AdminInfo,
        "branches": BranchOut,
        "departments": DepartmentOut,
        "designations": DesignationOut,
        "employees": EmployeeBrief,
    }
    data = OrganisationOut.model_validate(organisation).model_dump(mode="json")
    for name in include:
        related = getattr(organisation, name)
        schema = schemas[name]
        if isinstance(related, list):
            data[name] = [schema.model_validate(r).model_dump(mode="json") for r in related]
        else:
            data[name] = schema.model_validate(related).model_dump(mode="json") if related else None
    return data
