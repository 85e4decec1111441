"""Payroll service layer — salary components, payroll cycles and payrolls.

Amounts (``Decimal``, two places):
    gross_salary = basic_salary + total_allowances
    net_salary   = gross_salary - total_deductions   (unless supplied)

When ``total_allowances`` / ``total_deductions`` are not supplied they are
summed from the employee's live salary components: FIXED components count
their value, PERCENTAGE components that percentage of ``basic_salary``.
A cycle's ``amount`` is the sum of its live payrolls' ``net_salary``.
"""

from __future__ import annotations

import csv
import io
import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import CalculationType, PayrollCycleStatus, SalaryComponentKind
from hrms.common.crud import CrudService
from hrms.common.exceptions import ConflictError, ValidationException
from hrms.core_hr.models import Employee
from hrms.core_hr.schemas import EmployeeBrief
from hrms.payroll.models import Payroll, PayrollCycle, SalaryComponent, SalaryComponentType
from hrms.payroll.schemas import (
    PayrollCycleOut,
    PayrollOut,
    SalaryComponentOut,
    SalaryComponentTypeOut,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
AMOUNT_FIELDS = ("basic_salary", "total_allowances", "total_deductions", "net_salary")

EXPORT_COLUMNS = (
    "employee_code", "employee_name", "payroll_cycle", "status",
    "working_days", "present_days", "absent_days", "leave_days",
    "basic_salary", "total_allowances", "total_deductions",
    "gross_salary", "net_salary", "payment_date", "payment_method",
)


def to_money(value: Any) -> Decimal:
    """Coerce floats/ints/strings to a two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ═════════════════════════════════════════════════════════════════════
# Components
# ═════════════════════════════════════════════════════════════════════


class SalaryComponentTypeService(CrudService):
    model = SalaryComponentType
    entity_name = "Salary component type"
    entity_type = "salary_component_type"
    out_schema = SalaryComponentTypeOut
    search_columns = ("name", "description")
    unique_fields = ("name",)
    default_sort = "sequence"

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        result = await db.execute(
            select(func.count()).select_from(SalaryComponent).where(
                SalaryComponent.salary_component_type_id == obj.id,
                SalaryComponent.delete_flag.is_(False),
            ),
        )
        in_use = result.scalar_one()
        if in_use:
            raise ConflictError(
                "salary_component_type", obj.name,
                detail=f"'{obj.name}' is used by {in_use} salary component(s).",
            )


class SalaryComponentService(CrudService):
    model = SalaryComponent
    entity_name = "Salary component"
    entity_type = "salary_component"
    out_schema = SalaryComponentOut
    search_columns = ("formula",)
    references = {"employee_id": Employee, "salary_component_type_id": SalaryComponentType}
    includes = {"employee": EmployeeBrief, "salary_component_type": SalaryComponentTypeOut}
    owner_field = "employee_id"

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        values["value"] = to_money(values.get("value"))

    @classmethod
    async def before_update(cls, db, obj, principal, changes) -> None:
        if changes.get("value") is not None:
            changes["value"] = to_money(changes["value"])

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        if values["calculation"] == CalculationType.percentage.value and to_money(values["value"]) > 100:
            raise ValidationException({"value": ["A PERCENTAGE component cannot exceed 100."]})

        query = select(func.count()).select_from(SalaryComponent).where(
            SalaryComponent.organisation_id == organisation_id,
            SalaryComponent.delete_flag.is_(False),
            SalaryComponent.employee_id == values["employee_id"],
            SalaryComponent.salary_component_type_id == values["salary_component_type_id"],
        )
        if instance is not None:
            query = query.where(SalaryComponent.id != instance.id)
        if (await db.execute(query)).scalar_one():
            raise ConflictError(
                "salary_component_type_id", values["salary_component_type_id"],
                detail="The employee already has this salary component.",
            )


async def component_totals(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    employee_id: uuid.UUID,
    basic_salary: Decimal,
) -> tuple[Decimal, Decimal]:
    """Sum an employee's live components into ``(allowances, deductions)``."""
    result = await db.execute(
        select(SalaryComponent, SalaryComponentType.type)
        .join(SalaryComponentType, SalaryComponentType.id == SalaryComponent.salary_component_type_id)
        .where(
            SalaryComponent.organisation_id == organisation_id,
            SalaryComponent.employee_id == employee_id,
            SalaryComponent.delete_flag.is_(False),
            SalaryComponent.active_flag.is_(True),
            SalaryComponentType.delete_flag.is_(False),
        ),
    )
    allowances = Decimal("0.00")
    deductions = Decimal("0.00")
    for component, kind in result.all():
        if component.calculation == CalculationType.percentage.value:
            amount = to_money(basic_salary * to_money(component.value) / 100)
        else:
            amount = to_money(component.value)
        if kind == SalaryComponentKind.deduction.value:
            deductions += amount
        else:
            allowances += amount
    return allowances, deductions


# ═════════════════════════════════════════════════════════════════════
# Payroll cycles
# ═════════════════════════════════════════════════════════════════════


class PayrollCycleService(CrudService):
    model = PayrollCycle
    entity_name = "Payroll cycle"
    entity_type = "payroll_cycle"
    out_schema = PayrollCycleOut
    unique_fields = ("name",)
    default_sort = "-pay_period_start"

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        if values["pay_period_end"] < values["pay_period_start"]:
            raise ValidationException(
                {"pay_period_end": ["Must be on or after pay_period_start."]},
            )

    @classmethod
    async def before_delete(cls, db, obj) -> None:
        if obj.status == PayrollCycleStatus.paid.value:
            raise ValidationException({"status": ["A PAID payroll cycle cannot be deleted."]})

    @staticmethod
    async def recompute_amount(db: AsyncSession, cycle_id: uuid.UUID) -> None:
        total = (
            await db.execute(
                select(func.coalesce(func.sum(Payroll.net_salary), 0)).where(
                    Payroll.payroll_cycle_id == cycle_id,
                    Payroll.delete_flag.is_(False),
                ),
            )
        ).scalar_one()
        cycle = await db.get(PayrollCycle, cycle_id)
        if cycle is not None:
            cycle.amount = to_money(total)
            await db.flush()


# ═════════════════════════════════════════════════════════════════════
# Payrolls
# ═════════════════════════════════════════════════════════════════════


class PayrollService(CrudService):
    model = Payroll
    entity_name = "Payroll"
    entity_type = "payroll"
    out_schema = PayrollOut
    search_columns = ("remarks", "payment_method")
    references = {"employee_id": Employee, "payroll_cycle_id": PayrollCycle}
    includes = {"employee": EmployeeBrief, "payroll_cycle": PayrollCycleOut}
    owner_field = "employee_id"

    @classmethod
    async def before_create(cls, db, organisation_id, principal, values) -> None:
        if values.get("basic_salary") is None:
            employee = await db.get(Employee, values["employee_id"])
            values["basic_salary"] = employee.basic_salary if employee is not None else None
        if values.get("working_days") is None:
            cycle = await db.get(PayrollCycle, values["payroll_cycle_id"])
            if cycle is not None:
                values["working_days"] = cycle.working_days
        await _compute_amounts(db, organisation_id, values, net_given=values.get("net_salary") is not None)

    @classmethod
    async def before_update(cls, db, obj, principal, changes) -> None:
        if not any(field in changes for field in AMOUNT_FIELDS):
            return
        merged = {field: getattr(obj, field) for field in AMOUNT_FIELDS}
        merged["employee_id"] = obj.employee_id
        merged.update({k: v for k, v in changes.items() if k in AMOUNT_FIELDS})
        # Stored totals are kept unless explicitly cleared
        net_given = changes.get("net_salary") is not None
        if not net_given:
            merged["net_salary"] = None
        await _compute_amounts(db, obj.organisation_id, merged, net_given=net_given)
        changes.update({k: merged[k] for k in (*AMOUNT_FIELDS, "gross_salary")})

    @classmethod
    async def validate(cls, db, organisation_id, values, instance) -> None:
        query = select(func.count()).select_from(Payroll).where(
            Payroll.organisation_id == organisation_id,
            Payroll.delete_flag.is_(False),
            Payroll.employee_id == values["employee_id"],
            Payroll.payroll_cycle_id == values["payroll_cycle_id"],
        )
        if instance is not None:
            query = query.where(Payroll.id != instance.id)
        if (await db.execute(query)).scalar_one():
            raise ConflictError(
                "employee_id", values["employee_id"],
                detail="The employee already has a payroll in this cycle.",
            )

    @classmethod
    async def after_write(cls, db, obj, action: str) -> None:
        await PayrollCycleService.recompute_amount(db, obj.payroll_cycle_id)

    # ── Export ──────────────────────────────────────────────────────

    @classmethod
    async def export_csv(
        cls,
        db: AsyncSession,
        organisation_id: uuid.UUID,
        principal,
        payroll_cycle_id: Optional[uuid.UUID] = None,
    ) -> str:
        query = (
            select(Payroll, Employee.code, Employee.name, PayrollCycle.name)
            .join(Employee, Employee.id == Payroll.employee_id)
            .join(PayrollCycle, PayrollCycle.id == Payroll.payroll_cycle_id)
            .where(
                Payroll.organisation_id == organisation_id,
                Payroll.delete_flag.is_(False),
            )
            .order_by(PayrollCycle.pay_period_start.desc(), Employee.code)
        )
        if payroll_cycle_id is not None:
            query = query.where(Payroll.payroll_cycle_id == payroll_cycle_id)
        if principal is not None and not principal.is_admin:
            query = query.where(Payroll.employee_id == principal.id)
        rows = (await db.execute(query)).all()

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        for payroll, code, name, cycle_name in rows:
            writer.writerow([
                code,
                name,
                cycle_name,
                payroll.status,
                _blank(payroll.working_days),
                _blank(payroll.present_days),
                _blank(payroll.absent_days),
                _blank(payroll.leave_days),
                to_money(payroll.basic_salary),
                to_money(payroll.total_allowances),
                to_money(payroll.total_deductions),
                to_money(payroll.gross_salary),
                to_money(payroll.net_salary),
                payroll.payment_date.isoformat() if payroll.payment_date else "",
                payroll.payment_method or "",
            ])
        logger.info("Exported %d payrolls of organisation %s", len(rows), organisation_id)
        return buffer.getvalue()


def _blank(value: Any) -> Any:
    return "" if value is None else value


async def _compute_amounts(
    db: AsyncSession,
    organisation_id: uuid.UUID,
    values: dict[str, Any],
    *,
    net_given: bool,
) -> None:
    basic = to_money(values.get("basic_salary"))
    allowances = values.get("total_allowances")
    deductions = values.get("total_deductions")
    if allowances is None or deductions is None:
        computed_allowances, computed_deductions = await component_totals(
            db, organisation_id, values["employee_id"], basic,
        )
        if allowances is None:
            allowances = computed_allowances
        if deductions is None:
            deductions = computed_deductions

    values["basic_salary"] = basic
    values["total_allowances"] = to_money(allowances)
    values["total_deductions"] = to_money(deductions)
    values["gross_salary"] = basic + values["total_allowances"]
    if net_given:
        values["net_salary"] = to_money(values["net_salary"])
    else:
        values["net_salary"] = values["gross_salary"] - values["total_deductions"]
