#!/usr/bin/env python3
"""Seed a demo organisation: admin, departments, designations, shifts,
employees, leave types and a payroll cycle.

Idempotent: nothing is written when the demo admin already exists.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --email admin@demo.hrms --password demo-pass-123
    python scripts/seed_demo.py --employees 25

Requires DATABASE_URL and JWT_SECRET in .env (schema created by alembic).
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from sqlalchemy import func, select

from hrms.attendance.schemas import ShiftCreate, WorkDayRuleCreate
from hrms.attendance.service import ShiftService, WorkDayRuleService
from hrms.auth.dependencies import Principal
from hrms.auth.models import Admin
from hrms.auth.service import register_admin
from hrms.common.constants import UserRole
from hrms.core_hr.schemas import DepartmentCreate, DesignationCreate, EmployeeCreate
from hrms.core_hr.service import DepartmentService, DesignationService, EmployeeService
from hrms.database import async_session_factory, engine
from hrms.leave.schemas import LeaveTypeCreate
from hrms.leave.service import LeaveTypeService
from hrms.payroll.schemas import PayrollCycleCreate, SalaryComponentTypeCreate
from hrms.payroll.service import PayrollCycleService, SalaryComponentTypeService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("seed_demo")

DEPARTMENTS = {
    "Engineering": ["Software Engineer", "Senior Software Engineer", "Engineering Manager"],
    "Human Resources": ["HR Executive", "HR Manager"],
    "Finance": ["Accountant", "Finance Manager"],
    "Sales": ["Sales Executive", "Account Manager"],
}

SHIFTS = [
    {"name": "General", "start": "09:00", "end": "18:00", "grace_minutes": 15},
    {"name": "Night", "start": "22:00", "end": "06:00", "grace_minutes": 10},
]

LEAVE_TYPES = [
    {"name": "Casual Leave", "code": "CL", "initial_balance": 12, "max_balance": 12,
     "max_consecutive_days": 3, "color": "#4caf50"},
    {"name": "Sick Leave", "code": "SL", "initial_balance": 8, "max_balance": 8,
     "requires_approval": False, "color": "#f44336"},
    {"name": "Earned Leave", "code": "EL", "initial_balance": 15, "max_balance": 45,
     "allow_carry_forward": True, "carry_forward_limit": 30, "min_advance_notice_days": 7,
     "color": "#2196f3"},
]

COMPONENT_TYPES = [
    {"name": "House Rent Allowance", "type": "EARNING", "sequence": 1},
    {"name": "Conveyance", "type": "EARNING", "sequence": 2},
    {"name": "Provident Fund", "type": "DEDUCTION", "sequence": 3},
]

FIRST_NAMES = ["Aarav", "Diya", "Kabir", "Meera", "Rohan", "Sara", "Vikram", "Anaya", "Ishaan", "Tara"]
LAST_NAMES = ["Sharma", "Patel", "Iyer", "Khan", "Das", "Rao", "Mehta", "Singh"]


async def seed(email: str, password: str, employee_count: int) -> bool:
    """Create the demo data; return False when it already exists."""
    async with async_session_factory() as db:
        exists = (
            await db.execute(select(func.count()).select_from(Admin).where(Admin.email == email.lower()))
        ).scalar_one()
        if exists:
            logger.info("Demo admin %s already exists — nothing to do", email)
            return False

        admin, organisation, _ = await register_admin(
            db, email=email, full_name="Demo Admin", password=password,
            organisation_name="Demo Organisation",
        )
        admin.is_verified = True
        org_id = organisation.id
        principal = Principal(
            id=admin.id, role=UserRole.admin, name=admin.name, email=admin.email,
            organisation_id=org_id, token_hash="",
        )

        rule = await WorkDayRuleService.create(
            db, org_id, principal,
            WorkDayRuleCreate(name="Monday to Friday", workweek="five_days").model_dump(),
        )
        organisation.default_working_day_rule_id = rule.id

        shifts = [
            await ShiftService.create(db, org_id, principal, ShiftCreate(**values).model_dump())
            for values in SHIFTS
        ]

        designations = []
        for dept_name, titles in DEPARTMENTS.items():
            department = await DepartmentService.create(
                db, org_id, principal, DepartmentCreate(name=dept_name).model_dump(),
            )
            for title in titles:
                designation = await DesignationService.create(
                    db, org_id, principal,
                    DesignationCreate(name=title, positions=5, department_id=department.id).model_dump(),
                )
                designations.append(designation)
        logger.info("Seeded %d departments, %d designations", len(DEPARTMENTS), len(designations))

        today = date.today()
        for i in range(employee_count):
            first = FIRST_NAMES[i % len(FIRST_NAMES)]
            last = LAST_NAMES[(i // len(FIRST_NAMES)) % len(LAST_NAMES)]
            designation = designations[i % len(designations)]
            values = EmployeeCreate(
                name=f"{first} {last}",
                code=f"DEMO{i + 1:03d}",
                email=f"{first.lower()}.{last.lower()}{i + 1}@demo.hrms",
                password=password,
                department_id=designation.department_id,
                designation_id=designation.id,
                shift_id=shifts[0].id,
                joining_date=today - timedelta(days=30 * (i + 1)),
                basic_salary=30000 + 2500 * (i % 8),
            ).model_dump()
            await EmployeeService.create(db, org_id, principal, values)
        logger.info("Seeded %d employees", employee_count)

        for values in LEAVE_TYPES:
            await LeaveTypeService.create(db, org_id, principal, LeaveTypeCreate(**values).model_dump())
        for values in COMPONENT_TYPES:
            await SalaryComponentTypeService.create(
                db, org_id, principal, SalaryComponentTypeCreate(**values).model_dump(),
            )

        period_start = today.replace(day=1)
        period_end = (period_start + timedelta(days=32)).replace(day=1) - timedelta(days=1)
        await PayrollCycleService.create(
            db, org_id, principal,
            PayrollCycleCreate(
                name=period_start.strftime("%B %Y"),
                pay_period_start=period_start,
                pay_period_end=period_end,
                salary_month=period_start.month,
                salary_year=period_start.year,
                working_days=22,
            ).model_dump(),
        )

        await db.commit()
        logger.info("Demo organisation %s ready (admin %s)", org_id, email)
        return True


async def main_async(args: argparse.Namespace) -> None:
    try:
        await seed(args.email, args.password, args.employees)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed HRMS demo data")
    parser.add_argument("--email", default="admin@demo.hrms")
    parser.add_argument("--password", default="demo-pass-123")
    parser.add_argument("--employees", type=int, default=10)
    args = parser.parse_args()
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
