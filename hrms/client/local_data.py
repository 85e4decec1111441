"""Offline records kept in the local store as JSON lists.

Pages that are not wired to the API read and write these collections
directly. On first load the employee and branch collections are seeded
with demo records so the views have something to show.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from hrms.client.store import (
    BRANCHES_KEY,
    DOCUMENTS_KEY,
    EMPLOYEES_KEY,
    LEAVES_KEY,
    PAYROLL_KEY,
    LocalStore,
)

logger = logging.getLogger(__name__)

DEMO_BRANCHES: list[dict[str, Any]] = [
    {
        "id": "1",
        "name": "Head Office",
        "code": "HO",
        "address": "123 Main Street, Downtown, City 12345",
        "phone": "+1 (555) 123-4567",
        "email": "headoffice@company.com",
        "manager": "John Smith",
        "status": "active",
        "created_at": "2023-01-01T00:00:00+00:00",
    },
    {
        "id": "2",
        "name": "North Branch",
        "code": "NB",
        "address": "456 North Ave, North District, City 12345",
        "phone": "+1 (555) 234-5678",
        "email": "northbranch@company.com",
        "manager": "Jane Doe",
        "status": "active",
        "created_at": "2023-02-01T00:00:00+00:00",
    },
    {
        "id": "3",
        "name": "South Branch",
        "code": "SB",
        "address": "789 South Blvd, South District, City 12345",
        "phone": "+1 (555) 345-6789",
        "email": "southbranch@company.com",
        "manager": "Mike Johnson",
        "status": "active",
        "created_at": "2023-03-01T00:00:00+00:00",
    },
]

DEMO_EMPLOYEES: list[dict[str, Any]] = [
    {
        "id": "1",
        "name": "John Doe",
        "email": "john.doe@company.com",
        "phone": "+1 (555) 123-4567",
        "department": "Engineering",
        "position": "Senior Developer",
        "salary": 85000,
        "hire_date": "2023-01-15",
        "status": "active",
        "branch_id": "1",
        "created_at": "2023-01-15T00:00:00+00:00",
    },
    {
        "id": "2",
        "name": "Jane Smith",
        "email": "jane.smith@company.com",
        "phone": "+1 (555) 234-5678",
        "department": "Marketing",
        "position": "Marketing Manager",
        "salary": 75000,
        "hire_date": "2023-03-20",
        "status": "active",
        "branch_id": "2",
        "created_at": "2023-03-20T00:00:00+00:00",
    },
    {
        "id": "3",
        "name": "Mike Johnson",
        "email": "mike.johnson@company.com",
        "phone": "+1 (555) 345-6789",
        "department": "HR",
        "position": "HR Specialist",
        "salary": 65000,
        "hire_date": "2023-06-10",
        "status": "active",
        "branch_id": "3",
        "created_at": "2023-06-10T00:00:00+00:00",
    },
]


class LocalCollection:
    """A list of records stored under one key, addressed by ``id``."""

    def __init__(self, store: LocalStore, key: str) -> None:
        self.store = store
        self.key = key

    def all(self) -> list[dict[str, Any]]:
        records = self.store.get(self.key, [])
        return list(records) if isinstance(records, list) else []

    def filter(self, **criteria: Any) -> list[dict[str, Any]]:
        return [
            record for record in self.all()
            if all(record.get(field) == value for field, value in criteria.items())
        ]

    def get(self, record_id: str) -> Optional[dict[str, Any]]:
        return next((r for r in self.all() if r.get("id") == record_id), None)

    def add(self, record: dict[str, Any]) -> dict[str, Any]:
        """Append a record, assigning ``id`` and ``created_at`` when missing."""
        stored = {
            "id": uuid.uuid4().hex,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **record,
        }
        self.store.set(self.key, self.all() + [stored])
        return stored

    def update(self, record_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        records = self.all()
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                records[index] = {**record, **changes, "id": record_id}
                self.store.set(self.key, records)
                return records[index]
        return None

    def remove(self, record_id: str) -> bool:
        records = self.all()
        kept = [r for r in records if r.get("id") != record_id]
        if len(kept) == len(records):
            return False
        self.store.set(self.key, kept)
        return True

    def seed(self, records: list[dict[str, Any]]) -> bool:
        """Store ``records`` only if the collection is empty."""
        if self.all():
            return False
        self.store.set(self.key, [dict(r) for r in records])
        logger.debug("Seeded %d records into %s", len(records), self.key)
        return True


class LocalData:
    """The offline collections of one client."""

    def __init__(self, store: LocalStore) -> None:
        self.employees = LocalCollection(store, EMPLOYEES_KEY)
        self.leaves = LocalCollection(store, LEAVES_KEY)
        self.payroll = LocalCollection(store, PAYROLL_KEY)
        self.documents = LocalCollection(store, DOCUMENTS_KEY)
        self.branches = LocalCollection(store, BRANCHES_KEY)

    def seed_demo_data(self) -> None:
        """First-load seeding of branches and employees."""
        self.branches.seed(DEMO_BRANCHES)
        self.employees.seed(DEMO_EMPLOYEES)

    def set_leave_status(self, leave_id: str, status: str) -> Optional[dict[str, Any]]:
        return self.leaves.update(leave_id, {"status": status})

    def employee_documents(self, employee_id: str) -> list[dict[str, Any]]:
        return self.documents.filter(employee_id=employee_id)

    def summary(self) -> dict[str, Any]:
        employees = self.employees.all()
        return {
            "total_employees": len(employees),
            "active_employees": sum(1 for e in employees if e.get("status") == "active"),
            "pending_leaves": sum(1 for leave in self.leaves.all() if leave.get("status") == "pending"),
            "total_payroll": sum(p.get("amount") or 0 for p in self.payroll.all()),
        }
