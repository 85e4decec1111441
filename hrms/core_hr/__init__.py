"""Core HR module — Department, Designation, Employee and EmployeeDocument."""

from hrms.core_hr.models import Department, Designation, Employee, EmployeeDocument

__all__ = ["Department", "Designation", "Employee", "EmployeeDocument"]
