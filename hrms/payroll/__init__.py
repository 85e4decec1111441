"""Payroll module — salary components, payroll cycles and payrolls."""
