"""Attendance module — shifts, attendance rules, work-day rules, holidays and records."""
