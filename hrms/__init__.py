"""HRMS — organisation-scoped HR platform."""
