"""Leave module — leave types and leave requests."""
