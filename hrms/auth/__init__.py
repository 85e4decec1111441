"""Auth module — admins, sessions, JWT and role/permission checks."""
