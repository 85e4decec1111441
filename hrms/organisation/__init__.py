"""Organisation module — organisations and branches."""
