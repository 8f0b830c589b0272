"""Interactive command groups."""
