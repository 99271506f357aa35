"""Transfer services."""
