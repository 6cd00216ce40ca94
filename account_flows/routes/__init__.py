"""HTTP routes for account flows."""
