"""Request controllers for the account flows application."""
