"""Shared helpers used by the auth and workflow packages."""
