"""Lawdesk scheduling and lifecycle core."""
