"""Service layer for the scheduling and lifecycle core."""
