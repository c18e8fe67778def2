"""Mediation enums."""

from enum import Enum


class MediationStatus(str, Enum):
    """
    Mediation lifecycle status.

    Flow: pending → scheduled → in_progress → completed
                                     ↘ failed
    """

    PENDING = "pending"  # Requested, no session yet
    SCHEDULED = "scheduled"  # Session booked, reminder armed
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
