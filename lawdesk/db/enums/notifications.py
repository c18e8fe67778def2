"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    # Appointment notifications
    APPOINTMENT_SCHEDULED = "appointment_scheduled"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"

    # Task notifications
    TASK_ASSIGNED = "task_assigned"
