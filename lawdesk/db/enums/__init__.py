"""Enum definitions for application constants."""

from lawdesk.db.enums.appointments import (
    AppointmentStatus,
    AppointmentType,
    DEFAULT_APPOINTMENT_STATUS,
    DEFAULT_APPOINTMENT_TYPE,
)
from lawdesk.db.enums.auth import Role
from lawdesk.db.enums.mediations import MediationStatus
from lawdesk.db.enums.notifications import NotificationType
from lawdesk.db.enums.tasks import OPEN_TASK_STATUSES, TaskPriority, TaskStatus

__all__ = [
    "AppointmentStatus",
    "AppointmentType",
    "DEFAULT_APPOINTMENT_STATUS",
    "DEFAULT_APPOINTMENT_TYPE",
    "MediationStatus",
    "NotificationType",
    "OPEN_TASK_STATUSES",
    "Role",
    "TaskPriority",
    "TaskStatus",
]
