"""Task-related enums."""

from enum import Enum


class TaskStatus(str, Enum):
    """
    Task status.

    OVERDUE is kept for records written by older clients; it is never set by
    a status change here. Use ``task_service.is_overdue`` instead.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Statuses that count toward the overdue predicate
OPEN_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
