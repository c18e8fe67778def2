"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from lawdesk.db.base import Base
from lawdesk.db.enums import TaskPriority, TaskStatus
from lawdesk.db.types import utcnow


class Task(Base):
    """
    Case work item assigned to one user.

    completed_date is non-null iff status is completed; task_service keeps
    the two in step.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_assignee", "assigned_to", "due_date"),
        Index("idx_tasks_case", "case_id", "due_date"),
        Index("idx_tasks_status_due", "status", "due_date"),
        CheckConstraint("estimated_hours >= 0", name="ck_task_estimated_hours"),
        CheckConstraint("actual_hours >= 0", name="ck_task_actual_hours"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    milestone_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    assigned_to: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=TaskStatus.PENDING.value, nullable=False
    )
    priority: Mapped[str] = mapped_column(
        String(20), default=TaskPriority.MEDIUM.value, nullable=False
    )

    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(nullable=True)

    estimated_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    actual_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )
