"""Pydantic schemas for tasks."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from lawdesk.db.enums import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Request to create a task."""
    case_id: UUID
    milestone_id: UUID | None = None
    assigned_to: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    estimated_hours: int = Field(0, ge=0)


class TaskUpdate(BaseModel):
    """Request to update a task (partial)."""
    milestone_id: UUID | None = None
    assigned_to: UUID | None = None
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    estimated_hours: int | None = Field(None, ge=0)
    actual_hours: int | None = Field(None, ge=0)
    progress_notes: str | None = None


class TaskTimeTracking(BaseModel):
    """Request to record hours on a task."""
    estimated_hours: int | None = Field(None, ge=0)
    actual_hours: int | None = Field(None, ge=0)


class TaskRead(BaseModel):
    """Full task response."""
    id: UUID
    case_id: UUID
    milestone_id: UUID | None
    assigned_to: UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None
    completed_date: datetime | None
    estimated_hours: int
    actual_hours: int
    progress_notes: str | None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
