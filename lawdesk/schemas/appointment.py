"""Pydantic schemas for appointments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from lawdesk.core.config import settings
from lawdesk.db.enums import AppointmentStatus, AppointmentType


class AppointmentCreate(BaseModel):
    """Request to book an appointment."""
    lawyer_id: UUID
    client_id: UUID
    case_id: UUID | None = None
    type: AppointmentType = AppointmentType.INITIAL_CONSULTATION
    scheduled_at: datetime
    duration_minutes: int = Field(
        default_factory=lambda: settings.APPOINTMENT_DEFAULT_DURATION_MINUTES,
        ge=15,
        le=480,
    )
    notes: str | None = Field(None, max_length=2000)
    meeting_link: str | None = Field(None, max_length=100)  # Virtual meetings
    location: str | None = Field(None, max_length=255)  # Physical meetings
    language: str = Field("en", max_length=50)


class AppointmentRead(BaseModel):
    """Full appointment response."""
    id: UUID
    lawyer_id: UUID
    client_id: UUID
    case_id: UUID | None
    type: AppointmentType
    status: AppointmentStatus
    scheduled_at: datetime
    duration_minutes: int
    notes: str | None
    cancellation_reason: str | None
    meeting_link: str | None
    location: str | None
    language: str

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
