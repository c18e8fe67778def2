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
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from lawdesk.db.base import Base
from lawdesk.db.enums import (
    AppointmentStatus,
    DEFAULT_APPOINTMENT_STATUS,
    DEFAULT_APPOINTMENT_TYPE,
)
from lawdesk.db.types import utcnow

# Only a SCHEDULED appointment holds a lawyer's slot
_SLOT_HELD = text(f"status = '{AppointmentStatus.SCHEDULED.value}'")


class Appointment(Base):
    """
    Lawyer/client meeting at an exact timestamp.

    At most one SCHEDULED row may exist per (lawyer_id, scheduled_at); the
    partial unique index makes the store reject the second writer even when
    two requests pass the in-process conflict check at the same time.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_lawyer_slot_scheduled",
            "lawyer_id",
            "scheduled_at",
            unique=True,
            postgresql_where=_SLOT_HELD,
            sqlite_where=_SLOT_HELD,
        ),
        Index("idx_appointments_lawyer", "lawyer_id", "scheduled_at"),
        Index("idx_appointments_client", "client_id", "scheduled_at"),
        CheckConstraint(
            "duration_minutes >= 15 AND duration_minutes <= 480",
            name="ck_appointment_duration",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lawyer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    case_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    type: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_APPOINTMENT_TYPE.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_APPOINTMENT_STATUS.value, nullable=False
    )

    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    meeting_link: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Virtual
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)  # Physical
    language: Mapped[str] = mapped_column(String(50), default="en", nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )
