"""Appointment enums."""

from enum import Enum


class AppointmentType(str, Enum):
    """Kind of meeting being booked."""

    INITIAL_CONSULTATION = "initial_consultation"
    FOLLOW_UP = "follow_up"
    COURT_HEARING = "court_hearing"
    MEDIATION_SESSION = "mediation_session"
    DOCUMENT_REVIEW = "document_review"
    OTHER = "other"


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled → confirmed → completed
              ↘ cancelled
    """

    SCHEDULED = "scheduled"  # Booked, holds the lawyer's slot
    CONFIRMED = "confirmed"  # Acknowledged by lawyer or client
    CANCELLED = "cancelled"  # Cancelled by lawyer or client (reason required)
    COMPLETED = "completed"  # Meeting took place (lawyer only)


# Default appointment status
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.SCHEDULED
DEFAULT_APPOINTMENT_TYPE = AppointmentType.INITIAL_CONSULTATION
