"""
Appointment service - booking and lifecycle for lawyer/client meetings.

Booking checks the lawyer's slot before insert; the partial unique index on
(lawyer_id, scheduled_at) for scheduled rows catches the concurrent writer
that slips past the check, and that IntegrityError surfaces as ConflictError.

Status changes go through APPOINTMENT_TRANSITIONS. Events and notifications
are emitted after commit and never fail the operation.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lawdesk.core import constants
from lawdesk.core.clock import ensure_utc
from lawdesk.core.config import settings
from lawdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from lawdesk.core.structured_logging import build_log_context
from lawdesk.core.transitions import APPOINTMENT_TRANSITIONS, check_transition
from lawdesk.db.enums import AppointmentStatus, NotificationType
from lawdesk.db.models import Appointment
from lawdesk.schemas.appointment import AppointmentCreate, AppointmentRead
from lawdesk.services import conflict_service, notification_service
from lawdesk.services.event_bus import EventSink, resolve_sink, safe_emit

logger = logging.getLogger(__name__)


def _payload(appointment: Appointment, user_id: UUID, slug: str) -> dict[str, Any]:
    return {
        "user_id": str(user_id),
        "slug": slug,
        "appointment": AppointmentRead.model_validate(appointment).model_dump(mode="json"),
    }


SLOT_INDEX = "uq_appointments_lawyer_slot_scheduled"


def _is_slot_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == SLOT_INDEX:
        return True
    message = str(error.orig) if error.orig else str(error)
    # SQLite names the indexed columns instead of the index
    return SLOT_INDEX in message or "appointments.lawyer_id, appointments.scheduled_at" in message


def _validate_duration(duration_minutes: int) -> None:
    low = settings.APPOINTMENT_MIN_DURATION_MINUTES
    high = settings.APPOINTMENT_MAX_DURATION_MINUTES
    if not low <= duration_minutes <= high:
        raise ValidationError(
            f"duration_minutes must be between {low} and {high}, got {duration_minutes}"
        )


# =============================================================================
# Booking
# =============================================================================


def create_appointment(
    db: Session,
    data: AppointmentCreate,
    events: EventSink | None = None,
) -> Appointment:
    """
    Book an appointment in SCHEDULED status.

    Raises:
        ValidationError: duration outside the configured range.
        ConflictError: lawyer already has a scheduled appointment at that time.
    """
    _validate_duration(data.duration_minutes)
    scheduled_at = ensure_utc(data.scheduled_at)

    if conflict_service.has_conflict(db, data.lawyer_id, scheduled_at):
        raise ConflictError("Lawyer has a conflicting appointment at this time")

    appointment = Appointment(
        lawyer_id=data.lawyer_id,
        client_id=data.client_id,
        case_id=data.case_id,
        type=data.type.value,
        status=AppointmentStatus.SCHEDULED.value,
        scheduled_at=scheduled_at,
        duration_minutes=data.duration_minutes,
        notes=data.notes,
        meeting_link=data.meeting_link,
        location=data.location,
        language=data.language,
    )
    db.add(appointment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_slot_conflict(exc):
            raise ConflictError("Lawyer has a conflicting appointment at this time") from exc
        raise
    db.refresh(appointment)

    logger.info(
        "Appointment scheduled",
        extra=build_log_context(
            actor_id=appointment.lawyer_id,
            entity_type="appointment",
            entity_id=appointment.id,
            event=constants.APPOINTMENT_SCHEDULED,
            status=appointment.status,
        ),
    )

    notification_service.notify_appointment_scheduled(db, appointment)
    safe_emit(
        resolve_sink(events),
        constants.APPOINTMENT_SCHEDULED,
        _payload(appointment, appointment.client_id, constants.SLUG_APPOINTMENT_SCHEDULED),
    )
    return appointment


# =============================================================================
# Lifecycle
# =============================================================================


def _apply_status(
    db: Session,
    appointment: Appointment,
    status: AppointmentStatus,
    actor_id: UUID,
) -> Appointment:
    appointment.status = status.value
    db.commit()
    db.refresh(appointment)
    logger.info(
        "Appointment status changed",
        extra=build_log_context(
            actor_id=actor_id,
            entity_type="appointment",
            entity_id=appointment.id,
            status=appointment.status,
        ),
    )
    return appointment


def confirm_appointment(
    db: Session,
    appointment_id: UUID,
    actor_id: UUID,
    events: EventSink | None = None,
) -> Appointment:
    """Confirm a scheduled appointment (lawyer or client on the record)."""
    appointment = get_appointment(db, appointment_id)
    check_transition(
        APPOINTMENT_TRANSITIONS, appointment, AppointmentStatus.CONFIRMED, actor_id
    )
    _apply_status(db, appointment, AppointmentStatus.CONFIRMED, actor_id)

    notification_service.notify_appointment_status(
        db, appointment, NotificationType.APPOINTMENT_CONFIRMED, actor_id
    )
    safe_emit(
        resolve_sink(events),
        constants.APPOINTMENT_CONFIRMED,
        _payload(appointment, appointment.client_id, constants.SLUG_APPOINTMENT_CONFIRMED),
    )
    return appointment


def cancel_appointment(
    db: Session,
    appointment_id: UUID,
    actor_id: UUID,
    reason: str | None,
    events: EventSink | None = None,
) -> Appointment:
    """
    Cancel a scheduled or confirmed appointment.

    Checks run in order: existence, actor, status, reason.
    """
    appointment = get_appointment(db, appointment_id)
    check_transition(
        APPOINTMENT_TRANSITIONS, appointment, AppointmentStatus.CANCELLED, actor_id
    )
    if not reason or not reason.strip():
        raise ValidationError("A cancellation reason is required")

    appointment.cancellation_reason = reason.strip()
    _apply_status(db, appointment, AppointmentStatus.CANCELLED, actor_id)

    notification_service.notify_appointment_status(
        db, appointment, NotificationType.APPOINTMENT_CANCELLED, actor_id
    )
    safe_emit(
        resolve_sink(events),
        constants.APPOINTMENT_CANCELLED,
        _payload(appointment, appointment.client_id, constants.SLUG_APPOINTMENT_CANCELLED),
    )
    return appointment


def complete_appointment(
    db: Session,
    appointment_id: UUID,
    actor_id: UUID,
    events: EventSink | None = None,
) -> Appointment:
    """Mark an appointment completed. Lawyer only, from any status."""
    appointment = get_appointment(db, appointment_id)
    check_transition(
        APPOINTMENT_TRANSITIONS, appointment, AppointmentStatus.COMPLETED, actor_id
    )
    _apply_status(db, appointment, AppointmentStatus.COMPLETED, actor_id)

    safe_emit(
        resolve_sink(events),
        constants.APPOINTMENT_COMPLETED,
        _payload(appointment, appointment.lawyer_id, constants.SLUG_APPOINTMENT_COMPLETED),
    )
    return appointment


# =============================================================================
# Queries
# =============================================================================


def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
    """Get appointment by ID or raise NotFoundError."""
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


def get_lawyer_appointments(
    db: Session,
    lawyer_id: UUID,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    """List a lawyer's appointments, earliest first."""
    query = db.query(Appointment).filter(Appointment.lawyer_id == lawyer_id)
    if status:
        query = query.filter(Appointment.status == AppointmentStatus(status).value)
    return query.order_by(Appointment.scheduled_at.asc()).all()


def get_client_appointments(
    db: Session,
    client_id: UUID,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    """List a client's appointments, earliest first."""
    query = db.query(Appointment).filter(Appointment.client_id == client_id)
    if status:
        query = query.filter(Appointment.status == AppointmentStatus(status).value)
    return query.order_by(Appointment.scheduled_at.asc()).all()
