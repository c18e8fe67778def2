"""
Notification Service - handles in-app notifications.

Notifications are a side channel: the ``notify_*`` triggers run after the
primary write has committed, and a failure here is logged and rolled back
without touching that write.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from lawdesk.core.structured_logging import build_log_context
from lawdesk.db.enums import NotificationType
from lawdesk.db.models import Appointment, Notification, Task

logger = logging.getLogger(__name__)


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
) -> Notification:
    """Create a notification."""
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.read_at.is_(None))

    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read_at.is_(None),
    ).count()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
) -> Optional[Notification]:
    """Mark single notification as read (owner only)."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()

    if notification and not notification.read_at:
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)

    return notification


# =============================================================================
# Trigger Functions (best-effort)
# =============================================================================


def _notify_safely(
    db: Session,
    recipients: list[UUID],
    type: NotificationType,
    title: str,
    message: str,
    entity_type: str,
    entity_id: UUID,
) -> int:
    """Write one notification per recipient. Returns how many were written."""
    written = 0
    for user_id in recipients:
        try:
            create_notification(
                db=db,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            written += 1
        except Exception:
            db.rollback()
            logger.exception(
                "Failed to write %s notification",
                type.value,
                extra=build_log_context(
                    actor_id=user_id, entity_type=entity_type, entity_id=entity_id
                ),
            )
    return written


def notify_appointment_scheduled(db: Session, appointment: Appointment) -> int:
    """Notify lawyer and client that an appointment was booked."""
    when = appointment.scheduled_at.isoformat()
    return _notify_safely(
        db,
        recipients=[appointment.lawyer_id, appointment.client_id],
        type=NotificationType.APPOINTMENT_SCHEDULED,
        title="Appointment scheduled",
        message=f"Appointment scheduled for {when}",
        entity_type="appointment",
        entity_id=appointment.id,
    )


def notify_appointment_status(
    db: Session,
    appointment: Appointment,
    type: NotificationType,
    actor_id: UUID,
) -> int:
    """Notify the other party on the appointment of a confirm/cancel."""
    recipients = [
        uid for uid in (appointment.lawyer_id, appointment.client_id) if uid != actor_id
    ]
    title = (
        "Appointment confirmed"
        if type == NotificationType.APPOINTMENT_CONFIRMED
        else "Appointment cancelled"
    )
    return _notify_safely(
        db,
        recipients=recipients,
        type=type,
        title=title,
        message=appointment.cancellation_reason,
        entity_type="appointment",
        entity_id=appointment.id,
    )


def notify_task_assigned(db: Session, task: Task) -> int:
    """Notify the assignee of a new task."""
    return _notify_safely(
        db,
        recipients=[task.assigned_to],
        type=NotificationType.TASK_ASSIGNED,
        title=f"Task assigned: {task.title[:50]}",
        message=None,
        entity_type="task",
        entity_id=task.id,
    )
