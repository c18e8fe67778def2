"""Appointment slot conflict detection."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from lawdesk.db.enums import AppointmentStatus
from lawdesk.db.models import Appointment


# Every status except SCHEDULED frees the slot
DEFAULT_EXCLUDED_STATUSES = frozenset(
    s.value for s in AppointmentStatus if s != AppointmentStatus.SCHEDULED
)


def has_conflict(
    db: Session,
    lawyer_id: UUID,
    scheduled_at: datetime,
    exclude_statuses: Iterable[AppointmentStatus | str] | None = None,
) -> bool:
    """
    Check whether the lawyer already holds an appointment at this exact time.

    Only exact timestamp equality counts; duration is not considered, so
    10:00 (60 min) and 10:30 do not collide. Absence is a normal outcome and
    never raises.
    """
    if exclude_statuses is None:
        excluded = set(DEFAULT_EXCLUDED_STATUSES)
    else:
        excluded = {
            s.value if isinstance(s, AppointmentStatus) else str(s)
            for s in exclude_statuses
        }

    query = db.query(Appointment.id).filter(
        Appointment.lawyer_id == lawyer_id,
        Appointment.scheduled_at == scheduled_at,
    )
    if excluded:
        query = query.filter(Appointment.status.notin_(excluded))
    return query.first() is not None
