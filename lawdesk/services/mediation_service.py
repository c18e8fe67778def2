"""
Mediation service - mediation workflow on a case.

Mediations are held in an ``EphemeralStore`` and do not survive a restart,
and neither do their reminders. Booking a session arms exactly one reminder
``MEDIATION_REMINDER_LEAD_HOURS`` before the session; rebooking replaces it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from lawdesk.core import constants
from lawdesk.core.clock import Clock, default_clock, ensure_utc
from lawdesk.core.config import settings
from lawdesk.core.exceptions import InvalidStateError, NotFoundError
from lawdesk.core.structured_logging import build_log_context
from lawdesk.core.transitions import MEDIATION_TRANSITIONS, check_transition
from lawdesk.db.enums import MediationStatus
from lawdesk.schemas.mediation import Mediation
from lawdesk.services.ephemeral_store import EphemeralStore
from lawdesk.services.event_bus import EventSink, resolve_sink, safe_emit
from lawdesk.services.reminder_scheduler import Reminder, ReminderScheduler

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({MediationStatus.COMPLETED.value, MediationStatus.FAILED.value})


class MediationService:
    """Mediation lifecycle plus its session reminders."""

    def __init__(
        self,
        events: EventSink | None = None,
        clock: Clock | None = None,
        scheduler: ReminderScheduler | None = None,
        store: EphemeralStore[UUID, Mediation] | None = None,
        strict_transitions: bool | None = None,
    ) -> None:
        self.events = resolve_sink(events)
        self.clock = clock or default_clock
        self.store = store if store is not None else EphemeralStore("Mediation")
        if scheduler is None:
            scheduler = ReminderScheduler(on_fire=self._fire_reminder, clock=self.clock)
        else:
            scheduler.set_fire_callback(self._fire_reminder)
        self.scheduler = scheduler
        self.strict_transitions = (
            settings.MEDIATION_STRICT_TRANSITIONS
            if strict_transitions is None
            else strict_transitions
        )

    def _payload(self, mediation: Mediation, user_id: UUID, slug: str) -> dict[str, Any]:
        return {
            "user_id": str(user_id),
            "slug": slug,
            "mediation": mediation.model_dump(mode="json"),
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initiate(
        self,
        case_id: UUID,
        mediator_id: UUID,
        reason: str,
        initiator_id: UUID,
    ) -> Mediation:
        """Open a mediation in PENDING status and notify the mediator."""
        now = self.clock.now()
        mediation = Mediation(
            case_id=case_id,
            mediator_id=mediator_id,
            initiator_id=initiator_id,
            reason=reason,
            status=MediationStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        mediation = self.store.save(mediation.id, mediation)

        logger.info(
            "Mediation requested",
            extra=build_log_context(
                actor_id=initiator_id,
                entity_type="mediation",
                entity_id=mediation.id,
                event=constants.MEDIATION_REQUESTED,
            ),
        )
        safe_emit(
            self.events,
            constants.MEDIATION_REQUESTED,
            self._payload(mediation, mediator_id, constants.SLUG_MEDIATION_REQUESTED),
        )
        return mediation

    def update_status(
        self,
        mediation_id: UUID,
        status: MediationStatus,
        notes: str | None = None,
        actor_id: UUID | None = None,
        actor_role: str | None = None,
    ) -> Mediation:
        """
        Set the mediation status (mediator on the record or an admin).

        SCHEDULED is only reachable through ``schedule_session``, which arms
        the session reminder. With strict transitions off, any known status
        may overwrite any other; the actor is still checked when one is given.
        """
        status = MediationStatus(status)

        def apply(mediation: Mediation) -> None:
            check_transition(
                MEDIATION_TRANSITIONS,
                mediation,
                status,
                actor_id,
                actor_role,
                enforce_adjacency=self.strict_transitions,
            )
            if self.strict_transitions and status == MediationStatus.SCHEDULED:
                raise InvalidStateError(
                    "Mediation sessions are booked with schedule_session",
                    current=mediation.status,
                    requested=status.value,
                )
            mediation.status = status
            if notes is not None:
                mediation.notes = notes
            mediation.updated_at = self.clock.now()

        mediation = self.store.update(mediation_id, apply)
        if mediation.status in TERMINAL_STATUSES:
            self.scheduler.disarm_owner(mediation_id)

        logger.info(
            "Mediation status changed",
            extra=build_log_context(
                actor_id=actor_id,
                entity_type="mediation",
                entity_id=mediation_id,
                status=mediation.status,
            ),
        )
        safe_emit(
            self.events,
            constants.MEDIATION_STATUS_UPDATED,
            self._payload(mediation, mediation.initiator_id, constants.SLUG_MEDIATION_STATUS_UPDATED),
        )
        if mediation.status == MediationStatus.COMPLETED.value:
            safe_emit(
                self.events,
                constants.MEDIATION_COMPLETED,
                self._payload(mediation, mediation.initiator_id, constants.SLUG_MEDIATION_COMPLETED),
            )
        return mediation

    def schedule_session(
        self,
        mediation_id: UUID,
        scheduled_date: datetime,
        location: str,
        notes: str | None = None,
        actor_id: UUID | None = None,
        actor_role: str | None = None,
    ) -> Mediation:
        """
        Book (or rebook) the session and arm its reminder.

        The status change and the reminder swap happen under the
        mediation's lock, so concurrent calls on one id serialize and
        exactly one reminder remains armed afterwards.
        """
        scheduled_date = ensure_utc(scheduled_date)
        due_at = scheduled_date - timedelta(hours=settings.MEDIATION_REMINDER_LEAD_HOURS)

        def apply(mediation: Mediation) -> None:
            check_transition(
                MEDIATION_TRANSITIONS,
                mediation,
                MediationStatus.SCHEDULED,
                actor_id,
                actor_role,
                enforce_adjacency=self.strict_transitions,
            )
            mediation.scheduled_date = scheduled_date
            mediation.location = location
            mediation.session_notes = notes
            mediation.status = MediationStatus.SCHEDULED
            mediation.updated_at = self.clock.now()

            self.scheduler.disarm_owner(mediation.id)
            self.scheduler.arm(mediation.id, due_at, settings.MEDIATION_REMINDER_MESSAGE)

        mediation = self.store.update(mediation_id, apply)

        logger.info(
            "Mediation session scheduled",
            extra=build_log_context(
                actor_id=actor_id,
                entity_type="mediation",
                entity_id=mediation_id,
                event=constants.MEDIATION_SCHEDULED,
                status=mediation.status,
            ),
        )
        safe_emit(
            self.events,
            constants.MEDIATION_SCHEDULED,
            self._payload(mediation, mediation.initiator_id, constants.SLUG_MEDIATION_SCHEDULED),
        )
        return mediation

    # =========================================================================
    # Queries
    # =========================================================================

    def get_mediation(self, mediation_id: UUID) -> Mediation:
        mediation = self.store.get(mediation_id)
        if mediation is None:
            raise NotFoundError("Mediation", mediation_id)
        return mediation

    def get_by_case(self, case_id: UUID) -> Mediation | None:
        """Earliest mediation opened on the case, if any."""
        matches = self.store.find(
            lambda m: m.case_id == case_id,
            order_by=lambda m: m.created_at,
            limit=1,
        )
        return matches[0] if matches else None

    def get_user_mediations(
        self,
        user_id: UUID,
        status: MediationStatus | None = None,
    ) -> list[Mediation]:
        """Mediations where the user is initiator or mediator."""
        wanted = MediationStatus(status).value if status else None
        return self.store.find(
            lambda m: (m.initiator_id == user_id or m.mediator_id == user_id)
            and (wanted is None or m.status == wanted),
            order_by=lambda m: m.created_at,
        )

    def list_mediations(self) -> list[Mediation]:
        return self.store.find(order_by=lambda m: m.created_at)

    def delete_mediation(self, mediation_id: UUID) -> None:
        """Forget a mediation and its pending reminders."""
        if not self.store.remove(mediation_id):
            raise NotFoundError("Mediation", mediation_id)
        self.scheduler.disarm_owner(mediation_id)

    # =========================================================================
    # Reminders
    # =========================================================================

    def send_reminders(self, now: datetime | None = None) -> list[Reminder]:
        """Fire every due session reminder. Called by the periodic driver."""
        return self.scheduler.tick(now)

    def _fire_reminder(self, reminder: Reminder) -> None:
        mediation = self.store.get(reminder.owner_id)
        if mediation is None:
            # Mediation is gone; drop the reminder silently
            logger.debug("Dropping stale reminder %s", reminder.id)
            return

        payload = self._payload(mediation, mediation.initiator_id, constants.SLUG_MEDIATION_REMINDER)
        payload["message"] = reminder.message
        payload["recipient_ids"] = [str(mediation.initiator_id), str(mediation.mediator_id)]
        # Sink failures must reach tick() so they are logged per reminder
        self.events.emit(constants.MEDIATION_REMINDER, payload)
