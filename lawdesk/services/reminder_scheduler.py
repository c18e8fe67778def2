"""
In-process reminder scheduler.

Reminders are armed with a due time and fired by polling: ``tick`` takes
every reminder whose due time has passed out of the pending set and hands it
to the fire callback. Delivery is at most once. A reminder is removed before
its side effect runs, so a failing callback is logged and not retried.

Pending reminders live only in memory and are lost on restart.

In a long-running process ``start()`` drives ``tick`` with APScheduler on a
fixed interval (hourly by default).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from uuid import UUID, uuid4

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lawdesk.core.clock import Clock, default_clock, ensure_utc
from lawdesk.core.config import settings
from lawdesk.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)

TICK_JOB_ID = "reminder_tick"


@dataclass(frozen=True)
class Reminder:
    """A pending side effect tied to a due time."""

    id: UUID
    owner_id: Any
    due_at: datetime
    message: str


FireCallback = Callable[[Reminder], None]


def _log_only(reminder: Reminder) -> None:
    logger.info(
        "Reminder fired for owner=%s: %s",
        reminder.owner_id,
        reminder.message,
        extra=build_log_context(entity_id=reminder.owner_id, event="reminder.fired"),
    )


class ReminderScheduler:
    """Pending reminder set plus the periodic driver that drains it."""

    def __init__(
        self,
        on_fire: FireCallback | None = None,
        clock: Clock | None = None,
        interval_minutes: int | None = None,
    ) -> None:
        self._on_fire = on_fire or _log_only
        self._clock = clock or default_clock
        self._interval_minutes = interval_minutes or settings.REMINDER_POLL_INTERVAL_MINUTES
        self._pending: dict[UUID, Reminder] = {}
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    def set_fire_callback(self, on_fire: FireCallback) -> None:
        self._on_fire = on_fire

    # =========================================================================
    # Pending set
    # =========================================================================

    def arm(self, owner_id: Any, due_at: datetime, message: str) -> UUID:
        """Register a reminder. Several reminders per owner are allowed."""
        reminder = Reminder(
            id=uuid4(),
            owner_id=owner_id,
            due_at=ensure_utc(due_at),
            message=message,
        )
        with self._lock:
            self._pending[reminder.id] = reminder
        logger.debug(
            "Armed reminder %s due %s",
            reminder.id,
            reminder.due_at.isoformat(),
            extra=build_log_context(entity_id=owner_id, event="reminder.armed"),
        )
        return reminder.id

    def disarm(self, reminder_id: UUID) -> bool:
        with self._lock:
            return self._pending.pop(reminder_id, None) is not None

    def disarm_owner(self, owner_id: Any) -> int:
        """Drop every pending reminder for ``owner_id``. Returns how many."""
        with self._lock:
            ids = [rid for rid, r in self._pending.items() if r.owner_id == owner_id]
            for rid in ids:
                del self._pending[rid]
        return len(ids)

    def pending(self, owner_id: Any = None) -> list[Reminder]:
        """Snapshot of pending reminders, earliest first."""
        with self._lock:
            reminders = list(self._pending.values())
        if owner_id is not None:
            reminders = [r for r in reminders if r.owner_id == owner_id]
        return sorted(reminders, key=lambda r: r.due_at)

    # =========================================================================
    # Firing
    # =========================================================================

    def tick(self, now: datetime | None = None) -> list[Reminder]:
        """
        Fire every reminder with ``due_at <= now``.

        Due reminders are removed under the lock, then fired one by one with
        no lock held. A callback error is logged and does not affect the
        rest of the batch.

        Returns:
            The reminders taken out of the pending set, in due order.
        """
        now = ensure_utc(now) if now is not None else self._clock.now()

        with self._lock:
            due = [r for r in self._pending.values() if r.due_at <= now]
            for reminder in due:
                del self._pending[reminder.id]
        due.sort(key=lambda r: r.due_at)

        for reminder in due:
            try:
                self._on_fire(reminder)
            except Exception:
                logger.exception(
                    "Failed to fire reminder %s",
                    reminder.id,
                    extra=build_log_context(
                        entity_id=reminder.owner_id, event="reminder.failed"
                    ),
                )

        if due:
            logger.info("Fired %d reminder(s)", len(due))
        return due

    # =========================================================================
    # Periodic driver
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start polling ``tick`` in a background thread."""
        if self.is_running:
            logger.warning("ReminderScheduler already running")
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self.tick,
            IntervalTrigger(minutes=self._interval_minutes),
            id=TICK_JOB_ID,
            replace_existing=True,
            name="Reminder tick",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("ReminderScheduler started (every %d min)", self._interval_minutes)

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("ReminderScheduler stopped")
        self._scheduler = None
