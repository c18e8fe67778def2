"""
Background worker that drives the reminder scheduler.

Usage:
    python -m lawdesk.worker

The worker polls pending reminders every REMINDER_POLL_INTERVAL_MINUTES and
fires the due ones. Reminders are held in memory, so anything armed in
another process (or before a restart) is not seen here.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from lawdesk.core import constants
from lawdesk.core.clock import Clock, default_clock
from lawdesk.core.config import settings
from lawdesk.core.structured_logging import build_log_context, configure_logging
from lawdesk.services.event_bus import LocalEventBus
from lawdesk.services.mediation_service import MediationService
from lawdesk.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


def _log_event(event_name: str, payload: dict[str, Any]) -> None:
    logger.info(
        "Event %s",
        event_name,
        extra=build_log_context(actor_id=payload.get("user_id"), event=event_name),
    )


@dataclass
class Worker:
    """Wired-up process components."""

    events: LocalEventBus
    scheduler: ReminderScheduler
    mediations: MediationService
    stop_event: threading.Event = field(default_factory=threading.Event)

    def run(self) -> None:
        """Start the periodic tick and block until ``stop()``."""
        logger.info(
            "Worker starting (poll interval: %d min)",
            settings.REMINDER_POLL_INTERVAL_MINUTES,
        )
        self.scheduler.start()
        try:
            while not self.stop_event.wait(timeout=1.0):
                pass
        finally:
            self.scheduler.shutdown()
            logger.info("Worker stopped")

    def stop(self) -> None:
        self.stop_event.set()


def build_worker(clock: Clock | None = None) -> Worker:
    clock = clock or default_clock
    events = LocalEventBus()
    scheduler = ReminderScheduler(clock=clock)
    mediations = MediationService(events=events, clock=clock, scheduler=scheduler)
    for event_name in (constants.MEDIATION_REMINDER, constants.MEDIATION_SCHEDULED):
        events.subscribe(event_name, _log_event)
    return Worker(events=events, scheduler=scheduler, mediations=mediations)


def main() -> None:
    """Entry point for the worker."""
    configure_logging(settings.LOG_LEVEL)
    worker = build_worker()
    try:
        worker.run()
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception("Worker crashed", extra=build_log_context(event="worker.crashed"))
        raise


if __name__ == "__main__":
    main()
