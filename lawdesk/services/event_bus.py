"""Domain event sink.

Events are advisory: state is already committed when they are emitted, so a
failing consumer is logged and never reaches the caller.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Protocol

from lawdesk.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict[str, Any]], None]


class EventSink(Protocol):
    """Outbound port for domain events (email, push, audit)."""

    def emit(self, event_name: str, payload: dict[str, Any]) -> None: ...


class NullEventSink:
    """Sink that drops everything."""

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        return None


class LocalEventBus:
    """
    In-process fan-out to subscribed handlers.

    Each handler runs in isolation: one raising handler does not stop the
    others, and emit never raises.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        with self._lock:
            # Snapshot so handlers can (un)subscribe while we dispatch
            handlers = list(self._handlers.get(event_name, ()))

        for handler in handlers:
            try:
                handler(event_name, payload)
            except Exception:
                logger.exception(
                    "Event handler failed for %s",
                    event_name,
                    extra=build_log_context(event=event_name),
                )


def safe_emit(sink: EventSink, event_name: str, payload: dict[str, Any]) -> None:
    """Emit and swallow sink failures (logged)."""
    try:
        sink.emit(event_name, payload)
    except Exception:
        logger.exception(
            "Event emission failed for %s",
            event_name,
            extra=build_log_context(event=event_name),
        )


# Process-wide bus used when a caller does not inject its own sink
default_event_bus = LocalEventBus()


def resolve_sink(events: EventSink | None) -> EventSink:
    return default_event_bus if events is None else events
