"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any


DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def build_log_context(
    *,
    actor_id: Any = None,
    entity_type: str | None = None,
    entity_id: Any = None,
    event: str | None = None,
    status: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict carrying ids only, never names or free text."""
    context: dict[str, Any] = {}
    if actor_id:
        context["actor_id"] = str(actor_id)
    if entity_type:
        context["entity_type"] = entity_type
    if entity_id:
        context["entity_id"] = str(entity_id)
    if event:
        context["event"] = event
    if status:
        context["status"] = status
    return context


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the worker and CLI processes."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=DEFAULT_FORMAT,
        datefmt=DEFAULT_DATEFMT,
    )
