"""Domain errors raised by the scheduling and lifecycle core.

All of them propagate to the immediate caller (the API layer) without retry.
"""


class LawdeskError(Exception):
    """Base exception for domain rule violations."""

    pass


class NotFoundError(LawdeskError):
    """Entity id is unknown."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ConflictError(LawdeskError):
    """Slot is already held by another commitment."""

    pass


class ForbiddenError(LawdeskError):
    """Actor lacks permission for the requested transition."""

    pass


class InvalidStateError(LawdeskError):
    """Transition is not allowed from the current status."""

    def __init__(self, message: str, current=None, requested=None):
        self.current = current
        self.requested = requested
        super().__init__(message)


class ValidationError(LawdeskError, ValueError):
    """Malformed input (out-of-range duration, negative hours, missing reason)."""

    pass
