"""Pydantic schemas for mediations.

Mediations live in process memory, so ``Mediation`` is the record itself and
not only a response shape.
"""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from lawdesk.db.enums import MediationStatus


class Mediation(BaseModel):
    """Mediation record held in the ephemeral store."""

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4)
    case_id: UUID
    initiator_id: UUID
    mediator_id: UUID
    reason: str
    status: MediationStatus = MediationStatus.PENDING
    scheduled_date: datetime | None = None
    location: str | None = None
    notes: str | None = None
    session_notes: str | None = None

    created_at: datetime
    updated_at: datetime
