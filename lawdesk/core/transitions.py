"""Status transition rules for appointments, mediations and tasks.

Each machine is a ``TransitionTable``: a mapping from (current, requested)
status to the actors allowed to make that move. An actor entry is either a
record relation (``lawyer`` matches ``entity.lawyer_id``) or a platform role
(``admin`` matches ``actor_role``).

Order of checks is fixed: unknown target, then actor, then adjacency. A caller
who is not on the record gets ForbiddenError even when the move would also be
illegal from the current status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from lawdesk.core.exceptions import ForbiddenError, InvalidStateError
from lawdesk.db.enums import AppointmentStatus, MediationStatus, Role, TaskStatus


# Record relations
LAWYER = "lawyer"
CLIENT = "client"
MEDIATOR = "mediator"
ASSIGNEE = "assignee"


def _value(status: Any) -> str:
    return status.value if isinstance(status, Enum) else str(status)


@dataclass(frozen=True)
class TransitionTable:
    """Allowed moves of one state machine."""

    name: str
    rules: dict[tuple[str, str], frozenset[str]]
    # relation name -> attribute holding that party's id on the entity
    relations: dict[str, str] = field(default_factory=dict)
    # When False, a call without an actor skips the actor check
    require_actor: bool = True

    def targets(self) -> set[str]:
        return {to for (_, to) in self.rules}

    def allowed_actors(self, requested: str) -> frozenset[str]:
        """Union of actors allowed to move into ``requested`` from anywhere."""
        allowed: set[str] = set()
        for (_, to), actors in self.rules.items():
            if to == requested:
                allowed |= actors
        return frozenset(allowed)

    def all_actors(self) -> frozenset[str]:
        allowed: set[str] = set()
        for actors in self.rules.values():
            allowed |= actors
        return frozenset(allowed)

    def is_allowed(self, current: str, requested: str) -> bool:
        return (current, requested) in self.rules

    def actor_matches(
        self,
        entity: Any,
        allowed: Iterable[str],
        actor_id: Any,
        actor_role: str | None,
    ) -> bool:
        role = _value(actor_role) if actor_role is not None else None
        for name in allowed:
            attr = self.relations.get(name)
            if attr is not None:
                if actor_id is not None and getattr(entity, attr, None) == actor_id:
                    return True
            elif role is not None and role == name:
                return True
        return False


def _rules(
    moves: Iterable[tuple[Iterable[Enum], Enum]],
    actors: Iterable[str],
) -> dict[tuple[str, str], frozenset[str]]:
    allowed = frozenset(actors)
    table: dict[tuple[str, str], frozenset[str]] = {}
    for sources, target in moves:
        for source in sources:
            table[(source.value, target.value)] = allowed
    return table


# =============================================================================
# Tables
# =============================================================================

APPOINTMENT_TRANSITIONS = TransitionTable(
    name="appointment",
    rules={
        **_rules(
            [
                ([AppointmentStatus.SCHEDULED], AppointmentStatus.CONFIRMED),
                (
                    [AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED],
                    AppointmentStatus.CANCELLED,
                ),
            ],
            actors=[LAWYER, CLIENT],
        ),
        # Completion is not gated on status, only on the lawyer
        **_rules([(list(AppointmentStatus), AppointmentStatus.COMPLETED)], actors=[LAWYER]),
    },
    relations={LAWYER: "lawyer_id", CLIENT: "client_id"},
)

MEDIATION_TRANSITIONS = TransitionTable(
    name="mediation",
    rules=_rules(
        [
            ([MediationStatus.PENDING, MediationStatus.SCHEDULED], MediationStatus.SCHEDULED),
            ([MediationStatus.SCHEDULED], MediationStatus.IN_PROGRESS),
            ([MediationStatus.IN_PROGRESS], MediationStatus.COMPLETED),
            (
                [MediationStatus.PENDING, MediationStatus.SCHEDULED, MediationStatus.IN_PROGRESS],
                MediationStatus.FAILED,
            ),
        ],
        actors=[MEDIATOR, Role.ADMIN.value],
    ),
    relations={MEDIATOR: "mediator_id"},
    require_actor=False,
)

TASK_TRANSITIONS = TransitionTable(
    name="task",
    rules=_rules(
        [
            ([TaskStatus.PENDING, TaskStatus.OVERDUE], TaskStatus.IN_PROGRESS),
            ([TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE], TaskStatus.PENDING),
            (
                [TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE],
                TaskStatus.COMPLETED,
            ),
            (
                [TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE],
                TaskStatus.CANCELLED,
            ),
        ],
        actors=[ASSIGNEE, Role.LAWYER.value, Role.ADMIN.value],
    ),
    relations={ASSIGNEE: "assigned_to"},
    require_actor=False,
)


# =============================================================================
# Engine
# =============================================================================


def check_transition(
    table: TransitionTable,
    entity: Any,
    requested: Any,
    actor_id: Any = None,
    actor_role: str | None = None,
    *,
    enforce_adjacency: bool = True,
) -> None:
    """
    Validate a status change without applying it.

    Raises:
        InvalidStateError: requested is not a reachable status, or not
            reachable from the entity's current status.
        ForbiddenError: actor is neither on the record nor in an allowed role.
    """
    current = _value(entity.status)
    target = _value(requested)

    if enforce_adjacency and target not in table.targets():
        raise InvalidStateError(
            f"Cannot move {table.name} to {target}",
            current=current,
            requested=target,
        )

    if actor_id is not None or actor_role is not None or table.require_actor:
        # Unchecked overwrites may target a status no rule reaches
        allowed = table.allowed_actors(target) or table.all_actors()
        if not table.actor_matches(entity, allowed, actor_id, actor_role):
            raise ForbiddenError(
                f"Actor is not allowed to move this {table.name} to {target}"
            )

    if enforce_adjacency and not table.is_allowed(current, target):
        raise InvalidStateError(
            f"Cannot move {table.name} from {current} to {target}",
            current=current,
            requested=target,
        )


def transition(
    table: TransitionTable,
    entity: Any,
    requested: Any,
    actor_id: Any = None,
    actor_role: str | None = None,
    *,
    enforce_adjacency: bool = True,
) -> Any:
    """Validate and apply a status change in place. Returns the entity."""
    check_transition(
        table,
        entity,
        requested,
        actor_id,
        actor_role,
        enforce_adjacency=enforce_adjacency,
    )
    entity.status = _value(requested)
    return entity
