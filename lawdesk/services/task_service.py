"""Task service - business logic for case task management."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case
from sqlalchemy.orm import Session

from lawdesk.core import constants
from lawdesk.core.clock import Clock, default_clock, ensure_utc
from lawdesk.core.exceptions import NotFoundError, ValidationError
from lawdesk.core.structured_logging import build_log_context
from lawdesk.core.transitions import TASK_TRANSITIONS, check_transition
from lawdesk.db.enums import OPEN_TASK_STATUSES, TaskPriority, TaskStatus
from lawdesk.db.models import Task
from lawdesk.schemas.task import TaskCreate, TaskRead, TaskUpdate
from lawdesk.services import notification_service
from lawdesk.services.event_bus import EventSink, resolve_sink, safe_emit

logger = logging.getLogger(__name__)

# Higher rank sorts first
_PRIORITY_RANK = case(
    {
        TaskPriority.URGENT.value: 3,
        TaskPriority.HIGH.value: 2,
        TaskPriority.MEDIUM.value: 1,
        TaskPriority.LOW.value: 0,
    },
    value=Task.priority,
    else_=0,
)

# Fields that can be cleared (set to None) by a partial update
_CLEARABLE_FIELDS = {"description", "due_date", "milestone_id", "progress_notes"}


def _payload(task: Task, slug: str) -> dict[str, Any]:
    return {
        "user_id": str(task.assigned_to),
        "slug": slug,
        "task": TaskRead.model_validate(task).model_dump(mode="json"),
    }


def is_overdue(task: Task, now: datetime) -> bool:
    """Open task whose due date has passed. Tasks without a due date never are."""
    if task.due_date is None:
        return False
    if task.status not in {s.value for s in OPEN_TASK_STATUSES}:
        return False
    return ensure_utc(task.due_date) < ensure_utc(now)


# =============================================================================
# Create / Read
# =============================================================================


def create_task(
    db: Session,
    data: TaskCreate,
    events: EventSink | None = None,
) -> Task:
    """Create a task in PENDING status and notify the assignee."""
    task = Task(
        case_id=data.case_id,
        milestone_id=data.milestone_id,
        assigned_to=data.assigned_to,
        title=data.title,
        description=data.description,
        status=TaskStatus.PENDING.value,
        priority=data.priority.value,
        due_date=ensure_utc(data.due_date) if data.due_date else None,
        estimated_hours=data.estimated_hours,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(
        "Task created",
        extra=build_log_context(
            actor_id=task.assigned_to,
            entity_type="task",
            entity_id=task.id,
            event=constants.TASK_ASSIGNED,
        ),
    )

    notification_service.notify_task_assigned(db, task)
    safe_emit(resolve_sink(events), constants.TASK_ASSIGNED, _payload(task, constants.SLUG_TASK_ASSIGNED))
    return task


def get_task(db: Session, task_id: UUID) -> Task:
    """Get task by ID or raise NotFoundError."""
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def list_tasks(db: Session) -> list[Task]:
    """All tasks, newest first."""
    return db.query(Task).order_by(Task.created_at.desc()).all()


def _by_due_then_priority(query):
    # Tasks without a due date go last
    return query.order_by(
        Task.due_date.is_(None),
        Task.due_date.asc(),
        _PRIORITY_RANK.desc(),
    )


def list_tasks_for_user(db: Session, user_id: UUID) -> list[Task]:
    """Tasks assigned to a user, soonest due first."""
    return _by_due_then_priority(db.query(Task).filter(Task.assigned_to == user_id)).all()


def list_tasks_for_case(db: Session, case_id: UUID) -> list[Task]:
    """Tasks on a case, soonest due first."""
    return _by_due_then_priority(db.query(Task).filter(Task.case_id == case_id)).all()


def get_overdue_tasks(
    db: Session,
    now: datetime | None = None,
    clock: Clock | None = None,
) -> list[Task]:
    """Open tasks whose due date is before ``now``, oldest first."""
    now = ensure_utc(now) if now else (clock or default_clock).now()
    return db.query(Task).filter(
        Task.due_date.is_not(None),
        Task.due_date < now,
        Task.status.in_([s.value for s in OPEN_TASK_STATUSES]),
    ).order_by(Task.due_date.asc()).all()


def get_tasks_by_priority(db: Session, priority: TaskPriority) -> list[Task]:
    """Tasks with the given priority, soonest due first."""
    return db.query(Task).filter(
        Task.priority == TaskPriority(priority).value,
    ).order_by(Task.due_date.is_(None), Task.due_date.asc()).all()


# =============================================================================
# Update
# =============================================================================


def _set_status(
    task: Task,
    status: TaskStatus,
    actor_id: UUID | None,
    actor_role: str | None,
    clock: Clock,
) -> bool:
    """
    Validate and apply a status change. Returns True if the task just
    became completed.

    Re-sending the current status is a no-op.
    """
    status = TaskStatus(status)
    if task.status == status.value:
        return False

    check_transition(TASK_TRANSITIONS, task, status, actor_id, actor_role)
    task.status = status.value
    if status == TaskStatus.COMPLETED:
        task.completed_date = clock.now()
        return True
    return False


def update_task(
    db: Session,
    task_id: UUID,
    data: TaskUpdate,
    actor_id: UUID | None = None,
    actor_role: str | None = None,
    events: EventSink | None = None,
    clock: Clock | None = None,
) -> Task:
    """
    Update task fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values are applied only to clearable fields. A status in the
    payload goes through the same transition rules as update_task_status.
    """
    task = get_task(db, task_id)
    update_data = data.model_dump(exclude_unset=True)
    old_assignee = task.assigned_to

    completed = False
    status = update_data.pop("status", None)
    if status is not None:
        completed = _set_status(task, status, actor_id, actor_role, clock or default_clock)

    for field, value in update_data.items():
        if value is None and field not in _CLEARABLE_FIELDS:
            continue
        if field == "priority":
            value = TaskPriority(value).value
        if field == "due_date" and value is not None:
            value = ensure_utc(value)
        setattr(task, field, value)

    db.commit()
    db.refresh(task)

    sink = resolve_sink(events)
    if task.assigned_to != old_assignee:
        notification_service.notify_task_assigned(db, task)
        safe_emit(sink, constants.TASK_ASSIGNED, _payload(task, constants.SLUG_TASK_ASSIGNED))
    if completed:
        safe_emit(sink, constants.TASK_COMPLETED, _payload(task, constants.SLUG_TASK_COMPLETED))
    return task


def update_task_status(
    db: Session,
    task_id: UUID,
    status: TaskStatus,
    actor_id: UUID | None = None,
    actor_role: str | None = None,
    events: EventSink | None = None,
    clock: Clock | None = None,
) -> Task:
    """
    Move a task to a new status.

    COMPLETED stamps completed_date with the clock's current time. OVERDUE
    cannot be requested; it is only ever observed via ``is_overdue``.
    """
    task = get_task(db, task_id)
    completed = _set_status(task, status, actor_id, actor_role, clock or default_clock)
    db.commit()
    db.refresh(task)

    logger.info(
        "Task status changed",
        extra=build_log_context(
            actor_id=actor_id,
            entity_type="task",
            entity_id=task.id,
            status=task.status,
        ),
    )

    if completed:
        safe_emit(
            resolve_sink(events),
            constants.TASK_COMPLETED,
            _payload(task, constants.SLUG_TASK_COMPLETED),
        )
    return task


def add_progress_notes(db: Session, task_id: UUID, notes: str) -> Task:
    """Replace the task's progress notes."""
    task = get_task(db, task_id)
    task.progress_notes = notes
    db.commit()
    db.refresh(task)
    return task


def update_time_tracking(
    db: Session,
    task_id: UUID,
    actual_hours: int,
    estimated_hours: int | None = None,
) -> Task:
    """Record hours spent (and optionally re-estimate)."""
    if actual_hours < 0:
        raise ValidationError("actual_hours must be non-negative")
    if estimated_hours is not None and estimated_hours < 0:
        raise ValidationError("estimated_hours must be non-negative")

    task = get_task(db, task_id)
    task.actual_hours = actual_hours
    if estimated_hours is not None:
        task.estimated_hours = estimated_hours
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: UUID) -> None:
    """Delete a task."""
    task = get_task(db, task_id)
    db.delete(task)
    db.commit()
