"""Domain event names emitted to the event sink."""

APPOINTMENT_SCHEDULED = "appointment.scheduled"
APPOINTMENT_CONFIRMED = "appointment.confirmed"
APPOINTMENT_CANCELLED = "appointment.cancelled"
APPOINTMENT_COMPLETED = "appointment.completed"

MEDIATION_REQUESTED = "mediation.requested"
MEDIATION_SCHEDULED = "mediation.scheduled"
MEDIATION_STATUS_UPDATED = "mediation.status.updated"
MEDIATION_COMPLETED = "mediation.completed"
MEDIATION_REMINDER = "mediation.reminder"

TASK_ASSIGNED = "task.assigned"
TASK_COMPLETED = "task.completed"

# Template slugs consumed by the email/push layer
SLUG_APPOINTMENT_SCHEDULED = "appointment-scheduled"
SLUG_APPOINTMENT_CONFIRMED = "appointment-confirmed"
SLUG_APPOINTMENT_CANCELLED = "appointment-cancelled"
SLUG_APPOINTMENT_COMPLETED = "appointment-completed"
SLUG_MEDIATION_REQUESTED = "mediation-requested"
SLUG_MEDIATION_SCHEDULED = "mediation-scheduled"
SLUG_MEDIATION_STATUS_UPDATED = "mediation-status-updated"
SLUG_MEDIATION_COMPLETED = "mediation-completed"
SLUG_MEDIATION_REMINDER = "mediation-reminder"
SLUG_TASK_ASSIGNED = "task-assigned"
SLUG_TASK_COMPLETED = "task-completed"
