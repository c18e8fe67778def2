"""SQLAlchemy ORM models."""

from lawdesk.db.models.appointments import Appointment
from lawdesk.db.models.notifications import Notification
from lawdesk.db.models.tasks import Task

__all__ = ["Appointment", "Notification", "Task"]
