"""
Tests for Appointment Service.

Coverage:
- Booking and slot conflicts (exact timestamp only)
- Slot uniqueness enforced by the store when the check is bypassed
- Confirm / cancel / complete rules and error priority
- Best-effort notifications and events
- Lawyer and client listings
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError

from lawdesk.core import constants
from lawdesk.core.config import settings
from lawdesk.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lawdesk.db.enums import AppointmentStatus, AppointmentType
from lawdesk.db.models import Appointment, Notification
from lawdesk.schemas.appointment import AppointmentCreate
from lawdesk.services import appointment_service, conflict_service, notification_service


SLOT = datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def appointment(db, events, appointment_data):
    """A scheduled appointment at SLOT."""
    return appointment_service.create_appointment(db, appointment_data(), events=events)


# =============================================================================
# Booking
# =============================================================================

class TestCreateAppointment:
    """Booking rules."""

    def test_create_defaults(self, db, events, appointment_data, lawyer_id, client_id):
        appt = appointment_service.create_appointment(db, appointment_data(), events=events)

        assert appt.id is not None
        assert appt.status == AppointmentStatus.SCHEDULED.value
        assert appt.type == AppointmentType.INITIAL_CONSULTATION.value
        assert appt.duration_minutes == 60
        assert appt.language == "en"
        assert appt.scheduled_at == SLOT
        assert appt.cancellation_reason is None
        assert appt.created_at is not None

    def test_default_duration_from_settings(self, appointment_data, monkeypatch):
        monkeypatch.setattr(settings, "APPOINTMENT_DEFAULT_DURATION_MINUTES", 90)
        assert appointment_data().duration_minutes == 90

    def test_create_emits_scheduled_event_for_client(self, db, events, appointment_data, client_id):
        appt = appointment_service.create_appointment(db, appointment_data(), events=events)

        assert events.names() == [constants.APPOINTMENT_SCHEDULED]
        payload = events.payloads(constants.APPOINTMENT_SCHEDULED)[0]
        assert payload["user_id"] == str(client_id)
        assert payload["slug"] == constants.SLUG_APPOINTMENT_SCHEDULED
        assert payload["appointment"]["id"] == str(appt.id)

    def test_create_notifies_lawyer_and_client(self, db, events, appointment_data, lawyer_id, client_id):
        appointment_service.create_appointment(db, appointment_data(), events=events)

        recipients = {n.user_id for n in db.query(Notification).all()}
        assert recipients == {lawyer_id, client_id}

    def test_same_lawyer_same_time_conflicts(self, db, events, appointment, appointment_data):
        with pytest.raises(ConflictError):
            appointment_service.create_appointment(
                db, appointment_data(client_id=uuid4()), events=events
            )
        assert db.query(Appointment).count() == 1

    def test_same_instant_in_other_timezone_conflicts(self, db, events, appointment, appointment_data):
        plus_one = timezone(timedelta(hours=1))
        with pytest.raises(ConflictError):
            appointment_service.create_appointment(
                db,
                appointment_data(scheduled_at=datetime(2026, 3, 3, 11, 0, tzinfo=plus_one)),
                events=events,
            )

    def test_naive_time_is_taken_as_utc(self, db, events, appointment, appointment_data):
        with pytest.raises(ConflictError):
            appointment_service.create_appointment(
                db, appointment_data(scheduled_at=datetime(2026, 3, 3, 10, 0)), events=events
            )

    def test_other_lawyer_same_time_ok(self, db, events, appointment, appointment_data):
        other = appointment_service.create_appointment(
            db, appointment_data(lawyer_id=uuid4()), events=events
        )
        assert other.status == AppointmentStatus.SCHEDULED.value

    def test_overlap_within_duration_is_not_a_conflict(self, db, events, appointment, appointment_data):
        """Only exact timestamps collide; duration is ignored."""
        later = appointment_service.create_appointment(
            db, appointment_data(scheduled_at=SLOT + timedelta(minutes=30)), events=events
        )
        assert later.scheduled_at == SLOT + timedelta(minutes=30)

    def test_cancelled_appointment_frees_slot(self, db, events, appointment, appointment_data, client_id):
        appointment_service.cancel_appointment(db, appointment.id, client_id, "Travel", events=events)

        rebooked = appointment_service.create_appointment(db, appointment_data(), events=events)
        assert rebooked.id != appointment.id

    def test_confirmed_appointment_does_not_hold_slot(self, db, events, appointment, appointment_data, lawyer_id):
        appointment_service.confirm_appointment(db, appointment.id, lawyer_id, events=events)

        second = appointment_service.create_appointment(db, appointment_data(), events=events)
        assert second.status == AppointmentStatus.SCHEDULED.value

    def test_duration_bounds_in_schema(self, appointment_data):
        with pytest.raises(SchemaValidationError):
            appointment_data(duration_minutes=10)
        with pytest.raises(SchemaValidationError):
            appointment_data(duration_minutes=481)

    def test_duration_bounds_from_settings(self, db, events, appointment_data, monkeypatch):
        monkeypatch.setattr(settings, "APPOINTMENT_MAX_DURATION_MINUTES", 120)
        with pytest.raises(ValidationError):
            appointment_service.create_appointment(
                db, appointment_data(duration_minutes=240), events=events
            )
        assert db.query(Appointment).count() == 0

    def test_store_rejects_double_booking_when_check_is_bypassed(
        self, db, events, appointment, appointment_data, monkeypatch
    ):
        """Two writers that both passed the check: the index rejects the second."""
        monkeypatch.setattr(conflict_service, "has_conflict", lambda *args, **kwargs: False)

        with pytest.raises(ConflictError):
            appointment_service.create_appointment(
                db, appointment_data(client_id=uuid4()), events=events
            )
        assert db.query(Appointment).count() == 1
        # Session is still usable after the rollback
        assert appointment_service.get_appointment(db, appointment.id).id == appointment.id

    def test_other_integrity_errors_are_not_conflicts(self, db, events, lawyer_id, client_id, monkeypatch):
        monkeypatch.setattr(settings, "APPOINTMENT_MAX_DURATION_MINUTES", 600)
        # Skips schema validation so the table CHECK constraint is what rejects it
        data = AppointmentCreate.model_construct(
            lawyer_id=lawyer_id,
            client_id=client_id,
            case_id=None,
            type=AppointmentType.INITIAL_CONSULTATION,
            scheduled_at=datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc),
            duration_minutes=500,
            notes=None,
            meeting_link=None,
            location=None,
            language="en",
        )

        with pytest.raises(IntegrityError):
            appointment_service.create_appointment(db, data, events=events)
        assert db.query(Appointment).count() == 0

    def test_notification_failure_does_not_fail_booking(self, db, events, appointment_data, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("notifications down")

        monkeypatch.setattr(notification_service, "create_notification", boom)

        appt = appointment_service.create_appointment(db, appointment_data(), events=events)

        assert db.query(Appointment).filter(Appointment.id == appt.id).count() == 1
        assert events.names() == [constants.APPOINTMENT_SCHEDULED]

    def test_event_failure_does_not_fail_booking(self, db, failing_events, appointment_data):
        appt = appointment_service.create_appointment(db, appointment_data(), events=failing_events)

        assert failing_events.calls == 1
        assert appointment_service.get_appointment(db, appt.id).status == AppointmentStatus.SCHEDULED.value


# =============================================================================
# Conflict Detector
# =============================================================================

class TestConflictDetector:
    """has_conflict directly."""

    def test_no_records_is_no_conflict(self, db, lawyer_id):
        assert conflict_service.has_conflict(db, lawyer_id, SLOT) is False

    def test_scheduled_holds_slot(self, db, appointment, lawyer_id):
        assert conflict_service.has_conflict(db, lawyer_id, SLOT) is True
        assert conflict_service.has_conflict(db, lawyer_id, SLOT + timedelta(seconds=1)) is False

    def test_exclude_nothing_counts_every_status(self, db, events, appointment, lawyer_id):
        appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Ill", events=events)

        assert conflict_service.has_conflict(db, lawyer_id, SLOT) is False
        assert conflict_service.has_conflict(db, lawyer_id, SLOT, exclude_statuses=[]) is True
        assert conflict_service.has_conflict(
            db, lawyer_id, SLOT, exclude_statuses=[AppointmentStatus.CANCELLED]
        ) is False


# =============================================================================
# Confirm
# =============================================================================

class TestConfirmAppointment:

    def test_lawyer_confirms(self, db, events, appointment, lawyer_id):
        appt = appointment_service.confirm_appointment(db, appointment.id, lawyer_id, events=events)
        assert appt.status == AppointmentStatus.CONFIRMED.value
        assert constants.APPOINTMENT_CONFIRMED in events.names()

    def test_client_confirms(self, db, events, appointment, client_id):
        appt = appointment_service.confirm_appointment(db, appointment.id, client_id, events=events)
        assert appt.status == AppointmentStatus.CONFIRMED.value

    def test_stranger_forbidden(self, db, events, appointment, stranger_id):
        with pytest.raises(ForbiddenError):
            appointment_service.confirm_appointment(db, appointment.id, stranger_id, events=events)
        db.refresh(appointment)
        assert appointment.status == AppointmentStatus.SCHEDULED.value

    def test_confirm_cancelled_is_invalid(self, db, events, appointment, lawyer_id):
        appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Conflict", events=events)
        with pytest.raises(InvalidStateError):
            appointment_service.confirm_appointment(db, appointment.id, lawyer_id, events=events)

    def test_stranger_reported_before_bad_status(self, db, events, appointment, lawyer_id, stranger_id):
        appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Conflict", events=events)
        with pytest.raises(ForbiddenError):
            appointment_service.confirm_appointment(db, appointment.id, stranger_id, events=events)

    def test_unknown_appointment(self, db, events, lawyer_id):
        with pytest.raises(NotFoundError):
            appointment_service.confirm_appointment(db, uuid4(), lawyer_id, events=events)


# =============================================================================
# Cancel
# =============================================================================

class TestCancelAppointment:

    def test_cancel_sets_reason(self, db, events, appointment, client_id):
        appt = appointment_service.cancel_appointment(
            db, appointment.id, client_id, "Schedule clash", events=events
        )
        assert appt.status == AppointmentStatus.CANCELLED.value
        assert appt.cancellation_reason == "Schedule clash"
        payload = events.payloads(constants.APPOINTMENT_CANCELLED)[0]
        assert payload["slug"] == constants.SLUG_APPOINTMENT_CANCELLED

    def test_cancel_confirmed(self, db, events, appointment, lawyer_id):
        appointment_service.confirm_appointment(db, appointment.id, lawyer_id, events=events)
        appt = appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Ill", events=events)
        assert appt.status == AppointmentStatus.CANCELLED.value

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_required(self, db, events, appointment, lawyer_id, reason):
        with pytest.raises(ValidationError):
            appointment_service.cancel_appointment(db, appointment.id, lawyer_id, reason, events=events)
        db.refresh(appointment)
        assert appointment.status == AppointmentStatus.SCHEDULED.value

    def test_cancel_completed_is_invalid(self, db, events, appointment, lawyer_id):
        appointment_service.complete_appointment(db, appointment.id, lawyer_id, events=events)
        with pytest.raises(InvalidStateError):
            appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Late", events=events)

    def test_stranger_on_completed_is_forbidden(self, db, events, appointment, lawyer_id, stranger_id):
        appointment_service.complete_appointment(db, appointment.id, lawyer_id, events=events)
        with pytest.raises(ForbiddenError):
            appointment_service.cancel_appointment(db, appointment.id, stranger_id, "Late", events=events)

    def test_stranger_without_reason_is_forbidden(self, db, events, appointment, stranger_id):
        with pytest.raises(ForbiddenError):
            appointment_service.cancel_appointment(db, appointment.id, stranger_id, None, events=events)

    def test_cancel_notifies_other_party(self, db, events, appointment, lawyer_id, client_id):
        before = db.query(Notification).filter(Notification.user_id == client_id).count()
        appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "Court", events=events)
        after = db.query(Notification).filter(Notification.user_id == client_id).count()
        assert after == before + 1


# =============================================================================
# Complete
# =============================================================================

class TestCompleteAppointment:

    @pytest.mark.parametrize("setup", ["scheduled", "confirmed", "cancelled", "completed"])
    def test_lawyer_completes_from_any_status(self, db, events, appointment, lawyer_id, setup):
        if setup == "confirmed":
            appointment_service.confirm_appointment(db, appointment.id, lawyer_id, events=events)
        elif setup == "cancelled":
            appointment_service.cancel_appointment(db, appointment.id, lawyer_id, "x", events=events)
        elif setup == "completed":
            appointment_service.complete_appointment(db, appointment.id, lawyer_id, events=events)

        appt = appointment_service.complete_appointment(db, appointment.id, lawyer_id, events=events)
        assert appt.status == AppointmentStatus.COMPLETED.value

    @pytest.mark.parametrize("who", ["client", "stranger"])
    def test_only_lawyer_completes(self, db, events, appointment, client_id, stranger_id, who):
        actor = client_id if who == "client" else stranger_id
        with pytest.raises(ForbiddenError):
            appointment_service.complete_appointment(db, appointment.id, actor, events=events)

    def test_complete_emits_event(self, db, events, appointment, lawyer_id):
        appointment_service.complete_appointment(db, appointment.id, lawyer_id, events=events)
        payload = events.payloads(constants.APPOINTMENT_COMPLETED)[0]
        assert payload["user_id"] == str(lawyer_id)


# =============================================================================
# Listings
# =============================================================================

class TestAppointmentListings:

    def test_lawyer_listing_ordered_and_filtered(self, db, events, appointment_data, lawyer_id):
        late = appointment_service.create_appointment(
            db, appointment_data(scheduled_at=SLOT + timedelta(days=2)), events=events
        )
        early = appointment_service.create_appointment(db, appointment_data(), events=events)
        appointment_service.confirm_appointment(db, late.id, lawyer_id, events=events)

        listed = appointment_service.get_lawyer_appointments(db, lawyer_id)
        assert [a.id for a in listed] == [early.id, late.id]

        confirmed = appointment_service.get_lawyer_appointments(
            db, lawyer_id, status=AppointmentStatus.CONFIRMED
        )
        assert [a.id for a in confirmed] == [late.id]

    def test_client_listing(self, db, events, appointment, client_id, stranger_id):
        assert [a.id for a in appointment_service.get_client_appointments(db, client_id)] == [appointment.id]
        assert appointment_service.get_client_appointments(db, stranger_id) == []
