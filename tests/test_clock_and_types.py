"""Tests for clocks, the UTC column type and settings."""

from datetime import datetime, timedelta, timezone

import pytest

from lawdesk.core.clock import ManualClock, SystemClock, ensure_utc
from lawdesk.core.config import Settings
from lawdesk.db.models import Appointment
from lawdesk.db.types import UTCDateTime


class TestClock:

    def test_system_clock_is_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_manual_clock_set_and_advance(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        clock = ManualClock(start)
        assert clock.now() == start

        assert clock.advance(hours=3) == start + timedelta(hours=3)
        assert clock.advance(timedelta(minutes=30)) == start + timedelta(hours=3, minutes=30)

        clock.set(datetime(2026, 2, 1))
        assert clock.now() == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_ensure_utc(self):
        eastern = timezone(timedelta(hours=-5))
        assert ensure_utc(datetime(2026, 1, 1, 5, 0, tzinfo=eastern)) == datetime(
            2026, 1, 1, 10, 0, tzinfo=timezone.utc
        )
        assert ensure_utc(datetime(2026, 1, 1)).tzinfo == timezone.utc


class TestUTCDateTime:

    def test_round_trip_through_sqlite_is_aware(self, db, lawyer_id, client_id):
        plus_two = timezone(timedelta(hours=2))
        appt = Appointment(
            lawyer_id=lawyer_id,
            client_id=client_id,
            scheduled_at=datetime(2026, 5, 1, 12, 0, tzinfo=plus_two),
        )
        db.add(appt)
        db.commit()
        db.expire_all()

        loaded = db.query(Appointment).one()
        assert loaded.scheduled_at == datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert loaded.scheduled_at.tzinfo is not None
        assert loaded.created_at.tzinfo is not None

    def test_rejects_non_datetime(self, engine):
        with pytest.raises(TypeError, match="expects datetime"):
            UTCDateTime().process_bind_param("2026-01-01", engine.dialect)


class TestSettings:

    def test_defaults(self, monkeypatch):
        for key in ("REMINDER_POLL_INTERVAL_MINUTES", "MEDIATION_REMINDER_LEAD_HOURS"):
            monkeypatch.delenv(key, raising=False)
        settings = Settings(_env_file=None)
        assert settings.REMINDER_POLL_INTERVAL_MINUTES == 60
        assert settings.MEDIATION_REMINDER_LEAD_HOURS == 24
        assert settings.APPOINTMENT_DEFAULT_DURATION_MINUTES == 60
        assert settings.MEDIATION_STRICT_TRANSITIONS is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("REMINDER_POLL_INTERVAL_MINUTES", "5")
        monkeypatch.setenv("MEDIATION_STRICT_TRANSITIONS", "false")
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://u:p@localhost/lawdesk")
        settings = Settings(_env_file=None)
        assert settings.REMINDER_POLL_INTERVAL_MINUTES == 5
        assert settings.MEDIATION_STRICT_TRANSITIONS is False
        assert settings.is_sqlite is False
