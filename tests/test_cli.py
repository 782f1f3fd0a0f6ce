"""Tests for the flask CLI commands."""

from datetime import datetime, timedelta

from models import db
from models.booking import CANCELLED, Booking
from models.slot import Slot
from utils.ledger import request_booking


class TestGenerateSlotsCommand:

    def test_generates_slots(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "generate-slots", "--start-date", "2030-02-01", "--end-date", "2030-02-01",
            "--start-time", "18:00", "--end-time", "21:00", "--price", "1500",
        ])

        assert result.exit_code == 0, result.output
        assert "Created 4 slots" in result.output
        assert Slot.query.count() == 4

    def test_rejects_bad_interval(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "generate-slots", "--start-date", "2030-02-01", "--end-date", "2030-02-01",
            "--start-time", "18:00", "--end-time", "21:00", "--price", "1500", "--interval", "5",
        ])

        assert result.exit_code != 0
        assert Slot.query.count() == 0


class TestReleaseHoldsCommand:

    def test_releases_lapsed_holds(self, app, make_slot, game_day):
        slot = make_slot()
        booking = request_booking(slot.id, game_day, "user-1")
        booking.hold_expires_at = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["release-holds"])

        assert "Released 1 expired hold(s)" in result.output
        assert db.session.get(Booking, booking.id, populate_existing=True).status == CANCELLED
