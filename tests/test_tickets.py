"""Tests for ticket issue and gate verification."""

import pytest

from conftest import ADMIN, USER, paid_booking, race, reload
from models.booking import CONFIRMED
from models.ticket import Ticket
from utils.errors import BookingNotConfirmed, BookingNotFound, TicketNotFound
from utils.ledger import cancel_booking, request_booking
from utils.tickets import issue_ticket, verify_ticket


@pytest.fixture
def confirmed_booking(make_slot, game_day):
    slot = make_slot()
    booking = paid_booking(slot.id, game_day, "user-1")
    assert booking.status == CONFIRMED
    return booking


class TestIssueTicket:
    """Tests for issue_ticket."""

    def test_issue_for_confirmed_booking(self, confirmed_booking):
        """A confirmed booking gets a TF-numbered ticket with its QR payload."""
        ticket = issue_ticket(confirmed_booking.id, "user-1")

        assert ticket.ticket_number.startswith("TF")
        assert len(ticket.ticket_number) == 12
        payload = ticket.payload()
        assert payload["bookingId"] == confirmed_booking.id
        assert payload["ticketNumber"] == ticket.ticket_number
        assert payload["time"] == "19:00"

    def test_issue_is_idempotent(self, confirmed_booking):
        """Asking twice returns the same ticket."""
        first = issue_ticket(confirmed_booking.id, "user-1")
        second = issue_ticket(confirmed_booking.id, "user-1")

        assert first.id == second.id
        assert Ticket.query.count() == 1

    def test_pending_booking_has_no_ticket(self, make_slot, game_day):
        """Tickets are only issued for confirmed bookings."""
        slot = make_slot()
        booking = request_booking(slot.id, game_day, "user-1")

        with pytest.raises(BookingNotFound):
            issue_ticket(booking.id, "user-1")

    def test_other_users_booking(self, confirmed_booking):
        """Another user's booking is reported missing."""
        with pytest.raises(BookingNotFound):
            issue_ticket(confirmed_booking.id, "user-2")


class TestVerifyTicket:
    """Tests for verify_ticket."""

    def test_first_scan_then_reuse(self, confirmed_booking):
        """The first scan admits; the second reports the original use time."""
        ticket = issue_ticket(confirmed_booking.id, "user-1")

        first = verify_ticket(ticket.ticket_number, verifier_id="admin-1")
        second = verify_ticket(ticket.ticket_number, verifier_id="admin-1")

        assert first.is_valid is True
        assert first.message == "Ticket verified successfully"
        assert second.is_valid is False
        assert second.message.startswith("Ticket was already used on ")
        assert second.used_at == first.used_at

    def test_unknown_ticket(self, app):
        """Unknown ticket numbers raise TicketNotFound."""
        with pytest.raises(TicketNotFound):
            verify_ticket("TF0000000000")

    def test_cancelled_booking(self, confirmed_booking):
        """A ticket whose booking was cancelled is refused at the gate."""
        ticket = issue_ticket(confirmed_booking.id, "user-1")
        cancel_booking(confirmed_booking.id, actor_id="admin-1")

        with pytest.raises(BookingNotConfirmed):
            verify_ticket(ticket.ticket_number)

    def test_parallel_scans_admit_once(self, app, confirmed_booking):
        """Gate staff scanning the same ticket at once: one admission, one shared use time."""
        ticket = issue_ticket(confirmed_booking.id, "user-1")
        number = ticket.ticket_number

        def scan(verifier_id):
            result = verify_ticket(number, verifier_id=verifier_id)
            return result.is_valid, result.used_at

        results = race(app, scan, [(f"gate-{n}",) for n in range(6)])

        assert [valid for valid, _ in results].count(True) == 1
        assert len({used_at for _, used_at in results}) == 1
        assert reload(Ticket, ticket.id).used_at == results[0][1]


class TestTicketRoutes:
    """HTTP surface of /tickets."""

    def test_create_returns_qr_code(self, client, confirmed_booking):
        resp = client.post("/tickets", json={"booking_id": confirmed_booking.id}, headers=USER)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["qr_code"].startswith("data:image/png;base64,")
        assert body["booking_id"] == confirmed_booking.id

    def test_my_tickets(self, client, confirmed_booking):
        client.post("/tickets", json={"booking_id": confirmed_booking.id}, headers=USER)

        resp = client.get("/tickets/me", headers=USER)

        assert resp.status_code == 200
        assert len(resp.get_json()) == 1

    def test_verify_requires_admin(self, client, confirmed_booking):
        """Players cannot scan tickets."""
        number = issue_ticket(confirmed_booking.id, "user-1").ticket_number

        resp = client.post("/tickets/verify", json={"ticket_number": number}, headers=USER)

        assert resp.status_code == 403

    def test_verify_twice_over_http(self, client, confirmed_booking):
        number = issue_ticket(confirmed_booking.id, "user-1").ticket_number

        first = client.post("/tickets/verify", json={"ticket_number": number}, headers=ADMIN).get_json()
        second = client.post("/tickets/verify", json={"ticket_number": f"  {number} "}, headers=ADMIN).get_json()

        assert first["isValid"] is True
        assert second["isValid"] is False
        assert second["used_at"] == first["used_at"]

    def test_verify_unknown_ticket(self, client):
        resp = client.post("/tickets/verify", json={"ticket_number": "TF999"}, headers=ADMIN)

        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Invalid ticket", "code": "TICKET_NOT_FOUND"}
