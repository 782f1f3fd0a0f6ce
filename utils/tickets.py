import json
import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import CONFIRMED, Booking
from models.ticket import Ticket
from utils.audit import log_event
from utils.errors import BookingNotConfirmed, BookingNotFound, TicketNotFound

_MAX_NUMBER_ATTEMPTS = 5


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    message: str
    ticket: Ticket
    used_at: datetime

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "message": self.message,
            "used_at": self.used_at.isoformat() if self.used_at else None,
            "ticket": self.ticket.to_dict(),
        }


def _new_ticket_number(now: datetime) -> str:
    """'TF' + YYMMDD + 4 random digits."""
    return f"TF{now:%y%m%d}{secrets.randbelow(10000):04d}"


def build_qr_payload(ticket_number: str, booking: Booking) -> dict:
    return {
        "ticketNumber": ticket_number,
        "bookingId": booking.id,
        "userId": booking.user_id,
        "date": booking.date,
        "time": booking.slot.time if booking.slot else None,
        "amount": booking.amount,
    }


def issue_ticket(booking_id: int, user_id: str) -> Ticket:
    """Return the ticket of a confirmed booking, creating it on first request."""
    booking = Booking.query.filter_by(id=booking_id, user_id=user_id, status=CONFIRMED).first()
    if not booking:
        raise BookingNotFound()

    existing = Ticket.query.filter_by(booking_id=booking.id).first()
    if existing:
        return existing

    for _ in range(_MAX_NUMBER_ATTEMPTS):
        number = _new_ticket_number(datetime.utcnow())
        if Ticket.query.filter_by(ticket_number=number).first():
            continue

        ticket = Ticket(
            booking_id=booking.id,
            user_id=user_id,
            ticket_number=number,
            qr_payload=json.dumps(build_qr_payload(number, booking)),
        )
        db.session.add(ticket)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # either a concurrent request issued this booking's ticket, or the number collided
            existing = Ticket.query.filter_by(booking_id=booking_id).first()
            if existing:
                return existing
            continue

        log_event("TICKET_ISSUED", user_id=user_id, entity="ticket", entity_id=ticket.id,
                  metadata={"booking_id": booking_id, "ticket_number": number})
        return ticket

    raise RuntimeError("Could not allocate a unique ticket number")


def verify_ticket(ticket_number: str, verifier_id: str = None) -> VerificationResult:
    """Mark a ticket used at the gate.

    Scanning an already-used ticket is not an error: the result reports the
    original use time with ``is_valid=False``.
    """
    ticket = Ticket.query.filter_by(ticket_number=ticket_number).first()
    if not ticket:
        raise TicketNotFound()

    booking = db.session.get(Booking, ticket.booking_id)
    if booking is None or booking.status != CONFIRMED:
        raise BookingNotConfirmed()

    now = datetime.utcnow()
    result = db.session.execute(
        update(Ticket)
        .where(Ticket.id == ticket.id, Ticket.is_used.is_(False))
        .values(is_used=True, used_at=now)
        .execution_options(synchronize_session=False)
    )
    first_use = result.rowcount == 1
    db.session.commit()

    ticket = db.session.get(Ticket, ticket.id, populate_existing=True)
    if first_use:
        log_event("TICKET_VERIFIED", user_id=verifier_id, entity="ticket", entity_id=ticket.id)
        return VerificationResult(True, "Ticket verified successfully", ticket, ticket.used_at)

    log_event("TICKET_REUSED", user_id=verifier_id, entity="ticket", entity_id=ticket.id,
              metadata={"used_at": ticket.used_at.isoformat() if ticket.used_at else None})
    used_on = ticket.used_at.strftime("%Y-%m-%d %H:%M:%S") if ticket.used_at else "an earlier scan"
    return VerificationResult(False, f"Ticket was already used on {used_on}", ticket, ticket.used_at)
