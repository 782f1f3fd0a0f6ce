"""Slot capacity ledger.

Every check-and-write below is a single conditional UPDATE (or an insert
guarded by a unique constraint) so that concurrent requests for the same slot
cannot overshoot its capacity:

- admission reserves units with ``booked_units + n <= total_capacity`` in the
  WHERE clause and inserts the booking in the same transaction;
- confirmation flips ``pending -> confirmed`` only if the row is still pending;
- cancellation and hold expiry flip the row first, then give the units back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import ACTIVE_STATUSES, CANCELLED, CONFIRMED, PENDING, Booking
from models.slot import Slot
from security.payment_signature import verify_checkout_signature
from utils.audit import log_event
from utils.errors import (
    BookingNotCancellable,
    BookingNotFound,
    CancellationNotAllowed,
    CapacityExceeded,
    DuplicateBooking,
    InvalidSignature,
    PaymentMismatch,
    SlotNotFound,
)
from utils.slot_cache import invalidate_dates
from utils.slot_generator import canonical_date

logger = logging.getLogger(__name__)

HOLD_EXPIRED = "hold expired"

# Bounded retries when a conditional update loses a race and the row must be re-read
_MAX_CONFIRM_ATTEMPTS = 3


@dataclass(frozen=True)
class PaymentProof:
    order_id: str
    payment_id: str
    signature: str


def units_for(both_turfs: bool) -> int:
    return 2 if both_turfs else 1


# ---------- counter primitives ----------

def _reserve_units(slot_id: int, units: int) -> bool:
    result = db.session.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.is_enabled.is_(True),
            Slot.booked_units + units <= Slot.total_capacity,
        )
        .values(booked_units=Slot.booked_units + units)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _release_units(slot_id: int, units: int) -> None:
    result = db.session.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.booked_units >= units)
        .values(booked_units=Slot.booked_units - units)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.error("Slot %s ledger underflow releasing %s unit(s)", slot_id, units)


def _mark_cancelled(booking_id: int, reason: str, now: datetime, only_status=None) -> bool:
    statuses = (only_status,) if only_status else ACTIVE_STATUSES
    result = db.session.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status.in_(statuses))
        .values(
            status=CANCELLED,
            active_key=None,
            cancelled_at=now,
            cancel_reason=reason,
            hold_expires_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _check_proof(proof: PaymentProof, booking_id=None, user_id=None) -> None:
    secret = current_app.config.get("RAZORPAY_KEY_SECRET")
    if not verify_checkout_signature(proof.order_id, proof.payment_id, proof.signature, secret):
        log_event(
            "PAYMENT_SIGNATURE_INVALID",
            user_id=user_id,
            entity="booking",
            entity_id=booking_id,
            metadata={"order_id": proof.order_id, "payment_id": proof.payment_id},
        )
        raise InvalidSignature()


def _payment_used_elsewhere(payment_id: str, booking_id=None) -> bool:
    other = Booking.query.filter_by(payment_id=payment_id).first()
    return other is not None and other.id != booking_id


# ---------- admission ----------

def request_booking(slot_id: int, date, user_id: str, both_turfs: bool = False,
                    payment: PaymentProof = None) -> Booking:
    """Admit a booking for ``slot_id`` on ``date`` or raise.

    Without ``payment`` the booking is created pending and holds its units
    until ``PENDING_HOLD_SECONDS`` elapse. With a valid proof the pending
    booking its order was opened for is confirmed and returned.

    Raises:
        SlotNotFound, InvalidSignature, CapacityExceeded, DuplicateBooking,
        PaymentMismatch
    """
    try:
        day = canonical_date(date)
    except (TypeError, ValueError):
        raise SlotNotFound(slot_id)

    slot = db.session.get(Slot, slot_id)
    if not slot or not slot.is_enabled or slot.date != day:
        raise SlotNotFound(slot_id)

    release_expired_holds(slot_id=slot.id)
    units = units_for(both_turfs)

    if payment is not None:
        _check_proof(payment, user_id=user_id)
        return _confirm_held_order(payment, slot.id, day, user_id, units)

    amount = slot.price * units

    if not _reserve_units(slot.id, units):
        db.session.rollback()
        log_event("BOOKING_FAIL_CAPACITY", user_id=user_id, entity="slot", entity_id=slot_id,
                  metadata={"date": day, "units": units})
        raise CapacityExceeded(both_turfs)

    active_key = Booking.make_active_key(user_id, slot.id, day)
    if Booking.query.filter_by(active_key=active_key).first():
        db.session.rollback()  # also gives the reserved units back
        log_event("BOOKING_FAIL_DUPLICATE", user_id=user_id, entity="slot", entity_id=slot_id,
                  metadata={"date": day})
        raise DuplicateBooking()

    now = datetime.utcnow()
    booking = Booking(
        user_id=user_id,
        slot_id=slot.id,
        date=day,
        both_turfs=bool(both_turfs),
        units=units,
        amount=amount,
        active_key=active_key,
    )
    hold_seconds = current_app.config.get("PENDING_HOLD_SECONDS", 900)
    booking.status = PENDING
    booking.hold_expires_at = now + timedelta(seconds=hold_seconds)

    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError:
        # uq_booking_active_key: a concurrent request by the same user won
        db.session.rollback()
        log_event("BOOKING_FAIL_DUPLICATE", user_id=user_id, entity="slot", entity_id=slot_id,
                  metadata={"date": day})
        raise DuplicateBooking()

    invalidate_dates(day)
    log_event("BOOKING_CREATE", user_id=user_id, entity="booking", entity_id=booking.id,
              metadata={"slot_id": slot.id, "date": day, "units": units, "status": booking.status})
    return booking


# ---------- confirmation ----------

def _confirm_held_order(payment: PaymentProof, slot_id: int, day: str, user_id: str, units: int) -> Booking:
    """Confirm the hold the paid order was opened for.

    Razorpay orders are only created together with a pending booking, so a
    proof is accepted only for the user, slot, date and size of that booking.
    """
    held = Booking.query.filter_by(order_id=payment.order_id).first()
    if (held is None or held.user_id != user_id or held.slot_id != slot_id
            or held.date != day or held.units != units):
        log_event("PAYMENT_ORDER_MISMATCH", user_id=user_id, entity="slot", entity_id=slot_id,
                  metadata={"order_id": payment.order_id, "date": day, "units": units})
        raise PaymentMismatch("Payment order does not match this booking")
    return _apply_payment(held.id, payment.order_id, payment.payment_id, payment.signature, user_id=user_id)


def _confirm_values(order_id, payment_id, signature, now):
    return dict(
        status=CONFIRMED,
        order_id=order_id,
        payment_id=payment_id,
        signature=signature,
        confirmed_at=now,
        hold_expires_at=None,
    )


def _flip_pending(booking_id, order_id, payment_id, signature, now) -> bool:
    result = db.session.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == PENDING)
        .values(**_confirm_values(order_id, payment_id, signature, now))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _revive_expired(booking, order_id, payment_id, signature, now) -> bool:
    """Re-reserve and confirm a booking whose hold lapsed before the payment arrived."""
    if not _reserve_units(booking.slot_id, booking.units):
        db.session.rollback()
        logger.error(
            "Payment %s captured for booking %s but slot %s is full; refund required",
            payment_id, booking.id, booking.slot_id,
        )
        log_event("PAYMENT_CAPACITY_LOST", user_id=booking.user_id, entity="booking", entity_id=booking.id,
                  metadata={"order_id": order_id, "payment_id": payment_id})
        raise CapacityExceeded(booking.both_turfs)

    values = _confirm_values(order_id, payment_id, signature, now)
    values.update(
        active_key=Booking.make_active_key(booking.user_id, booking.slot_id, booking.date),
        cancelled_at=None,
        cancel_reason=None,
    )
    result = db.session.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == CANCELLED, Booking.cancel_reason == HOLD_EXPIRED)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        return False
    return True


def _commit_confirmation(booking_id, payment_id):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if _payment_used_elsewhere(payment_id, booking_id):
            raise PaymentMismatch("Payment already used for another booking")
        # the user already holds another active booking for the same slot/date
        raise DuplicateBooking()


def _apply_payment(booking_id, order_id, payment_id, signature, user_id=None, source="checkout") -> Booking:
    for _ in range(_MAX_CONFIRM_ATTEMPTS):
        booking = db.session.get(Booking, booking_id, populate_existing=True)
        if booking is None or (user_id is not None and booking.user_id != user_id):
            raise BookingNotFound()
        # Only the order opened for this booking can pay for it
        if booking.order_id != order_id:
            raise PaymentMismatch()

        if booking.status == CONFIRMED:
            if booking.payment_id == payment_id:
                return booking
            raise PaymentMismatch("Booking already confirmed with another payment")

        now = datetime.utcnow()
        if booking.status == PENDING:
            if not _flip_pending(booking.id, order_id, payment_id, signature, now):
                db.session.rollback()
                continue
        elif booking.cancel_reason == HOLD_EXPIRED:
            if not _revive_expired(booking, order_id, payment_id, signature, now):
                continue
        else:
            raise PaymentMismatch("Booking was cancelled")

        _commit_confirmation(booking.id, payment_id)

        booking = db.session.get(Booking, booking_id, populate_existing=True)
        slot = db.session.get(Slot, booking.slot_id, populate_existing=True)
        if slot is not None and slot.booked_units > slot.total_capacity:
            logger.error("Slot %s over capacity after confirming booking %s", slot.id, booking.id)

        invalidate_dates(booking.date)
        log_event("PAYMENT_CONFIRMED", user_id=booking.user_id, entity="booking", entity_id=booking.id,
                  metadata={"order_id": order_id, "payment_id": payment_id, "source": source})
        return booking

    # Lost every race; whatever state won is authoritative.
    booking = db.session.get(Booking, booking_id, populate_existing=True)
    if booking is not None and booking.status == CONFIRMED and booking.payment_id == payment_id:
        return booking
    raise BookingNotCancellable()


def confirm_payment(booking_id: int, order_id: str, payment_id: str, signature: str,
                    user_id: str = None) -> Booking:
    """Confirm a pending booking with Razorpay Checkout proof.

    Idempotent: repeating the call with the same proof returns the booking
    already confirmed by the first call.
    """
    _check_proof(PaymentProof(order_id, payment_id, signature), booking_id=booking_id, user_id=user_id)
    return _apply_payment(booking_id, order_id, payment_id, signature, user_id=user_id)


def confirm_paid_order(order_id: str, payment_id: str):
    """Confirm the booking behind a Razorpay order reported paid by a verified webhook."""
    booking = Booking.query.filter_by(order_id=order_id).first()
    if booking is None:
        logger.warning("Webhook for unknown order %s (payment %s)", order_id, payment_id)
        return None
    return _apply_payment(booking.id, order_id, payment_id, signature=None, source="webhook")


def attach_order(booking_id: int, order_id: str) -> None:
    db.session.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == PENDING)
        .values(order_id=order_id)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


# ---------- cancellation ----------

def cancel_booking(booking_id: int, actor_id: str, reason: str = None,
                   owner_id: str = None, enforce_cutoff: bool = False) -> Booking:
    """Cancel an active booking and return its units to the slot.

    ``owner_id`` restricts the cancellation to that user's bookings and
    ``enforce_cutoff`` applies the CANCEL_CUTOFF_HOURS window.
    """
    booking = db.session.get(Booking, booking_id)
    if not booking or (owner_id is not None and booking.user_id != owner_id):
        raise BookingNotFound()
    if booking.status not in ACTIVE_STATUSES:
        raise BookingNotCancellable()

    if enforce_cutoff and booking.slot is not None:
        cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 12)
        # slot date/time are naive venue-local values
        if (booking.slot.starts_at() - datetime.now()).total_seconds() < cutoff_hours * 3600:
            raise CancellationNotAllowed(cutoff_hours)

    slot_id, units, day = booking.slot_id, booking.units, booking.date
    if not _mark_cancelled(booking.id, reason, datetime.utcnow()):
        db.session.rollback()
        raise BookingNotCancellable()
    _release_units(slot_id, units)
    db.session.commit()

    invalidate_dates(day)
    log_event("BOOKING_CANCEL", user_id=actor_id, entity="booking", entity_id=booking_id,
              metadata={"reason": reason, "units": units})
    return db.session.get(Booking, booking_id, populate_existing=True)


def release_expired_holds(slot_id: int = None, now: datetime = None) -> int:
    """Cancel pending bookings whose hold lapsed and return their units."""
    now = now or datetime.utcnow()
    q = Booking.query.filter(
        Booking.status == PENDING,
        Booking.hold_expires_at.isnot(None),
        Booking.hold_expires_at <= now,
    )
    if slot_id is not None:
        q = q.filter(Booking.slot_id == slot_id)

    expired = [(b.id, b.slot_id, b.units, b.date) for b in q.all()]
    released = []
    for booking_id, b_slot_id, units, day in expired:
        if _mark_cancelled(booking_id, HOLD_EXPIRED, now, only_status=PENDING):
            _release_units(b_slot_id, units)
            released.append((booking_id, day))

    if not released:
        if expired:
            db.session.rollback()
        return 0

    db.session.commit()
    invalidate_dates(*{day for _, day in released})
    for booking_id, _ in released:
        log_event("HOLD_EXPIRED", entity="booking", entity_id=booking_id)
    return len(released)
