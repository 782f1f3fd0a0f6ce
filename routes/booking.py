from flask import Blueprint, request, jsonify, g

from models.booking import Booking
from schemas import parse_body, BookingCreate, BookingCancel
from security.rbac import require_roles
from utils.auth_context import login_required
from utils.ledger import PaymentProof, request_booking, cancel_booking
from utils.slot_generator import parse_date

booking_bp = Blueprint("booking", __name__)


# ---------- PLAYERS: book a slot (capacity-safe) ----------
@booking_bp.post("/bookings")
@login_required
def create_booking():
    data = parse_body(BookingCreate)

    proof = None
    if data.has_payment:
        proof = PaymentProof(
            order_id=data.razorpay_order_id,
            payment_id=data.razorpay_payment_id,
            signature=data.razorpay_signature,
        )

    booking = request_booking(
        slot_id=data.slot_id,
        date=data.date,
        user_id=g.user.id,
        both_turfs=data.both_turfs,
        payment=proof,
    )
    return jsonify(
        success=True,
        message="Booking created successfully",
        booking=booking.to_dict(),
    ), 201


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    status = request.args.get("status")  # pending/confirmed/cancelled
    q = Booking.query.filter_by(user_id=g.user.id)
    if status:
        q = q.filter_by(status=status.lower())

    rows = q.order_by(Booking.date.desc(), Booking.created_at.desc()).all()
    return jsonify([b.to_dict() for b in rows]), 200


# ---------- PLAYERS: cancel own booking (policy window) ----------
@booking_bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_my_booking(booking_id: int):
    data = parse_body(BookingCancel)
    booking = cancel_booking(
        booking_id,
        actor_id=g.user.id,
        reason=data.reason,
        owner_id=g.user.id,
        enforce_cutoff=True,
    )
    return jsonify(message="Cancelled", booking=booking.to_dict()), 200


# ---------- ADMIN: list bookings ----------
@booking_bp.get("/bookings")
@require_roles("ADMIN")
def list_all_bookings():
    status = request.args.get("status")
    date_str = request.args.get("date")

    q = Booking.query
    if status:
        q = q.filter_by(status=status.lower())
    if date_str:
        try:
            q = q.filter_by(date=parse_date(date_str).isoformat())
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    return jsonify([b.to_dict() for b in rows]), 200


# ---------- ADMIN: cancel any booking ----------
@booking_bp.post("/bookings/<int:booking_id>/admin_cancel")
@require_roles("ADMIN")
def admin_cancel_booking(booking_id: int):
    data = parse_body(BookingCancel)
    booking = cancel_booking(
        booking_id,
        actor_id=g.user.id,
        reason=data.reason or "Admin cancellation",
    )
    return jsonify(message="Cancelled by admin", booking=booking.to_dict()), 200
