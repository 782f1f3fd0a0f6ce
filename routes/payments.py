from flask import Blueprint, jsonify, g, current_app

from schemas import parse_body, OrderCreate, PaymentVerify
from utils.auth_context import login_required
from utils.audit import log_event
from utils.errors import PaymentGatewayError
from utils.gateway import get_gateway
from utils.ledger import request_booking, attach_order, cancel_booking, confirm_payment

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


@payments_bp.post("/orders")
@login_required
def create_order():
    """Reserve capacity (pending booking) and open a Razorpay order for it."""
    data = parse_body(OrderCreate)

    booking = request_booking(
        slot_id=data.slot_id,
        date=data.date,
        user_id=g.user.id,
        both_turfs=data.both_turfs,
    )

    try:
        order = get_gateway().create_order(
            amount_rupees=booking.amount,
            receipt=f"booking_{booking.id}",
            notes={
                "booking_id": str(booking.id),
                "slot_id": str(booking.slot_id),
                "date": booking.date,
                "both_turfs": "true" if booking.both_turfs else "false",
            },
        )
    except PaymentGatewayError:
        # give the held units back; the user can retry
        cancel_booking(booking.id, actor_id=g.user.id, reason="payment order failed")
        raise

    attach_order(booking.id, order["id"])
    log_event("PAYMENT_ORDER_CREATED", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"order_id": order["id"], "amount": order["amount"]})

    return jsonify(
        booking_id=booking.id,
        order_id=order["id"],
        amount=order["amount"],
        currency=order["currency"],
        key=current_app.config.get("RAZORPAY_KEY_ID"),
        hold_expires_at=booking.hold_expires_at.isoformat() if booking.hold_expires_at else None,
    ), 201


@payments_bp.post("/verify")
@login_required
def verify_payment():
    data = parse_body(PaymentVerify)
    booking = confirm_payment(
        booking_id=data.booking_id,
        order_id=data.razorpay_order_id,
        payment_id=data.razorpay_payment_id,
        signature=data.razorpay_signature,
        user_id=g.user.id,
    )
    return jsonify(success=True, message="Payment verified", booking=booking.to_dict()), 200
