import json
import logging

from flask import Blueprint, request, jsonify, current_app

from security.payment_signature import verify_webhook_signature
from utils.errors import BookingError
from utils.ledger import confirm_paid_order

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")

HANDLED_EVENTS = ("payment.captured", "order.paid")


@webhook_bp.post("/razorpay")
def razorpay_webhook():
    secret = current_app.config.get("RAZORPAY_WEBHOOK_SECRET")
    signature = request.headers.get("X-Razorpay-Signature")
    payload = request.get_data()

    if not secret:
        return jsonify(error="Webhook secret not configured"), 500

    if not verify_webhook_signature(payload, signature, secret):
        return jsonify(error="Invalid webhook signature"), 400

    try:
        event = json.loads(payload)
    except ValueError:
        return jsonify(error="Invalid payload"), 400

    event_type = event.get("event")
    if event_type not in HANDLED_EVENTS:
        return jsonify(received=True), 200

    entity = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
    order_id = entity.get("order_id")
    payment_id = entity.get("id")
    if not order_id or not payment_id:
        logger.warning("Razorpay %s event without order/payment id", event_type)
        return jsonify(received=True), 200

    try:
        confirm_paid_order(order_id, payment_id)
    except BookingError as exc:
        # The gateway cannot act on business rejections; they are in the audit log.
        logger.warning("Webhook %s for order %s not applied: %s", event_type, order_id, exc)

    return jsonify(received=True), 200
