import logging

import razorpay
from flask import current_app
from razorpay.errors import BadRequestError, GatewayError, ServerError

from utils.errors import PaymentGatewayError

logger = logging.getLogger(__name__)

_GATEWAY_ERRORS = (
    BadRequestError,
    ServerError,
    GatewayError,
    OSError,  # connection / timeout errors from the HTTP layer
)


class RazorpayGateway:
    """Creates Razorpay orders. Signatures are checked locally, see security/payment_signature.py."""

    def __init__(self, key_id, key_secret, currency="INR"):
        self.key_id = key_id
        self.key_secret = key_secret
        self.currency = currency
        self._client = None

    @property
    def client(self) -> razorpay.Client:
        if not self.key_id or not self.key_secret:
            raise PaymentGatewayError("Razorpay keys not configured")
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(self, amount_rupees: int, receipt: str, notes: dict) -> dict:
        if amount_rupees < 1:
            raise PaymentGatewayError("Amount must be greater than 0")
        try:
            order = self.client.order.create(data={
                "amount": int(amount_rupees) * 100,  # paise
                "currency": self.currency,
                "receipt": receipt,
                "notes": notes,
                "payment_capture": 1,
            })
        except _GATEWAY_ERRORS as exc:
            logger.warning("Razorpay order creation failed for receipt %s: %s", receipt, exc)
            raise PaymentGatewayError() from exc
        return {"id": order["id"], "amount": order["amount"], "currency": order["currency"]}


def init_gateway(app):
    app.extensions["payment_gateway"] = RazorpayGateway(
        key_id=app.config.get("RAZORPAY_KEY_ID"),
        key_secret=app.config.get("RAZORPAY_KEY_SECRET"),
        currency=app.config.get("PAYMENT_CURRENCY", "INR"),
    )


def get_gateway():
    return current_app.extensions["payment_gateway"]
