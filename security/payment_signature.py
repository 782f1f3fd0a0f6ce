from functools import lru_cache

import razorpay
from razorpay.errors import SignatureVerificationError


@lru_cache(maxsize=8)
def _utility(key_secret: str):
    # Utility only reads the secret from the client's auth tuple
    return razorpay.Client(auth=("", key_secret)).utility


def verify_checkout_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check the signature Razorpay Checkout hands back after a payment."""
    if not order_id or not payment_id or not signature or not secret:
        return False
    try:
        _utility(secret).verify_payment_signature({
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        })
    except (SignatureVerificationError, TypeError):
        # TypeError: hmac.compare_digest refuses non-ASCII str
        return False
    return True


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    # X-Razorpay-Signature signs the raw request body
    if not body or not signature or not secret:
        return False
    try:
        _utility(secret).verify_webhook_signature(body.decode("utf-8"), signature, secret)
    except (SignatureVerificationError, TypeError, UnicodeDecodeError):
        return False
    return True
