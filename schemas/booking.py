from datetime import date as dt_date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.slot_generator import parse_date

_GATEWAY_ID = r"^[A-Za-z0-9_]{1,64}$"
_SIGNATURE = r"^[0-9a-f]{64}$"  # hex HMAC-SHA256


class _BookingTarget(BaseModel):
    slot_id: int = Field(gt=0)
    date: dt_date
    both_turfs: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def parse_any_date(cls, v):
        if isinstance(v, str):
            return parse_date(v)
        return v


# Booking: Create (POST /bookings); payment proof is optional but all-or-nothing
class BookingCreate(_BookingTarget):
    razorpay_order_id: Optional[str] = Field(default=None, pattern=_GATEWAY_ID)
    razorpay_payment_id: Optional[str] = Field(default=None, pattern=_GATEWAY_ID)
    razorpay_signature: Optional[str] = Field(default=None, pattern=_SIGNATURE)

    @model_validator(mode="after")
    def proof_is_complete(self):
        parts = [self.razorpay_order_id, self.razorpay_payment_id, self.razorpay_signature]
        if any(parts) and not all(parts):
            raise ValueError("razorpay_order_id, razorpay_payment_id and razorpay_signature go together")
        return self

    @property
    def has_payment(self) -> bool:
        return bool(self.razorpay_signature)


# Order: Create (POST /payments/orders)
class OrderCreate(_BookingTarget):
    pass


# Payment: Verify (POST /payments/verify)
class PaymentVerify(BaseModel):
    booking_id: int = Field(gt=0)
    razorpay_order_id: str = Field(pattern=_GATEWAY_ID)
    razorpay_payment_id: str = Field(pattern=_GATEWAY_ID)
    razorpay_signature: str = Field(pattern=_SIGNATURE)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=120)

    @field_validator("reason", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v
