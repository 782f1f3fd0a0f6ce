from datetime import datetime
from models.db import db

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
ACTIVE_STATUSES = (PENDING, CONFIRMED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.String(128), nullable=False, index=True)  # opaque id from the identity provider
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id"), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=PENDING)
    # status values: pending, confirmed, cancelled

    both_turfs = db.Column(db.Boolean, default=False, nullable=False)
    units = db.Column(db.Integer, nullable=False, default=1)
    amount = db.Column(db.Integer, nullable=False, default=0)

    order_id = db.Column(db.String(64), nullable=True, index=True)
    payment_id = db.Column(db.String(64), nullable=True, unique=True)
    signature = db.Column(db.String(128), nullable=True)

    # "user|slot|date" while the booking is active, NULL once cancelled
    active_key = db.Column(db.String(200), nullable=True)

    hold_expires_at = db.Column(db.DateTime, nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    slot = db.relationship("Slot")

    __table_args__ = (
        # One active booking per user, slot and date
        db.UniqueConstraint("active_key", name="uq_booking_active_key"),
    )

    @staticmethod
    def make_active_key(user_id: str, slot_id: int, date: str) -> str:
        return f"{user_id}|{slot_id}|{date}"

    def to_dict(self) -> dict:
        slot = self.slot
        return {
            "id": self.id,
            "user_id": self.user_id,
            "slot_id": self.slot_id,
            "date": self.date,
            "status": self.status,
            "both_turfs": self.both_turfs,
            "units": self.units,
            "amount": self.amount,
            "order_id": self.order_id,
            "payment_id": self.payment_id,
            "created_at": self.created_at.isoformat(),
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "hold_expires_at": self.hold_expires_at.isoformat() if self.hold_expires_at else None,
            "cancel_reason": self.cancel_reason,
            "slot": {
                "time": slot.time if slot else None,
                "price": slot.price if slot else None,
                "is_night": slot.is_night if slot else None,
            },
        }
