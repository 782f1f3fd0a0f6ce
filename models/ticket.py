import json
from datetime import datetime
from models.db import db


class Ticket(db.Model):
    __tablename__ = "tickets"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, unique=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    ticket_number = db.Column(db.String(20), nullable=False, unique=True, index=True)
    qr_payload = db.Column(db.Text, nullable=False)  # JSON handed to the QR encoder

    is_used = db.Column(db.Boolean, default=False, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    booking = db.relationship("Booking")

    def payload(self) -> dict:
        return json.loads(self.qr_payload)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "ticket_number": self.ticket_number,
            "payload": self.payload(),
            "is_used": self.is_used,
            "used_at": self.used_at.isoformat() if self.used_at else None,
            "created_at": self.created_at.isoformat(),
        }
