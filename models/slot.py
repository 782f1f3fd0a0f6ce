from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = db.Column(db.String(5), nullable=False)               # HH:MM

    price = db.Column(db.Integer, nullable=False, default=0)  # rupees, per turf
    total_capacity = db.Column(db.Integer, nullable=False, default=3)

    # Units held by pending + confirmed bookings. Only ever changed by
    # conditional UPDATEs in utils/ledger.py.
    booked_units = db.Column(db.Integer, nullable=False, default=0)

    is_night = db.Column(db.Boolean, default=False, nullable=False)
    is_enabled = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("date", "time", name="uq_slot_date_time"),
        db.CheckConstraint("total_capacity >= 1", name="ck_slot_capacity_positive"),
        db.CheckConstraint("booked_units >= 0", name="ck_slot_booked_non_negative"),
        db.CheckConstraint("booked_units <= total_capacity", name="ck_slot_booked_within_capacity"),
    )

    @property
    def available_units(self) -> int:
        return max(self.total_capacity - self.booked_units, 0)

    def starts_at(self) -> datetime:
        return datetime.strptime(f"{self.date} {self.time}", "%Y-%m-%d %H:%M")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "price": self.price,
            "total_capacity": self.total_capacity,
            "booked_units": self.booked_units,
            "available_units": self.available_units,
            "is_night": self.is_night,
            "is_enabled": self.is_enabled,
        }


def is_night_hour(time_str: str) -> bool:
    # 6 PM to 6 AM counts as night
    hour = int(time_str.split(":")[0])
    return hour >= 18 or hour < 6
