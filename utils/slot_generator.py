from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError

from models import db
from models.slot import Slot, is_night_hour
from utils.slot_cache import invalidate_dates


def parse_date(value: str) -> date:
    """Accepts YYYY-MM-DD or a full ISO datetime and returns the calendar date."""
    value = (value or "").strip()
    if len(value) > 10:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return date.fromisoformat(value)


def canonical_date(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return parse_date(value).isoformat()


def generate_time_slots(start_date: date, end_date: date, start_time: str, end_time: str,
                        interval: int, price: int, capacity: int) -> list[dict]:
    """
    Expand a date range and daily time window into slot rows.

    An end_time of 00:00 means 23:59 of the same day; an end_time earlier than
    start_time runs into the next day, but those slots keep the starting date.
    """
    start_hour, start_minute = (int(p) for p in start_time.split(":"))
    end_hour, end_minute = (int(p) for p in end_time.split(":"))
    step = timedelta(minutes=interval)

    slots = []
    current = start_date
    while current <= end_date:
        day_start = datetime(current.year, current.month, current.day)
        cursor = day_start.replace(hour=start_hour, minute=start_minute)

        if end_hour == 0 and end_minute == 0:
            window_end = day_start.replace(hour=23, minute=59)
        else:
            window_end = day_start.replace(hour=end_hour, minute=end_minute)
            if window_end < cursor:
                window_end += timedelta(days=1)

        while cursor <= window_end:
            time_str = cursor.strftime("%H:%M")
            slots.append({
                "date": current.isoformat(),
                "time": time_str,
                "price": price,
                "is_night": is_night_hour(time_str),
                "total_capacity": capacity,
                "is_enabled": True,
            })
            cursor += step

        current += timedelta(days=1)

    return slots


def create_generated_slots(rows: list[dict]) -> dict:
    """Insert generated slot rows, keeping any (date, time) pair that already exists."""
    dates = sorted({r["date"] for r in rows})
    existing = set()
    if dates:
        existing = {
            (s.date, s.time)
            for s in Slot.query.filter(Slot.date.in_(dates)).all()
        }

    created = 0
    for row in rows:
        key = (row["date"], row["time"])
        if key in existing:
            continue
        db.session.add(Slot(booked_units=0, **row))
        existing.add(key)
        created += 1

    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent generator inserted some of these; retry one by one
        db.session.rollback()
        created = 0
        for row in rows:
            if Slot.query.filter_by(date=row["date"], time=row["time"]).first():
                continue
            db.session.add(Slot(booked_units=0, **row))
            try:
                db.session.commit()
                created += 1
            except IntegrityError:
                db.session.rollback()

    invalidate_dates(*dates)
    return {
        "created": created,
        "existing": len(rows) - created,
        "total_attempted": len(rows),
        "dates": dates,
    }
