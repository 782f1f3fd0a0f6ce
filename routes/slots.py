from flask import Blueprint, request, jsonify, g
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.slot import Slot, is_night_hour
from models.booking import Booking, ACTIVE_STATUSES
from models.ticket import Ticket
from schemas import parse_body, SlotCreate, SlotUpdate, SlotBulkCreate
from security.rbac import require_roles, has_role
from utils.audit import log_event
from utils.errors import SlotNotFound, SlotConflict, CapacityConflict, SlotInUse
from utils.slot_cache import get_slot_cache, invalidate_dates
from utils.slot_generator import create_generated_slots, generate_time_slots, parse_date

slots_bp = Blueprint("slots", __name__, url_prefix="/slots")


def _load_day(day: str) -> list[dict]:
    rows = Slot.query.filter_by(date=day).order_by(Slot.time.asc()).all()
    return [s.to_dict() for s in rows]


def _set_capacity(slot_id: int, capacity: int) -> None:
    # Conditional so a concurrent admission cannot slip under the new capacity
    result = db.session.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.booked_units <= capacity)
        .values(total_capacity=capacity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise CapacityConflict(db.session.get(Slot, slot_id, populate_existing=True).booked_units)


def _delete_slots(slot_ids: list[int]) -> None:
    """Delete slots that hold no active bookings, inside the caller's transaction."""
    if not slot_ids:
        return
    # Disabling first takes the row locks that admissions also need,
    # so no booking can be admitted between the check and the delete.
    db.session.execute(
        update(Slot)
        .where(Slot.id.in_(slot_ids))
        .values(is_enabled=False)
        .execution_options(synchronize_session=False)
    )
    active = (
        Booking.query
        .filter(Booking.slot_id.in_(slot_ids), Booking.status.in_(ACTIVE_STATUSES))
        .first()
    )
    if active:
        db.session.rollback()
        raise SlotInUse()

    stale_ids = [b.id for b in Booking.query.filter(Booking.slot_id.in_(slot_ids)).all()]
    if stale_ids:
        Ticket.query.filter(Ticket.booking_id.in_(stale_ids)).delete(synchronize_session=False)
        Booking.query.filter(Booking.id.in_(stale_ids)).delete(synchronize_session=False)
    Slot.query.filter(Slot.id.in_(slot_ids)).delete(synchronize_session=False)


# ---------- PUBLIC: list slots for a date ----------
@slots_bp.get("")
def list_slots():
    date_str = request.args.get("date")
    is_admin = has_role("ADMIN")

    if not date_str:
        # Full catalogue is an admin view
        if not is_admin:
            return jsonify(error="date parameter is required (YYYY-MM-DD)"), 400
        rows = Slot.query.order_by(Slot.date.asc(), Slot.time.asc()).all()
        return jsonify([s.to_dict() for s in rows]), 200

    try:
        day = parse_date(date_str).isoformat()
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    slots = get_slot_cache().get_or_populate(day, lambda: _load_day(day))
    if not is_admin:
        slots = [s for s in slots if s["is_enabled"]]
    return jsonify(slots), 200


# ---------- ADMIN: create or update a slot by (date, time) ----------
@slots_bp.post("")
@require_roles("ADMIN")
def upsert_slot():
    data = parse_body(SlotCreate)
    day = data.date.isoformat()

    slot = Slot.query.filter_by(date=day, time=data.time).first()
    created = slot is None
    if created:
        slot = Slot(date=day, time=data.time, booked_units=0, total_capacity=data.total_capacity)
        db.session.add(slot)

    slot.price = data.price
    slot.is_enabled = data.is_enabled
    slot.is_night = is_night_hour(data.time)
    if not created:
        _set_capacity(slot.id, data.total_capacity)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SlotConflict()

    slot = db.session.get(Slot, slot.id, populate_existing=True)
    invalidate_dates(day)
    log_event("SLOT_CREATE" if created else "SLOT_UPDATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(success=True, slot=slot.to_dict()), 201 if created else 200


# ---------- ADMIN: edit a slot ----------
@slots_bp.put("/<int:slot_id>")
@require_roles("ADMIN")
def update_slot(slot_id: int):
    data = parse_body(SlotUpdate)

    slot = db.session.get(Slot, slot_id)
    if not slot:
        raise SlotNotFound(slot_id)

    if data.time is not None and data.time != slot.time:
        clash = Slot.query.filter(Slot.id != slot.id, Slot.date == slot.date, Slot.time == data.time).first()
        if clash:
            raise SlotConflict()
        slot.time = data.time
        slot.is_night = is_night_hour(data.time)

    if data.price is not None:
        slot.price = data.price
    if data.is_enabled is not None:
        slot.is_enabled = data.is_enabled

    if data.total_capacity is not None:
        _set_capacity(slot.id, data.total_capacity)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SlotConflict()

    slot = db.session.get(Slot, slot_id, populate_existing=True)
    invalidate_dates(slot.date)
    log_event("SLOT_UPDATE", user_id=g.user.id, entity="slot", entity_id=slot.id,
              metadata=data.model_dump(exclude_none=True))
    return jsonify(success=True, message="Slot updated successfully", slot=slot.to_dict()), 200


# ---------- ADMIN: delete one slot ----------
@slots_bp.delete("/<int:slot_id>")
@require_roles("ADMIN")
def delete_slot(slot_id: int):
    slot = db.session.get(Slot, slot_id)
    if not slot:
        raise SlotNotFound(slot_id)
    day = slot.date

    _delete_slots([slot_id])
    db.session.commit()

    invalidate_dates(day)
    log_event("SLOT_DELETE", user_id=g.user.id, entity="slot", entity_id=slot_id, metadata={"date": day})
    return jsonify(success=True), 200


# ---------- ADMIN: delete every slot of a date ----------
@slots_bp.delete("")
@require_roles("ADMIN")
def delete_slots_for_date():
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="date parameter is required (YYYY-MM-DD)"), 400
    try:
        day = parse_date(date_str).isoformat()
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    slot_ids = [s.id for s in Slot.query.filter_by(date=day).all()]
    _delete_slots(slot_ids)
    db.session.commit()

    invalidate_dates(day)
    log_event("SLOT_BULK_DELETE", user_id=g.user.id, entity="slot", metadata={"date": day, "count": len(slot_ids)})
    return jsonify(success=True, deleted=len(slot_ids)), 200


# ---------- ADMIN: generate slots over a date/time range ----------
@slots_bp.post("/bulk")
@require_roles("ADMIN")
def bulk_create_slots():
    data = parse_body(SlotBulkCreate)
    summary = create_generated_slots(
        generate_time_slots(
            data.start_date, data.end_date, data.start_time, data.end_time,
            data.interval, data.price, data.capacity,
        )
    )

    log_event("SLOT_BULK_CREATE", user_id=g.user.id, entity="slot", metadata=summary)
    return jsonify(
        success=True,
        message=f"Created {summary['created']} slots successfully. {summary['existing']} slots already existed.",
        details=summary,
    ), 201
