from flask import request

from .slot import SlotCreate, SlotUpdate, SlotBulkCreate
from .booking import BookingCreate, BookingCancel, OrderCreate, PaymentVerify
from .ticket import TicketCreate, TicketVerify


def parse_body(schema):
    """Validate the JSON request body against a pydantic model."""
    data = request.get_json(silent=True) or {}
    return schema.model_validate(data)
