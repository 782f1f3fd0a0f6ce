"""Business-rule errors raised by the ledger and the ticket desk.

Each error carries a stable code and a user-safe message; app.py maps them
to JSON responses.
"""

from enum import Enum


class ErrorCode(Enum):
    SLOT_NOT_FOUND = "SLOT_NOT_FOUND"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    DUPLICATE_BOOKING = "DUPLICATE_BOOKING"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    BOOKING_NOT_CONFIRMED = "BOOKING_NOT_CONFIRMED"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    BOOKING_NOT_CANCELLABLE = "BOOKING_NOT_CANCELLABLE"
    CANCELLATION_NOT_ALLOWED = "CANCELLATION_NOT_ALLOWED"
    PAYMENT_MISMATCH = "PAYMENT_MISMATCH"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"
    SLOT_CONFLICT = "SLOT_CONFLICT"
    CAPACITY_CONFLICT = "CAPACITY_CONFLICT"
    SLOT_IN_USE = "SLOT_IN_USE"


class BookingError(Exception):
    """Base business error with code, user-safe message and HTTP status."""

    code = None
    status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code.value}


class SlotNotFound(BookingError):
    code = ErrorCode.SLOT_NOT_FOUND
    status = 404

    def __init__(self, slot_id=None) -> None:
        super().__init__("Slot not found")
        self.slot_id = slot_id


class CapacityExceeded(BookingError):
    code = ErrorCode.CAPACITY_EXCEEDED
    status = 409

    def __init__(self, both_turfs: bool = False) -> None:
        super().__init__("Both turfs are not available" if both_turfs else "Slot is fully booked")
        self.both_turfs = both_turfs


class DuplicateBooking(BookingError):
    code = ErrorCode.DUPLICATE_BOOKING
    status = 409

    def __init__(self) -> None:
        super().__init__("You already have a booking for this slot")


class InvalidSignature(BookingError):
    code = ErrorCode.INVALID_SIGNATURE
    status = 400

    def __init__(self) -> None:
        super().__init__("Invalid payment signature")


class TicketNotFound(BookingError):
    code = ErrorCode.TICKET_NOT_FOUND
    status = 404

    def __init__(self) -> None:
        super().__init__("Invalid ticket")


class BookingNotConfirmed(BookingError):
    code = ErrorCode.BOOKING_NOT_CONFIRMED
    status = 400

    def __init__(self) -> None:
        super().__init__("Booking is not confirmed")


class BookingNotFound(BookingError):
    code = ErrorCode.BOOKING_NOT_FOUND
    status = 404

    def __init__(self) -> None:
        super().__init__("Booking not found")


class BookingNotCancellable(BookingError):
    code = ErrorCode.BOOKING_NOT_CANCELLABLE
    status = 400

    def __init__(self) -> None:
        super().__init__("Booking not cancellable")


class CancellationNotAllowed(BookingError):
    code = ErrorCode.CANCELLATION_NOT_ALLOWED
    status = 403

    def __init__(self, cutoff_hours: int) -> None:
        super().__init__(f"Cancellation not allowed within {cutoff_hours} hours of start")
        self.cutoff_hours = cutoff_hours


class PaymentMismatch(BookingError):
    code = ErrorCode.PAYMENT_MISMATCH
    status = 409

    def __init__(self, message: str = "Payment does not belong to this booking") -> None:
        super().__init__(message)


class PaymentGatewayError(BookingError):
    code = ErrorCode.PAYMENT_GATEWAY_ERROR
    status = 502

    def __init__(self, message: str = "Failed to create payment order") -> None:
        super().__init__(message)


class SlotConflict(BookingError):
    code = ErrorCode.SLOT_CONFLICT
    status = 409

    def __init__(self) -> None:
        super().__init__("Another slot already exists at this date and time")


class CapacityConflict(BookingError):
    code = ErrorCode.CAPACITY_CONFLICT
    status = 409

    def __init__(self, booked_units: int) -> None:
        super().__init__(f"Capacity cannot be lower than the {booked_units} unit(s) already booked")
        self.booked_units = booked_units


class SlotInUse(BookingError):
    code = ErrorCode.SLOT_IN_USE
    status = 409

    def __init__(self) -> None:
        super().__init__("Slot has active bookings")
