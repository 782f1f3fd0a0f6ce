from .db import db
from .audit_log import AuditLog
from .slot import Slot
from .booking import Booking
from .ticket import Ticket
