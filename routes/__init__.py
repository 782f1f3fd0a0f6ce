from .health import health_bp
from .slots import slots_bp
from .booking import booking_bp
from .payments import payments_bp
from .razorpay_webhook import webhook_bp
from .tickets import tickets_bp
from .audit_logs import audit_bp
