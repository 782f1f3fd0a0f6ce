"""Pytest configuration and shared fixtures."""

import hashlib
import hmac
import threading
from datetime import date, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.booking import Booking
from models.slot import Slot, is_night_hour
from utils.errors import PaymentGatewayError
from utils.ledger import attach_order, confirm_payment, request_booking

RAZORPAY_TEST_SECRET = "test_key_secret"
WEBHOOK_TEST_SECRET = "test_webhook_secret"

USER = {"X-User-Id": "user-1"}
OTHER_USER = {"X-User-Id": "user-2"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Roles": "ADMIN"}


class FakeGateway:
    """Stands in for RazorpayGateway; records orders instead of calling Razorpay."""

    def __init__(self):
        self.orders = []
        self.fail = False

    def create_order(self, amount_rupees, receipt, notes):
        if self.fail:
            raise PaymentGatewayError()
        order = {
            "id": f"order_test{len(self.orders) + 1}",
            "amount": amount_rupees * 100,
            "currency": "INR",
        }
        self.orders.append((order, receipt, notes))
        return order


@pytest.fixture
def app(tmp_path):
    # A file database so worker threads get their own connections
    class TestConfig(Config):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
        TESTING = True
        RAZORPAY_KEY_ID = "rzp_test_key"
        RAZORPAY_KEY_SECRET = RAZORPAY_TEST_SECRET
        RAZORPAY_WEBHOOK_SECRET = WEBHOOK_TEST_SECRET
        PENDING_HOLD_SECONDS = 600
        CANCEL_CUTOFF_HOURS = 12
        SLOT_CACHE_TTL_SECONDS = 30

    app = create_app(TestConfig)
    app.extensions["payment_gateway"] = FakeGateway()

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app) -> FakeGateway:
    return app.extensions["payment_gateway"]


@pytest.fixture
def game_day() -> str:
    return (date.today() + timedelta(days=3)).isoformat()


@pytest.fixture
def make_slot(app, game_day):
    def _make(day=None, time="19:00", capacity=3, price=1200, enabled=True) -> Slot:
        slot = Slot(
            date=day or game_day,
            time=time,
            price=price,
            total_capacity=capacity,
            booked_units=0,
            is_night=is_night_hour(time),
            is_enabled=enabled,
        )
        db.session.add(slot)
        db.session.commit()
        return slot
    return _make


def signed(order_id: str, payment_id: str, secret: str = RAZORPAY_TEST_SECRET) -> str:
    """Signature Razorpay Checkout returns: HMAC-SHA256 of "order_id|payment_id"."""
    return hmac.new(secret.encode("utf-8"), f"{order_id}|{payment_id}".encode("utf-8"), hashlib.sha256).hexdigest()


def hold_with_order(slot_id: int, day: str, user_id: str, both_turfs: bool = False):
    """A pending booking with a Razorpay order attached, as POST /payments/orders leaves it."""
    booking = request_booking(slot_id, day, user_id, both_turfs=both_turfs)
    order_id = f"order_b{booking.id}"
    attach_order(booking.id, order_id)
    return reload(Booking, booking.id), order_id


def paid_booking(slot_id: int, day: str, user_id: str, both_turfs: bool = False, payment_id: str = None):
    booking, order_id = hold_with_order(slot_id, day, user_id, both_turfs=both_turfs)
    payment_id = payment_id or f"pay_b{booking.id}"
    return confirm_payment(booking.id, order_id, payment_id, signed(order_id, payment_id))


def race(app, target, calls):
    """Run ``target(*args)`` for every args tuple in its own thread, all released together.

    Returns the results in call order; an exception raised by a call is
    returned in its place.
    """
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def worker(index, args):
        with app.app_context():
            barrier.wait()
            try:
                results[index] = target(*args)
            except Exception as exc:
                results[index] = exc
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def reload(model, pk):
    return db.session.get(model, pk, populate_existing=True)
