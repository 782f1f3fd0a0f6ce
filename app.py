from flask import Flask, jsonify
from pydantic import ValidationError

from config import Config
from routes import health_bp, slots_bp, booking_bp, payments_bp, webhook_bp, tickets_bp, audit_bp

from models import db
from flask_migrate import Migrate
from utils.auth_context import load_current_user
from utils.errors import BookingError
from utils.gateway import init_gateway
from utils.slot_cache import init_slot_cache


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(slots_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    init_slot_cache(app)
    init_gateway(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(ValidationError)
    def _validation_error(exc):
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return jsonify(error="Invalid request", details=details), 400

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from utils.ledger import release_expired_holds
from schemas import SlotBulkCreate
from utils.slot_generator import create_generated_slots, generate_time_slots

def register_cli(app):
    @app.cli.command("release-holds")
    def release_holds():
        """Cancel pending bookings whose payment hold has lapsed."""
        count = release_expired_holds()
        click.echo(f"Released {count} expired hold(s)")

    @app.cli.command("generate-slots")
    @click.option("--start-date", required=True, help="YYYY-MM-DD")
    @click.option("--end-date", required=True, help="YYYY-MM-DD")
    @click.option("--start-time", required=True, help="HH:MM")
    @click.option("--end-time", required=True, help="HH:MM (00:00 = end of day)")
    @click.option("--interval", type=int, default=60, show_default=True)
    @click.option("--price", type=int, required=True)
    @click.option("--capacity", type=int, default=3, show_default=True)
    def generate_slots(start_date, end_date, start_time, end_time, interval, price, capacity):
        """Bulk-create slots over a date range (existing date/time pairs are kept)."""
        try:
            window = SlotBulkCreate(
                start_date=start_date, end_date=end_date, start_time=start_time,
                end_time=end_time, interval=interval, price=price, capacity=capacity,
            )
        except ValidationError as exc:
            raise click.UsageError(str(exc))

        rows = generate_time_slots(
            window.start_date, window.end_date, window.start_time, window.end_time,
            window.interval, window.price, window.capacity,
        )
        summary = create_generated_slots(rows)
        click.echo(f"Created {summary['created']} slots, {summary['existing']} already existed")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
