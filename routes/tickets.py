from flask import Blueprint, jsonify, g

from models.ticket import Ticket
from schemas import parse_body, TicketCreate, TicketVerify
from security.rbac import require_roles
from utils.auth_context import login_required
from utils.qr import render_qr_data_url
from utils.tickets import issue_ticket, verify_ticket

tickets_bp = Blueprint("tickets", __name__, url_prefix="/tickets")


def _with_qr(ticket: Ticket) -> dict:
    out = ticket.to_dict()
    out["qr_code"] = render_qr_data_url(ticket.payload())
    return out


# ---------- PLAYERS: get (or create) the ticket of a confirmed booking ----------
@tickets_bp.post("")
@login_required
def create_ticket():
    data = parse_body(TicketCreate)
    ticket = issue_ticket(data.booking_id, g.user.id)
    return jsonify(_with_qr(ticket)), 200


@tickets_bp.get("/me")
@login_required
def my_tickets():
    rows = Ticket.query.filter_by(user_id=g.user.id).order_by(Ticket.created_at.desc()).all()
    return jsonify([_with_qr(t) for t in rows]), 200


# ---------- ADMIN: scan at the gate ----------
@tickets_bp.post("/verify")
@require_roles("ADMIN")
def verify():
    data = parse_body(TicketVerify)
    result = verify_ticket(data.ticket_number, verifier_id=g.user.id)
    return jsonify(result.to_dict()), 200
