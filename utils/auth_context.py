from dataclasses import dataclass, field
from functools import wraps
from flask import g, jsonify, request, current_app


@dataclass(frozen=True)
class CurrentUser:
    """Identity asserted by the upstream identity provider."""

    id: str
    roles: frozenset = field(default_factory=frozenset)


def load_current_user():
    user_header = current_app.config.get("IDENTITY_USER_HEADER", "X-User-Id")
    roles_header = current_app.config.get("IDENTITY_ROLES_HEADER", "X-User-Roles")

    user_id = (request.headers.get(user_header) or "").strip()
    if not user_id:
        g.user = None
        return

    raw_roles = request.headers.get(roles_header) or ""
    roles = frozenset(r.strip().upper() for r in raw_roles.split(",") if r.strip())
    g.user = CurrentUser(id=user_id[:128], roles=roles)

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
