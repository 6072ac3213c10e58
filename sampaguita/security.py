"""Authorization helpers built on the JWT claims issued at login.

The login route stores ``role``, ``is_admin``, ``username`` and ``name``
as additional claims on the access token. Routes read those verified
claims instead of re-deriving role strings on every request.
"""
from __future__ import annotations

from functools import wraps

from flask import request
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from .errors import AuthorizationError


def is_admin() -> bool:
    """Return True if the current access token carries admin rights."""
    return bool(get_jwt().get("is_admin"))


def current_user_id() -> int | None:
    try:
        return int(get_jwt_identity())
    except (TypeError, ValueError):
        return None


def current_username() -> str:
    return get_jwt().get("username", "")


def current_actor() -> tuple[str, str]:
    """Return ``(user_name, user_role)`` for audit logging.

    Works on routes without ``@jwt_required``; anonymous callers are
    reported as ``System``.
    """
    verify_jwt_in_request(optional=True)
    claims = get_jwt()
    return claims.get("username") or "System", claims.get("role") or "System"


def client_ip() -> str:
    return request.remote_addr or "Unknown"


def admin_required(fn):
    """Usage: ``@admin_required`` on a view that only admins may call."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if not is_admin():
            raise AuthorizationError("Access denied. Admin privileges required.")
        return fn(*args, **kwargs)
    return wrapper


def audit(action: str, details: str = ""):
    """Write an activity log entry attributed to the current caller."""
    from .services.activity_service import log_activity

    user_name, user_role = current_actor()
    return log_activity(action, details, user_name=user_name, user_role=user_role, ip_address=client_ip())
