"""
Account routes for the senior registry.

Provides endpoints for logging in to obtain a JSON Web Token (JWT),
logging out and changing one's own password. The token carries the
account's role, admin flag, username and display name as claims; every
other blueprint authorizes requests from those verified claims.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import create_access_token, jwt_required

from .. import db
from ..errors import AuthenticationError, NotFoundError, ValidationError
from ..models import User
from ..schemas import UserSchema
from ..security import client_ip, current_actor, current_user_id
from ..services import auth_service
from ..services.activity_service import log_activity


auth_bp = Blueprint("auth", __name__)

INVALID_LOGIN = "Invalid username, password, or access level."


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[dict, int]:
    """Authenticate a user and return a JWT.

    Expects JSON with ``username``, ``password`` and optional
    ``access_level`` (``admin`` or ``staff``, default ``staff``). Every
    failure returns the same 401 message; the reason is only recorded in
    the activity log.
    """
    data = request.get_json() or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    access_level = (data.get("access_level") or "staff").lower()
    ip = client_ip()

    if not username or not password:
        raise ValidationError("Username and password are required.")
    if access_level not in auth_service.ACCESS_LEVELS:
        raise ValidationError("Access level must be 'admin' or 'staff'.", {"access_level": "Invalid access level."})

    status = auth_service.find_user_status(username)
    if status is False:
        log_activity(
            "Failed Login", f"Login attempt for inactive account: {username}",
            user_name=username, user_role="Unknown", ip_address=ip,
        )
        raise AuthenticationError(INVALID_LOGIN)

    user = auth_service.authenticate_with_role(username, password, access_level)
    if user is None:
        log_activity(
            "Failed Login", f"Failed login attempt for username: {username} (access level: {access_level})",
            user_name=username, user_role="Unknown", ip_address=ip,
        )
        raise AuthenticationError(INVALID_LOGIN)

    additional_claims = {
        "role": user.role.value,
        "is_admin": user.is_admin,
        "username": user.username,
        "name": user.name,
    }
    access_token = create_access_token(identity=str(user.id), additional_claims=additional_claims)
    log_activity(
        "Login", f"User logged in as {access_level}",
        user_name=user.username, user_role=user.role.value, ip_address=ip,
    )
    return {"access_token": access_token, "user": UserSchema().dump(user)}, 200


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout() -> tuple[dict, int]:
    """Record the logout; the client discards its token."""
    user_name, user_role = current_actor()
    log_activity("Logout", "User logged out", user_name=user_name, user_role=user_role, ip_address=client_ip())
    return {"message": "Logged out."}, 200


@auth_bp.route("/account/password", methods=["POST"])
@jwt_required()
def change_password() -> tuple[dict, int]:
    """Change the caller's password.

    Expects ``current_password`` and ``new_password`` (at least six
    characters).
    """
    data = request.get_json() or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    user = db.session.get(User, current_user_id())
    if user is None:
        raise NotFoundError("User not found.")
    if not user.check_password(current_password):
        raise ValidationError("Current password is incorrect.", {"current_password": "Incorrect password."})
    if len(new_password) < auth_service.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "New password must be at least 6 characters long.",
            {"new_password": "Too short."},
        )

    user.password_hash = auth_service.hash_password(new_password)
    db.session.commit()
    log_activity(
        "Change Password", "User changed their password",
        user_name=user.username, user_role=user.role.value, ip_address=client_ip(),
    )
    return {"message": "Password changed successfully."}, 200
