"""
Administrator routes for managing staff accounts.

Every endpoint here requires a token whose ``is_admin`` claim is set.
New accounts are created as non-admin Staff; when no password is given
one is derived from the person's name and returned once in the
response so the administrator can hand it over.
"""

from __future__ import annotations

from flask import Blueprint, request

from .. import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Role, User
from ..schemas import UserSchema
from ..security import admin_required, audit, current_user_id
from ..services import auth_service, dashboard_service, notification_service
from ..util.sanitization import is_valid_username, strip_tags


admin_bp = Blueprint("admin", __name__)


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def _username_taken(username: str, exclude_id: int | None = None) -> bool:
    query = User.query.filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users() -> tuple[list[dict], int]:
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return UserSchema(many=True).dump(users), 200


@admin_bp.route("/users", methods=["POST"])
@admin_required
def add_user() -> tuple[dict, int]:
    """Create a Staff account.

    Expects ``name`` and ``username``; ``password`` is optional.
    """
    data = request.get_json() or {}
    name = strip_tags(data.get("name"))
    username = (data.get("username") or "").strip()
    errors = {}
    if not name:
        errors["name"] = "Name is required."
    elif len(name) > 100:
        errors["name"] = "Name cannot exceed 100 characters."
    if not is_valid_username(username):
        errors["username"] = "Username may only contain letters, numbers and underscores (max 50)."
    password = data.get("password") or ""
    if password and len(password) < auth_service.MIN_PASSWORD_LENGTH:
        errors["password"] = "Password must be at least 6 characters long."
    if errors:
        raise ValidationError("Please correct the validation errors.", errors)
    if _username_taken(username):
        raise ConflictError("Username already exists. Please choose a different username.")

    generated = not password
    if generated:
        password = auth_service.generate_password_from_name(name)
    user = User(name=name, username=username, role=Role.STAFF, is_admin=False, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    audit("Add User", f"Added new staff user: {name} ({username})")

    payload = {"user": UserSchema().dump(user)}
    if generated:
        payload["generated_password"] = password
    return payload, 201


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@admin_required
def edit_user(user_id: int) -> tuple[dict, int]:
    """Update ``name``, ``username``, ``role`` and ``is_admin``."""
    user = _get_user(user_id)
    data = request.get_json() or {}
    if "name" in data:
        name = strip_tags(data.get("name"))
        if not name:
            raise ValidationError("Name is required.", {"name": "Required."})
        user.name = name
    if "username" in data:
        username = (data.get("username") or "").strip()
        if not is_valid_username(username):
            raise ValidationError("Invalid username.", {"username": "Invalid username."})
        if _username_taken(username, exclude_id=user.id):
            raise ConflictError("Username already exists. Please choose a different username.")
        user.username = username
    if "role" in data:
        try:
            user.role = Role(data["role"])
        except ValueError:
            raise ValidationError("Role must be 'Administrator' or 'Staff'.", {"role": "Invalid role."})
    if "is_admin" in data:
        if user.id == current_user_id() and not data["is_admin"]:
            raise ValidationError("You cannot remove your own admin rights.")
        user.is_admin = bool(data["is_admin"])
    db.session.commit()
    audit("Edit User", f"Updated user: {user.name} ({user.username})")
    return UserSchema().dump(user), 200


@admin_bp.route("/users/<int:user_id>/toggle", methods=["POST"])
@admin_required
def toggle_user(user_id: int) -> tuple[dict, int]:
    """Activate or deactivate an account. Admins cannot deactivate themselves."""
    user = _get_user(user_id)
    if user.id == current_user_id():
        raise ValidationError("You cannot deactivate your own account.")
    user.is_active = not user.is_active
    db.session.commit()
    state = "activated" if user.is_active else "deactivated"
    audit("Toggle User Status", f"User {user.username} {state}")
    return UserSchema().dump(user), 200


@admin_bp.route("/users/<int:user_id>/reset-password", methods=["POST"])
@admin_required
def reset_password(user_id: int) -> tuple[dict, int]:
    """Set a new password.

    With ``new_password`` (and matching ``confirm_password`` if given)
    that password is used; otherwise one is generated from the user's
    name and returned.
    """
    user = _get_user(user_id)
    data = request.get_json(silent=True) or {}
    new_password = data.get("new_password")
    payload = {"message": "Password reset successfully."}
    if new_password:
        confirm = data.get("confirm_password")
        if confirm is not None and confirm != new_password:
            raise ValidationError("Passwords do not match.", {"confirm_password": "Does not match."})
        if len(new_password) < auth_service.MIN_PASSWORD_LENGTH:
            raise ValidationError("Password must be at least 6 characters long.", {"new_password": "Too short."})
        action = "Reset Password"
    else:
        new_password = auth_service.generate_password_from_name(user.name)
        payload["generated_password"] = new_password
        action = "Quick Reset Password"
    user.password_hash = auth_service.hash_password(new_password)
    db.session.commit()
    audit(action, f"Password reset for user '{user.name}' ({user.username})")
    notification_service.notify(
        user.id, "Password reset", "An administrator reset your password.", type="warning"
    )
    return payload, 200


@admin_bp.route("/dashboard", methods=["GET"])
@admin_required
def dashboard() -> tuple[dict, int]:
    return dashboard_service.dashboard(include_users=True), 200
