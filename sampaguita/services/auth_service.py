"""Credential checks and password helpers.

Lookups return ``None`` for "no match" rather than raising, so the
login route can answer every failure with one generic message. An
inactive account is reported separately by :func:`find_user_status`
for audit purposes only.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from ..errors import DataAccessError
from ..models import User

logger = logging.getLogger(__name__)

ACCESS_LEVELS = ("admin", "staff")
MIN_PASSWORD_LENGTH = 6


def _find_user(username: str) -> Optional[User]:
    try:
        return User.query.filter_by(username=username).first()
    except SQLAlchemyError as exc:
        logger.exception("Error looking up user %s", username)
        raise DataAccessError() from exc


def find_user_status(username: str) -> Optional[bool]:
    """Return the account's ``is_active`` flag, or ``None`` if there is no such user."""
    user = _find_user(username)
    return None if user is None else user.is_active


def authenticate(username: str, password: str) -> Optional[User]:
    """Return the active user whose password matches, else ``None``."""
    if not username or not password:
        return None
    user = _find_user(username)
    if user is None or not user.is_active:
        return None
    if not user.check_password(password):
        return None
    return user


def authenticate_with_role(username: str, password: str, access_level: str) -> Optional[User]:
    """Like :func:`authenticate`, but also checks the requested access level.

    Signing in at the ``admin`` level requires an admin account.
    Admins may sign in at the ``staff`` level.
    """
    user = authenticate(username, password)
    if user is None:
        return None
    if access_level == "admin" and not user.is_admin:
        logger.info("User %s requested admin access without admin rights", username)
        return None
    return user


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def generate_password_from_name(full_name: Optional[str]) -> str:
    """Build a default password from a person's name.

    The first and last name (letters only, lowercased) are joined and
    ``123`` appended; short results are padded with ``1`` to eight
    characters. Returns ``password123`` when no letters remain.
    """
    cleaned = re.sub(r"[^A-Za-z\s]", "", full_name or "")
    parts = cleaned.split()
    if not parts:
        return "password123"
    if len(parts) == 1:
        base = parts[0].lower()
    else:
        base = parts[0].lower() + parts[-1].lower()
    return (base + "123").ljust(8, "1")
