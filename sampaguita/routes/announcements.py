"""
Announcement feed routes.

Announcements are shared by all users and are posted automatically
when events are created, updated or cancelled.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from ..schemas import AnnouncementSchema
from ..services import notification_service


announcements_bp = Blueprint("announcements", __name__)


@announcements_bp.route("/announcements", methods=["GET"])
@jwt_required()
def list_announcements() -> tuple[list[dict], int]:
    limit = request.args.get("limit", 50, type=int)
    announcements = notification_service.recent_announcements(limit=max(min(limit, 200), 1))
    return AnnouncementSchema(many=True).dump(announcements), 200


@announcements_bp.route("/announcements/unread", methods=["GET"])
@jwt_required()
def unread_announcements() -> tuple[dict, int]:
    """Unread count plus the ten most recent unread announcements."""
    announcements = notification_service.recent_announcements(limit=10, unread_only=True)
    return {
        "count": notification_service.unread_announcement_count(),
        "items": AnnouncementSchema(many=True).dump(announcements),
    }, 200


@announcements_bp.route("/announcements/<int:announcement_id>/read", methods=["POST"])
@jwt_required()
def mark_read(announcement_id: int) -> tuple[dict, int]:
    announcement = notification_service.mark_announcement_read(announcement_id)
    return AnnouncementSchema().dump(announcement), 200
