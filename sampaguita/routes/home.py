"""
Home dashboard and per-user notification routes.

Staff dashboards count only the events they organize; administrators
see every event.
"""

from __future__ import annotations

from flask import Blueprint
from flask_jwt_extended import jwt_required

from ..schemas import ActivityLogSchema, EventSchema, NotificationSchema
from ..security import current_user_id, current_username, is_admin
from ..services import activity_service, dashboard_service, event_service, notification_service


home_bp = Blueprint("home", __name__)


@home_bp.route("/dashboard", methods=["GET"])
@jwt_required()
def dashboard() -> tuple[dict, int]:
    stats = dashboard_service.dashboard(organizer=None if is_admin() else current_username())
    recent = activity_service.query_logs(page=1, page_size=10)["items"]
    stats["recent_activities"] = ActivityLogSchema(many=True).dump(recent)
    stats["upcoming"] = EventSchema(many=True).dump(event_service.upcoming_events())
    stats["unread_announcements"] = notification_service.unread_announcement_count()
    return stats, 200


@home_bp.route("/notifications", methods=["GET"])
@jwt_required()
def list_notifications() -> tuple[dict, int]:
    notifications = notification_service.user_notifications(current_user_id())
    return {
        "items": NotificationSchema(many=True).dump(notifications),
        "unread_count": sum(1 for n in notifications if not n.is_read),
    }, 200


@home_bp.route("/notifications/<int:notification_id>/read", methods=["POST"])
@jwt_required()
def mark_notification_read(notification_id: int) -> tuple[dict, int]:
    notification = notification_service.mark_notification_read(current_user_id(), notification_id)
    return NotificationSchema().dump(notification), 200


@home_bp.route("/notifications/read-all", methods=["POST"])
@jwt_required()
def mark_all_notifications_read() -> tuple[dict, int]:
    updated = notification_service.mark_all_notifications_read(current_user_id())
    return {"updated": updated}, 200


@home_bp.route("/notifications/<int:notification_id>", methods=["DELETE"])
@jwt_required()
def delete_notification(notification_id: int) -> tuple[dict, int]:
    notification_service.delete_notification(current_user_id(), notification_id)
    return {"message": "Notification deleted."}, 200
