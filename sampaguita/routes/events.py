"""
Routes for scheduling community events.

Administrators manage every event. Staff see and change only the
events they organize, and new events they create default to naming
them as organizer. Creating or updating an event posts an
announcement to every user.
"""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, Response, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ValidationError
from ..schemas import EventSchema
from ..security import admin_required, audit, current_username, is_admin
from ..services import event_service, notification_service, report_service
from ..services.soft_delete_service import archive_event, purge_archived_events, purge_event, restore_event


events_bp = Blueprint("events", __name__)


def _listing_filters() -> dict:
    return {
        "search": request.args.get("search"),
        "status": request.args.get("status"),
        "event_type": request.args.get("type"),
        "date_filter": request.args.get("date_filter"),
        "organizer": None if is_admin() else current_username(),
    }


def _editable_event(event_id: int, include_archived: bool = False):
    event = event_service.get_event(event_id, include_archived=include_archived)
    event_service.ensure_can_modify(event, current_username(), is_admin())
    return event


@events_bp.route("/events", methods=["GET"])
@jwt_required()
def list_events() -> tuple[list[dict], int]:
    """List live events, soonest first.

    Supports ``search``, ``status``, ``type`` and ``date_filter``
    (``today``, ``tomorrow``, ``this_week``, ``next_week``,
    ``this_month``, ``next_month``, ``past``, ``upcoming``).
    """
    events = event_service.query_events(**_listing_filters())
    return EventSchema(many=True).dump(events), 200


@events_bp.route("/events/archived", methods=["GET"])
@jwt_required()
def list_archived_events() -> tuple[list[dict], int]:
    filters = _listing_filters()
    filters.pop("date_filter")
    events = event_service.query_events(archived=True, **filters)
    return EventSchema(many=True).dump(events), 200


@events_bp.route("/events", methods=["POST"])
@jwt_required()
def create_event() -> tuple[dict, int]:
    """Create an event.

    Expects ``title`` and ``event_date`` (not in the past). Optional
    ``description``, ``event_type``, ``event_time``, ``location``,
    ``organized_by``, ``max_capacity`` and ``attendance_count``.
    """
    data = request.get_json() or {}
    username = current_username()
    event = event_service.create_event(data, username, is_admin())
    notification_service.announce_event_created(event, username)
    audit("Create Event", f"Created event: {event.title} on {event.event_date.isoformat()}")
    return EventSchema().dump(event), 201


@events_bp.route("/events/<int:event_id>", methods=["GET"])
@jwt_required()
def get_event(event_id: int) -> tuple[dict, int]:
    event = event_service.get_event(event_id)
    payload = EventSchema().dump(event)
    payload["can_edit"] = is_admin() or event.is_organized_by(current_username())
    return payload, 200


@events_bp.route("/events/<int:event_id>", methods=["PUT"])
@jwt_required()
def update_event(event_id: int) -> tuple[dict, int]:
    event = event_service.get_event(event_id)
    data = request.get_json() or {}
    username = current_username()
    event_service.update_event(event, data, username, is_admin())
    notification_service.announce_event_updated(event, username)
    audit("Update Event", f"Updated event: {event.title}")
    return EventSchema().dump(event), 200


@events_bp.route("/events/<int:event_id>/attendance", methods=["POST"])
@jwt_required()
def update_attendance(event_id: int) -> tuple[dict, int]:
    """Change the attendance counter.

    ``count`` adds to the current attendance (it may be negative);
    ``new_attendance`` replaces it.
    """
    event = _editable_event(event_id)
    data = request.get_json() or {}
    try:
        count = int(data["count"]) if data.get("count") is not None else None
        new_attendance = int(data["new_attendance"]) if data.get("new_attendance") is not None else None
    except (TypeError, ValueError):
        raise ValidationError("Attendance values must be whole numbers.")
    event_service.update_attendance(event, count=count, new_attendance=new_attendance)
    audit("Update Attendance", f"Attendance for '{event.title}' set to {event.attendance_count}")
    return {
        "success": True,
        "message": f"Attendance updated to {event.attendance_count}",
        "attendance": event.attendance_count,
        "is_full": event.is_full,
        "percentage": event_service.attendance_percentage(event),
    }, 200


@events_bp.route("/events/<int:event_id>/status", methods=["POST"])
@jwt_required()
def update_status(event_id: int) -> tuple[dict, int]:
    event = _editable_event(event_id)
    data = request.get_json() or {}
    event_service.set_status(event, data.get("status") or "")
    audit("Update Event Status", f"Event '{event.title}' status changed to {event.status.value}")
    return EventSchema().dump(event), 200


@events_bp.route("/events/<int:event_id>/archive", methods=["POST"])
@jwt_required()
def archive(event_id: int) -> tuple[dict, int]:
    event = _editable_event(event_id)
    archive_event(event)
    db.session.commit()
    audit("Archive Event", f"Archived event: {event.title}")
    return EventSchema().dump(event), 200


@events_bp.route("/events/<int:event_id>/restore", methods=["POST"])
@jwt_required()
def restore(event_id: int) -> tuple[dict, int]:
    event = _editable_event(event_id, include_archived=True)
    restore_event(event)
    db.session.commit()
    audit("Restore Event", f"Restored event: {event.title}")
    return EventSchema().dump(event), 200


@events_bp.route("/events/<int:event_id>", methods=["DELETE"])
@jwt_required()
def delete_event(event_id: int) -> tuple[dict, int]:
    """Permanently delete an archived event."""
    event = _editable_event(event_id, include_archived=True)
    if not event.is_deleted:
        raise ValidationError("Only archived events can be permanently deleted.")
    title = event.title
    notification_service.announce_event_cancelled(event, current_username())
    purge_event(event)
    db.session.commit()
    audit("Delete Event", f"Permanently deleted event: {title}")
    return {"message": "Event permanently deleted."}, 200


@events_bp.route("/events/archived", methods=["DELETE"])
@admin_required
def delete_all_archived() -> tuple[dict, int]:
    deleted = purge_archived_events()
    db.session.commit()
    audit("Bulk Delete Events", f"Permanently deleted {deleted} archived events")
    return {"message": f"{deleted} archived events permanently deleted.", "deleted": deleted}, 200


@events_bp.route("/events/export", methods=["GET"])
@jwt_required()
def export_events() -> Response:
    events = event_service.query_events(**_listing_filters())
    audit("Export Events", f"Exported {len(events)} events")
    filename = f"Events_{datetime.now():%Y%m%d%H%M%S}.csv"
    return Response(
        report_service.events_csv(events),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
