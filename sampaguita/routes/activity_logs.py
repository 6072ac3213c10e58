"""
Routes for the audit trail.

Besides paging, filtering and exporting the activity log, this module
exposes ``GET /activity-logs/stream``: a Server-Sent Events feed that
pushes ``new_activity`` and ``logs_cleared`` events to every connected
client as they happen.
"""

from __future__ import annotations

from datetime import datetime

from dateutil.parser import parse as parse_date  # type: ignore
from flask import Blueprint, Response, current_app, request, stream_with_context
from flask_jwt_extended import jwt_required

from ..errors import DataAccessError, ValidationError
from ..schemas import ActivityLogSchema
from ..security import admin_required, audit
from ..services import activity_service, report_service
from ..services.broadcast import broadcaster


activity_logs_bp = Blueprint("activity_logs", __name__)


def _date_arg(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_date(value).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid '{name}' date. Use ISO format YYYY-MM-DD.", {name: "Invalid date."})


def _filters() -> dict:
    return {
        "date_from": _date_arg("date_from"),
        "date_to": _date_arg("date_to"),
        "user_role": request.args.get("user_role") or None,
        "action": request.args.get("action") or None,
        "search": request.args.get("search") or None,
    }


@activity_logs_bp.route("/activity-logs", methods=["GET"])
@jwt_required()
def list_logs() -> tuple[dict, int]:
    """Return a page of activity, newest first.

    Supports ``page``, ``page_size``, ``date_from``, ``date_to``,
    ``user_role``, ``action`` and ``search``.
    """
    page = request.args.get("page", 1, type=int)
    page_size = request.args.get("page_size", 50, type=int)
    result = activity_service.query_logs(page=page, page_size=page_size, **_filters())
    result["items"] = ActivityLogSchema(many=True).dump(result["items"])
    return result, 200


@activity_logs_bp.route("/activity-logs/export", methods=["GET"])
@jwt_required()
def export_logs() -> Response:
    logs = activity_service.all_logs()
    audit("Export Activity Logs", f"Exported {len(logs)} activity log entries")
    filename = f"ActivityLogs_{datetime.now():%Y%m%d_%H%M%S}.csv"
    return Response(
        report_service.activity_csv(logs),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@activity_logs_bp.route("/activity-logs/clear", methods=["POST"])
@admin_required
def clear_logs() -> tuple[dict, int]:
    """Delete all but the newest ``ACTIVITY_LOG_RETENTION`` entries."""
    keep = current_app.config["ACTIVITY_LOG_RETENTION"]
    deleted = activity_service.clear_logs(keep)
    audit("Clear Logs", f"Cleared {deleted} old activity log entries (kept latest {keep})")
    return {"message": f"Cleared {deleted} old log entries.", "deleted": deleted}, 200


@activity_logs_bp.route("/activity-logs/statistics", methods=["GET"])
@jwt_required()
def statistics() -> tuple[dict, int]:
    try:
        return activity_service.activity_statistics(), 200
    except DataAccessError as err:
        current_app.logger.warning("Activity statistics unavailable: %s", err)
        return {
            "total_activities": 0,
            "today_activities": 0,
            "this_week_activities": 0,
            "most_active_user": "N/A",
            "activities_by_role": {},
            "recent_activity_types": {},
            "message": "Error loading statistics. Please try again.",
            "message_type": "danger",
        }, 200


@activity_logs_bp.route("/activity-logs/stream", methods=["GET"])
@jwt_required()
def stream() -> Response:
    """Server-Sent Events feed of new activity."""
    queue = broadcaster.subscribe()
    return Response(
        stream_with_context(broadcaster.stream(queue)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
