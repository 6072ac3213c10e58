"""Audit trail recording, querying and retention.

``log_activity`` is deliberately best-effort: a failure to write the
audit row is logged and swallowed so that it never breaks the request
that triggered it. Everything else in this module raises
:class:`~sampaguita.errors.DataAccessError` on database failure.
"""
from __future__ import annotations

import logging
from datetime import datetime, date, time, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import DataAccessError
from ..models import ActivityLog
from .broadcast import broadcaster, NEW_ACTIVITY, LOGS_CLEARED

logger = logging.getLogger(__name__)


def log_activity(
    action: str,
    details: str = "",
    *,
    user_name: Optional[str] = None,
    user_role: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[ActivityLog]:
    """Insert an audit row and notify connected clients.

    Returns the saved row, or ``None`` when the insert failed.
    """
    entry = ActivityLog(
        user_name=user_name or "System",
        user_role=user_role or "System",
        action=action,
        details=details or "",
        ip_address=ip_address or "Unknown",
        created_at=datetime.utcnow(),
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error logging activity: %s", action)
        return None

    logger.info("Activity logged: %s by %s", action, entry.user_name)
    broadcaster.publish(NEW_ACTIVITY, {
        "user_name": entry.user_name,
        "user_role": entry.user_role,
        "action": entry.action,
        "details": entry.details,
        "ip_address": entry.ip_address,
        "created_at": entry.created_at.isoformat(),
    })
    return entry


def _filtered_query(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    user_role: Optional[str] = None,
    action: Optional[str] = None,
    search: Optional[str] = None,
):
    query = ActivityLog.query
    if date_from:
        query = query.filter(ActivityLog.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(ActivityLog.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
    if user_role:
        query = query.filter(ActivityLog.user_role == user_role)
    if action:
        query = query.filter(ActivityLog.action == action)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            ActivityLog.user_name.like(pattern),
            ActivityLog.details.like(pattern),
            ActivityLog.action.like(pattern),
            ActivityLog.ip_address.like(pattern),
        ))
    return query


def query_logs(page: int = 1, page_size: int = 50, **filters) -> dict:
    """Return one page of audit rows, newest first, with paging totals."""
    page = max(page, 1)
    page_size = max(min(page_size, 500), 1)
    try:
        query = _filtered_query(**filters)
        total = query.count()
        rows = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error loading activity logs")
        raise DataAccessError() from exc
    return {
        "items": rows,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size,
    }


def all_logs() -> list[ActivityLog]:
    try:
        return ActivityLog.query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception("Error loading activity logs for export")
        raise DataAccessError() from exc


def clear_logs(keep: int) -> int:
    """Delete every audit row except the newest ``keep``; returns rows deleted."""
    try:
        keep_ids = [
            row.id for row in
            db.session.query(ActivityLog.id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(keep)
        ]
        query = ActivityLog.query
        if keep_ids:
            query = query.filter(ActivityLog.id.notin_(keep_ids))
        deleted = query.delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error clearing activity logs")
        raise DataAccessError() from exc
    broadcaster.publish(LOGS_CLEARED, {"deleted": deleted})
    return deleted


def activity_statistics(now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    today = datetime.combine(now.date(), time.min)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)
    try:
        total = db.session.query(func.count(ActivityLog.id)).scalar() or 0
        today_count = (
            db.session.query(func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= today).scalar() or 0
        )
        week_count = (
            db.session.query(func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= week_ago).scalar() or 0
        )
        most_active = (
            db.session.query(ActivityLog.user_name, func.count(ActivityLog.id).label("n"))
            .filter(ActivityLog.created_at >= week_ago)
            .group_by(ActivityLog.user_name)
            .order_by(func.count(ActivityLog.id).desc())
            .first()
        )
        by_role = dict(
            db.session.query(ActivityLog.user_role, func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= month_ago)
            .group_by(ActivityLog.user_role)
            .all()
        )
        top_actions = dict(
            db.session.query(ActivityLog.action, func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= week_ago)
            .group_by(ActivityLog.action)
            .order_by(func.count(ActivityLog.id).desc())
            .limit(10)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error getting activity statistics")
        raise DataAccessError() from exc
    return {
        "total_activities": total,
        "today_activities": today_count,
        "this_week_activities": week_count,
        "most_active_user": most_active[0] if most_active else "N/A",
        "activities_by_role": by_role,
        "recent_activity_types": top_actions,
    }
