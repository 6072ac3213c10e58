"""Headline counts for the admin and home dashboards."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import DataAccessError
from ..models import Event, EventStatus, Senior, SeniorStatus, User
from .senior_service import ZONE_RANGE

logger = logging.getLogger(__name__)


def senior_overview(now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    base = Senior.query
    by_zone = dict(
        db.session.query(Senior.zone, func.count(Senior.id)).group_by(Senior.zone).all()
    )
    return {
        "total_seniors": base.count(),
        "active_seniors": base.filter(Senior.status == SeniorStatus.ACTIVE).count(),
        "archived_seniors": base.filter(Senior.status == SeniorStatus.ARCHIVED).count(),
        "male_count": base.filter(func.lower(Senior.gender) == "male").count(),
        "female_count": base.filter(func.lower(Senior.gender) == "female").count(),
        "age_groups": {
            "60-69": base.filter(Senior.age.between(60, 69)).count(),
            "70-79": base.filter(Senior.age.between(70, 79)).count(),
            "80-89": base.filter(Senior.age.between(80, 89)).count(),
            "90+": base.filter(Senior.age >= 90).count(),
        },
        "zones": {
            f"Zone {zone}": by_zone.get(zone, 0)
            for zone in range(ZONE_RANGE[0], ZONE_RANGE[1] + 1)
        },
        "with_contact": base.filter(Senior.contact_number.isnot(None), Senior.contact_number != "").count(),
        "new_this_week": base.filter(Senior.created_at >= now - timedelta(days=7)).count(),
    }


def event_overview(now: Optional[datetime] = None, organizer: Optional[str] = None) -> dict:
    today = (now or datetime.utcnow()).date()
    base = Event.query.filter(Event.is_deleted == False)  # noqa: E712
    if organizer:
        base = base.filter(Event.organized_by.like(f"%{organizer}%"))
    attendance, capacity = (
        base.with_entities(
            func.coalesce(func.sum(Event.attendance_count), 0),
            func.coalesce(func.sum(Event.max_capacity), 0),
        ).one()
    )
    return {
        "total_events": base.count(),
        "upcoming_events": base.filter(Event.event_date >= today).count(),
        "today_events": base.filter(Event.event_date == today).count(),
        "by_status": {
            status.value: base.filter(Event.status == status).count() for status in EventStatus
        },
        "total_attendance": int(attendance),
        "total_capacity": int(capacity),
    }


def user_overview() -> dict:
    return {
        "total_users": User.query.count(),
        "active_users": User.query.filter_by(is_active=True).count(),
        "admin_users": User.query.filter_by(is_admin=True).count(),
    }


def dashboard(now: Optional[datetime] = None, organizer: Optional[str] = None, include_users: bool = False) -> dict:
    try:
        stats = {
            "seniors": senior_overview(now),
            "events": event_overview(now, organizer),
        }
        if include_users:
            stats["users"] = user_overview()
    except SQLAlchemyError as exc:
        logger.exception("Error loading dashboard statistics")
        raise DataAccessError() from exc
    return stats
