"""Event scheduling rules.

Staff accounts only see and change events whose ``organized_by`` names
them; administrators see everything. Attendance is never negative and,
when a capacity is set, never above it.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.parser import parse as parse_date  # type: ignore
from dateutil.relativedelta import relativedelta  # type: ignore
from sqlalchemy import or_

from .. import db
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models import Event, EventStatus
from ..util.sanitization import strip_tags

logger = logging.getLogger(__name__)

DATE_FILTERS = ("today", "tomorrow", "this_week", "next_week", "this_month", "next_month", "past", "upcoming")


def _date_range(name: str, today: date) -> tuple[Optional[date], Optional[date]]:
    """Inclusive ``(start, end)`` for a named filter; ``None`` means open-ended."""
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)
    if name == "today":
        return today, today
    if name == "tomorrow":
        return today + timedelta(days=1), today + timedelta(days=1)
    if name == "this_week":
        return week_start, week_start + timedelta(days=6)
    if name == "next_week":
        return week_start + timedelta(days=7), week_start + timedelta(days=13)
    if name == "this_month":
        return month_start, month_start + relativedelta(months=1, days=-1)
    if name == "next_month":
        start = month_start + relativedelta(months=1)
        return start, start + relativedelta(months=1, days=-1)
    if name == "past":
        return None, today - timedelta(days=1)
    if name == "upcoming":
        return today, None
    raise ValidationError(
        f"Unknown date filter '{name}'.", {"date_filter": f"Use one of: {', '.join(DATE_FILTERS)}."}
    )


def parse_status(value: str) -> EventStatus:
    try:
        return EventStatus(value.strip().capitalize())
    except (AttributeError, ValueError):
        raise ValidationError(
            "Invalid event status.",
            {"status": f"Use one of: {', '.join(s.value for s in EventStatus)}."},
        )


def query_events(
    *,
    archived: bool = False,
    search: Optional[str] = None,
    status: Optional[str] = None,
    event_type: Optional[str] = None,
    date_filter: Optional[str] = None,
    organizer: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Event]:
    """List live (or archived) events matching the filters, soonest first.

    ``organizer`` restricts the listing to events organized by that
    username, which is how staff listings are scoped.
    """
    query = Event.query.filter(Event.is_deleted == archived)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Event.title.like(pattern),
            Event.description.like(pattern),
            Event.location.like(pattern),
            Event.organized_by.like(pattern),
        ))
    if status:
        query = query.filter(Event.status == parse_status(status))
    if event_type:
        query = query.filter(Event.event_type == event_type)
    if date_filter:
        start, end = _date_range(date_filter, today or date.today())
        if start is not None:
            query = query.filter(Event.event_date >= start)
        if end is not None:
            query = query.filter(Event.event_date <= end)
    if organizer:
        query = query.filter(Event.organized_by.like(f"%{organizer}%"))
    if archived:
        return query.order_by(Event.deleted_at.desc()).all()
    return query.order_by(Event.event_date, Event.event_time).all()


def get_event(event_id: int, include_archived: bool = False) -> Event:
    event = db.session.get(Event, event_id)
    if event is None or (event.is_deleted and not include_archived):
        raise NotFoundError("Event not found or has been deleted.")
    return event


def ensure_can_modify(event: Event, username: str, admin: bool) -> None:
    if admin:
        return
    if not event.is_organized_by(username):
        raise AuthorizationError("You can only modify events that you organize.")


def _as_optional_int(value, field: str, errors: dict) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors[field] = "Must be a whole number."
        return None
    if number < 0:
        errors[field] = "Cannot be negative."
    return number


def validate_event(data: dict, username: str, admin: bool, existing: Optional[Event] = None,
                   today: Optional[date] = None) -> dict:
    """Check an event payload and return cleaned column values.

    A new event may not be dated in the past. Staff default to
    organizing their own events and may not name someone else.
    """
    today = today or date.today()

    def pick(key, default=None):
        if key in data:
            return data[key]
        return getattr(existing, key) if existing is not None else default

    errors: dict[str, str] = {}

    title = strip_tags(pick("title"))
    if not title:
        errors["title"] = "Title is required."
    elif len(title) > 200:
        errors["title"] = "Title cannot exceed 200 characters."

    event_date = pick("event_date")
    if isinstance(event_date, str):
        try:
            event_date = parse_date(event_date).date()
        except (ValueError, OverflowError):
            errors["event_date"] = "Invalid date format. Use ISO 8601 (YYYY-MM-DD)."
            event_date = None
    if event_date is None and "event_date" not in errors:
        errors["event_date"] = "Event date is required."
    elif isinstance(event_date, date) and event_date < today and (existing is None or "event_date" in data):
        errors["event_date"] = "Event date cannot be in the past."

    event_time = pick("event_time")
    if isinstance(event_time, str):
        if event_time.strip():
            try:
                event_time = parse_date(event_time).time()
            except (ValueError, OverflowError):
                errors["event_time"] = "Invalid time format. Use HH:MM."
                event_time = None
        else:
            event_time = None

    organized_by = strip_tags(pick("organized_by")) or None
    if not admin:
        if not organized_by:
            organized_by = username
        elif username not in organized_by:
            errors["organized_by"] = "As a staff member, you can only create events that you organize."

    max_capacity = _as_optional_int(pick("max_capacity"), "max_capacity", errors)
    attendance = _as_optional_int(pick("attendance_count", 0), "attendance_count", errors) or 0
    if max_capacity and attendance > max_capacity:
        errors["attendance_count"] = "Attendance count cannot exceed maximum capacity."

    status = pick("status", EventStatus.SCHEDULED)
    if isinstance(status, str):
        try:
            status = parse_status(status)
        except ValidationError as exc:
            errors.update(exc.fields)

    if errors:
        raise ValidationError("Please correct the validation errors.", errors)

    return {
        "title": title,
        "description": strip_tags(pick("description")) or None,
        "event_type": strip_tags(pick("event_type")) or "Community Gathering",
        "event_date": event_date,
        "event_time": event_time,
        "location": strip_tags(pick("location")) or None,
        "organized_by": organized_by,
        "max_capacity": max_capacity or None,
        "attendance_count": attendance,
        "status": status,
    }


def create_event(data: dict, username: str, admin: bool) -> Event:
    event = Event(**validate_event(data, username, admin))
    db.session.add(event)
    db.session.commit()
    logger.info("Created event %s (%s)", event.id, event.title)
    return event


def update_event(event: Event, data: dict, username: str, admin: bool) -> Event:
    ensure_can_modify(event, username, admin)
    for key, value in validate_event(data, username, admin, existing=event).items():
        setattr(event, key, value)
    db.session.commit()
    return event


def update_attendance(event: Event, count: Optional[int] = None, new_attendance: Optional[int] = None) -> Event:
    """Add ``count`` to the attendance, or set it to ``new_attendance``."""
    if count is not None:
        value = event.attendance_count + int(count)
    elif new_attendance is not None:
        value = int(new_attendance)
    else:
        raise ValidationError("Provide either 'count' or 'new_attendance'.")
    if value < 0:
        raise ValidationError("Attendance cannot be negative.", {"attendance_count": "Cannot be negative."})
    if event.max_capacity and value > event.max_capacity:
        raise ValidationError(
            f"Attendance cannot exceed maximum capacity of {event.max_capacity}.",
            {"attendance_count": "Exceeds maximum capacity."},
        )
    event.attendance_count = value
    db.session.commit()
    return event


def attendance_percentage(event: Event) -> int:
    if not event.max_capacity:
        return 0
    return round(event.attendance_count / event.max_capacity * 100)


def set_status(event: Event, status: str) -> Event:
    event.status = parse_status(status)
    db.session.commit()
    return event


def upcoming_events(limit: int = 5, now: Optional[datetime] = None) -> list[Event]:
    today = (now or datetime.utcnow()).date()
    return (
        Event.query.filter(Event.is_deleted == False, Event.event_date >= today)
        .order_by(Event.event_date, Event.event_time)
        .limit(limit)
        .all()
    )
