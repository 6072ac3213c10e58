"""Event announcements and per-user notifications.

Announcements are shared by every user and are written as a side
effect of event changes. Like audit logging, writing one is
best-effort: a failure is logged and the event change still stands.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import DataAccessError, NotFoundError
from ..models import Announcement, AnnouncementType, Event, Notification

logger = logging.getLogger(__name__)


def _event_when(event: Event) -> str:
    return event.event_date.strftime("%b %d, %Y")


def _announce(title: str, message: str, created_by: str, event: Optional[Event] = None) -> Optional[Announcement]:
    announcement = Announcement(
        title=title,
        message=message,
        type=AnnouncementType.EVENT,
        related_event_id=event.id if event is not None else None,
        created_by=created_by,
    )
    try:
        db.session.add(announcement)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error creating announcement: %s", title)
        return None
    return announcement


def announce_event_created(event: Event, created_by: str) -> Optional[Announcement]:
    return _announce(
        f"New Event: {event.title}",
        f"A new {event.event_type.lower()} '{event.title}' has been scheduled for "
        f"{_event_when(event)} at {event.location or 'TBA'}. Organized by {event.organized_by or 'TBA'}.",
        created_by,
        event,
    )


def announce_event_updated(event: Event, created_by: str) -> Optional[Announcement]:
    return _announce(
        f"Event Updated: {event.title}",
        f"The event '{event.title}' has been updated. It's scheduled for "
        f"{_event_when(event)} at {event.location or 'TBA'}. Organized by {event.organized_by or 'TBA'}.",
        created_by,
        event,
    )


def announce_event_cancelled(event: Event, created_by: str) -> Optional[Announcement]:
    # not linked: the event row may be deleted right after
    return _announce(
        f"Event Cancelled: {event.title}",
        f"The event '{event.title}' scheduled for {_event_when(event)} has been cancelled.",
        created_by,
    )


def recent_announcements(limit: int = 10, unread_only: bool = False) -> list[Announcement]:
    try:
        query = Announcement.query
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Announcement.created_at.desc(), Announcement.id.desc()).limit(limit).all()
    except SQLAlchemyError as exc:
        logger.exception("Error loading announcements")
        raise DataAccessError() from exc


def unread_announcement_count() -> int:
    try:
        return Announcement.query.filter_by(is_read=False).count()
    except SQLAlchemyError as exc:
        logger.exception("Error counting announcements")
        raise DataAccessError() from exc


def mark_announcement_read(announcement_id: int) -> Announcement:
    announcement = db.session.get(Announcement, announcement_id)
    if announcement is None:
        raise NotFoundError("Announcement not found.")
    announcement.is_read = True
    db.session.commit()
    return announcement


def notify(user_id: int, title: str, message: str = "", type: str = "info",
           url: Optional[str] = None) -> Notification:
    notification = Notification(user_id=user_id, title=title, message=message, type=type, url=url)
    db.session.add(notification)
    db.session.commit()
    return notification


def user_notifications(user_id: int, limit: int = 20) -> list[Notification]:
    return (
        Notification.query.filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def _own_notification(user_id: int, notification_id: int) -> Notification:
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if notification is None:
        raise NotFoundError("Notification not found.")
    return notification


def mark_notification_read(user_id: int, notification_id: int) -> Notification:
    notification = _own_notification(user_id, notification_id)
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_notifications_read(user_id: int) -> int:
    updated = (
        Notification.query.filter_by(user_id=user_id, is_read=False)
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(user_id: int, notification_id: int) -> None:
    notification = _own_notification(user_id, notification_id)
    db.session.delete(notification)
    db.session.commit()
