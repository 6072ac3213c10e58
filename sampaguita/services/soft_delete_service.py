"""Archive (soft delete) utilities.

To preserve historical data without permanently removing records,
residents and events are *archived* instead of deleted. A resident's
``status`` becomes ``Archived``; an event gets ``is_deleted`` and a
``deleted_at`` timestamp. Queries that should only return live records
must filter on those columns.

Archiving a resident never touches their ledger entries: periods that
were created while they were Active keep their rows, and periods first
viewed afterwards simply do not include them.

Changes are flushed to the database session but not committed,
allowing the caller to decide when to commit.
"""
from __future__ import annotations

from datetime import datetime

from .. import db
from ..errors import ValidationError
from ..models import Event, Senior, SeniorStatus, Announcement


def archive_senior(senior: Senior) -> None:
    """Move a resident to the Archived state.

    Parameters
    ----------
    senior: Senior
        The resident to archive.

    Raises
    ------
    ValidationError
        If the resident is already archived.
    """
    if senior.status == SeniorStatus.ARCHIVED:
        raise ValidationError("Senior is already archived.")
    senior.status = SeniorStatus.ARCHIVED
    senior.updated_at = datetime.utcnow()
    db.session.flush()


def restore_senior(senior: Senior) -> None:
    if senior.status == SeniorStatus.ACTIVE:
        raise ValidationError("Senior is already active.")
    senior.status = SeniorStatus.ACTIVE
    senior.updated_at = datetime.utcnow()
    db.session.flush()


def archive_event(event: Event) -> None:
    if event.is_deleted:
        raise ValidationError("Event is already archived.")
    event.is_deleted = True
    event.deleted_at = datetime.utcnow()
    db.session.flush()


def restore_event(event: Event) -> None:
    if not event.is_deleted:
        raise ValidationError("Event is not archived.")
    event.is_deleted = False
    event.deleted_at = None
    db.session.flush()


def purge_event(event: Event) -> None:
    """Permanently remove an archived event.

    Announcements that pointed at the event are kept and unlinked.
    """
    if not event.is_deleted:
        raise ValidationError("Only archived events can be permanently deleted.")
    Announcement.query.filter_by(related_event_id=event.id).update(
        {Announcement.related_event_id: None}, synchronize_session=False
    )
    db.session.delete(event)
    db.session.flush()


def purge_archived_events() -> int:
    """Permanently remove every archived event; returns how many were removed."""
    events = Event.query.filter_by(is_deleted=True).all()
    for event in events:
        purge_event(event)
    return len(events)
