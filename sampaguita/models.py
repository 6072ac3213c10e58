"""
Database models for the Sampaguita senior citizen registry.

The schema covers the resident registry (``Senior``), the two monthly
ledgers (dues and pension claims) with their export log rows, events,
staff accounts and the audit/messaging tables. Residents and events are
never deleted outright by normal operations; they move to an archived
state so that ledger history stays intact.

Each ledger table carries a unique constraint on
``(senior_id, month, year)`` so that concurrent first access to a
period cannot create duplicate rows. Log tables store their paid/claimed
totals as discrete numeric columns.
"""

from __future__ import annotations

import enum
from datetime import datetime, date, time
from typing import Optional, List

from werkzeug.security import generate_password_hash, check_password_hash

from . import db


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class Role(enum.Enum):
    """Enumeration of account roles."""
    ADMINISTRATOR = "Administrator"
    STAFF = "Staff"


class SeniorStatus(enum.Enum):
    """Lifecycle status of a resident record."""
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class EventStatus(enum.Enum):
    SCHEDULED = "Scheduled"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class AnnouncementType(enum.Enum):
    EVENT = "Event"
    SYSTEM = "System"
    ALERT = "Alert"
    INFO = "Info"


class User(db.Model):
    __allow_unmapped__ = True  # allow unmapped type annotations for SQLAlchemy 2.0
    """A staff or administrator account.

    Passwords are stored as salted hashes. ``is_admin`` drives
    authorization; ``role`` is the display label shown in audit logs.
    """
    __tablename__ = "users"

    id: int = db.Column(db.Integer, primary_key=True)
    name: str = db.Column(db.String(100), nullable=False)
    username: str = db.Column(db.String(50), unique=True, nullable=False)
    password_hash: str = db.Column(db.String(255), nullable=False)
    role: Role = db.Column(db.Enum(Role), default=Role.STAFF, nullable=False)
    is_admin: bool = db.Column(db.Boolean, nullable=False, default=False)
    is_active: bool = db.Column(db.Boolean, nullable=False, default=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    notifications: List[Notification] = db.relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role.value})>"


class Zone(db.Model):
    __allow_unmapped__ = True
    """A numbered zone (purok) of the barangay."""
    __tablename__ = "zones"

    id: int = db.Column(db.Integer, primary_key=True)
    zone_number: int = db.Column(db.Integer, unique=True, nullable=False)
    zone_name: str = db.Column(db.String(100), nullable=False)
    description: Optional[str] = db.Column(db.String(255))
    is_active: bool = db.Column(db.Boolean, nullable=False, default=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Zone {self.zone_number} {self.zone_name}>"


class Senior(db.Model):
    __allow_unmapped__ = True
    """A registered senior citizen.

    Identified externally by a 12-digit SCCN registration number.
    Archiving flips ``status`` to ``Archived``; ledger rows created while
    the resident was active are kept.
    """
    __tablename__ = "seniors"

    id: int = db.Column(db.Integer, primary_key=True)
    sccn: str = db.Column(db.String(12), unique=True, nullable=False)
    first_name: str = db.Column(db.String(100), nullable=False)
    last_name: str = db.Column(db.String(100), nullable=False)
    middle_initial: Optional[str] = db.Column(db.String(1))
    gender: str = db.Column(db.String(10), nullable=False)
    birth_date: Optional[date] = db.Column(db.Date)
    age: int = db.Column(db.Integer, nullable=False)
    zone: int = db.Column(db.Integer, nullable=False)
    contact_number: Optional[str] = db.Column(db.String(20))
    pension_type: Optional[str] = db.Column(db.String(50))
    barangay: Optional[str] = db.Column(db.String(100))
    status: SeniorStatus = db.Column(
        db.Enum(SeniorStatus), nullable=False, default=SeniorStatus.ACTIVE, index=True
    )
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def full_name(self) -> str:
        middle = self.middle_initial or ""
        return f"{self.last_name}, {self.first_name} {middle}".strip()

    @property
    def display_pension_type(self) -> str:
        return self.pension_type or "No Pension"

    def __repr__(self) -> str:
        return f"<Senior {self.sccn} {self.full_name}>"


class MonthlyContribution(db.Model):
    __allow_unmapped__ = True
    """One resident's monthly due for a period."""
    __tablename__ = "monthly_contributions"

    id: int = db.Column(db.Integer, primary_key=True)
    senior_id: int = db.Column(db.Integer, db.ForeignKey("seniors.id"), nullable=False)
    month: int = db.Column(db.Integer, nullable=False)
    year: int = db.Column(db.Integer, nullable=False)
    is_paid: bool = db.Column(db.Boolean, nullable=False, default=False)
    paid_date: Optional[datetime] = db.Column(db.DateTime, nullable=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    senior: Senior = db.relationship("Senior")

    __table_args__ = (
        db.UniqueConstraint("senior_id", "month", "year", name="uix_contribution_period"),
        db.Index("ix_contribution_period", "year", "month"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyContribution senior={self.senior_id} {self.month}/{self.year} paid={self.is_paid}>"


class PensionContribution(db.Model):
    __allow_unmapped__ = True
    """One resident's pension claim for a period."""
    __tablename__ = "pension_contributions"

    id: int = db.Column(db.Integer, primary_key=True)
    senior_id: int = db.Column(db.Integer, db.ForeignKey("seniors.id"), nullable=False)
    month: int = db.Column(db.Integer, nullable=False)
    year: int = db.Column(db.Integer, nullable=False)
    is_claimed: bool = db.Column(db.Boolean, nullable=False, default=False)
    claimed_date: Optional[datetime] = db.Column(db.DateTime, nullable=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    senior: Senior = db.relationship("Senior")

    __table_args__ = (
        db.UniqueConstraint("senior_id", "month", "year", name="uix_pension_period"),
        db.Index("ix_pension_period", "year", "month"),
    )

    def __repr__(self) -> str:
        return f"<PensionContribution senior={self.senior_id} {self.month}/{self.year} claimed={self.is_claimed}>"


class _PeriodLogMixin:
    """Columns shared by the dues and pension export logs."""

    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    file_path = db.Column(db.String(255))
    total_seniors = db.Column(db.Integer, nullable=False, default=0)
    settled_count = db.Column(db.Integer, nullable=False, default=0)
    unsettled_count = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def month_year(self) -> str:
        return f"{self.month_name} {self.year}"


class ContributionLog(_PeriodLogMixin, db.Model):
    __allow_unmapped__ = True
    """Saved dues export for a (month, year) period."""
    __tablename__ = "contribution_logs"

    __table_args__ = (
        db.UniqueConstraint("month", "year", name="uix_contribution_log_period"),
    )

    def __repr__(self) -> str:
        return f"<ContributionLog {self.month_year}>"


class PensionLog(_PeriodLogMixin, db.Model):
    __allow_unmapped__ = True
    """Saved pension export for a (month, year) period."""
    __tablename__ = "pension_logs"

    __table_args__ = (
        db.UniqueConstraint("month", "year", name="uix_pension_log_period"),
    )

    def __repr__(self) -> str:
        return f"<PensionLog {self.month_year}>"


class Event(db.Model):
    __allow_unmapped__ = True
    """A scheduled community activity.

    ``is_deleted`` marks an archived event. Attendance is bounded by
    ``max_capacity`` when one is set.
    """
    __tablename__ = "events"

    id: int = db.Column(db.Integer, primary_key=True)
    title: str = db.Column(db.String(200), nullable=False)
    description: Optional[str] = db.Column(db.Text)
    event_type: str = db.Column(db.String(100), nullable=False, default="Community Gathering")
    event_date: date = db.Column(db.Date, nullable=False)
    event_time: Optional[time] = db.Column(db.Time)
    location: Optional[str] = db.Column(db.String(200))
    organized_by: Optional[str] = db.Column(db.String(100))
    max_capacity: Optional[int] = db.Column(db.Integer, nullable=True)
    attendance_count: int = db.Column(db.Integer, nullable=False, default=0)
    status: EventStatus = db.Column(db.Enum(EventStatus), nullable=False, default=EventStatus.SCHEDULED)
    is_deleted: bool = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at: Optional[datetime] = db.Column(db.DateTime, nullable=True)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def is_full(self) -> bool:
        return bool(self.max_capacity) and self.attendance_count >= self.max_capacity

    @property
    def available_spots(self) -> int:
        if not self.max_capacity:
            return 0
        return self.max_capacity - self.attendance_count

    def is_organized_by(self, username: str) -> bool:
        return bool(self.organized_by) and username in self.organized_by

    def __repr__(self) -> str:
        return f"<Event {self.title} {self.event_date}>"


class ActivityLog(db.Model):
    __allow_unmapped__ = True
    """Append-only audit trail entry."""
    __tablename__ = "activity_logs"

    id: int = db.Column(db.Integer, primary_key=True)
    user_name: str = db.Column(db.String(100), nullable=False, default="System")
    user_role: str = db.Column(db.String(50), nullable=False, default="System")
    action: str = db.Column(db.String(100), nullable=False)
    details: Optional[str] = db.Column(db.Text)
    ip_address: Optional[str] = db.Column(db.String(45))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} by {self.user_name}>"


class Announcement(db.Model):
    __allow_unmapped__ = True
    """Broadcast message shown to every signed-in user."""
    __tablename__ = "announcements"

    id: int = db.Column(db.Integer, primary_key=True)
    title: str = db.Column(db.String(255), nullable=False)
    message: str = db.Column(db.Text, nullable=False)
    type: AnnouncementType = db.Column(
        db.Enum(AnnouncementType), nullable=False, default=AnnouncementType.EVENT
    )
    related_event_id: Optional[int] = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True)
    is_read: bool = db.Column(db.Boolean, nullable=False, default=False)
    created_by: Optional[str] = db.Column(db.String(100))
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    related_event: Optional[Event] = db.relationship("Event")

    def __repr__(self) -> str:
        return f"<Announcement {self.title}>"


class Notification(db.Model):
    __allow_unmapped__ = True
    """Per-user in-app notification."""
    __tablename__ = "notifications"

    id: int = db.Column(db.Integer, primary_key=True)
    user_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    type: str = db.Column(db.String(20), nullable=False, default="info")
    title: str = db.Column(db.String(255), nullable=False)
    message: Optional[str] = db.Column(db.Text)
    url: Optional[str] = db.Column(db.String(255))
    is_read: bool = db.Column(db.Boolean, nullable=False, default=False)
    created_at: datetime = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user: User = db.relationship("User", back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification {self.title} user={self.user_id}>"
