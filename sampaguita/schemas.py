"""
Serialization schemas using Marshmallow for the senior registry.

These schemas convert SQLAlchemy models to JSON-friendly
representations. Password hashes are excluded. Ledger entries embed a
small slice of the resident record so that a period listing can be
rendered without a second request.
"""

from __future__ import annotations

from marshmallow import fields
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema

from .models import (
    User,
    Zone,
    Senior,
    MonthlyContribution,
    PensionContribution,
    ContributionLog,
    PensionLog,
    Event,
    ActivityLog,
    Announcement,
    Notification,
)


class UserSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``User`` objects."""

    role = fields.Function(lambda user: user.role.value)

    class Meta:
        model = User
        load_instance = True
        # Exclude password_hash from the serialised output
        exclude = ("password_hash",)


class ZoneSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Zone
        load_instance = True


class SeniorSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Senior`` objects."""

    status = fields.Function(lambda senior: senior.status.value)
    full_name = fields.String(dump_only=True)
    display_pension_type = fields.String(dump_only=True)

    class Meta:
        model = Senior
        load_instance = True


class _LedgerEntrySchema(SQLAlchemyAutoSchema):
    senior = fields.Nested(
        SeniorSchema,
        only=("id", "sccn", "full_name", "zone", "status", "pension_type", "display_pension_type"),
    )


class MonthlyContributionSchema(_LedgerEntrySchema):
    """Schema for a dues ledger entry."""

    class Meta:
        model = MonthlyContribution
        load_instance = True
        include_fk = True


class PensionContributionSchema(_LedgerEntrySchema):
    """Schema for a pension ledger entry."""

    class Meta:
        model = PensionContribution
        load_instance = True
        include_fk = True


class _PeriodLogSchema(SQLAlchemyAutoSchema):
    month_name = fields.String(dump_only=True)
    month_year = fields.String(dump_only=True)


class ContributionLogSchema(_PeriodLogSchema):
    class Meta:
        model = ContributionLog
        load_instance = True


class PensionLogSchema(_PeriodLogSchema):
    class Meta:
        model = PensionLog
        load_instance = True


class EventSchema(SQLAlchemyAutoSchema):
    """Schema for serialising ``Event`` objects."""

    status = fields.Function(lambda event: event.status.value)
    is_full = fields.Boolean(dump_only=True)
    available_spots = fields.Integer(dump_only=True)

    class Meta:
        model = Event
        load_instance = True


class ActivityLogSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = ActivityLog
        load_instance = True


class AnnouncementSchema(SQLAlchemyAutoSchema):
    type = fields.Function(lambda announcement: announcement.type.value)

    class Meta:
        model = Announcement
        load_instance = True
        include_fk = True


class NotificationSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Notification
        load_instance = True
        include_fk = True
