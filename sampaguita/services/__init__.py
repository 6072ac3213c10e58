"""Service layer for the Sampaguita senior registry.

This package contains business logic that sits between the
Flask route handlers and the database models. Separating
services into their own modules keeps the routes thin and makes
the ledger bookkeeping (lazy period creation, toggling, range
totals) easy to unit test.

Nothing in this package should perform any HTTP handling.
Instead, services return simple Python data structures or
database objects, and raise exceptions defined in
``sampaguita.errors`` when something goes wrong.
"""

from .ledger_service import LedgerKind, get_or_create_period, toggle_entry, count_new_entrants
from .activity_service import log_activity
from .soft_delete_service import archive_senior, restore_senior, archive_event, restore_event

__all__ = [
    "LedgerKind",
    "get_or_create_period",
    "toggle_entry",
    "count_new_entrants",
    "log_activity",
    "archive_senior",
    "restore_senior",
    "archive_event",
    "restore_event",
]
