"""Monthly dues and pension ledgers.

A ledger holds one entry per resident per period (a ``(month, year)``
pair). Entries are created lazily: the first time a period is viewed,
every Active resident without an entry gets an unpaid (or unclaimed)
one. Residents archived later keep their historical entries, and
residents archived before the first view never get one.

The two ledgers share all of their logic and differ only in table and
column names, which :data:`LEDGERS` maps per :class:`LedgerKind`.

Each period can also have a log row pointing at a saved CSV export.
The paid/claimed totals are stored as discrete numeric columns on the
log, and :func:`aggregate_over_range` sums them across a range of
periods to produce a collection rate.

Database failures are logged and re-raised as
:class:`~sampaguita.errors.DataAccessError`.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy import and_, exists, false, func, literal, null, case, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import db
from ..errors import DataAccessError, NotFoundError, ValidationError
from ..models import (
    MONTH_NAMES,
    ContributionLog,
    MonthlyContribution,
    PensionContribution,
    PensionLog,
    Senior,
    SeniorStatus,
)

logger = logging.getLogger(__name__)

MonthRef = Union[int, str]
NOTES_MAX_LENGTH = 500


class LedgerKind(enum.Enum):
    DUES = "dues"
    PENSION = "pension"


@dataclass(frozen=True)
class Ledger:
    """Table and column names for one kind of ledger."""

    entry_model: type
    log_model: type
    flag: str
    stamp: str
    settled_label: str
    unsettled_label: str
    log_folder: str
    file_prefix: str

    def flag_column(self):
        return getattr(self.entry_model, self.flag)

    def stamp_column(self):
        return getattr(self.entry_model, self.stamp)


LEDGERS = {
    LedgerKind.DUES: Ledger(
        entry_model=MonthlyContribution,
        log_model=ContributionLog,
        flag="is_paid",
        stamp="paid_date",
        settled_label="Paid",
        unsettled_label="Unpaid",
        log_folder="contributions",
        file_prefix="MonthlyContributions",
    ),
    LedgerKind.PENSION: Ledger(
        entry_model=PensionContribution,
        log_model=PensionLog,
        flag="is_claimed",
        stamp="claimed_date",
        settled_label="Claimed",
        unsettled_label="Unclaimed",
        log_folder="pensions",
        file_prefix="PensionClaims",
    ),
}


@dataclass(frozen=True)
class PeriodSummary:
    total: int
    settled: int
    unsettled: int
    # pesos; only meaningful for dues
    total_amount: int = 0
    collected_amount: int = 0


@dataclass(frozen=True)
class RangeTotals:
    total: int
    settled: int
    unsettled: int
    periods: int
    collection_rate: str


def month_number(month: MonthRef) -> int:
    """Resolve a month given as 1-12 or as an English month name."""
    if isinstance(month, str):
        text = month.strip()
        if text.isdigit():
            return month_number(int(text))
        for index, name in enumerate(MONTH_NAMES, start=1):
            if name.lower() == text.lower() or name[:3].lower() == text.lower():
                return index
        raise ValidationError(f"Unknown month '{month}'.", {"month": "Invalid month."})
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12.", {"month": "Invalid month."})
    return int(month)


def month_name(month: MonthRef) -> str:
    return MONTH_NAMES[month_number(month) - 1]


def validate_period(month: MonthRef, year: int) -> tuple[int, int]:
    month = month_number(month)
    try:
        year = int(year)
    except (TypeError, ValueError):
        raise ValidationError("Year must be a number.", {"year": "Invalid year."})
    if not 1900 <= year <= 9999:
        raise ValidationError("Year must be between 1900 and 9999.", {"year": "Invalid year."})
    return month, year


def validate_notes(notes: Optional[str]) -> None:
    if notes and len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {NOTES_MAX_LENGTH} characters.", {"notes": "Too long."}
        )


def _period_key(month: int, year: int) -> int:
    return year * 12 + (month - 1)


def create_period_entries(kind: LedgerKind, month: int, year: int) -> int:
    """Insert missing entries for every Active resident; returns rows inserted.

    The unique constraint on ``(senior_id, month, year)`` makes this safe
    under concurrent first access: the loser of the race gets an
    ``IntegrityError``, rolls back and finds the winner's rows.
    """
    ledger = LEDGERS[kind]
    model = ledger.entry_model
    month, year = validate_period(month, year)
    try:
        has_entry = exists().where(and_(
            model.senior_id == Senior.id,
            model.month == month,
            model.year == year,
        ))
        missing = [
            row.id for row in
            db.session.query(Senior.id)
            .filter(Senior.status == SeniorStatus.ACTIVE, ~has_entry)
            .all()
        ]
        if not missing:
            return 0
        db.session.add_all([
            model(senior_id=senior_id, month=month, year=year, **{ledger.flag: False})
            for senior_id in missing
        ])
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info("%s entries for %s/%s were created concurrently", kind.value, month, year)
        return 0
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error creating %s entries for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc
    logger.info("Created %d %s entries for %s/%s", len(missing), kind.value, month, year)
    return len(missing)


def _period_query(kind: LedgerKind, month: int, year: int, pension_type: Optional[str] = None):
    model = LEDGERS[kind].entry_model
    query = (
        model.query.join(Senior, model.senior_id == Senior.id)
        .filter(model.month == month, model.year == year)
    )
    if pension_type:
        query = query.filter(Senior.pension_type == pension_type)
    return query


def get_or_create_period(
    kind: LedgerKind, month: MonthRef, year: int, pension_type: Optional[str] = None
) -> list:
    """Return the period's entries, creating missing ones first.

    Entries are ordered by resident last name, then first name. Calling
    this twice for the same period inserts nothing the second time.
    """
    month, year = validate_period(month, year)
    create_period_entries(kind, month, year)
    try:
        return (
            _period_query(kind, month, year, pension_type)
            .order_by(Senior.last_name, Senior.first_name)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error loading %s entries for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc


def entries_for_export(
    kind: LedgerKind, month: MonthRef, year: int, pension_type: Optional[str] = None
) -> list:
    """Period entries ordered by zone and name, without creating any."""
    month, year = validate_period(month, year)
    try:
        return (
            _period_query(kind, month, year, pension_type)
            .order_by(Senior.zone, Senior.last_name, Senior.first_name)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error loading %s export rows for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc


def get_entry(kind: LedgerKind, entry_id: int):
    entry = db.session.get(LEDGERS[kind].entry_model, entry_id)
    if entry is None:
        raise NotFoundError("Ledger entry not found.")
    return entry


def toggle_entry(kind: LedgerKind, entry_id: int, now: Optional[datetime] = None) -> bool:
    """Flip the paid/claimed flag of one entry.

    The flag and its timestamp change in a single UPDATE: the timestamp
    is set when the flag becomes true and cleared when it becomes false.
    The timestamp assignment is ordered first so that it reads the old
    flag value on every backend. Returns whether a row was affected.
    """
    ledger = LEDGERS[kind]
    model = ledger.entry_model
    flag = ledger.flag_column()
    stamp = ledger.stamp_column()
    now = now or datetime.utcnow()
    stmt = (
        update(model)
        .where(model.id == entry_id)
        .ordered_values(
            (stamp, case((flag == false(), literal(now, db.DateTime)), else_=null())),
            (flag, ~flag),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.session.execute(stmt)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error toggling %s entry %s", kind.value, entry_id)
        raise DataAccessError() from exc
    return result.rowcount > 0


def count_new_entrants(kind: LedgerKind, month: MonthRef, year: int) -> int:
    """Count residents whose earliest entry of this kind is exactly this period."""
    month, year = validate_period(month, year)
    model = LEDGERS[kind].entry_model
    try:
        first_periods = (
            db.session.query(
                model.senior_id,
                func.min(model.year * 12 + (model.month - 1)).label("first_period"),
            )
            .group_by(model.senior_id)
            .subquery()
        )
        count = (
            db.session.query(func.count())
            .select_from(first_periods)
            .filter(first_periods.c.first_period == _period_key(month, year))
            .scalar()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error counting new %s entrants for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc
    return count or 0


def period_summary(kind: LedgerKind, entries: Iterable, due_amount: int = 0) -> PeriodSummary:
    """Count settled entries; dues also get peso amounts at ``due_amount`` each."""
    flag = LEDGERS[kind].flag
    entries = list(entries)
    settled = sum(1 for entry in entries if getattr(entry, flag))
    if kind is not LedgerKind.DUES:
        due_amount = 0
    return PeriodSummary(
        total=len(entries),
        settled=settled,
        unsettled=len(entries) - settled,
        total_amount=len(entries) * due_amount,
        collected_amount=settled * due_amount,
    )


def get_log(kind: LedgerKind, month: MonthRef, year: int):
    month, year = validate_period(month, year)
    model = LEDGERS[kind].log_model
    try:
        return model.query.filter_by(month=month, year=year).first()
    except SQLAlchemyError as exc:
        logger.exception("Error loading %s log for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc


def list_logs(kind: LedgerKind) -> list:
    """All saved logs of one kind, newest period first."""
    model = LEDGERS[kind].log_model
    try:
        return model.query.order_by(model.year.desc(), model.month.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception("Error loading %s logs", kind.value)
        raise DataAccessError() from exc


def save_log(
    kind: LedgerKind,
    month: MonthRef,
    year: int,
    file_path: str,
    total: int,
    settled: int,
    notes: Optional[str] = None,
):
    """Create or update the log row for a period and return it."""
    month, year = validate_period(month, year)
    if total < 0 or not 0 <= settled <= total:
        raise ValidationError("Settled count must be between 0 and the total.")
    validate_notes(notes)
    model = LEDGERS[kind].log_model
    try:
        log = model.query.filter_by(month=month, year=year).first()
        if log is None:
            log = model(month=month, year=year)
            db.session.add(log)
        log.file_path = file_path
        log.total_seniors = total
        log.settled_count = settled
        log.unsettled_count = total - settled
        log.notes = notes
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error saving %s log for %s/%s", kind.value, month, year)
        raise DataAccessError() from exc
    return log


def _resolve_bound(bound: Union[Sequence, dict]) -> tuple[int, int]:
    if isinstance(bound, dict):
        return validate_period(bound["month"], bound["year"])
    month, year = bound
    return validate_period(month, year)


def collection_rate(settled: int, total: int) -> str:
    """Percentage of ``total`` that is settled, two decimals, ``"0.00"`` for zero."""
    if total <= 0:
        return "0.00"
    rate = (Decimal(settled) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{rate:.2f}"


def aggregate_over_range(
    kind: LedgerKind,
    logs: Iterable,
    start: Union[Sequence, dict],
    end: Union[Sequence, dict],
) -> RangeTotals:
    """Sum saved log totals for every period within ``start``..``end`` inclusive.

    ``start`` and ``end`` are ``(month, year)`` pairs (or mappings with
    those keys); months may be numbers or English names.
    """
    start_month, start_year = _resolve_bound(start)
    end_month, end_year = _resolve_bound(end)
    low = _period_key(start_month, start_year)
    high = _period_key(end_month, end_year)
    if low > high:
        raise ValidationError("The start of the range must not be after its end.")

    total = settled = unsettled = periods = 0
    for log in logs:
        key = _period_key(month_number(log.month), int(log.year))
        if low <= key <= high:
            total += log.total_seniors or 0
            settled += log.settled_count or 0
            unsettled += log.unsettled_count or 0
            periods += 1
    logger.debug("Aggregated %d %s periods", periods, kind.value)
    return RangeTotals(
        total=total,
        settled=settled,
        unsettled=unsettled,
        periods=periods,
        collection_rate=collection_rate(settled, total),
    )


def logs_in_range(kind: LedgerKind, logs: Iterable, start, end) -> list:
    """The subset of ``logs`` that :func:`aggregate_over_range` would count, oldest first."""
    start_month, start_year = _resolve_bound(start)
    end_month, end_year = _resolve_bound(end)
    low = _period_key(start_month, start_year)
    high = _period_key(end_month, end_year)
    selected = [
        log for log in logs
        if low <= _period_key(month_number(log.month), int(log.year)) <= high
    ]
    return sorted(selected, key=lambda log: _period_key(month_number(log.month), int(log.year)))


def distinct_pension_types() -> list[str]:
    try:
        rows = (
            db.session.query(Senior.pension_type)
            .filter(Senior.pension_type.isnot(None), Senior.pension_type != "")
            .distinct()
            .order_by(Senior.pension_type)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error loading pension types")
        raise DataAccessError() from exc
    return [row[0] for row in rows]
