"""Tests for the dues/pension ledger bookkeeping."""
from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError

from sampaguita import create_app, db
from sampaguita.errors import ValidationError
from sampaguita.models import ContributionLog, MonthlyContribution, PensionContribution, Senior, SeniorStatus
from sampaguita.services import ledger_service
from sampaguita.services.ledger_service import LedgerKind
from sampaguita.services.soft_delete_service import archive_senior


def _log(month, year, total, settled):
    return SimpleNamespace(
        month=month, year=year, total_seniors=total,
        settled_count=settled, unsettled_count=total - settled,
    )


def test_five_resident_scenario(app, make_senior):
    for name in ("Alpha", "Bravo", "Charlie", "Delta", "Echo"):
        make_senior(last_name=name)

    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    assert len(entries) == 5
    assert all(not e.is_paid and e.paid_date is None for e in entries)

    third = entries[2]
    assert ledger_service.toggle_entry(LedgerKind.DUES, third.id) is True
    toggled = db.session.get(MonthlyContribution, third.id)
    assert toggled.is_paid is True
    assert toggled.paid_date is not None

    again = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    assert len(again) == 5
    assert sum(1 for e in again if e.is_paid) == 1


def test_period_creation_is_idempotent(app, make_senior):
    make_senior()
    make_senior()
    assert ledger_service.create_period_entries(LedgerKind.DUES, 3, 2025) == 2
    assert ledger_service.create_period_entries(LedgerKind.DUES, 3, 2025) == 0
    first = ledger_service.get_or_create_period(LedgerKind.DUES, 3, 2025)
    second = ledger_service.get_or_create_period(LedgerKind.DUES, 3, 2025)
    assert len(first) == len(second) == 2


def test_entries_are_ordered_by_last_then_first_name(app, make_senior):
    make_senior(first_name="Zed", last_name="Bautista")
    make_senior(first_name="Ana", last_name="Bautista")
    make_senior(first_name="Ben", last_name="Aquino")
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 2, 2025)
    assert [e.senior.full_name for e in entries] == ["Aquino, Ben", "Bautista, Ana", "Bautista, Zed"]


def test_archived_residents_are_skipped_but_keep_history(app, make_senior):
    kept = make_senior(last_name="Kept")
    leaving = make_senior(last_name="Leaving")
    make_senior(last_name="Gone", status=SeniorStatus.ARCHIVED)

    january = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    assert {e.senior_id for e in january} == {kept.id, leaving.id}

    archive_senior(leaving)
    db.session.commit()

    february = ledger_service.get_or_create_period(LedgerKind.DUES, 2, 2025)
    assert {e.senior_id for e in february} == {kept.id}
    january_again = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    assert {e.senior_id for e in january_again} == {kept.id, leaving.id}


def test_even_number_of_toggles_restores_state(app, make_senior):
    make_senior()
    entry = ledger_service.get_or_create_period(LedgerKind.PENSION, 6, 2025)[0]
    for _ in range(4):
        assert ledger_service.toggle_entry(LedgerKind.PENSION, entry.id)
    restored = db.session.get(PensionContribution, entry.id)
    assert restored.is_claimed is False
    assert restored.claimed_date is None


def test_toggle_missing_entry_affects_nothing(app):
    assert ledger_service.toggle_entry(LedgerKind.DUES, 9999) is False


def test_duplicate_entry_is_rejected_by_unique_constraint(app, make_senior):
    senior = make_senior()
    ledger_service.get_or_create_period(LedgerKind.DUES, 4, 2025)
    db.session.add(MonthlyContribution(senior_id=senior.id, month=4, year=2025, is_paid=False))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()
    assert MonthlyContribution.query.filter_by(month=4, year=2025).count() == 1


def test_count_new_entrants_before_any_residents_is_zero(app):
    assert ledger_service.count_new_entrants(LedgerKind.DUES, 1, 2020) == 0


def test_count_new_entrants_counts_first_periods_only(app, make_senior):
    make_senior()
    ledger_service.get_or_create_period(LedgerKind.DUES, 12, 2024)
    make_senior()
    ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)

    assert ledger_service.count_new_entrants(LedgerKind.DUES, 12, 2024) == 1
    assert ledger_service.count_new_entrants(LedgerKind.DUES, 1, 2025) == 1
    assert ledger_service.count_new_entrants(LedgerKind.PENSION, 1, 2025) == 0


def test_pension_period_can_filter_by_pension_type(app, make_senior):
    make_senior(pension_type="SSS")
    make_senior(pension_type="GSIS")
    make_senior()
    everyone = ledger_service.get_or_create_period(LedgerKind.PENSION, 5, 2025)
    sss = ledger_service.get_or_create_period(LedgerKind.PENSION, 5, 2025, pension_type="SSS")
    assert len(everyone) == 3
    assert [e.senior.pension_type for e in sss] == ["SSS"]
    assert ledger_service.distinct_pension_types() == ["GSIS", "SSS"]


def test_save_log_upserts_numeric_totals(app):
    log = ledger_service.save_log(LedgerKind.DUES, 1, 2025, "logs/contributions/a.csv", 7, 3)
    assert (log.total_seniors, log.settled_count, log.unsettled_count) == (7, 3, 4)

    updated = ledger_service.save_log(LedgerKind.DUES, "January", 2025, "logs/contributions/b.csv", 8, 8, "recount")
    assert updated.id == log.id
    assert updated.file_path == "logs/contributions/b.csv"
    assert updated.unsettled_count == 0
    assert updated.notes == "recount"
    assert len(ledger_service.list_logs(LedgerKind.DUES)) == 1


def test_save_log_rejects_impossible_counts(app):
    with pytest.raises(ValidationError):
        ledger_service.save_log(LedgerKind.DUES, 1, 2025, "x.csv", 3, 4)


def test_list_logs_newest_period_first(app):
    ledger_service.save_log(LedgerKind.PENSION, 11, 2024, "a.csv", 1, 1)
    ledger_service.save_log(LedgerKind.PENSION, 2, 2025, "b.csv", 1, 0)
    ledger_service.save_log(LedgerKind.PENSION, 1, 2025, "c.csv", 1, 0)
    periods = [(log.month, log.year) for log in ledger_service.list_logs(LedgerKind.PENSION)]
    assert periods == [(2, 2025), (1, 2025), (11, 2024)]


def test_collection_rate_zero_total():
    totals = ledger_service.aggregate_over_range(LedgerKind.DUES, [], (1, 2025), (12, 2025))
    assert totals.total == 0
    assert totals.collection_rate == "0.00"


def test_collection_rate_three_of_seven():
    assert ledger_service.collection_rate(3, 7) == "42.86"
    assert ledger_service.collection_rate(1, 8) == "12.50"
    assert ledger_service.collection_rate(2, 3) == "66.67"


def test_aggregate_over_range_is_inclusive_and_spans_years():
    logs = [
        _log(11, 2024, 10, 5),
        _log(12, 2024, 10, 6),
        _log(1, 2025, 10, 7),
        _log(2, 2025, 10, 8),
        _log(3, 2025, 10, 9),
    ]
    totals = ledger_service.aggregate_over_range(LedgerKind.DUES, logs, ("December", 2024), ("February", 2025))
    assert totals.periods == 3
    assert totals.total == 30
    assert totals.settled == 21
    assert totals.unsettled == 9
    assert totals.collection_rate == "70.00"


def test_aggregate_over_range_rejects_reversed_range():
    with pytest.raises(ValidationError):
        ledger_service.aggregate_over_range(LedgerKind.DUES, [], (5, 2025), (4, 2025))


@pytest.mark.parametrize("month, expected", [(1, 1), ("March", 3), ("mar", 3), ("12", 12)])
def test_month_number_accepts_numbers_and_names(month, expected):
    assert ledger_service.month_number(month) == expected


@pytest.mark.parametrize("month", [0, 13, "Smarch"])
def test_month_number_rejects_unknown_months(month):
    with pytest.raises(ValidationError):
        ledger_service.month_number(month)


def test_period_summary_amounts_only_for_dues(app, make_senior):
    make_senior()
    make_senior()
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 7, 2025)
    ledger_service.toggle_entry(LedgerKind.DUES, entries[0].id)
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 7, 2025)

    dues = ledger_service.period_summary(LedgerKind.DUES, entries, due_amount=10)
    assert (dues.total, dues.settled, dues.unsettled) == (2, 1, 1)
    assert (dues.total_amount, dues.collected_amount) == (20, 10)

    pension = ledger_service.period_summary(LedgerKind.PENSION, [], due_amount=10)
    assert (pension.total, pension.total_amount) == (0, 0)


@pytest.fixture()
def file_app(tmp_path):
    """App on a file-backed SQLite database so a second engine can write to it."""
    url = f"sqlite:///{tmp_path / 'ledger.db'}"
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": url, "LOG_LEVEL": "WARNING"})
    with app.app_context():
        db.create_all()
        yield app, url
        db.session.remove()
        db.drop_all()


def test_losing_a_period_creation_race_keeps_the_winners_rows(file_app):
    app, url = file_app
    seniors = [
        Senior(sccn=f"20250000000{n}", first_name="Juan", last_name=name, gender="Male",
               birth_date=date(1950, 1, 1), age=75, zone=1, barangay="Sampaguita")
        for n, name in enumerate(("Aquino", "Bautista"), start=1)
    ]
    db.session.add_all(seniors)
    db.session.commit()
    ids = [s.id for s in seniors]

    other = create_engine(url)
    competed = []

    def insert_from_other_connection(session, flush_context, instances):
        if competed:
            return
        competed.append(True)
        with other.begin() as conn:
            conn.execute(
                MonthlyContribution.__table__.insert().values(
                    senior_id=ids[0], month=5, year=2025, is_paid=True
                )
            )

    event.listen(db.session, "before_flush", insert_from_other_connection)
    try:
        assert ledger_service.create_period_entries(LedgerKind.DUES, 5, 2025) == 0
    finally:
        event.remove(db.session, "before_flush", insert_from_other_connection)
        other.dispose()

    assert Senior.query.count() == 2
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 5, 2025)
    assert sorted(e.senior_id for e in entries) == sorted(ids)
    assert [e.is_paid for e in entries] == [True, False]
    assert MonthlyContribution.query.filter_by(month=5, year=2025).count() == 2


def test_log_month_names_match_the_ledger_table(app):
    log = ContributionLog(month=2, year=2025)
    assert log.month_name == ledger_service.month_name(2) == "February"
    assert log.month_year == "February 2025"
