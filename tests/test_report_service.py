"""Tests for CSV rendering and registry statistics."""
from __future__ import annotations

import csv
import io
import os
from datetime import datetime
from types import SimpleNamespace

from sampaguita.models import SeniorStatus
from sampaguita.services import ledger_service, report_service
from sampaguita.services.ledger_service import LedgerKind, RangeTotals


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def _log(month, year, total, settled):
    return SimpleNamespace(
        month=month, year=year, total_seniors=total, settled_count=settled, unsettled_count=total - settled
    )


def test_empty_dues_period_exports_header_and_zero_summary():
    text = report_service.dues_csv([], 1, 2025, 10, generated_at=datetime(2025, 1, 31, 9, 30))
    rows = _rows(text)
    assert rows[0] == report_service.DUES_HEADER
    assert ["Total Seniors: 0"] in rows
    assert ["Paid: 0"] in rows
    assert ["Not Paid: 0"] in rows
    assert ["Total Amount: 0 pesos"] in rows
    assert ["Collected Amount: 0 pesos"] in rows
    assert ["Generated on: 2025-01-31 09:30:00"] in rows


def test_empty_pension_period_exports_header_and_zero_summary():
    rows = _rows(report_service.pension_csv([], 2, 2025))
    assert rows[0] == report_service.PENSION_HEADER
    assert ["Summary for February 2025"] in rows
    assert ["Claimed: 0"] in rows
    assert ["Not Claimed: 0"] in rows


def test_dues_csv_rows_and_amounts(app, make_senior):
    make_senior(first_name="Maria", last_name="Santos", zone=3)
    make_senior(first_name="Jose", last_name="Reyes", zone=1)
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    ledger_service.toggle_entry(LedgerKind.DUES, entries[0].id)
    export = ledger_service.entries_for_export(LedgerKind.DUES, 1, 2025)

    rows = _rows(report_service.dues_csv(export, 1, 2025, 10))
    # zone order
    assert rows[1][1] == "Reyes, Jose"
    assert rows[1][2] == "1"
    assert rows[1][4] == "PAID"
    assert rows[2][4] == "NOT PAID"
    assert rows[2][5] == "Not Paid"
    assert rows[2][6:] == ["January", "2025"]
    assert ["Total Amount: 20 pesos"] in rows
    assert ["Collected Amount: 10 pesos"] in rows


def test_names_with_commas_are_quoted(app, make_senior):
    make_senior(first_name="Ana", last_name="Cruz")
    entries = ledger_service.get_or_create_period(LedgerKind.DUES, 1, 2025)
    text = report_service.dues_csv(entries, 1, 2025, 10)
    assert '"Cruz, Ana"' in text
    assert _rows(text)[1][1] == "Cruz, Ana"


def test_ledger_file_name_format():
    name = report_service.ledger_file_name(LedgerKind.DUES, 1, 2025, now=datetime(2025, 2, 3, 4, 5, 6))
    assert name == "MonthlyContributions_January_2025_20250203040506.csv"


def test_write_and_resolve_ledger_file(tmp_path):
    logs_dir = str(tmp_path)
    relative = report_service.write_ledger_file(LedgerKind.PENSION, logs_dir, "p.csv", "a,b\n")
    assert relative == "logs/pensions/p.csv"
    path = report_service.resolve_ledger_file(LedgerKind.PENSION, logs_dir, relative)
    assert path == os.path.join(logs_dir, "pensions", "p.csv")
    with open(path, encoding="utf-8") as fh:
        assert fh.read() == "a,b\n"
    assert report_service.remove_ledger_file(LedgerKind.PENSION, logs_dir, relative) is True
    assert report_service.resolve_ledger_file(LedgerKind.PENSION, logs_dir, relative) is None


def test_resolve_ignores_directories_in_stored_path(tmp_path):
    logs_dir = str(tmp_path)
    report_service.write_ledger_file(LedgerKind.DUES, logs_dir, "d.csv", "x\n")
    assert report_service.resolve_ledger_file(LedgerKind.DUES, logs_dir, "../../etc/d.csv") == os.path.join(
        logs_dir, "contributions", "d.csv"
    )


def test_range_summary_csv_lists_periods_and_rate():
    logs = [_log(1, 2025, 7, 3)]
    totals = RangeTotals(total=7, settled=3, unsettled=4, periods=1, collection_rate="42.86")
    rows = _rows(report_service.range_summary_csv(LedgerKind.DUES, logs, totals, "January 2025 - January 2025"))
    assert rows[0] == report_service.RANGE_HEADER
    assert rows[1] == ["January", "2025", "7", "3", "4"]
    assert ["Paid: 3"] in rows
    assert ["Collection Rate: 42.86%"] in rows


def test_senior_statistics(app, make_senior):
    seniors = [
        make_senior(age=61, zone=1, pension_type="SSS"),
        make_senior(age=75, zone=1),
        make_senior(age=95, zone=4, status=SeniorStatus.ARCHIVED, pension_type="SSS"),
    ]
    stats = report_service.senior_statistics(seniors)
    assert stats["total_seniors"] == 3
    assert stats["active_seniors"] == 2
    assert stats["male_count"] == 3
    assert stats["zone_distribution"] == {"Zone 1": 2, "Zone 4": 1}
    assert stats["age_groups"] == {"60-69": 1, "70-79": 1, "80-89": 0, "90+": 1}
    assert stats["pension_distribution"] == {"SSS": 2, "No Pension": 1}


def test_seniors_and_activity_headers(app):
    assert _rows(report_service.seniors_csv([]))[0][:3] == ["ID", "SCCN", "Full Name"]
    assert _rows(report_service.activity_csv([]))[0] == report_service.ACTIVITY_HEADER
    assert _rows(report_service.events_csv([]))[0] == report_service.EVENTS_HEADER
