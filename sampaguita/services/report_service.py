"""CSV exports and registry statistics.

Each export has a fixed header row. Ledger exports append a short
summary block after the data rows; an empty period still produces the
header and a summary with zero totals.
"""
from __future__ import annotations

import csv
import io
import logging
import os
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from .ledger_service import LEDGERS, LedgerKind, RangeTotals, month_name, period_summary

logger = logging.getLogger(__name__)

DUES_HEADER = ["Senior ID", "Full Name", "Zone", "Status", "Payment Status", "Paid Date", "Month", "Year"]
PENSION_HEADER = [
    "Senior ID", "Full Name", "Zone", "Status", "Pension Type",
    "Claim Status", "Claimed Date", "Month", "Year",
]
SENIORS_HEADER = [
    "ID", "SCCN", "Full Name", "First Name", "Middle Initial", "Last Name", "Gender",
    "Age", "Birth Date", "Zone", "Contact", "Pension Type", "Status",
]
EVENTS_HEADER = [
    "ID", "Title", "Type", "Date", "Time", "Location",
    "Organized By", "Max Capacity", "Attendance", "Status",
]
RANGE_HEADER = ["Month", "Year", "Total Seniors", "Settled", "Unsettled"]
ACTIVITY_HEADER = ["ID", "UserName", "UserRole", "Action", "Details", "IP Address", "CreatedAt"]

STAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _render(rows: Iterable[list]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def _stamp(value: Optional[datetime], missing: str) -> str:
    return value.strftime(STAMP_FORMAT) if value else missing


def dues_csv(entries: list, month: int, year: int, due_amount: int,
             generated_at: Optional[datetime] = None) -> str:
    """Render a dues period as CSV followed by a payment summary."""
    generated_at = generated_at or datetime.now()
    name = month_name(month)
    rows = [DUES_HEADER]
    for entry in entries:
        senior = entry.senior
        rows.append([
            senior.id, senior.full_name, senior.zone, senior.status.value,
            "PAID" if entry.is_paid else "NOT PAID",
            _stamp(entry.paid_date, "Not Paid"), name, year,
        ])
    summary = period_summary(LedgerKind.DUES, entries, due_amount)
    rows += [
        [],
        [f"Summary for {name} {year}"],
        [f"Total Seniors: {summary.total}"],
        [f"Paid: {summary.settled}"],
        [f"Not Paid: {summary.unsettled}"],
        [f"Total Amount: {summary.total_amount} pesos"],
        [f"Collected Amount: {summary.collected_amount} pesos"],
        [f"Generated on: {generated_at.strftime(STAMP_FORMAT)}"],
    ]
    return _render(rows)


def pension_csv(entries: list, month: int, year: int,
                generated_at: Optional[datetime] = None) -> str:
    """Render a pension period as CSV followed by a claim summary."""
    generated_at = generated_at or datetime.now()
    name = month_name(month)
    rows = [PENSION_HEADER]
    for entry in entries:
        senior = entry.senior
        rows.append([
            senior.id, senior.full_name, senior.zone, senior.status.value,
            senior.display_pension_type,
            "CLAIMED" if entry.is_claimed else "NOT CLAIMED",
            _stamp(entry.claimed_date, "Not Claimed"), name, year,
        ])
    summary = period_summary(LedgerKind.PENSION, entries)
    rows += [
        [],
        [f"Summary for {name} {year}"],
        [f"Total Seniors: {summary.total}"],
        [f"Claimed: {summary.settled}"],
        [f"Not Claimed: {summary.unsettled}"],
        [f"Generated on: {generated_at.strftime(STAMP_FORMAT)}"],
    ]
    return _render(rows)


def ledger_csv(kind: LedgerKind, entries: list, month: int, year: int, due_amount: int = 0,
               generated_at: Optional[datetime] = None) -> str:
    if kind is LedgerKind.DUES:
        return dues_csv(entries, month, year, due_amount, generated_at)
    return pension_csv(entries, month, year, generated_at)


def ledger_file_name(kind: LedgerKind, month: int, year: int, now: Optional[datetime] = None) -> str:
    """e.g. ``MonthlyContributions_January_2025_20250131093000.csv``"""
    now = now or datetime.now()
    prefix = LEDGERS[kind].file_prefix
    return f"{prefix}_{month_name(month)}_{year}_{now.strftime('%Y%m%d%H%M%S')}.csv"


def write_ledger_file(kind: LedgerKind, logs_dir: str, file_name: str, content: str) -> str:
    """Write ``content`` under ``logs_dir`` and return the stored relative path.

    The relative path (``logs/<folder>/<file>``) is what goes into the
    log row; :func:`resolve_ledger_file` maps it back to disk.
    """
    folder = LEDGERS[kind].log_folder
    target_dir = os.path.join(logs_dir, folder)
    os.makedirs(target_dir, exist_ok=True)
    with open(os.path.join(target_dir, file_name), "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    logger.info("Wrote %s ledger file %s", kind.value, file_name)
    return f"logs/{folder}/{file_name}"


def resolve_ledger_file(kind: LedgerKind, logs_dir: str, file_path: Optional[str]) -> Optional[str]:
    """Absolute path of a stored ledger file, or None if it is missing.

    Only the file name of ``file_path`` is used, so a stored path can
    never point outside the ledger folder.
    """
    if not file_path:
        return None
    path = os.path.join(logs_dir, LEDGERS[kind].log_folder, os.path.basename(file_path))
    return path if os.path.isfile(path) else None


def remove_ledger_file(kind: LedgerKind, logs_dir: str, file_path: Optional[str]) -> bool:
    path = resolve_ledger_file(kind, logs_dir, file_path)
    if path is None:
        return False
    try:
        os.remove(path)
    except OSError:
        logger.warning("Could not remove old ledger file %s", path)
        return False
    return True


def range_summary_csv(kind: LedgerKind, logs: list, totals: RangeTotals, label: str) -> str:
    """Per-period rows for a range report, then accumulated totals."""
    ledger = LEDGERS[kind]
    rows = [RANGE_HEADER]
    for log in logs:
        rows.append([
            month_name(log.month), log.year,
            log.total_seniors, log.settled_count, log.unsettled_count,
        ])
    rows += [
        [],
        [f"Summary for {label}"],
        [f"Periods: {totals.periods}"],
        [f"Total Seniors: {totals.total}"],
        [f"{ledger.settled_label}: {totals.settled}"],
        [f"{ledger.unsettled_label}: {totals.unsettled}"],
        [f"Collection Rate: {totals.collection_rate}%"],
        [f"Generated on: {datetime.now().strftime(STAMP_FORMAT)}"],
    ]
    return _render(rows)


def seniors_csv(seniors: Iterable) -> str:
    rows = [SENIORS_HEADER]
    for senior in seniors:
        rows.append([
            senior.id, senior.sccn, senior.full_name, senior.first_name,
            senior.middle_initial or "", senior.last_name, senior.gender, senior.age,
            senior.birth_date.isoformat() if senior.birth_date else "",
            senior.zone, senior.contact_number or "", senior.display_pension_type,
            senior.status.value,
        ])
    return _render(rows)


def events_csv(events: Iterable) -> str:
    rows = [EVENTS_HEADER]
    for event in events:
        rows.append([
            event.id, event.title, event.event_type, event.event_date.isoformat(),
            event.event_time.strftime("%H:%M") if event.event_time else "",
            event.location or "", event.organized_by or "",
            event.max_capacity if event.max_capacity else "Unlimited",
            event.attendance_count, event.status.value,
        ])
    return _render(rows)


def activity_csv(logs: Iterable) -> str:
    rows = [ACTIVITY_HEADER]
    for log in logs:
        rows.append([
            log.id, log.user_name, log.user_role, log.action, log.details or "",
            log.ip_address or "", log.created_at.strftime(STAMP_FORMAT),
        ])
    return _render(rows)


def _age_group(age: int) -> str:
    if age < 70:
        return "60-69"
    if age < 80:
        return "70-79"
    if age < 90:
        return "80-89"
    return "90+"


def senior_statistics(seniors: Iterable) -> dict:
    """Headline counts and distributions for the registry report."""
    seniors = list(seniors)
    genders = Counter((s.gender or "").lower() for s in seniors)
    zones = Counter(f"Zone {s.zone}" for s in seniors)
    age_groups = Counter(_age_group(s.age) for s in seniors if s.age)
    pensions = Counter(s.display_pension_type for s in seniors)
    return {
        "total_seniors": len(seniors),
        "active_seniors": sum(1 for s in seniors if s.status.value == "Active"),
        "male_count": genders.get("male", 0),
        "female_count": genders.get("female", 0),
        "zone_distribution": dict(zones.most_common(10)),
        "age_groups": {group: age_groups.get(group, 0) for group in ("60-69", "70-79", "80-89", "90+")},
        "pension_distribution": dict(pensions.most_common()),
    }
