"""
Routes for the monthly dues and pension ledgers.

Both ledgers expose the same endpoints, so the routes are defined once
by :func:`_register_ledger_routes` and attached to two blueprints:
``dues_bp`` (mounted at ``/api/dues``) and ``pensions_bp`` (mounted at
``/api/pensions``). Pension endpoints additionally accept a
``pension_type`` filter.

Viewing or saving a period creates its missing entries. Saving a log
writes the period's CSV under ``LOGS_DIR`` and records its totals.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from flask import Blueprint, Response, current_app, request, send_file
from flask_jwt_extended import jwt_required

from ..errors import DataAccessError, NotFoundError, ValidationError
from ..schemas import (
    ContributionLogSchema,
    MonthlyContributionSchema,
    PensionContributionSchema,
    PensionLogSchema,
)
from ..security import audit
from ..services import ledger_service, report_service
from ..services.ledger_service import LedgerKind, LEDGERS


dues_bp = Blueprint("dues", __name__)
pensions_bp = Blueprint("pensions", __name__)

ENTRY_SCHEMAS = {LedgerKind.DUES: MonthlyContributionSchema, LedgerKind.PENSION: PensionContributionSchema}
LOG_SCHEMAS = {LedgerKind.DUES: ContributionLogSchema, LedgerKind.PENSION: PensionLogSchema}
NOUNS = {LedgerKind.DUES: "contributions", LedgerKind.PENSION: "pension claims"}
BOUND_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$|^\s*([A-Za-z]+)\s+(\d{4})\s*$")


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _requested_period() -> tuple[int, int]:
    today = date.today()
    month = request.args.get("month") or today.month
    year = request.args.get("year") or today.year
    return ledger_service.validate_period(month, year)


def _body_period() -> tuple[int, int]:
    data = request.get_json(silent=True) or {}
    month = data.get("month") or request.args.get("month")
    year = data.get("year") or request.args.get("year")
    if month is None or year is None:
        raise ValidationError("Month and year are required.")
    return ledger_service.validate_period(month, year)


def _parse_bound(value: str | None, name: str) -> tuple[int, int]:
    """Accept ``YYYY-MM`` or ``<Month name> YYYY``."""
    match = BOUND_RE.match(value or "")
    if not match:
        raise ValidationError(
            f"'{name}' must look like 2025-01 or 'January 2025'.", {name: "Invalid period."}
        )
    if match.group(1):
        return ledger_service.validate_period(match.group(2), match.group(1))
    return ledger_service.validate_period(match.group(3), match.group(4))


def _register_ledger_routes(bp: Blueprint, kind: LedgerKind) -> None:
    ledger = LEDGERS[kind]
    entry_schema = ENTRY_SCHEMAS[kind]
    log_schema = LOG_SCHEMAS[kind]
    noun = NOUNS[kind]
    settled_key = ledger.settled_label.lower()
    unsettled_key = ledger.unsettled_label.lower()

    def pension_type() -> str | None:
        if kind is LedgerKind.PENSION:
            return request.args.get("pension_type") or None
        return None

    def summary_payload(summary) -> dict:
        payload = {
            "total": summary.total,
            settled_key: summary.settled,
            unsettled_key: summary.unsettled,
        }
        if kind is LedgerKind.DUES:
            payload["total_amount"] = summary.total_amount
            payload["collected_amount"] = summary.collected_amount
        return payload

    def render_csv(entries, month: int, year: int) -> str:
        return report_service.ledger_csv(
            kind, entries, month, year, current_app.config["MONTHLY_DUE_AMOUNT"]
        )

    @bp.route("", methods=["GET"])
    @jwt_required()
    def index() -> tuple[dict, int]:
        """Return a period's entries, creating missing ones first.

        Query parameters ``month`` and ``year`` default to today. On a
        database failure the response is an empty period with a
        ``message`` instead of an error.
        """
        month, year = _requested_period()
        payload = {
            "month": month,
            "year": year,
            "month_name": ledger_service.month_name(month),
        }
        if kind is LedgerKind.PENSION:
            payload["pension_type"] = pension_type()
        try:
            entries = ledger_service.get_or_create_period(kind, month, year, pension_type())
            summary = ledger_service.period_summary(kind, entries, current_app.config["MONTHLY_DUE_AMOUNT"])
            payload.update(
                entries=entry_schema(many=True).dump(entries),
                summary=summary_payload(summary),
                new_entrants=ledger_service.count_new_entrants(kind, month, year),
                has_log=ledger_service.get_log(kind, month, year) is not None,
            )
            if kind is LedgerKind.PENSION:
                payload["pension_types"] = ledger_service.distinct_pension_types()
        except DataAccessError as err:
            current_app.logger.warning("Showing empty %s ledger for %s/%s: %s", kind.value, month, year, err)
            payload.update(
                entries=[],
                summary=summary_payload(ledger_service.period_summary(kind, [])),
                new_entrants=0,
                has_log=False,
                message=f"Error loading {noun}. Please try again.",
                message_type="danger",
            )
        return payload, 200

    @bp.route("/<int:entry_id>/toggle", methods=["POST"])
    @jwt_required()
    def toggle(entry_id: int) -> tuple[dict, int]:
        """Flip one entry between paid/unpaid (claimed/unclaimed)."""
        if not ledger_service.toggle_entry(kind, entry_id):
            raise NotFoundError("Ledger entry not found.")
        entry = ledger_service.get_entry(kind, entry_id)
        state = ledger.settled_label if getattr(entry, ledger.flag) else ledger.unsettled_label
        audit(
            f"Toggle {ledger.settled_label} Status",
            f"Marked {entry.senior.full_name} as {state} for "
            f"{ledger_service.month_name(entry.month)} {entry.year}",
        )
        return {
            "success": True,
            "message": f"Status updated to {state}.",
            "entry": entry_schema().dump(entry),
        }, 200

    @bp.route("/logs", methods=["GET"])
    @jwt_required()
    def list_logs() -> tuple[list[dict], int]:
        return log_schema(many=True).dump(ledger_service.list_logs(kind)), 200

    def write_log(month: int, year: int, notes: str | None):
        ledger_service.validate_notes(notes)
        ledger_service.create_period_entries(kind, month, year)
        entries = ledger_service.entries_for_export(kind, month, year)
        summary = ledger_service.period_summary(kind, entries)
        file_name = report_service.ledger_file_name(kind, month, year)
        relative_path = report_service.write_ledger_file(
            kind, current_app.config["LOGS_DIR"], file_name, render_csv(entries, month, year)
        )
        log = ledger_service.save_log(
            kind, month, year, relative_path, summary.total, summary.settled, notes
        )
        return log, file_name

    @bp.route("/logs", methods=["POST"])
    @jwt_required()
    def save_log() -> tuple[dict, int]:
        """Write the period's CSV and create or replace its log row."""
        month, year = _body_period()
        notes = (request.get_json(silent=True) or {}).get("notes")
        log, file_name = write_log(month, year, notes)
        audit("Save Log", f"Saved {noun} log for {log.month_year}: {file_name}")
        return {
            "message": f"Log saved successfully! File: {file_name}",
            "log": log_schema().dump(log),
        }, 201

    @bp.route("/logs", methods=["PUT"])
    @jwt_required()
    def update_log() -> tuple[dict, int]:
        """Regenerate an existing log's CSV and remove the previous file."""
        month, year = _body_period()
        existing = ledger_service.get_log(kind, month, year)
        if existing is None:
            raise NotFoundError("No log found to update. Please save a log first.")
        old_path = existing.file_path
        notes = (request.get_json(silent=True) or {}).get("notes")
        if notes is None:
            notes = existing.notes
        log, file_name = write_log(month, year, notes)
        if old_path and old_path != log.file_path:
            report_service.remove_ledger_file(kind, current_app.config["LOGS_DIR"], old_path)
        audit("Update Log", f"Updated {noun} log for {log.month_year}: {file_name}")
        return {
            "message": f"Log updated successfully! New file: {file_name}",
            "log": log_schema().dump(log),
        }, 200

    @bp.route("/export", methods=["GET"])
    @jwt_required()
    def export_csv() -> Response:
        """Download the period's CSV without saving a log."""
        month, year = _requested_period()
        entries = ledger_service.entries_for_export(kind, month, year, pension_type())
        file_name = report_service.ledger_file_name(kind, month, year)
        audit("Export CSV", f"Exported {noun} for {ledger_service.month_name(month)} {year}")
        return _csv_response(render_csv(entries, month, year), file_name)

    @bp.route("/logs/<int:year>/<month>/download", methods=["GET"])
    @jwt_required()
    def download_log(year: int, month: str):
        log = ledger_service.get_log(kind, month, year)
        if log is None:
            raise NotFoundError("Log file not found.")
        path = report_service.resolve_ledger_file(kind, current_app.config["LOGS_DIR"], log.file_path)
        if path is None:
            raise NotFoundError("File not found on server.")
        return send_file(path, mimetype="text/csv", as_attachment=True)

    def range_report():
        start = _parse_bound(request.args.get("from"), "from")
        end = _parse_bound(request.args.get("to"), "to")
        logs = ledger_service.list_logs(kind)
        totals = ledger_service.aggregate_over_range(kind, logs, start, end)
        selected = ledger_service.logs_in_range(kind, logs, start, end)
        label = (
            f"{ledger_service.month_name(start[0])} {start[1]} - "
            f"{ledger_service.month_name(end[0])} {end[1]}"
        )
        return selected, totals, label

    @bp.route("/summary", methods=["GET"])
    @jwt_required()
    def summary() -> tuple[dict, int]:
        """Totals across saved logs between ``from`` and ``to`` inclusive."""
        selected, totals, label = range_report()
        return {
            "range": label,
            "periods": log_schema(many=True).dump(selected),
            "totals": {
                "periods": totals.periods,
                "total": totals.total,
                settled_key: totals.settled,
                unsettled_key: totals.unsettled,
                "collection_rate": totals.collection_rate,
            },
        }, 200

    @bp.route("/summary/export", methods=["GET"])
    @jwt_required()
    def export_summary() -> Response:
        selected, totals, label = range_report()
        audit("Export Summary", f"Exported {noun} summary for {label}")
        file_name = f"{ledger.file_prefix}_Summary_{datetime.now():%Y%m%d%H%M%S}.csv"
        return _csv_response(report_service.range_summary_csv(kind, selected, totals, label), file_name)

    if kind is LedgerKind.PENSION:
        @bp.route("/types", methods=["GET"])
        @jwt_required()
        def pension_types() -> tuple[dict, int]:
            return {"data": ledger_service.distinct_pension_types()}, 200


_register_ledger_routes(dues_bp, LedgerKind.DUES)
_register_ledger_routes(pensions_bp, LedgerKind.PENSION)
