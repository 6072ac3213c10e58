"""
Registry report routes.

``GET /reports`` returns headline statistics for the residents matching
the filters; ``GET /reports/seniors/export`` downloads the same set as
CSV.
"""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, Response, request
from flask_jwt_extended import jwt_required

from ..errors import ValidationError
from ..models import Senior
from ..schemas import SeniorSchema
from ..security import audit
from ..services import report_service, senior_service


reports_bp = Blueprint("reports", __name__)


def _filtered_seniors() -> list[Senior]:
    seniors = senior_service.search_seniors(request.args.get("search"), request.args.get("status", "All"))
    zone = request.args.get("zone")
    if zone:
        try:
            zone_number = int(zone)
        except ValueError:
            raise ValidationError("Zone must be a number.", {"zone": "Invalid zone."})
        seniors = [s for s in seniors if s.zone == zone_number]
    pension_type = request.args.get("pension_type")
    if pension_type:
        seniors = [s for s in seniors if s.display_pension_type == pension_type]
    return seniors


@reports_bp.route("/reports", methods=["GET"])
@jwt_required()
def report() -> tuple[dict, int]:
    """Statistics for residents filtered by ``status``, ``search``, ``zone`` and ``pension_type``."""
    seniors = _filtered_seniors()
    return {
        "statistics": report_service.senior_statistics(seniors),
        "seniors": SeniorSchema(many=True).dump(seniors),
    }, 200


@reports_bp.route("/reports/seniors/export", methods=["GET"])
@jwt_required()
def export_seniors() -> Response:
    seniors = _filtered_seniors()
    audit("Export Report", f"Exported {len(seniors)} senior records")
    filename = f"Seniors_Report_{datetime.now():%Y%m%d%H%M%S}.csv"
    return Response(
        report_service.seniors_csv(seniors),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
