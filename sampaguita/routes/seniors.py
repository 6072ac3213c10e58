"""
Routes for the resident registry.

Staff and administrators can register, edit, archive and restore
senior citizens. Archiving is a soft delete: the record stays in the
registry with an ``Archived`` status and keeps its ledger history.
"""

from __future__ import annotations

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ValidationError
from ..schemas import SeniorSchema
from ..security import audit
from ..services import senior_service
from ..services.soft_delete_service import archive_senior, restore_senior
from ..util.sanitization import SCCN_FORMAT, is_valid_sccn


seniors_bp = Blueprint("seniors", __name__)


@seniors_bp.route("/seniors", methods=["GET"])
@jwt_required()
def list_seniors() -> tuple[list[dict], int]:
    """Return residents filtered by ``status`` (default ``Active``) and ``search``."""
    status = request.args.get("status", "Active")
    search = request.args.get("search")
    seniors = senior_service.search_seniors(search, status)
    return SeniorSchema(many=True).dump(seniors), 200


@seniors_bp.route("/seniors", methods=["POST"])
@jwt_required()
def create_senior() -> tuple[dict, int]:
    """Register a new resident.

    Expects ``sccn``, ``first_name``, ``last_name``, ``gender``, ``zone``
    and either ``birth_date`` or ``age``. Optional ``middle_initial``,
    ``contact_number`` and ``pension_type``. The barangay is fixed.
    """
    data = request.get_json() or {}
    senior = senior_service.create_senior(data, current_app.config["BARANGAY_NAME"])
    audit("Add Senior", f"Added senior: {senior.full_name} (SCCN: {senior.sccn})")
    return SeniorSchema().dump(senior), 201


@seniors_bp.route("/seniors/<int:senior_id>", methods=["GET"])
@jwt_required()
def get_senior(senior_id: int) -> tuple[dict, int]:
    senior = senior_service.get_senior(senior_id)
    return SeniorSchema().dump(senior), 200


@seniors_bp.route("/seniors/<int:senior_id>", methods=["PUT"])
@jwt_required()
def update_senior(senior_id: int) -> tuple[dict, int]:
    """Update a resident's details. Omitted fields keep their values."""
    senior = senior_service.get_senior(senior_id)
    data = request.get_json() or {}
    senior_service.update_senior(senior, data)
    audit("Edit Senior", f"Updated senior: {senior.full_name} (SCCN: {senior.sccn})")
    return SeniorSchema().dump(senior), 200


@seniors_bp.route("/seniors/<int:senior_id>/archive", methods=["POST"])
@jwt_required()
def archive(senior_id: int) -> tuple[dict, int]:
    senior = senior_service.get_senior(senior_id)
    archive_senior(senior)
    db.session.commit()
    audit("Archive Senior", f"Archived senior: {senior.full_name} (SCCN: {senior.sccn})")
    return SeniorSchema().dump(senior), 200


@seniors_bp.route("/seniors/<int:senior_id>/restore", methods=["POST"])
@jwt_required()
def restore(senior_id: int) -> tuple[dict, int]:
    senior = senior_service.get_senior(senior_id)
    restore_senior(senior)
    db.session.commit()
    audit("Restore Senior", f"Restored senior: {senior.full_name} (SCCN: {senior.sccn})")
    return SeniorSchema().dump(senior), 200


@seniors_bp.route("/seniors/check-sccn", methods=["GET"])
@jwt_required()
def check_sccn() -> tuple[dict, int]:
    """Report whether ``sccn`` is well formed and still available.

    ``exclude_id`` skips the resident being edited.
    """
    sccn = (request.args.get("sccn") or "").strip()
    exclude_id = request.args.get("exclude_id", type=int)
    if not is_valid_sccn(sccn):
        return {"valid": False, "available": False, "message": "Senior ID must be exactly 12 digits."}, 200
    taken = senior_service.sccn_taken(sccn, exclude_id)
    return {
        "valid": True,
        "available": not taken,
        "message": "This SCCN number is already registered." if taken else "SCCN number is available.",
    }, 200


@seniors_bp.route("/seniors/search", methods=["GET"])
@jwt_required()
def search() -> tuple[dict, int]:
    """Quick search for pickers; returns at most 20 matches."""
    term = (request.args.get("term") or "").strip()
    if len(term) < 2:
        raise ValidationError("Search term must be at least 2 characters.", {"term": "Too short."})
    status = request.args.get("status", "Active")
    seniors = senior_service.search_seniors(term, status, limit=20)
    return {"data": SeniorSchema(many=True).dump(seniors)}, 200


@seniors_bp.route("/seniors/sccn-format", methods=["GET"])
@jwt_required()
def sccn_format() -> tuple[dict, int]:
    return SCCN_FORMAT, 200


@seniors_bp.route("/seniors/pension-statistics", methods=["GET"])
@jwt_required()
def pension_statistics() -> tuple[dict, int]:
    return {"data": senior_service.pension_statistics()}, 200
