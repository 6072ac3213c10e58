"""
Routes for the barangay's numbered zones.

Any signed-in user may list zones; creating, editing and toggling
them is reserved for administrators.
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from .. import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Zone
from ..schemas import ZoneSchema
from ..security import admin_required, audit
from ..util.sanitization import strip_tags


zones_bp = Blueprint("zones", __name__)


def _validated(data: dict, zone: Zone | None = None) -> dict:
    errors = {}
    values = {}
    if zone is None or "zone_name" in data:
        name = strip_tags(data.get("zone_name"))
        if not name:
            errors["zone_name"] = "Zone name is required."
        elif len(name) > 100:
            errors["zone_name"] = "Zone name cannot exceed 100 characters."
        values["zone_name"] = name
    if zone is None or "zone_number" in data:
        try:
            number = int(data.get("zone_number"))
        except (TypeError, ValueError):
            number = 0
        if number <= 0:
            errors["zone_number"] = "Zone number must be greater than 0."
        values["zone_number"] = number
    if "description" in data:
        values["description"] = strip_tags(data.get("description")) or None
    if errors:
        raise ValidationError("Please correct the validation errors.", errors)

    if "zone_number" in values:
        query = Zone.query.filter(Zone.zone_number == values["zone_number"])
        if zone is not None:
            query = query.filter(Zone.id != zone.id)
        if query.first() is not None:
            raise ConflictError(f"Zone number {values['zone_number']} already exists.")
    return values


@zones_bp.route("/zones", methods=["GET"])
@jwt_required()
def list_zones() -> tuple[list[dict], int]:
    """List zones by number; ``active_only=true`` hides disabled ones."""
    query = Zone.query
    if request.args.get("active_only", "").lower() == "true":
        query = query.filter_by(is_active=True)
    return ZoneSchema(many=True).dump(query.order_by(Zone.zone_number).all()), 200


@zones_bp.route("/zones", methods=["POST"])
@admin_required
def create_zone() -> tuple[dict, int]:
    zone = Zone(is_active=True, **_validated(request.get_json() or {}))
    db.session.add(zone)
    db.session.commit()
    audit("Add Zone", f"Added zone {zone.zone_number}: {zone.zone_name}")
    return ZoneSchema().dump(zone), 201


@zones_bp.route("/zones/<int:zone_id>", methods=["PUT"])
@admin_required
def update_zone(zone_id: int) -> tuple[dict, int]:
    zone = db.session.get(Zone, zone_id)
    if zone is None:
        raise NotFoundError("Zone not found.")
    for key, value in _validated(request.get_json() or {}, zone).items():
        setattr(zone, key, value)
    db.session.commit()
    audit("Edit Zone", f"Updated zone {zone.zone_number}: {zone.zone_name}")
    return ZoneSchema().dump(zone), 200


@zones_bp.route("/zones/<int:zone_id>/toggle", methods=["POST"])
@admin_required
def toggle_zone(zone_id: int) -> tuple[dict, int]:
    zone = db.session.get(Zone, zone_id)
    if zone is None:
        raise NotFoundError("Zone not found.")
    zone.is_active = not zone.is_active
    db.session.commit()
    state = "activated" if zone.is_active else "deactivated"
    audit("Toggle Zone Status", f"Zone {zone.zone_number} {state}")
    return ZoneSchema().dump(zone), 200
