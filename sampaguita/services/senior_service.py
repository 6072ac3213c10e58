"""Resident registry rules.

Validation collects every field problem before failing, so a client
can show all messages at once. The SCCN (12-digit registration number)
is the resident's external identifier and must be unique.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from dateutil.parser import parse as parse_date  # type: ignore
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import ConflictError, DataAccessError, NotFoundError, ValidationError
from ..models import Senior, SeniorStatus
from ..util.sanitization import is_valid_sccn, strip_tags

logger = logging.getLogger(__name__)

MIN_AGE = 60
MAX_AGE = 120
ZONE_RANGE = (1, 7)


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def estimate_birth_date(age: int, today: Optional[date] = None) -> date:
    today = today or date.today()
    try:
        return today.replace(year=today.year - age)
    except ValueError:
        # 29 February in a non-leap year
        return today.replace(year=today.year - age, day=28)


def sccn_taken(sccn: str, exclude_id: Optional[int] = None) -> bool:
    query = Senior.query.filter(Senior.sccn == sccn)
    if exclude_id is not None:
        query = query.filter(Senior.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_senior(data: dict, existing: Optional[Senior] = None) -> dict:
    """Check a create/update payload and return cleaned column values.

    Parameters
    ----------
    data: dict
        The JSON body of the request.
    existing: Senior | None
        The resident being updated, if any. Fields missing from ``data``
        keep their current values.

    Returns
    -------
    dict
        Values ready to assign onto a ``Senior``.

    Raises
    ------
    ValidationError
        With a ``fields`` mapping describing every invalid field.
    ConflictError
        If the SCCN already belongs to another resident.
    """
    def pick(key, current=None):
        if key in data:
            return data[key]
        return getattr(existing, key, current) if existing is not None else current

    errors: dict[str, str] = {}

    sccn = (str(pick("sccn") or "")).strip()
    if not is_valid_sccn(sccn):
        errors["sccn"] = "Senior ID must be exactly 12 digits (SCCN number)."

    first_name = strip_tags(pick("first_name"))
    if not first_name:
        errors["first_name"] = "First Name is required."
    elif len(first_name) > 100:
        errors["first_name"] = "First Name cannot exceed 100 characters."

    last_name = strip_tags(pick("last_name"))
    if not last_name:
        errors["last_name"] = "Last Name is required."
    elif len(last_name) > 100:
        errors["last_name"] = "Last Name cannot exceed 100 characters."

    gender = strip_tags(pick("gender"))
    if not gender:
        errors["gender"] = "Gender is required."

    middle_initial = strip_tags(pick("middle_initial")) or None
    if middle_initial and len(middle_initial) > 1:
        errors["middle_initial"] = "Middle Initial must be 1 character."

    contact_number = strip_tags(pick("contact_number")) or None
    if contact_number and len(contact_number) > 20:
        errors["contact_number"] = "Contact Number cannot exceed 20 characters."

    pension_type = strip_tags(pick("pension_type")) or None
    if pension_type and len(pension_type) > 50:
        errors["pension_type"] = "Pension Type cannot exceed 50 characters."

    zone = _as_int(pick("zone"))
    if zone is None or not ZONE_RANGE[0] <= zone <= ZONE_RANGE[1]:
        errors["zone"] = "Zone must be between 1 and 7."

    birth_date = pick("birth_date")
    if isinstance(birth_date, str):
        if birth_date.strip():
            try:
                birth_date = parse_date(birth_date).date()
            except (ValueError, OverflowError):
                errors["birth_date"] = "Invalid date format. Use ISO 8601 (YYYY-MM-DD)."
                birth_date = None
        else:
            birth_date = None

    age = _as_int(pick("age"))
    if isinstance(birth_date, date):
        age = calculate_age(birth_date)
        if not MIN_AGE <= age <= MAX_AGE:
            errors["age"] = "Age calculated from birth date must be between 60 and 120 years."
    elif age is None or not MIN_AGE <= age <= MAX_AGE:
        errors["age"] = "Age must be between 60 and 120 years."
    elif "age" in data or existing is None:
        birth_date = estimate_birth_date(age)

    if errors:
        raise ValidationError("Please correct the validation errors.", errors)

    if sccn_taken(sccn, exclude_id=existing.id if existing is not None else None):
        raise ConflictError("This SCCN number is already registered. Please use a different SCCN number.")

    return {
        "sccn": sccn,
        "first_name": first_name,
        "last_name": last_name,
        "middle_initial": middle_initial.upper() if middle_initial else None,
        "gender": gender,
        "birth_date": birth_date,
        "age": age,
        "zone": zone,
        "contact_number": contact_number,
        "pension_type": pension_type,
    }


def get_senior(senior_id: int) -> Senior:
    senior = db.session.get(Senior, senior_id)
    if senior is None:
        raise NotFoundError("Senior not found.")
    return senior


def create_senior(data: dict, barangay: str) -> Senior:
    values = validate_senior(data)
    senior = Senior(status=SeniorStatus.ACTIVE, barangay=barangay, **values)
    db.session.add(senior)
    db.session.commit()
    logger.info("Registered senior %s", senior.sccn)
    return senior


def update_senior(senior: Senior, data: dict) -> Senior:
    values = validate_senior(data, existing=senior)
    for key, value in values.items():
        setattr(senior, key, value)
    db.session.commit()
    return senior


def search_seniors(term: Optional[str] = None, status: Optional[str] = None, limit: Optional[int] = None) -> list[Senior]:
    """Match ``term`` against SCCN, names, full name and pension type."""
    query = Senior.query
    if status and status.lower() != "all":
        try:
            query = query.filter(Senior.status == SeniorStatus(status.capitalize()))
        except ValueError:
            raise ValidationError("Status must be Active, Archived or All.", {"status": "Invalid status."})
    if term:
        pattern = f"%{term.strip()}%"
        query = query.filter(or_(
            Senior.sccn.like(pattern),
            Senior.first_name.like(pattern),
            Senior.last_name.like(pattern),
            (Senior.first_name + " " + Senior.last_name).like(pattern),
            Senior.pension_type.like(pattern),
        ))
    query = query.order_by(Senior.last_name, Senior.first_name)
    if limit:
        query = query.limit(limit)
    try:
        return query.all()
    except SQLAlchemyError as exc:
        logger.exception("Error searching seniors")
        raise DataAccessError() from exc


def pension_statistics() -> list[dict]:
    """Active residents grouped by pension type, largest group first."""
    category = func.coalesce(func.nullif(Senior.pension_type, ""), "None")
    rows = (
        db.session.query(category.label("category"), func.count(Senior.id).label("n"))
        .filter(Senior.status == SeniorStatus.ACTIVE)
        .group_by(category)
        .order_by(func.count(Senior.id).desc())
        .all()
    )
    return [{"pension_category": row.category, "count": row.n} for row in rows]
