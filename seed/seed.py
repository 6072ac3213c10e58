"""Seed script for initial data.

Running this script will populate the database with the barangay's
seven zones, an administrator and a staff account, and a handful of
example residents for demonstration purposes. It can be executed with
``python -m seed.seed`` from the repository root.
"""
from __future__ import annotations

from datetime import date

from sampaguita import create_app, db
from sampaguita.models import Role, Senior, SeniorStatus, User, Zone
from sampaguita.services.senior_service import calculate_age

DEMO_SENIORS = [
    ("202312340001", "Maria", "Santos", "L", "Female", date(1950, 3, 14), 1, "SSS"),
    ("202312340002", "Jose", "Reyes", "M", "Male", date(1948, 7, 2), 2, "GSIS"),
    ("202312340003", "Luz", "Cruz", None, "Female", date(1944, 11, 23), 3, "Social Pension"),
    ("202312340004", "Pedro", "Bautista", "D", "Male", date(1957, 1, 9), 5, None),
    ("202312340005", "Rosa", "Garcia", "T", "Female", date(1939, 5, 30), 7, "Social Pension"),
]


def run_seeds() -> None:
    """Insert zones, demo accounts and demo residents into the database."""
    app = create_app()
    with app.app_context():
        db.create_all()
        barangay = app.config["BARANGAY_NAME"]
        zones = [
            Zone(zone_number=n, zone_name=f"Zone {n}", description=f"Purok {n} of Barangay {barangay}")
            for n in range(1, 8)
        ]
        db.session.add_all(zones)
        admin = User(name="System Administrator", username="admin", role=Role.ADMINISTRATOR, is_admin=True)
        admin.set_password("admin123")
        staff = User(name="Juan Dela Cruz", username="staff", role=Role.STAFF, is_admin=False)
        staff.set_password("staff123")
        db.session.add_all([admin, staff])
        for sccn, first, last, middle, gender, born, zone, pension in DEMO_SENIORS:
            db.session.add(Senior(
                sccn=sccn,
                first_name=first,
                last_name=last,
                middle_initial=middle,
                gender=gender,
                birth_date=born,
                age=calculate_age(born),
                zone=zone,
                pension_type=pension,
                barangay=barangay,
                status=SeniorStatus.ACTIVE,
            ))
        db.session.commit()
        print("Seed data inserted successfully.")


if __name__ == "__main__":
    run_seeds()
