"""Shared fixtures: an app on in-memory SQLite with seeded accounts."""
from __future__ import annotations

from datetime import date

import pytest

from sampaguita import create_app, db
from sampaguita.models import Role, Senior, SeniorStatus, User
from sampaguita.services.broadcast import broadcaster


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
        "LOGS_DIR": str(tmp_path / "logs"),
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        db.create_all()
        admin = User(name="Ana Admin", username="admin", role=Role.ADMINISTRATOR, is_admin=True)
        admin.set_password("admin123")
        staff = User(name="Sam Staff", username="staff", role=Role.STAFF, is_admin=False)
        staff.set_password("staff123")
        inactive = User(name="Ina Active", username="inactive", role=Role.STAFF, is_active=False)
        inactive.set_password("inactive123")
        db.session.add_all([admin, staff, inactive])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, username, password, access_level="staff"):
    response = client.post(
        "/api/login",
        json={"username": username, "password": password, "access_level": access_level},
    )
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture()
def admin_headers(client):
    return _login(client, "admin", "admin123", "admin")


@pytest.fixture()
def staff_headers(client):
    return _login(client, "staff", "staff123", "staff")


@pytest.fixture()
def make_senior(app):
    """Factory for residents; SCCNs are numbered from 202500000001."""
    counter = {"n": 0}

    def _make(first_name="Juan", last_name="Cruz", status=SeniorStatus.ACTIVE, zone=1,
              pension_type=None, age=70):
        counter["n"] += 1
        senior = Senior(
            sccn=f"2025{counter['n']:08d}",
            first_name=first_name,
            last_name=last_name,
            gender="Male",
            birth_date=date(date.today().year - age, 1, 1),
            age=age,
            zone=zone,
            pension_type=pension_type,
            barangay="Sampaguita",
            status=status,
        )
        db.session.add(senior)
        db.session.commit()
        return senior

    return _make


@pytest.fixture()
def subscriber():
    queue = broadcaster.subscribe()
    yield queue
    broadcaster.unsubscribe(queue)
