"""Tests for login, logout, password changes and the auth helpers."""
from __future__ import annotations

from flask_jwt_extended import decode_token

from sampaguita.models import ActivityLog
from sampaguita.services import auth_service


def test_health_endpoint(client) -> None:
    """Ensure the health check returns the expected response."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_login_issues_token_with_role_claims(app, client):
    response = client.post("/api/login", json={"username": "admin", "password": "admin123", "access_level": "admin"})
    assert response.status_code == 200
    body = response.get_json()
    assert "password_hash" not in body["user"]
    claims = decode_token(body["access_token"])
    assert claims["is_admin"] is True
    assert claims["role"] == "Administrator"
    assert claims["username"] == "admin"
    assert claims["sub"] == str(body["user"]["id"])
    assert ActivityLog.query.filter_by(action="Login", user_name="admin").count() == 1


def test_admin_may_sign_in_at_staff_level(client):
    response = client.post("/api/login", json={"username": "admin", "password": "admin123", "access_level": "staff"})
    assert response.status_code == 200


def test_staff_cannot_sign_in_at_admin_level(client):
    response = client.post("/api/login", json={"username": "staff", "password": "staff123", "access_level": "admin"})
    assert response.status_code == 401
    assert response.get_json()["error"]["code"] == "AUTHENTICATION_FAILED"


def test_failures_share_one_message(client):
    wrong_password = client.post("/api/login", json={"username": "staff", "password": "nope"})
    unknown_user = client.post("/api/login", json={"username": "ghost", "password": "nope"})
    inactive = client.post("/api/login", json={"username": "inactive", "password": "inactive123"})
    messages = {r.get_json()["error"]["message"] for r in (wrong_password, unknown_user, inactive)}
    assert {r.status_code for r in (wrong_password, unknown_user, inactive)} == {401}
    assert len(messages) == 1


def test_inactive_login_is_audited_separately(app, client):
    client.post("/api/login", json={"username": "inactive", "password": "inactive123"})
    entry = ActivityLog.query.filter_by(action="Failed Login", user_name="inactive").one()
    assert "inactive account" in entry.details


def test_login_requires_credentials(client):
    response = client.post("/api/login", json={"username": "", "password": ""})
    assert response.status_code == 400


def test_protected_route_requires_token(client):
    assert client.get("/api/seniors").status_code == 401


def test_logout_is_audited(app, client, staff_headers):
    response = client.post("/api/logout", headers=staff_headers)
    assert response.status_code == 200
    assert ActivityLog.query.filter_by(action="Logout", user_name="staff").count() == 1


def test_change_password(client, staff_headers):
    bad = client.post(
        "/api/account/password", headers=staff_headers,
        json={"current_password": "wrong", "new_password": "another1"},
    )
    assert bad.status_code == 400
    short = client.post(
        "/api/account/password", headers=staff_headers,
        json={"current_password": "staff123", "new_password": "abc"},
    )
    assert short.status_code == 400
    ok = client.post(
        "/api/account/password", headers=staff_headers,
        json={"current_password": "staff123", "new_password": "another1"},
    )
    assert ok.status_code == 200
    relogin = client.post("/api/login", json={"username": "staff", "password": "another1"})
    assert relogin.status_code == 200


def test_authenticate_helpers(app):
    assert auth_service.authenticate("staff", "staff123").username == "staff"
    assert auth_service.authenticate("staff", "wrong") is None
    assert auth_service.authenticate("inactive", "inactive123") is None
    assert auth_service.authenticate_with_role("staff", "staff123", "admin") is None
    assert auth_service.authenticate_with_role("admin", "admin123", "staff").is_admin
    assert auth_service.find_user_status("inactive") is False
    assert auth_service.find_user_status("ghost") is None


def test_generate_password_from_name():
    assert auth_service.generate_password_from_name("Juan Dela Cruz") == "juancruz123"
    assert auth_service.generate_password_from_name("Al") == "al123111"
    assert auth_service.generate_password_from_name("Ma. Teresa O'Neil") == "maoneil123"
    assert auth_service.generate_password_from_name("") == "password123"
    assert auth_service.generate_password_from_name("1234") == "password123"
