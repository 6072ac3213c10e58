"""Tests for the home dashboard, notifications, announcements and registry reports."""
from __future__ import annotations

from datetime import date, timedelta

from sampaguita.models import SeniorStatus, User
from sampaguita.services import notification_service


def _event(client, headers, title, organized_by=None, days=3):
    data = {"title": title, "event_date": (date.today() + timedelta(days=days)).isoformat()}
    if organized_by:
        data["organized_by"] = organized_by
    return client.post("/api/events", json=data, headers=headers).get_json()


def test_staff_dashboard_counts_only_own_events(client, admin_headers, staff_headers, make_senior):
    make_senior()
    _event(client, admin_headers, "Kapitan Meeting", organized_by="Kapitan")
    _event(client, staff_headers, "Staff Outreach", days=4)

    staff_view = client.get("/api/dashboard", headers=staff_headers).get_json()
    admin_view = client.get("/api/dashboard", headers=admin_headers).get_json()
    assert staff_view["events"]["total_events"] == 1
    assert admin_view["events"]["total_events"] == 2
    assert staff_view["seniors"]["active_seniors"] == 1
    assert "users" not in staff_view
    assert staff_view["unread_announcements"] == 2
    assert [e["title"] for e in admin_view["upcoming"]] == ["Kapitan Meeting", "Staff Outreach"]
    assert admin_view["recent_activities"][0]["action"] == "Create Event"


def test_notifications_belong_to_their_user(app, client, staff_headers, admin_headers):
    staff = User.query.filter_by(username="staff").one()
    admin = User.query.filter_by(username="admin").one()
    first = notification_service.notify(staff.id, "Dues reminder", "January dues are open")
    notification_service.notify(staff.id, "Pension day", type="success")
    others = notification_service.notify(admin.id, "Admin only")

    listing = client.get("/api/notifications", headers=staff_headers).get_json()
    assert listing["unread_count"] == 2
    assert [n["title"] for n in listing["items"]] == ["Pension day", "Dues reminder"]

    assert client.post(f"/api/notifications/{others.id}/read", headers=staff_headers).status_code == 404
    read = client.post(f"/api/notifications/{first.id}/read", headers=staff_headers).get_json()
    assert read["is_read"] is True

    assert client.post("/api/notifications/read-all", headers=staff_headers).get_json() == {"updated": 1}
    assert client.get("/api/notifications", headers=staff_headers).get_json()["unread_count"] == 0

    assert client.delete(f"/api/notifications/{first.id}", headers=staff_headers).status_code == 200
    assert client.delete(f"/api/notifications/{others.id}", headers=staff_headers).status_code == 404
    assert len(client.get("/api/notifications", headers=staff_headers).get_json()["items"]) == 1


def test_announcement_feed(client, admin_headers, staff_headers):
    event = _event(client, admin_headers, "Medical Mission")
    client.put(f"/api/events/{event['id']}", json={"location": "Barangay Hall"}, headers=admin_headers)

    feed = client.get("/api/announcements", headers=staff_headers).get_json()
    assert [a["title"] for a in feed] == ["Event Updated: Medical Mission", "New Event: Medical Mission"]
    assert feed[0]["type"] == "Event"
    assert "Barangay Hall" in feed[0]["message"]

    unread = client.get("/api/announcements/unread", headers=staff_headers).get_json()
    assert unread["count"] == 2
    client.post(f"/api/announcements/{feed[0]['id']}/read", headers=staff_headers)
    assert client.get("/api/announcements/unread", headers=staff_headers).get_json()["count"] == 1
    assert client.post("/api/announcements/999/read", headers=staff_headers).status_code == 404


def test_report_filters(client, staff_headers, make_senior):
    make_senior(first_name="Ana", zone=1, pension_type="SSS")
    make_senior(first_name="Ben", zone=2)
    make_senior(first_name="Cora", zone=2, status=SeniorStatus.ARCHIVED)

    everyone = client.get("/api/reports", headers=staff_headers).get_json()
    assert everyone["statistics"]["total_seniors"] == 3
    assert everyone["statistics"]["active_seniors"] == 2

    zone_two = client.get("/api/reports?zone=2&status=Active", headers=staff_headers).get_json()
    assert [s["first_name"] for s in zone_two["seniors"]] == ["Ben"]

    unpensioned = client.get("/api/reports", query_string={"pension_type": "No Pension"}, headers=staff_headers)
    assert {s["first_name"] for s in unpensioned.get_json()["seniors"]} == {"Ben", "Cora"}

    assert client.get("/api/reports?zone=two", headers=staff_headers).status_code == 400


def test_seniors_export(client, staff_headers, make_senior):
    make_senior(first_name="Ana", last_name="Reyes")
    response = client.get("/api/reports/seniors/export", headers=staff_headers)
    assert response.mimetype == "text/csv"
    assert response.headers["Content-Disposition"].startswith("attachment; filename=Seniors_Report_")
    assert '"Reyes, Ana"' in response.get_data(as_text=True)
