"""Tests for event scheduling, attendance and announcements."""
from __future__ import annotations

from datetime import date, timedelta

from sampaguita.models import Announcement, Event
from sampaguita.services import event_service


def _future(days=7) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def _create(client, headers, **overrides):
    data = {"title": "Wellness Check", "event_date": _future(), "location": "Hall", "event_time": "09:30"}
    data.update(overrides)
    return client.post("/api/events", json=data, headers=headers)


def test_staff_event_defaults_to_own_organizer(app, client, staff_headers):
    response = _create(client, staff_headers)
    assert response.status_code == 201
    body = response.get_json()
    assert body["organized_by"] == "staff"
    assert body["status"] == "Scheduled"
    assert body["event_type"] == "Community Gathering"
    announcement = Announcement.query.one()
    assert announcement.title == "New Event: Wellness Check"
    assert announcement.related_event_id == body["id"]


def test_staff_cannot_organize_for_someone_else(client, staff_headers):
    response = _create(client, staff_headers, organized_by="admin")
    assert response.status_code == 400
    assert "organized_by" in response.get_json()["error"]["fields"]


def test_event_date_cannot_be_in_the_past(client, admin_headers):
    response = _create(client, admin_headers, event_date=(date.today() - timedelta(days=1)).isoformat())
    assert response.status_code == 400
    assert "event_date" in response.get_json()["error"]["fields"]


def test_initial_attendance_may_not_exceed_capacity(client, admin_headers):
    response = _create(client, admin_headers, max_capacity=5, attendance_count=6)
    assert response.status_code == 400


def test_staff_listing_is_scoped(client, admin_headers, staff_headers):
    _create(client, admin_headers, title="Admin Meeting", organized_by="Kapitan")
    _create(client, staff_headers, title="Staff Outreach")
    staff_titles = [e["title"] for e in client.get("/api/events", headers=staff_headers).get_json()]
    admin_titles = [e["title"] for e in client.get("/api/events", headers=admin_headers).get_json()]
    assert staff_titles == ["Staff Outreach"]
    assert set(admin_titles) == {"Admin Meeting", "Staff Outreach"}


def test_staff_cannot_modify_other_events(client, admin_headers, staff_headers):
    event = _create(client, admin_headers, organized_by="Kapitan").get_json()
    assert client.put(f"/api/events/{event['id']}", json={"title": "Mine"}, headers=staff_headers).status_code == 403
    attendance = client.post(f"/api/events/{event['id']}/attendance", json={"count": 1}, headers=staff_headers)
    assert attendance.status_code == 403
    detail = client.get(f"/api/events/{event['id']}", headers=staff_headers).get_json()
    assert detail["can_edit"] is False


def test_update_announces_change(client, admin_headers):
    event = _create(client, admin_headers).get_json()
    response = client.put(f"/api/events/{event['id']}", json={"location": "Covered Court"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()["location"] == "Covered Court"
    titles = [a.title for a in Announcement.query.order_by(Announcement.id).all()]
    assert titles == ["New Event: Wellness Check", "Event Updated: Wellness Check"]


def test_attendance_increments_within_capacity(client, admin_headers):
    event = _create(client, admin_headers, max_capacity=4).get_json()
    url = f"/api/events/{event['id']}/attendance"
    first = client.post(url, json={"count": 3}, headers=admin_headers).get_json()
    assert first["attendance"] == 3
    assert first["percentage"] == 75
    assert first["is_full"] is False
    assert client.post(url, json={"count": 2}, headers=admin_headers).status_code == 400
    assert client.post(url, json={"new_attendance": -1}, headers=admin_headers).status_code == 400
    full = client.post(url, json={"new_attendance": 4}, headers=admin_headers).get_json()
    assert full["is_full"] is True
    assert client.post(url, json={}, headers=admin_headers).status_code == 400


def test_status_change(client, admin_headers):
    event = _create(client, admin_headers).get_json()
    url = f"/api/events/{event['id']}/status"
    assert client.post(url, json={"status": "completed"}, headers=admin_headers).get_json()["status"] == "Completed"
    assert client.post(url, json={"status": "Postponed"}, headers=admin_headers).status_code == 400


def test_archive_restore_and_delete(app, client, admin_headers):
    event = _create(client, admin_headers).get_json()
    event_id = event["id"]

    assert client.delete(f"/api/events/{event_id}", headers=admin_headers).status_code == 400
    assert Announcement.query.filter(Announcement.title.like("Event Cancelled%")).count() == 0

    assert client.post(f"/api/events/{event_id}/archive", headers=admin_headers).status_code == 200
    assert client.get(f"/api/events/{event_id}", headers=admin_headers).status_code == 404
    archived = client.get("/api/events/archived", headers=admin_headers).get_json()
    assert [e["id"] for e in archived] == [event_id]

    assert client.post(f"/api/events/{event_id}/restore", headers=admin_headers).status_code == 200
    client.post(f"/api/events/{event_id}/archive", headers=admin_headers)

    response = client.delete(f"/api/events/{event_id}", headers=admin_headers)
    assert response.status_code == 200
    assert Event.query.count() == 0
    cancelled = Announcement.query.filter(Announcement.title.like("Event Cancelled%")).one()
    assert cancelled.related_event_id is None
    created = Announcement.query.filter_by(title="New Event: Wellness Check").one()
    assert created.related_event_id is None


def test_bulk_delete_archived_is_admin_only(client, admin_headers, staff_headers):
    for title in ("One", "Two"):
        event = _create(client, admin_headers, title=title).get_json()
        client.post(f"/api/events/{event['id']}/archive", headers=admin_headers)
    _create(client, admin_headers, title="Live")
    assert client.delete("/api/events/archived", headers=staff_headers).status_code == 403
    response = client.delete("/api/events/archived", headers=admin_headers)
    assert response.get_json()["deleted"] == 2
    assert [e.title for e in Event.query.all()] == ["Live"]


def test_export_events_csv(client, admin_headers):
    _create(client, admin_headers, title="Zumba, Seniors Edition")
    response = client.get("/api/events/export", headers=admin_headers)
    assert response.mimetype == "text/csv"
    assert '"Zumba, Seniors Edition"' in response.get_data(as_text=True)


def test_date_filters(app):
    today = date(2025, 3, 12)  # a Wednesday
    assert event_service._date_range("this_week", today) == (date(2025, 3, 10), date(2025, 3, 16))
    assert event_service._date_range("next_month", today) == (date(2025, 4, 1), date(2025, 4, 30))
    assert event_service._date_range("past", today) == (None, date(2025, 3, 11))
