from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from classroom_usage.main import create_app


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def container(app):
    return app.extensions["container"]


def test_classroom_lifecycle_with_versions(client):
    created = client.post("/api/classrooms", json={"name": "Lab 1", "location": "Building A", "version": 7})
    assert created.status_code == 201
    body = created.get_json()
    assert body["version"] == 1
    cid = body["id"]

    updated = client.put(f"/api/classrooms/{cid}", json={"version": 1, "capacity": 25})
    assert updated.status_code == 200
    assert updated.get_json()["version"] == 2
    assert updated.get_json()["capacity"] == 25

    stale = client.put(f"/api/classrooms/{cid}", json={"version": 1, "capacity": 99})
    assert stale.status_code == 409
    assert stale.get_json() == {
        "message": "Classroom was updated by someone else. Refresh and try again.",
        "code": "VERSION_CONFLICT",
        "entity": "Classroom",
    }
    assert client.get(f"/api/classrooms/{cid}").get_json()["capacity"] == 25

    assert client.delete(f"/api/classrooms/{cid}", json={"version": 1}).status_code == 409
    assert client.delete(f"/api/classrooms/{cid}?version=2").status_code == 200
    assert client.get(f"/api/classrooms/{cid}").status_code == 404


def test_update_without_version_is_bad_request(client):
    cid = client.post("/api/instructors", json={"name": "Ms. Lan"}).get_json()["id"]

    resp = client.put(f"/api/instructors/{cid}", json={"name": "Ms. Lan Nguyen"})

    assert resp.status_code == 400
    assert "Version is required" in resp.get_json()["message"]


def test_non_finite_version_is_bad_request(client):
    cid = client.post("/api/instructors", json={"name": "Ms. Lan"}).get_json()["id"]

    resp = client.put(f"/api/instructors/{cid}", data='{"version": Infinity, "name": "x"}', content_type="application/json")

    assert resp.status_code == 400
    assert client.get(f"/api/instructors/{cid}").get_json()["version"] == 1


@pytest.mark.parametrize(
    "path", ["/api/classrooms?limit=-1", "/api/classrooms?limit=0", "/api/timein?limit=-1", "/api/reports?limit=abc"]
)
def test_non_positive_limit_is_bad_request(client, path):
    resp = client.get(path)

    assert resp.status_code == 400
    assert "limit" in resp.get_json()["message"]


def test_limit_caps_the_listing(client):
    for i in range(3):
        client.post("/api/classrooms", json={"name": f"Lab {i}", "location": "Building A"})

    assert len(client.get("/api/classrooms?limit=2").get_json()) == 2
    assert len(client.get("/api/classrooms").get_json()) == 3


def test_unknown_collection_is_404(client):
    assert client.get("/api/spaceships").status_code == 404


def test_users_never_expose_password_hash(client):
    resp = client.post("/api/users", json={"email": "a@example.com", "password": "s3cret"})

    assert resp.status_code == 201
    assert "password_hash" not in resp.get_json()
    assert "password" not in resp.get_json()


def test_non_object_body_is_rejected(client):
    resp = client.post("/api/classrooms", json=["not", "an", "object"])
    assert resp.status_code == 400


def test_timein_verify_conflict(client):
    created = client.post("/api/timein", json={"subject_ref": "student-1", "location_ref": "room-a"})
    assert created.status_code == 201
    rid = created.get_json()["record"]["id"]

    ok = client.put(f"/api/timein/{rid}/verify", json={"version": 1, "status": "verified", "verified_by": "Ms. Lan"})
    assert ok.status_code == 200
    assert ok.get_json()["record"]["version"] == 2

    stale = client.put(f"/api/timein/{rid}/verify", json={"version": 1, "status": "rejected", "verified_by": "Mr. Binh"})
    assert stale.status_code == 409
    assert stale.get_json()["code"] == "VERSION_CONFLICT"
    assert stale.get_json()["entity"] == "TimeIn Record"


def test_timein_bad_date_filter(client):
    assert client.get("/api/timein?date=16-10-2026").status_code == 400


def test_manual_archive_and_report_listing(client, container):
    now = datetime(2024, 3, 11, 8, 0, tzinfo=timezone.utc)
    for i in range(4):
        container.event_log_service.record_time_in(f"student-{i}", "room-a", now=now)

    resp = client.post("/api/reports/archive-daily", json={"date": "2024-03-11", "actor": "admin"})
    assert resp.status_code == 200
    run = resp.get_json()["run"]
    assert run["target"] == "2024-03-11"
    assert [r["outcome"] for r in run["results"]] == ["completed", "not_due", "not_due"]

    again = client.post("/api/reports/archive-daily", json={"date": "2024-03-11"})
    assert again.status_code == 200
    assert again.get_json()["run"]["results"][0]["outcome"] == "skipped"

    reports = client.get("/api/reports?kind=daily").get_json()
    assert len(reports) == 1
    assert reports[0]["title"] == "Daily Report - March 11, 2024"
    assert reports[0]["statistics"]["total"] == 4
    assert reports[0]["generated_by"] == "admin"
    assert reports[0]["period"]["ends_at"] == "2024-03-11T23:59:59.999"

    one = client.get(f"/api/reports/{reports[0]['id']}")
    assert one.status_code == 200
    assert client.get("/api/reports/nope").status_code == 404

    remaining = client.get("/api/timein?date=2024-03-11").get_json()
    assert remaining == []


def test_archive_rejects_bad_date(client):
    assert client.post("/api/reports/archive-daily", json={"date": "yesterday"}).status_code == 400


@pytest.mark.parametrize("day", ["2999-01-01", "today"])
def test_archive_rejects_days_that_are_not_closed(client, container, day):
    if day == "today":
        day = (container.scheduler.yesterday() + timedelta(days=1)).isoformat()

    resp = client.post("/api/reports/archive-daily", json={"date": day})

    assert resp.status_code == 400
    assert "must be before" in resp.get_json()["message"]
    assert client.get("/api/reports").get_json() == []


def test_archive_with_unreported_records_is_not_ok(client, container):
    now = datetime(2024, 3, 12, 8, 0, tzinfo=timezone.utc)
    container.event_log_service.record_time_in("student-1", "room-a", now=now)
    assert client.post("/api/reports/archive-daily", json={"date": "2024-03-12"}).status_code == 200
    late = container.event_log_service.record_time_in("student-2", "room-a", now=now)

    resp = client.post("/api/reports/archive-daily", json={"date": "2024-03-12"})

    assert resp.status_code == 409
    run = resp.get_json()["run"]
    assert run["ok"] is False
    assert run["results"][0]["outcome"] == "incomplete"
    assert late.record_id in run["results"][0]["message"]


def test_archival_status(client):
    status = client.get("/api/archival/status").get_json()
    assert status["state"] == "idle"
    assert status["running"] is False
