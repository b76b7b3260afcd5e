from __future__ import annotations

import pytest

from src.qr_attendance.qr_attendance.core.enums import Role

from tests.fakes import utc

EVENT = {
    "course_code": "CSC301",
    "course_name": "Operating Systems",
    "start_time": "2025-11-27T10:00:00Z",
    "end_time": "2025-11-27T11:00:00Z",
    "venue": "LT1",
    "department": "Computer Science",
}


@pytest.fixture
def lecturer(store):
    return store.add_lecturer()


@pytest.fixture
def created(client, auth_header, lecturer):
    resp = client.post("/api/lecturer/qrcode/generate", json=EVENT, headers=auth_header(lecturer, Role.LECTURER))
    assert resp.status_code == 201
    return resp.get_json()["data"]


def test_lecturer_creates_session_and_sees_empty_roster(client, auth_header, lecturer, created):
    assert created["qr_code"] == f"qr:{created['qr_token']}"
    assert created["expires_at"] == "2025-11-27T11:00:00Z"

    resp = client.get(f"/api/attendance/{created['event_id']}", headers=auth_header(lecturer, Role.LECTURER))

    assert resp.status_code == 200
    assert resp.get_json()["data"]["total_present"] == 0


def test_student_checks_in_once(client, auth_header, store, clock, lecturer, created):
    student = store.add_student()
    headers = auth_header(student, Role.STUDENT)

    first = client.post("/api/attendance/check-in", json={"qr_token": created["qr_token"]}, headers=headers)
    assert first.status_code == 200
    body = first.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "present"
    assert body["data"]["marked_time"] == "2025-11-27T10:30:00Z"

    clock.advance(minutes=1)
    again = client.post("/api/attendance/check-in", json={"qr_token": created["qr_token"]}, headers=headers)
    assert again.status_code == 409
    assert again.get_json()["error"] == "already-recorded"

    roster = client.get(f"/api/attendance/{created['event_id']}", headers=auth_header(lecturer, Role.LECTURER))
    data = roster.get_json()["data"]
    assert data["total_present"] == 1
    assert [r["student_id"] for r in data["attendance_records"]] == [student.id]


def test_metrics_count_a_fresh_check_in(client, auth_header, store, created):
    student = store.add_student()
    headers = auth_header(student, Role.STUDENT)
    url = f"/api/analytics/student/{student.id}"

    before = client.get(url, headers=headers).get_json()["data"]
    resp = client.post("/api/attendance/check-in", json={"qr_token": created["qr_token"]}, headers=headers)
    assert resp.status_code == 200
    after = client.get(url, headers=headers).get_json()["data"]

    assert after["total_sessions"] == before["total_sessions"] + 1
    assert after["total_present"] == before["total_present"] + 1
    assert after["attendance_streak"] == 1


def test_check_in_outside_window(client, auth_header, store, clock, created):
    early_student = store.add_student()
    late_student = store.add_student("Bola", "Ade")

    clock.now = utc(2025, 11, 27, 9, 59, 59)
    early = client.post(
        "/api/attendance/check-in",
        json={"qr_token": created["qr_token"]},
        headers=auth_header(early_student, Role.STUDENT),
    )
    assert early.status_code == 400
    assert early.get_json()["error"] == "too-early"
    assert early.get_json()["details"]["start_time"] == "2025-11-27T10:00:00Z"

    clock.now = utc(2025, 11, 27, 11, 0, 1)
    late = client.post(
        "/api/attendance/check-in",
        json={"qr_token": created["qr_token"]},
        headers=auth_header(late_student, Role.STUDENT),
    )
    assert late.status_code == 400
    assert late.get_json()["error"] == "too-late"


def test_admin_delete_removes_event_and_history(client, auth_header, store, lecturer, created):
    student = store.add_student()
    student_headers = auth_header(student, Role.STUDENT)
    client.post("/api/attendance/check-in", json={"qr_token": created["qr_token"]}, headers=student_headers)
    admin = store.add_admin()

    resp = client.delete(f"/api/admin/events/{created['event_id']}", headers=auth_header(admin, Role.ADMIN))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["attendance_removed"] == 1

    roster = client.get(f"/api/attendance/{created['event_id']}", headers=auth_header(lecturer, Role.LECTURER))
    assert roster.status_code == 404
    history = client.get("/api/attendance/student/records", headers=student_headers)
    assert history.get_json()["data"]["attendance_records"] == []

    logs = client.get("/api/admin/audit-logs", headers=auth_header(admin, Role.ADMIN)).get_json()["data"]
    assert logs["count"] == 1
    assert logs["logs"][0]["resource_type"] == "event"


def test_register_login_and_read_own_metrics(client):
    reg = client.post(
        "/api/auth/register-student",
        json={
            "first_name": "Ada",
            "last_name": "Obi",
            "email": "ada@uni.edu",
            "password": "secret123",
            "matric_number": "MAT0100",
        },
    )
    assert reg.status_code == 201
    student_id = reg.get_json()["data"]["id"]

    login = client.post("/api/auth/login-student", json={"email": "ada@uni.edu", "password": "secret123"})
    assert login.status_code == 200
    token = login.get_json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    own = client.get(f"/api/analytics/student/{student_id}", headers=headers)
    assert own.status_code == 200
    assert own.get_json()["data"]["total_sessions"] == 0

    other = client.get(f"/api/analytics/student/{student_id + 1}", headers=headers)
    assert other.status_code == 403


def test_csv_export(client, auth_header, store, lecturer, created):
    student = store.add_student()
    client.post(
        "/api/attendance/check-in",
        json={"qr_token": created["qr_token"]},
        headers=auth_header(student, Role.STUDENT),
    )

    resp = client.get(
        f"/api/attendance/{created['event_id']}/export.csv", headers=auth_header(lecturer, Role.LECTURER)
    )

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    lines = resp.data.decode("utf-8-sig").splitlines()
    assert lines[0] == "student_id,student_name,matric_number,status,marked_time"
    assert lines[1] == f"{student.id},Ada Obi,{student.matric_number},present,2025-11-27T10:30:00Z"
