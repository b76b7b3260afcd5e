from __future__ import annotations

from types import SimpleNamespace

from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.main import create_app


def test_missing_authorization_header(client):
    resp = client.get("/api/events/lecturer")

    assert resp.status_code == 401
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "unauthenticated"
    assert body["error_message"]


def test_malformed_bearer_header(client):
    resp = client.get("/api/events/lecturer", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401


def test_wrong_role_is_forbidden(client, auth_header, store):
    student = store.add_student()
    resp = client.get("/api/events/lecturer", headers=auth_header(student, Role.STUDENT))

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "forbidden"


def test_lecturer_cannot_reach_admin_routes(client, auth_header, store):
    lecturer = store.add_lecturer()
    resp = client.get("/api/admin/settings", headers=auth_header(lecturer, Role.LECTURER))
    assert resp.status_code == 403


def test_malformed_json_body(client, auth_header, store):
    student = store.add_student()
    resp = client.post(
        "/api/attendance/check-in",
        data="{not json",
        content_type="application/json",
        headers=auth_header(student, Role.STUDENT),
    )

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid-input"


def test_non_object_json_body(client):
    resp = client.post("/api/auth/login-student", json=["ada@uni.edu"])
    assert resp.status_code == 400


def test_unknown_token_is_not_found(client, auth_header, store):
    student = store.add_student()
    resp = client.post(
        "/api/attendance/check-in",
        json={"qr_token": "does-not-exist"},
        headers=auth_header(student, Role.STUDENT),
    )
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not-found"


def test_bad_path_id_is_invalid_input(client, auth_header, store):
    lecturer = store.add_lecturer()
    resp = client.get("/api/attendance/abc", headers=auth_header(lecturer, Role.LECTURER))
    assert resp.status_code == 400


def test_unknown_route_uses_envelope(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_store_failure_is_generic_500(client, auth_header, store, container):
    container.analytics_repo.failing.add("overview_counts")
    admin = store.add_admin()

    resp = client.get("/api/analytics/admin/realtime", headers=auth_header(admin, Role.ADMIN))

    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error_message"] == "Internal server error"
    assert "overview_counts" not in resp.get_data(as_text=True)


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/api/nowhere", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"

    generated = client.get("/api/nowhere")
    assert len(generated.headers["X-Request-ID"]) == 32


def test_cors_headers_on_api_routes(client):
    resp = client.options(
        "/api/auth/login-student",
        headers={"Origin": "https://app.uni.edu", "Access-Control-Request-Method": "POST"},
    )
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_wildcard_origin_on_simple_requests(client):
    resp = client.get("/api/nowhere", headers={"Origin": "https://app.uni.edu"})

    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "X-Request-ID" in resp.headers["Access-Control-Expose-Headers"]


def test_explicit_origins_are_echoed(container):
    settings = SimpleNamespace(
        __name__="tests",
        LOG_LEVEL="WARNING",
        CORS={
            "allow_origins": ["https://app.uni.edu"],
            "allow_methods": ["GET", "POST"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": [],
            "allow_credentials": True,
            "max_age_seconds": 600,
        },
    )
    client = create_app(container=container, settings=settings).test_client()

    allowed = client.get("/api/nowhere", headers={"Origin": "https://app.uni.edu"})
    other = client.get("/api/nowhere", headers={"Origin": "https://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "https://app.uni.edu"
    assert allowed.headers["Access-Control-Allow-Credentials"] == "true"
    assert "Access-Control-Allow-Origin" not in other.headers


def test_temporal_requires_dates(client, auth_header, store):
    lecturer = store.add_lecturer()
    resp = client.get("/api/analytics/temporal", headers=auth_header(lecturer, Role.LECTURER))
    assert resp.status_code == 400


def test_dates_serialize_as_rfc3339(client, auth_header, store, clock):
    lecturer = store.add_lecturer()
    store.add_event(start=clock.now, lecturer_id=lecturer.id)

    resp = client.get("/api/events/lecturer", headers=auth_header(lecturer, Role.LECTURER))

    event = resp.get_json()["data"]["events"][0]
    assert event["start_time"] == "2025-11-27T10:30:00Z"
    assert event["status"] == "active"
