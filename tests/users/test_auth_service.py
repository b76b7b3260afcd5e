from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.core.exceptions import AuthenticationError, ConflictError, ValidationError


@pytest.fixture
def auth(container):
    return container.auth_service


def _student_payload(**overrides):
    payload = {
        "first_name": "Ada",
        "last_name": "Obi",
        "email": "ada@uni.edu",
        "password": "secret123",
        "matric_number": "MAT0001",
    }
    payload.update(overrides)
    return payload


def test_register_then_login_student(auth, container):
    student_id = auth.register_student(**_student_payload())

    result = auth.login_student(email="ADA@uni.edu", password="secret123")

    assert result.token_type == "Bearer"
    assert result.user["id"] == student_id
    assert result.user["matric_number"] == "MAT0001"
    assert container.tokens.verify(result.access_token).role == Role.STUDENT


def test_duplicate_email_conflicts(auth):
    auth.register_student(**_student_payload())
    with pytest.raises(ConflictError):
        auth.register_student(**_student_payload(matric_number="MAT0002"))


def test_duplicate_matric_number_conflicts(auth):
    auth.register_student(**_student_payload())
    with pytest.raises(ConflictError) as exc:
        auth.register_student(**_student_payload(email="other@uni.edu"))
    assert "matric number" in exc.value.message


def test_duplicate_staff_id_conflicts(auth):
    base = dict(first_name="Grace", last_name="Hopper", password="secret123", department="CS", staff_id="STF9")
    auth.register_lecturer(email="g@uni.edu", **base)
    with pytest.raises(ConflictError) as exc:
        auth.register_lecturer(email="h@uni.edu", **base)
    assert "staff ID" in exc.value.message


@pytest.mark.parametrize(
    "overrides",
    [{"first_name": ""}, {"email": "not-an-email"}, {"password": "short"}, {"matric_number": "  "}],
)
def test_registration_validates_input(auth, overrides):
    with pytest.raises(ValidationError):
        auth.register_student(**_student_payload(**overrides))


def test_login_failures_share_one_message(auth):
    auth.register_student(**_student_payload())

    with pytest.raises(AuthenticationError) as wrong_password:
        auth.login_student(email="ada@uni.edu", password="nope-nope")
    with pytest.raises(AuthenticationError) as unknown_email:
        auth.login_student(email="ghost@uni.edu", password="secret123")

    assert wrong_password.value.message == unknown_email.value.message


def test_inactive_admin_cannot_log_in(auth, store):
    store.add_admin(email="off@uni.edu", password_hash=generate_password_hash("adminpass"), active=False)
    with pytest.raises(AuthenticationError):
        auth.login_admin(email="off@uni.edu", password="adminpass")


def test_admin_login_issues_admin_token(auth, store, container):
    store.add_admin(email="root@uni.edu", password_hash=generate_password_hash("adminpass"))
    result = auth.login_admin(email="root@uni.edu", password="adminpass")
    assert result.expires_in == 7 * 24 * 3600
    assert container.tokens.verify(result.access_token).role == Role.ADMIN


def test_placeholder_hash_never_matches(auth, store):
    store.add_lecturer(email="g@uni.edu", password_hash="x")
    with pytest.raises(AuthenticationError):
        auth.login_lecturer(email="g@uni.edu", password="anything")
