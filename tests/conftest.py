from __future__ import annotations

from types import SimpleNamespace

import pytest

from src.qr_attendance.qr_attendance.auth.tokens import TokenService
from src.qr_attendance.qr_attendance.container import wire
from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.main import create_app

from tests.fakes import (
    InMemoryAdmin,
    InMemoryAnalytics,
    InMemoryAttendance,
    InMemoryEvents,
    InMemoryStore,
    InMemoryUsers,
    MutableClock,
    utc,
)

TEST_SECRET = "test-jwt-secret-0123456789abcdef0123"


@pytest.fixture
def clock():
    return MutableClock(utc(2025, 11, 27, 10, 30, 0))


@pytest.fixture
def store(clock):
    return InMemoryStore(clock)


@pytest.fixture
def container(store, clock):
    tokens = iter(f"{n:032x}" for n in range(1, 10_000))
    return wire(
        tokens=TokenService(TEST_SECRET, clock=clock),
        users_repo=InMemoryUsers(store),
        events_repo=InMemoryEvents(store),
        attendance_repo=InMemoryAttendance(store),
        analytics_repo=InMemoryAnalytics(store),
        admin_repo=InMemoryAdmin(store),
        clock=clock,
        token_factory=lambda: next(tokens),
        qr_renderer=lambda token: f"qr:{token}",
    )


@pytest.fixture
def app(container):
    settings = SimpleNamespace(
        __name__="tests",
        LOG_LEVEL="WARNING",
        DEBUG=False,
        TESTING=True,
        CORS={
            "allow_origins": ["*"],
            "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": [],
            "allow_credentials": False,
            "max_age_seconds": 43200,
        },
    )
    return create_app(container=container, settings=settings)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(container):
    def _header(user, role: Role) -> dict:
        issued = container.tokens.issue(user_id=user.id, email=user.email, role=role)
        return {"Authorization": f"Bearer {issued.access_token}"}

    return _header
