from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .admin.mysql_admin_repository import MySQLAdminRepository
from .admin.repository import AdminRepository
from .admin.service import AdminService
from .analytics.mysql_analytics_repository import MySQLAnalyticsRepository
from .analytics.repository import AnalyticsRepository
from .analytics.service import AnalyticsService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.mysql_event_repository import MySQLEventRepository
from .attendance.repository import AttendanceRepository, EventRepository
from .attendance.service import AttendanceService
from .auth.gate import AuthGate
from .auth.tokens import TokenService
from .core.constants import DB_PING_TIMEOUT_SECONDS
from .database.connection import DBConfig, DatabaseConnection, PoolConfig
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    tokens: TokenService
    gate: AuthGate

    users_repo: UserRepository
    events_repo: EventRepository
    attendance_repo: AttendanceRepository
    analytics_repo: AnalyticsRepository
    admin_repo: AdminRepository

    auth_service: AuthService
    attendance_service: AttendanceService
    analytics_service: AnalyticsService
    admin_service: AdminService


def wire(
    *,
    tokens: TokenService,
    users_repo: UserRepository,
    events_repo: EventRepository,
    attendance_repo: AttendanceRepository,
    analytics_repo: AnalyticsRepository,
    admin_repo: AdminRepository,
    conn: Optional[DatabaseConnection] = None,
    clock: Optional[Callable[[], datetime]] = None,
    token_factory: Optional[Callable[[], str]] = None,
    qr_renderer: Optional[Callable[[str], str]] = None,
) -> Container:
    """Build services over the given repositories (MySQL or in-memory)."""

    clock_kwargs = {"clock": clock} if clock is not None else {}
    attendance_kwargs = dict(clock_kwargs)
    if token_factory is not None:
        attendance_kwargs["token_factory"] = token_factory
    if qr_renderer is not None:
        attendance_kwargs["qr_renderer"] = qr_renderer

    health_check = None
    if conn is not None:
        def health_check() -> None:
            conn.ping(timeout_seconds=DB_PING_TIMEOUT_SECONDS)

    return Container(
        conn=conn,
        tokens=tokens,
        gate=AuthGate(tokens),
        users_repo=users_repo,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        analytics_repo=analytics_repo,
        admin_repo=admin_repo,
        auth_service=AuthService(users_repo, tokens),
        attendance_service=AttendanceService(events_repo, attendance_repo, users_repo, **attendance_kwargs),
        analytics_service=AnalyticsService(analytics_repo, users_repo, health_check=health_check, **clock_kwargs),
        admin_service=AdminService(admin_repo),
    )


def build_container(*, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(
        DBConfig.from_dict(getattr(settings, "DB_CONFIG")),
        PoolConfig.from_dict(getattr(settings, "POOL_CONFIG", None)),
    )
    mutation_ms = int(getattr(settings, "MUTATION_TIMEOUT_MS", 10000))
    analytics_ms = int(getattr(settings, "ANALYTICS_TIMEOUT_MS", 30000))

    return wire(
        conn=conn,
        tokens=TokenService(getattr(settings, "JWT_SECRET")),
        users_repo=MySQLUserRepository(conn, timeout_ms=mutation_ms),
        events_repo=MySQLEventRepository(conn, timeout_ms=mutation_ms),
        attendance_repo=MySQLAttendanceRepository(conn, timeout_ms=mutation_ms),
        analytics_repo=MySQLAnalyticsRepository(conn, timeout_ms=analytics_ms),
        admin_repo=MySQLAdminRepository(conn, timeout_ms=mutation_ms),
    )
