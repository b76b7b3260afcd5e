from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord, HistoryEntry, RosterEntry
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout_ms: Optional[int] = None):
        self._conn_factory = conn_factory
        self._timeout_ms = timeout_ms

    def exists(self, *, event_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM user_attendances WHERE event_id=%s AND student_id=%s LIMIT 1",
                (int(event_id), int(student_id)),
            )
            return fetchone(cur) is not None

    def create(
        self,
        *,
        event_id: int,
        student_id: int,
        status: AttendanceStatus,
        marked_time: datetime,
    ) -> AttendanceRecord:
        # uq_attendance_event_student rejects a second row for the pair.
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_attendances(event_id, student_id, status, marked_time, created_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(event_id), int(student_id), status.value, to_db(marked_time), to_db(marked_time)),
            )
            return AttendanceRecord(
                id=int(cur.lastrowid),
                event_id=int(event_id),
                student_id=int(student_id),
                status=status,
                marked_time=marked_time,
            )

    def list_for_event(self, event_id: int) -> Sequence[RosterEntry]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT
                    ua.id, ua.student_id, ua.status, ua.marked_time,
                    COALESCE(CONCAT(s.first_name, ' ', s.last_name), '') AS student_name,
                    COALESCE(s.matric_number, '') AS matric_number
                FROM user_attendances ua
                LEFT JOIN students s ON s.id = ua.student_id AND s.deleted_at IS NULL
                WHERE ua.event_id=%s
                ORDER BY ua.marked_time ASC, ua.id ASC
                """,
                (int(event_id),),
            )
            return [
                RosterEntry(
                    id=int(r["id"]),
                    student_id=int(r["student_id"]),
                    student_name=r["student_name"],
                    matric_number=r["matric_number"],
                    status=AttendanceStatus(r["status"]),
                    marked_time=from_db(r["marked_time"]),
                )
                for r in fetchall(cur)
            ]

    def list_for_student(self, student_id: int) -> Sequence[HistoryEntry]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT
                    ua.id, ua.event_id, ua.status, ua.marked_time,
                    COALESCE(e.course_code, '') AS course_code,
                    COALESCE(e.course_name, '') AS course_name,
                    COALESCE(e.venue, '') AS venue,
                    e.start_time, e.end_time
                FROM user_attendances ua
                LEFT JOIN events e ON e.id = ua.event_id AND e.deleted_at IS NULL
                WHERE ua.student_id=%s
                ORDER BY ua.marked_time DESC, ua.id DESC
                """,
                (int(student_id),),
            )
            return [
                HistoryEntry(
                    id=int(r["id"]),
                    event_id=int(r["event_id"]),
                    course_code=r["course_code"],
                    course_name=r["course_name"],
                    venue=r["venue"],
                    status=AttendanceStatus(r["status"]),
                    marked_time=from_db(r["marked_time"]),
                    start_time=from_db(r.get("start_time")),
                    end_time=from_db(r.get("end_time")),
                )
                for r in fetchall(cur)
            ]
