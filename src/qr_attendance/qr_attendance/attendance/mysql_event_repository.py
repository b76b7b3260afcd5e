from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, scalar
from .model import Event, LecturerEventRow
from .repository import EventRepository

_EVENT_COLUMNS = """
    id, event_name, course_code, course_name, department, venue,
    start_time, end_time, qr_code_token, lecturer_id, created_at
"""


def _to_event(row: Dict[str, Any]) -> Event:
    lecturer_id = row.get("lecturer_id")
    return Event(
        id=int(row["id"]),
        event_name=row.get("event_name") or "",
        course_code=row.get("course_code") or "",
        course_name=row.get("course_name") or "",
        department=row.get("department") or "",
        venue=row.get("venue") or "",
        start_time=from_db(row["start_time"]),
        end_time=from_db(row["end_time"]),
        qr_code_token=row["qr_code_token"],
        lecturer_id=int(lecturer_id) if lecturer_id is not None else None,
        created_at=from_db(row.get("created_at")),
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout_ms: Optional[int] = None):
        self._conn_factory = conn_factory
        self._timeout_ms = timeout_ms

    def create_event(
        self,
        *,
        event_name: str,
        course_code: str,
        course_name: str,
        department: str,
        venue: str,
        start_time: datetime,
        end_time: datetime,
        qr_code_token: str,
        lecturer_id: int,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                INSERT INTO events(
                    event_name, course_code, course_name, department, venue,
                    start_time, end_time, qr_code_token, lecturer_id, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    event_name,
                    course_code,
                    course_name,
                    department,
                    venue,
                    to_db(start_time),
                    to_db(end_time),
                    qr_code_token,
                    int(lecturer_id),
                    to_db(created_at),
                    to_db(created_at),
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE id=%s AND deleted_at IS NULL",
                (int(event_id),),
            )
            row = fetchone(cur)
            return _to_event(row) if row else None

    def get_by_token(self, token: str) -> Optional[Event]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                f"SELECT {_EVENT_COLUMNS} FROM events WHERE qr_code_token=%s AND deleted_at IS NULL",
                (token,),
            )
            row = fetchone(cur)
            return _to_event(row) if row else None

    def list_for_lecturer(self, lecturer_id: int) -> Sequence[LecturerEventRow]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT
                    e.id AS event_id, e.course_name, e.course_code, e.department, e.venue,
                    e.start_time, e.end_time, e.qr_code_token, e.created_at,
                    COUNT(DISTINCT ua.student_id) AS total_attendance
                FROM events e
                LEFT JOIN user_attendances ua ON ua.event_id = e.id
                WHERE e.lecturer_id=%s AND e.deleted_at IS NULL
                GROUP BY e.id
                ORDER BY e.created_at DESC, e.id DESC
                """,
                (int(lecturer_id),),
            )
            return [
                LecturerEventRow(
                    event_id=int(r["event_id"]),
                    course_name=r.get("course_name") or "",
                    course_code=r.get("course_code") or "",
                    department=r.get("department") or "",
                    venue=r.get("venue") or "",
                    start_time=from_db(r["start_time"]),
                    end_time=from_db(r["end_time"]),
                    qr_token=r.get("qr_code_token") or "",
                    created_at=from_db(r.get("created_at")),
                    total_attendance=int(r.get("total_attendance") or 0),
                )
                for r in fetchall(cur)
            ]

    def count_students_reached(self, lecturer_id: int) -> int:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT ua.student_id) AS reached
                FROM events e
                JOIN user_attendances ua ON ua.event_id = e.id
                WHERE e.lecturer_id=%s AND e.deleted_at IS NULL
                """,
                (int(lecturer_id),),
            )
            return int(scalar(cur))
