from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, scalar
from .model import (
    CourseEnrollment,
    CourseTotals,
    DailyTotals,
    DepartmentPeople,
    DuplicatePair,
    EventStats,
    HourlyTotals,
    OverviewCounts,
    Totals,
)
from .repository import AnalyticsRepository

_PRESENT = "COALESCE(SUM(ua.status = 'present'), 0)"
_DELAY_MINUTES = "COALESCE(SUM(GREATEST(TIMESTAMPDIFF(SECOND, e.start_time, ua.marked_time), 0)), 0) / 60"

_DEPARTMENTS = """
    SELECT department FROM events WHERE deleted_at IS NULL AND department <> ''
    UNION
    SELECT department FROM lecturers WHERE deleted_at IS NULL AND department <> ''
"""


def _int(value: Any) -> int:
    return int(value or 0)


def _float(value: Any) -> float:
    return float(value or 0)


class MySQLAnalyticsRepository(AnalyticsRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout_ms: Optional[int] = None):
        self._conn_factory = conn_factory
        self._timeout_ms = timeout_ms

    def _rows(self, sql: str, params: Sequence[Any] = ()) -> list[dict]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)

    def _row(self, sql: str, params: Sequence[Any] = ()) -> Optional[dict]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchone(cur)

    def _scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(sql, tuple(params))
            return scalar(cur)

    # ---- student ----

    def student_totals(self, student_id: int, *, since: Optional[datetime] = None) -> Totals:
        clauses = ["ua.student_id=%s"]
        params: list[Any] = [int(student_id)]
        if since is not None:
            clauses.append("ua.marked_time >= %s")
            params.append(to_db(since))
        row = self._row(
            f"""
            SELECT COUNT(ua.id) AS total, {_PRESENT} AS present
            FROM user_attendances ua
            WHERE {" AND ".join(clauses)}
            """,
            params,
        )
        row = row or {}
        return Totals(total=_int(row.get("total")), present=_int(row.get("present")))

    def student_late_count(self, student_id: int, *, threshold_minutes: int) -> int:
        return _int(
            self._scalar(
                """
                SELECT COUNT(ua.id)
                FROM user_attendances ua
                JOIN events e ON e.id = ua.event_id
                WHERE ua.student_id=%s
                  AND TIMESTAMPDIFF(SECOND, e.start_time, ua.marked_time) > %s
                """,
                (int(student_id), int(threshold_minutes) * 60),
            )
        )

    def student_present_days(self, student_id: int) -> Sequence[date]:
        rows = self._rows(
            """
            SELECT DISTINCT DATE(marked_time) AS day
            FROM user_attendances
            WHERE student_id=%s AND status='present'
            ORDER BY day DESC
            """,
            (int(student_id),),
        )
        return [r["day"] for r in rows]

    def student_course_totals(self, student_id: int) -> Sequence[CourseTotals]:
        rows = self._rows(
            f"""
            SELECT
                e.course_code,
                MAX(e.course_name) AS course_name,
                MAX(e.department) AS department,
                COUNT(ua.id) AS total,
                {_PRESENT} AS present,
                COUNT(DISTINCT e.id) AS sessions
            FROM user_attendances ua
            JOIN events e ON e.id = ua.event_id
            WHERE ua.student_id=%s
            GROUP BY e.course_code
            ORDER BY e.course_code
            """,
            (int(student_id),),
        )
        return [
            CourseTotals(
                course_code=r["course_code"] or "",
                course_name=r.get("course_name") or "",
                department=r.get("department") or "",
                total=_int(r["total"]),
                present=_int(r["present"]),
                sessions=_int(r.get("sessions")),
            )
            for r in rows
        ]

    # ---- time buckets ----

    def daily_totals(
        self,
        *,
        start: datetime,
        end: Optional[datetime] = None,
        student_id: Optional[int] = None,
    ) -> Sequence[DailyTotals]:
        clauses = ["ua.marked_time >= %s"]
        params: list[Any] = [to_db(start)]
        if end is not None:
            clauses.append("ua.marked_time <= %s")
            params.append(to_db(end))
        if student_id is not None:
            clauses.append("ua.student_id=%s")
            params.append(int(student_id))
        rows = self._rows(
            f"""
            SELECT
                DATE(ua.marked_time) AS day,
                COUNT(ua.id) AS total,
                {_PRESENT} AS present,
                COUNT(DISTINCT ua.event_id) AS sessions,
                {_DELAY_MINUTES} AS delay_minutes_sum
            FROM user_attendances ua
            LEFT JOIN events e ON e.id = ua.event_id
            WHERE {" AND ".join(clauses)}
            GROUP BY DATE(ua.marked_time)
            ORDER BY day
            """,
            params,
        )
        return [
            DailyTotals(
                day=r["day"],
                total=_int(r["total"]),
                present=_int(r["present"]),
                sessions=_int(r["sessions"]),
                delay_minutes_sum=_float(r["delay_minutes_sum"]),
            )
            for r in rows
        ]

    def hourly_totals(self, *, start: datetime, end: datetime) -> Sequence[HourlyTotals]:
        rows = self._rows(
            f"""
            SELECT
                WEEKDAY(ua.marked_time) AS weekday,
                HOUR(ua.marked_time) AS hour,
                COUNT(ua.id) AS total,
                {_PRESENT} AS present,
                COUNT(DISTINCT ua.event_id) AS sessions,
                {_DELAY_MINUTES} AS delay_minutes_sum
            FROM user_attendances ua
            LEFT JOIN events e ON e.id = ua.event_id
            WHERE ua.marked_time >= %s AND ua.marked_time <= %s
            GROUP BY WEEKDAY(ua.marked_time), HOUR(ua.marked_time)
            ORDER BY weekday, hour
            """,
            (to_db(start), to_db(end)),
        )
        return [
            HourlyTotals(
                weekday=_int(r["weekday"]),
                hour=_int(r["hour"]),
                total=_int(r["total"]),
                present=_int(r["present"]),
                sessions=_int(r["sessions"]),
                delay_minutes_sum=_float(r["delay_minutes_sum"]),
            )
            for r in rows
        ]

    def overall_totals(self, *, since: Optional[datetime] = None) -> Totals:
        where = ""
        params: list[Any] = []
        if since is not None:
            where = "WHERE ua.marked_time >= %s"
            params.append(to_db(since))
        row = self._row(
            f"SELECT COUNT(ua.id) AS total, {_PRESENT} AS present FROM user_attendances ua {where}",
            params,
        ) or {}
        return Totals(total=_int(row.get("total")), present=_int(row.get("present")))

    # ---- events and courses ----

    def event_stats(
        self,
        *,
        lecturer_id: Optional[int] = None,
        department: Optional[str] = None,
        course_code: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[EventStats]:
        clauses = ["e.deleted_at IS NULL"]
        params: list[Any] = []
        if lecturer_id is not None:
            clauses.append("e.lecturer_id=%s")
            params.append(int(lecturer_id))
        if department is not None:
            clauses.append("e.department=%s")
            params.append(department)
        if course_code is not None:
            clauses.append("e.course_code=%s")
            params.append(course_code)
        if start is not None:
            clauses.append("e.start_time >= %s")
            params.append(to_db(start))
        if end is not None:
            clauses.append("e.start_time <= %s")
            params.append(to_db(end))

        rows = self._rows(
            f"""
            SELECT
                e.id AS event_id, e.course_code, e.course_name, e.department, e.venue,
                e.lecturer_id, e.start_time, e.end_time, e.created_at,
                COUNT(ua.id) AS total,
                {_PRESENT} AS present
            FROM events e
            LEFT JOIN user_attendances ua ON ua.event_id = e.id
            WHERE {" AND ".join(clauses)}
            GROUP BY e.id
            ORDER BY e.start_time, e.id
            """,
            params,
        )
        return [
            EventStats(
                event_id=int(r["event_id"]),
                course_code=r.get("course_code") or "",
                course_name=r.get("course_name") or "",
                department=r.get("department") or "",
                venue=r.get("venue") or "",
                lecturer_id=int(r["lecturer_id"]) if r.get("lecturer_id") is not None else None,
                start_time=from_db(r["start_time"]),
                end_time=from_db(r["end_time"]),
                created_at=from_db(r.get("created_at")),
                total=_int(r["total"]),
                present=_int(r["present"]),
            )
            for r in rows
        ]

    def course_totals(self, *, lecturer_id: Optional[int] = None, course_code: Optional[str] = None) -> Sequence[CourseTotals]:
        clauses = ["e.deleted_at IS NULL", "e.course_code <> ''"]
        params: list[Any] = []
        if lecturer_id is not None:
            clauses.append("e.lecturer_id=%s")
            params.append(int(lecturer_id))
        if course_code is not None:
            clauses.append("e.course_code=%s")
            params.append(course_code)
        rows = self._rows(
            f"""
            SELECT
                e.course_code,
                MAX(e.course_name) AS course_name,
                MAX(e.department) AS department,
                COUNT(DISTINCT e.id) AS sessions,
                COUNT(DISTINCT ua.student_id) AS students,
                COUNT(ua.id) AS total,
                {_PRESENT} AS present
            FROM events e
            LEFT JOIN user_attendances ua ON ua.event_id = e.id
            WHERE {" AND ".join(clauses)}
            GROUP BY e.course_code
            ORDER BY e.course_code
            """,
            params,
        )
        return [
            CourseTotals(
                course_code=r["course_code"],
                course_name=r.get("course_name") or "",
                department=r.get("department") or "",
                total=_int(r["total"]),
                present=_int(r["present"]),
                sessions=_int(r["sessions"]),
                students=_int(r["students"]),
            )
            for r in rows
        ]

    def distinct_students(
        self,
        *,
        lecturer_id: Optional[int] = None,
        department: Optional[str] = None,
    ) -> int:
        clauses = ["e.deleted_at IS NULL"]
        params: list[Any] = []
        if lecturer_id is not None:
            clauses.append("e.lecturer_id=%s")
            params.append(int(lecturer_id))
        if department is not None:
            clauses.append("e.department=%s")
            params.append(department)
        return _int(
            self._scalar(
                f"""
                SELECT COUNT(DISTINCT ua.student_id)
                FROM events e
                JOIN user_attendances ua ON ua.event_id = e.id
                WHERE {" AND ".join(clauses)}
                """,
                params,
            )
        )

    # ---- admin ----

    def overview_counts(self, *, now: datetime, day_start: datetime, day_end: datetime) -> OverviewCounts:
        now_db, start_db, end_db = to_db(now), to_db(day_start), to_db(day_end)
        row = self._row(
            f"""
            SELECT
                (SELECT COUNT(*) FROM students WHERE deleted_at IS NULL) AS total_students,
                (SELECT COUNT(*) FROM lecturers WHERE deleted_at IS NULL) AS total_lecturers,
                (SELECT COUNT(*) FROM ({_DEPARTMENTS}) d) AS total_departments,
                (SELECT COUNT(*) FROM events WHERE deleted_at IS NULL) AS total_events,
                (SELECT COUNT(*) FROM events
                    WHERE deleted_at IS NULL AND start_time <= %s AND end_time >= %s) AS active_sessions,
                (SELECT COUNT(*) FROM events
                    WHERE deleted_at IS NULL AND created_at >= %s AND created_at < %s) AS events_created_today,
                (SELECT COUNT(*) FROM user_attendances
                    WHERE marked_time >= %s AND marked_time < %s) AS checkins_today,
                (SELECT COALESCE(SUM(status = 'present'), 0) FROM user_attendances
                    WHERE marked_time >= %s AND marked_time < %s) AS present_today,
                (SELECT MAX(marked_time) FROM user_attendances) AS last_check_in
            """,
            (now_db, now_db, start_db, end_db, start_db, end_db, start_db, end_db),
        ) or {}
        return OverviewCounts(
            total_students=_int(row.get("total_students")),
            total_lecturers=_int(row.get("total_lecturers")),
            total_departments=_int(row.get("total_departments")),
            total_events=_int(row.get("total_events")),
            active_sessions=_int(row.get("active_sessions")),
            events_created_today=_int(row.get("events_created_today")),
            checkins_today=_int(row.get("checkins_today")),
            present_today=_int(row.get("present_today")),
            last_check_in=from_db(row.get("last_check_in")),
        )

    def department_people(self, department: Optional[str] = None) -> Sequence[DepartmentPeople]:
        where = ""
        params: list[Any] = []
        if department is not None:
            where = "WHERE d.department=%s"
            params.append(department)
        rows = self._rows(
            f"""
            SELECT
                d.department,
                (SELECT COUNT(DISTINCT ua.student_id)
                    FROM events e JOIN user_attendances ua ON ua.event_id = e.id
                    WHERE e.department = d.department AND e.deleted_at IS NULL) AS students,
                (SELECT COUNT(*) FROM lecturers l
                    WHERE l.department = d.department AND l.deleted_at IS NULL) AS lecturers
            FROM ({_DEPARTMENTS}) d
            {where}
            ORDER BY d.department
            """,
            params,
        )
        return [
            DepartmentPeople(department=r["department"], students=_int(r["students"]), lecturers=_int(r["lecturers"]))
            for r in rows
        ]

    def course_enrollment(self, department: str) -> Sequence[CourseEnrollment]:
        rows = self._rows(
            """
            SELECT
                e.course_code,
                MAX(e.course_name) AS course_name,
                COUNT(DISTINCT ua.student_id) AS enrolled,
                COUNT(DISTINCT CASE WHEN ua.status = 'present' THEN ua.student_id END) AS attended
            FROM events e
            LEFT JOIN user_attendances ua ON ua.event_id = e.id
            WHERE e.deleted_at IS NULL AND e.department=%s
            GROUP BY e.course_code
            ORDER BY e.course_code
            """,
            (department,),
        )
        return [
            CourseEnrollment(
                course_code=r["course_code"] or "",
                course_name=r.get("course_name") or "",
                enrolled=_int(r["enrolled"]),
                attended=_int(r["attended"]),
            )
            for r in rows
        ]

    def duplicate_checkins(self, *, window_seconds: int) -> Sequence[DuplicatePair]:
        rows = self._rows(
            """
            SELECT ua1.student_id, ua1.event_id, ua1.id AS first_id, ua2.id AS second_id
            FROM user_attendances ua1
            JOIN user_attendances ua2
              ON ua2.student_id = ua1.student_id
             AND ua2.event_id = ua1.event_id
             AND ua2.id <> ua1.id
             AND ABS(TIMESTAMPDIFF(SECOND, ua1.marked_time, ua2.marked_time)) < %s
            ORDER BY ua1.student_id, ua1.event_id, ua1.id
            """,
            (int(window_seconds),),
        )
        return [
            DuplicatePair(
                student_id=int(r["student_id"]),
                event_id=int(r["event_id"]),
                first_id=int(r["first_id"]),
                second_id=int(r["second_id"]),
            )
            for r in rows
        ]
