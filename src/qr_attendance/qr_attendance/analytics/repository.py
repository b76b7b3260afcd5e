from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

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


class AnalyticsRepository(Protocol):
    """Read-only aggregates over events and attendance rows.

    Returns counts only; rates and scores are computed by the service.
    Instants are aware UTC datetimes; days are UTC calendar days.
    """

    def student_totals(self, student_id: int, *, since: Optional[datetime] = None) -> Totals:
        raise NotImplementedError

    def student_late_count(self, student_id: int, *, threshold_minutes: int) -> int:
        raise NotImplementedError

    def student_present_days(self, student_id: int) -> Sequence[date]:
        raise NotImplementedError

    def student_course_totals(self, student_id: int) -> Sequence[CourseTotals]:
        raise NotImplementedError

    def daily_totals(
        self,
        *,
        start: datetime,
        end: Optional[datetime] = None,
        student_id: Optional[int] = None,
    ) -> Sequence[DailyTotals]:
        """Rows grouped by the UTC day of their marked time."""

        raise NotImplementedError

    def hourly_totals(self, *, start: datetime, end: datetime) -> Sequence[HourlyTotals]:
        raise NotImplementedError

    def overall_totals(self, *, since: Optional[datetime] = None) -> Totals:
        raise NotImplementedError

    def event_stats(
        self,
        *,
        lecturer_id: Optional[int] = None,
        department: Optional[str] = None,
        course_code: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[EventStats]:
        """One entry per live event (filtered on event start), ordered by start."""

        raise NotImplementedError

    def course_totals(self, *, lecturer_id: Optional[int] = None, course_code: Optional[str] = None) -> Sequence[CourseTotals]:
        raise NotImplementedError

    def distinct_students(
        self,
        *,
        lecturer_id: Optional[int] = None,
        department: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def overview_counts(self, *, now: datetime, day_start: datetime, day_end: datetime) -> OverviewCounts:
        raise NotImplementedError

    def department_people(self, department: Optional[str] = None) -> Sequence[DepartmentPeople]:
        raise NotImplementedError

    def course_enrollment(self, department: str) -> Sequence[CourseEnrollment]:
        raise NotImplementedError

    def duplicate_checkins(self, *, window_seconds: int) -> Sequence[DuplicatePair]:
        """Pairs of rows for one (student, event) marked within the window.

        Each offending pair may appear twice (a, b) and (b, a).
        """

        raise NotImplementedError
