from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence, TypeVar

from ..common.datetime_utils import now_utc, parse_rfc3339
from ..common.validators import parse_id, require_non_empty
from ..core.constants import (
    AT_RISK_THRESHOLD,
    CRITICAL_THRESHOLD,
    DUPLICATE_WINDOW_SECONDS,
    LATE_THRESHOLD_MINUTES,
    LECTURER_TREND_WEEKS,
    PREDICTION_CONFIDENCE,
    PREDICTION_WINDOW_WEEKS,
    STUDENT_TREND_MONTHS,
)
from ..core.enums import Granularity
from ..core.exceptions import NotFoundError, StoreError, ValidationError
from ..users.repository import UserRepository
from . import metrics
from .insights import build_lecturer_insight, build_student_insight
from .model import (
    AdminOverview,
    Anomaly,
    AnomalyReport,
    Benchmark,
    Chart,
    ChartData,
    ChartDataset,
    CoursePerformance,
    CourseRate,
    CourseTotals,
    DayOfWeekMetrics,
    DepartmentDeepDive,
    DepartmentStat,
    DepartmentStats,
    EnrollmentVsAttendance,
    EventStats,
    HeatmapCell,
    HolidayImpact,
    Insight,
    LecturerCourseMetrics,
    LecturerSummary,
    MostAttendedCourse,
    Prediction,
    RealtimeDashboard,
    StudentMetrics,
    SystemHealth,
    TemporalAnalytics,
    Totals,
    VenueUtilization,
)
from .repository import AnalyticsRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHART_LINE_TREND = "line_trend"
CHART_BAR_COMPARISON = "bar_comparison"
LINE_TREND_COLOR = "#2ecc71"
BAR_COMPARISON_COLOR = "#3498db"

STUDENT_RISK_FACTOR = "Current attendance below 75%"
STUDENT_RISK_ACTION = "Student should increase class attendance immediately"
CRITICAL_RISK_FACTOR = "Critical: Attendance below 50%"
CRITICAL_RISK_ACTION = "Intervention required: Contact student and provide support"


class AnalyticsService:
    """Read-only derivations over events and attendance rows.

    Each endpoint has one primary query; its failure propagates as a store
    error (500). Secondary fields such as trend, streak and late count are
    best effort and fall back to zero or empty on a store error.
    """

    def __init__(
        self,
        analytics: AnalyticsRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_utc,
        health_check: Optional[Callable[[], None]] = None,
        started_at: Optional[datetime] = None,
    ):
        self._analytics = analytics
        self._users = users
        self._clock = clock
        self._health_check = health_check
        self._started_at = started_at or clock()

    def _best_effort(self, field: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except StoreError:
            logger.warning("Analytics field %s unavailable, reporting default", field, exc_info=True)
            return default

    # ---- student ----

    def _require_student(self, student_id: int):
        student = self._users.get_student_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def student_metrics(self, student_id: int) -> StudentMetrics:
        student = self._require_student(student_id)
        now = self._clock()
        totals = self._analytics.student_totals(student.id)

        late = self._best_effort(
            "total_late",
            lambda: self._analytics.student_late_count(student.id, threshold_minutes=LATE_THRESHOLD_MINUTES),
            0,
        )
        present_days = self._best_effort("attendance_streak", lambda: self._analytics.student_present_days(student.id), [])
        courses = self._best_effort("per_course_rates", lambda: self._analytics.student_course_totals(student.id), [])
        trend_days = self._best_effort(
            "attendance_trend",
            lambda: self._analytics.daily_totals(
                start=now - timedelta(days=30 * STUDENT_TREND_MONTHS), student_id=student.id
            ),
            [],
        )
        overall = self._best_effort("class_average_comparison", self._analytics.overall_totals, Totals())

        rate = metrics.attendance_rate(totals.present, totals.total)
        punctuality = metrics.punctuality_score(late, totals.total)
        overall_rate = metrics.attendance_rate(overall.present, overall.total)

        return StudentMetrics(
            student_id=student.id,
            student_name=student.full_name,
            matric_number=student.matric_number,
            overall_attendance_rate=rate,
            total_sessions=totals.total,
            total_present=totals.present,
            total_absent=max(totals.total - totals.present, 0),
            total_late=late,
            attendance_streak=metrics.attendance_streak(present_days, now.date()),
            late_checkin_frequency=round(100.0 * late / totals.total, 2) if totals.total else 0.0,
            class_average_comparison=round(rate - overall_rate, 2),
            at_risk_status=metrics.is_at_risk(rate),
            engagement_score=metrics.engagement_score(rate, punctuality),
            per_course_rates=[_course_rate(c) for c in courses],
            attendance_trend=metrics.roll_up(trend_days, Granularity.WEEKLY),
            generated_at=now,
        )

    def student_insights(self, student_id: int) -> Insight:
        student_metrics = self.student_metrics(student_id)
        return build_student_insight(student_metrics, generated_at=student_metrics.generated_at)

    # ---- lecturer ----

    def _require_lecturer(self, lecturer_id: int):
        lecturer = self._users.get_lecturer_by_id(lecturer_id)
        if not lecturer:
            raise NotFoundError("Lecturer not found")
        return lecturer

    def _course_performances(self, lecturer_id: int, now: datetime) -> list[CoursePerformance]:
        courses = self._best_effort("courses", lambda: self._analytics.course_totals(lecturer_id=lecturer_id), [])
        return [_course_performance(c, generated_at=now) for c in courses]

    def lecturer_course_metrics(self, lecturer_id: int) -> LecturerCourseMetrics:
        lecturer = self._require_lecturer(lecturer_id)
        now = self._clock()
        events = self._analytics.event_stats(lecturer_id=lecturer.id)
        courses = self._course_performances(lecturer.id, now)
        reached = self._best_effort(
            "total_students_reached", lambda: self._analytics.distinct_students(lecturer_id=lecturer.id), 0
        )
        since = now - timedelta(weeks=LECTURER_TREND_WEEKS)

        return LecturerCourseMetrics(
            lecturer_id=lecturer.id,
            lecturer_name=lecturer.full_name,
            department=lecturer.department,
            total_events=len(events),
            total_courses=len(courses),
            total_students_reached=reached,
            average_attendance_rate=metrics.mean(metrics.event_rates(events, positive_only=True)),
            most_attended_course=_most_attended(courses),
            courses=courses,
            attendance_trend=metrics.roll_up(
                metrics.event_daily_totals(e for e in events if e.start_time >= since), Granularity.WEEKLY
            ),
            generated_at=now,
        )

    def course_performance(self, lecturer_id: int, course_code: Any) -> CoursePerformance:
        code = require_non_empty(course_code, "course_code")
        now = self._clock()
        courses = self._analytics.course_totals(lecturer_id=lecturer_id, course_code=code)
        if not courses:
            raise NotFoundError("Course not found")
        events = self._best_effort(
            "attendance_trend",
            lambda: self._analytics.event_stats(lecturer_id=lecturer_id, course_code=code),
            [],
        )
        trend = metrics.roll_up(metrics.event_daily_totals(events), Granularity.WEEKLY)
        return _course_performance(courses[0], generated_at=now, trend=trend)

    def lecturer_summary(self, lecturer_id: int) -> LecturerSummary:
        lecturer = self._require_lecturer(lecturer_id)
        now = self._clock()
        events = self._analytics.event_stats(lecturer_id=lecturer.id)
        courses = self._course_performances(lecturer.id, now)
        reached = self._best_effort(
            "total_students_reached", lambda: self._analytics.distinct_students(lecturer_id=lecturer.id), 0
        )
        this_week = now.isocalendar()[:2]
        since = now - timedelta(weeks=LECTURER_TREND_WEEKS)

        return LecturerSummary(
            total_events_created=len(events),
            total_students_reached=reached,
            average_attendance_rate=metrics.mean(metrics.event_rates(events, positive_only=True)),
            sessions_this_week=sum(1 for e in events if e.start_time.isocalendar()[:2] == this_week),
            sessions_today=sum(1 for e in events if e.start_time.date() == now.date()),
            most_attended_course=_most_attended(courses),
            attendance_trend=metrics.daily_points(
                metrics.event_daily_totals(e for e in events if e.start_time >= since)
            ),
            generated_at=now,
        )

    def lecturer_insights(self, lecturer_id: int) -> Insight:
        lecturer = self._require_lecturer(lecturer_id)
        now = self._clock()
        events = self._analytics.event_stats(lecturer_id=lecturer.id)
        since = now - timedelta(weeks=LECTURER_TREND_WEEKS)
        trend = metrics.roll_up(
            metrics.event_daily_totals(e for e in events if e.start_time >= since), Granularity.WEEKLY
        )
        return build_lecturer_insight(
            lecturer_id=lecturer.id,
            lecturer_name=lecturer.full_name,
            average_rate=metrics.mean(metrics.event_rates(events, positive_only=True)),
            total_courses=len({e.course_code for e in events if e.course_code}),
            total_events=len(events),
            trend=trend,
            generated_at=now,
        )

    # ---- admin ----

    def _today(self, now: datetime) -> tuple[datetime, datetime]:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return start, start + timedelta(days=1)

    def _database_status(self) -> str:
        if self._health_check is None:
            return "healthy"
        try:
            self._health_check()
        except StoreError:
            logger.warning("Database health check failed", exc_info=True)
            return "unhealthy"
        return "healthy"

    def admin_overview(self) -> AdminOverview:
        now = self._clock()
        day_start, day_end = self._today(now)
        counts = self._analytics.overview_counts(now=now, day_start=day_start, day_end=day_end)
        overall = self._best_effort("overall_attendance_rate", self._analytics.overall_totals, Totals())
        events = self._best_effort("average_attendance_rate", self._analytics.event_stats, [])

        return AdminOverview(
            total_students=counts.total_students,
            total_lecturers=counts.total_lecturers,
            total_departments=counts.total_departments,
            total_events=counts.total_events,
            average_attendance_rate=metrics.mean(metrics.event_rates(events)),
            overall_attendance_rate=metrics.attendance_rate(overall.present, overall.total),
            active_sessions_now=counts.active_sessions,
            total_active_sessions=counts.active_sessions,
            qr_codes_generated_today=counts.events_created_today,
            total_checkins_today=counts.checkins_today,
            system_health=SystemHealth(
                database_status=self._database_status(),
                last_check_in=counts.last_check_in,
                uptime_hours=round((now - self._started_at).total_seconds() / 3600.0, 2),
            ),
            generated_at=now,
        )

    def department_deep_dive(self, department: Any) -> DepartmentDeepDive:
        name = require_non_empty(department, "department")
        now = self._clock()
        people = self._analytics.department_people(name)
        if not people:
            raise NotFoundError("Department not found")
        events = self._analytics.event_stats(department=name)
        enrollment = self._best_effort(
            "course_enrollment_vs_attendance", lambda: self._analytics.course_enrollment(name), []
        )
        total = sum(e.total for e in events)
        present = sum(e.present for e in events)

        return DepartmentDeepDive(
            department_name=name,
            overall_attendance_rate=metrics.attendance_rate(present, total),
            student_count=people[0].students,
            lecturer_count=people[0].lecturers,
            course_count=len({e.course_code for e in events if e.course_code}),
            event_count=len(events),
            attendance_trend=metrics.roll_up(metrics.event_daily_totals(events), Granularity.WEEKLY),
            course_enrollment_vs_attendance=[
                EnrollmentVsAttendance(
                    course_code=c.course_code,
                    course_name=c.course_name,
                    enrolled=c.enrolled,
                    actual_attended=c.attended,
                    attendance_rate=metrics.attendance_rate(c.attended, c.enrolled),
                )
                for c in enrollment
            ],
            venue_utilization=_venue_utilization(events),
            generated_at=now,
        )

    def department_stats(self) -> DepartmentStats:
        now = self._clock()
        people = self._analytics.department_people()
        events = self._best_effort("department_events", self._analytics.event_stats, [])
        by_department: dict[str, list[EventStats]] = {}
        for e in events:
            by_department.setdefault(e.department, []).append(e)

        stats = []
        for p in people:
            dept_events = by_department.get(p.department, [])
            stats.append(
                DepartmentStat(
                    department=p.department,
                    total_students=p.students,
                    total_lecturers=p.lecturers,
                    total_events=len(dept_events),
                    average_attendance_rate=metrics.mean(metrics.event_rates(dept_events)),
                    total_check_ins=sum(e.total for e in dept_events),
                )
            )
        return DepartmentStats(departments=stats, generated_at=now)

    def realtime(self) -> RealtimeDashboard:
        now = self._clock()
        day_start, day_end = self._today(now)
        counts = self._analytics.overview_counts(now=now, day_start=day_start, day_end=day_end)
        return RealtimeDashboard(
            active_sessions_now=counts.active_sessions,
            total_checkins_today=counts.checkins_today,
            average_attendance_today=metrics.attendance_rate(counts.present_today, counts.checkins_today),
            generated_at=now,
        )

    # ---- temporal ----

    def temporal(self, *, start: Any, end: Any, granularity: Any = None) -> TemporalAnalytics:
        start_at = parse_rfc3339(start, "start")
        end_at = parse_rfc3339(end, "end")
        if end_at < start_at:
            raise ValidationError("end must not be before start")
        try:
            grain = Granularity(granularity or Granularity.WEEKLY.value)
        except ValueError:
            raise ValidationError("granularity must be one of: weekly, monthly") from None

        now = self._clock()
        days = list(self._analytics.daily_totals(start=start_at, end=end_at))
        hours = self._best_effort(
            "attendance_heatmap", lambda: self._analytics.hourly_totals(start=start_at, end=end_at), []
        )
        events = self._best_effort(
            "holiday_impact", lambda: self._analytics.event_stats(start=start_at, end=end_at), []
        )

        return TemporalAnalytics(
            granularity=grain.value,
            start_date=start_at,
            end_date=end_at,
            attendance_heatmap=[
                HeatmapCell(
                    day_of_week=metrics.WEEKDAY_NAMES[h.weekday],
                    time_slot=f"{h.hour:02d}:00",
                    attendance_rate=metrics.attendance_rate(h.present, h.total),
                    session_count=h.sessions,
                    avg_checkin_time_minutes=round(h.delay_minutes_sum / h.total, 2) if h.total else 0.0,
                )
                for h in hours
            ],
            seasonal_trends=metrics.roll_up(days, grain),
            day_of_week_analysis=_day_of_week(days),
            holiday_impact=_holiday_impact(events, days),
            generated_at=now,
        )

    # ---- anomalies ----

    def anomalies(self) -> AnomalyReport:
        now = self._clock()
        pairs = self._analytics.duplicate_checkins(window_seconds=DUPLICATE_WINDOW_SECONDS)
        seen: "OrderedDict[tuple[int, int], None]" = OrderedDict()
        for pair in pairs:
            seen.setdefault((pair.student_id, pair.event_id), None)

        found = [
            Anomaly(
                type="duplicate_checkin",
                severity="high",
                student_id=student_id,
                event_id=event_id,
                description="Multiple check-ins detected for this event",
                detection_time=now,
                recommended_action="Review for possible QR code sharing or technical glitch",
            )
            for student_id, event_id in seen
        ]
        if found:
            logger.error("Integrity alert: %d duplicate check-in pair(s) found", len(found))
        return AnomalyReport(
            anomalies=found,
            anomaly_count=len(found),
            critical_anomalies=sum(1 for a in found if a.severity == "high"),
            generated_at=now,
        )

    # ---- predictions and benchmarks ----

    def _prediction(self, *, entity_type: str, entity_id: str, rate: float, now: datetime) -> Prediction:
        risks: list[str] = []
        actions: list[str] = []
        if rate < AT_RISK_THRESHOLD:
            risks.append(STUDENT_RISK_FACTOR)
            actions.append(STUDENT_RISK_ACTION)
        if rate < CRITICAL_THRESHOLD:
            risks.append(CRITICAL_RISK_FACTOR)
            actions.append(CRITICAL_RISK_ACTION)
        return Prediction(
            entity_type=entity_type,
            entity_id=entity_id,
            current_attendance=rate,
            forecasted_attendance=rate,
            confidence_level=PREDICTION_CONFIDENCE,
            risk_factors=risks,
            recommended_actions=actions,
            generated_at=now,
        )

    def predict_student(self, student_id: int) -> Prediction:
        student = self._require_student(student_id)
        now = self._clock()
        recent = self._analytics.student_totals(student.id, since=now - timedelta(weeks=PREDICTION_WINDOW_WEEKS))
        rate = metrics.attendance_rate(recent.present, recent.total)
        return self._prediction(entity_type="student", entity_id=str(student.id), rate=rate, now=now)

    def predict_course(self, course_code: Any) -> Prediction:
        code = require_non_empty(course_code, "course_code")
        now = self._clock()
        if not self._analytics.course_totals(course_code=code):
            raise NotFoundError("Course not found")
        recent = self._analytics.event_stats(
            course_code=code, start=now - timedelta(weeks=PREDICTION_WINDOW_WEEKS), end=now
        )
        rate = metrics.attendance_rate(sum(e.present for e in recent), sum(e.total for e in recent))
        return self._prediction(entity_type="course", entity_id=code, rate=rate, now=now)

    def benchmark(self, *, entity_type: Any, entity_id: Any) -> Benchmark:
        if entity_type not in ("student", "course"):
            raise ValidationError("entity_type must be one of: student, course")
        now = self._clock()

        if entity_type == "student":
            student = self._require_student(parse_id(entity_id, "entity_id"))
            totals = self._analytics.student_totals(student.id)
            overall = self._analytics.overall_totals()
            value = metrics.attendance_rate(totals.present, totals.total)
            peer = metrics.attendance_rate(overall.present, overall.total)
            key = str(student.id)
        else:
            key = require_non_empty(entity_id, "entity_id")
            courses = list(self._analytics.course_totals())
            target = next((c for c in courses if c.course_code == key), None)
            if target is None:
                raise NotFoundError("Course not found")
            value = metrics.attendance_rate(target.present, target.total)
            peer = metrics.mean([metrics.attendance_rate(c.present, c.total) for c in courses if c.total > 0])

        return Benchmark(
            entity_type=entity_type,
            entity_id=key,
            performance_value=value,
            peer_average=peer,
            performance_vs_peers=metrics.compare_to_peers(value, peer),
            percentile_rank=metrics.percentile_rank(value, peer),
            generated_at=now,
        )

    # ---- charts ----

    def chart(self, chart_type: str, *, entity_type: Any, entity_id: Any) -> Chart:
        if chart_type not in (CHART_LINE_TREND, CHART_BAR_COMPARISON):
            raise ValidationError("chart type must be one of: line_trend, bar_comparison")
        if entity_type != "student":
            raise ValidationError("entity_type must be student")
        student_metrics = self.student_metrics(parse_id(entity_id, "entity_id"))

        if chart_type == CHART_LINE_TREND:
            points = student_metrics.attendance_trend
            return Chart(
                chart_type=chart_type,
                title="Attendance Trend",
                description=f"Weekly attendance rate for {student_metrics.student_name}",
                data_points=ChartData(
                    labels=[p.period for p in points],
                    datasets=[
                        ChartDataset(
                            label="Attendance Rate",
                            data=[p.attendance_rate for p in points],
                            color=LINE_TREND_COLOR,
                        )
                    ],
                ),
                generated_at=student_metrics.generated_at,
            )

        courses = student_metrics.per_course_rates
        return Chart(
            chart_type=chart_type,
            title="Course Attendance Comparison",
            description=f"Attendance rate per course for {student_metrics.student_name}",
            data_points=ChartData(
                labels=[c.course_code for c in courses],
                datasets=[
                    ChartDataset(
                        label="Attendance %",
                        data=[c.attendance_rate for c in courses],
                        color=BAR_COMPARISON_COLOR,
                    )
                ],
            ),
            generated_at=student_metrics.generated_at,
        )


def _course_rate(c: CourseTotals) -> CourseRate:
    return CourseRate(
        course_code=c.course_code,
        course_name=c.course_name,
        department=c.department,
        attendance_rate=metrics.attendance_rate(c.present, c.total),
        sessions_attended=c.present,
        total_sessions=c.total,
    )


def _course_performance(c: CourseTotals, *, generated_at: datetime, trend=None) -> CoursePerformance:
    return CoursePerformance(
        course_code=c.course_code,
        course_name=c.course_name,
        department=c.department,
        session_count=c.sessions,
        student_count=c.students,
        overall_rate=metrics.attendance_rate(c.present, c.total),
        sessions_attended=c.present,
        total_records=c.total,
        attendance_trend=list(trend or []),
        generated_at=generated_at,
    )


def _most_attended(courses: Sequence[CoursePerformance]) -> Optional[MostAttendedCourse]:
    ranked = [c for c in courses if c.total_records > 0]
    if not ranked:
        return None
    top = max(ranked, key=lambda c: c.overall_rate)
    return MostAttendedCourse(course_code=top.course_code, course_name=top.course_name, avg_attendance=top.overall_rate)


def _venue_utilization(events: Sequence[EventStats]) -> list[VenueUtilization]:
    # Capacity is not stored; the busiest observed session stands in for it.
    by_venue: "OrderedDict[str, list[int]]" = OrderedDict()
    for e in events:
        by_venue.setdefault(e.venue or "Unknown", []).append(e.present)

    out = []
    for venue, counts in sorted(by_venue.items()):
        average = round(sum(counts) / len(counts), 2)
        capacity = max(counts)
        out.append(
            VenueUtilization(
                venue=venue,
                sessions_held=len(counts),
                average_attendance=average,
                capacity=capacity,
                utilization_rate=round(100.0 * average / capacity, 2) if capacity else 0.0,
            )
        )
    return out


def _day_of_week(days) -> list[DayOfWeekMetrics]:
    buckets: dict[int, list[int]] = {}
    for d in days:
        bucket = buckets.setdefault(d.day.weekday(), [0, 0, 0, 0])
        bucket[0] += d.total
        bucket[1] += d.present
        bucket[2] += d.sessions
        bucket[3] += 1

    return [
        DayOfWeekMetrics(
            day_of_week=metrics.WEEKDAY_NAMES[weekday],
            attendance_rate=metrics.attendance_rate(present, total),
            session_count=sessions,
            average_present=round(present / day_count, 2) if day_count else 0.0,
        )
        for weekday, (total, present, sessions, day_count) in sorted(buckets.items())
    ]


def _holiday_impact(events: Sequence[EventStats], days) -> list[HolidayImpact]:
    """Days with scheduled events but no present check-ins."""

    scheduled: "OrderedDict[Any, int]" = OrderedDict()
    for e in sorted(events, key=lambda e: e.start_time):
        day = e.start_time.date()
        scheduled[day] = scheduled.get(day, 0) + 1

    by_day = {d.day: d for d in days}
    out = []
    for day, count in scheduled.items():
        totals = by_day.get(day)
        if totals is not None and totals.present > 0:
            continue
        out.append(
            HolidayImpact(
                date=day,
                day_of_week=metrics.WEEKDAY_NAMES[day.weekday()],
                sessions_scheduled=count,
                check_ins=totals.total if totals is not None else 0,
            )
        )
    return out
