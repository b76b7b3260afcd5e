from __future__ import annotations

from datetime import timedelta

import pytest

from src.qr_attendance.qr_attendance.analytics.model import DuplicatePair
from src.qr_attendance.qr_attendance.analytics.service import AnalyticsService
from src.qr_attendance.qr_attendance.core.enums import AttendanceStatus
from src.qr_attendance.qr_attendance.core.exceptions import NotFoundError, StoreError, ValidationError

from tests.fakes import InMemoryAnalytics, InMemoryUsers, utc


@pytest.fixture
def analytics(store):
    return InMemoryAnalytics(store)


@pytest.fixture
def service(store, analytics, clock):
    return AnalyticsService(analytics, InMemoryUsers(store), clock=clock)


def _events(store, lecturer, n, *, course_code="CSC301", department="Computer Science", venue="LT1"):
    base = utc(2025, 11, 24, 9, 0)
    return [
        store.add_event(
            start=base + timedelta(days=i),
            lecturer_id=lecturer.id,
            course_code=course_code,
            department=department,
            venue=venue,
        )
        for i in range(n)
    ]


def test_student_metrics_three_of_four(store, service):
    lecturer = store.add_lecturer()
    student = store.add_student()
    events = _events(store, lecturer, 4)
    for e in events[:3]:
        store.add_row(event=e, student=student)
    store.add_row(event=events[3], student=student, status=AttendanceStatus.ABSENT)

    m = service.student_metrics(student.id)

    assert m.overall_attendance_rate == 75.0
    assert m.at_risk_status is False
    assert (m.total_sessions, m.total_present, m.total_absent) == (4, 3, 1)
    assert m.total_present <= m.total_sessions
    assert m.per_course_rates[0].course_code == "CSC301"
    assert m.per_course_rates[0].attendance_rate == 75.0
    assert m.attendance_trend


def test_student_metrics_counts_late_rows_past_five_minutes(store, service):
    lecturer = store.add_lecturer()
    student = store.add_student()
    on_time, borderline, late = _events(store, lecturer, 3)
    store.add_row(event=on_time, student=student, marked=on_time.start_time + timedelta(minutes=2))
    store.add_row(event=borderline, student=student, marked=borderline.start_time + timedelta(minutes=5))
    store.add_row(event=late, student=student, marked=late.start_time + timedelta(minutes=6))

    m = service.student_metrics(student.id)

    assert m.total_late == 1
    assert m.late_checkin_frequency == 33.33
    assert m.engagement_score == 90.0


def test_student_streak_ends_today(store, service, clock):
    lecturer = store.add_lecturer()
    student = store.add_student()
    yesterday = store.add_event(start=clock.now - timedelta(days=1, minutes=10), lecturer_id=lecturer.id)
    today = store.add_event(start=clock.now - timedelta(minutes=10), lecturer_id=lecturer.id)
    store.add_row(event=yesterday, student=student)
    store.add_row(event=today, student=student)

    assert service.student_metrics(student.id).attendance_streak == 2


def test_unknown_student_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.student_metrics(404)


def test_secondary_field_failures_degrade_to_defaults(store, service, analytics):
    lecturer = store.add_lecturer()
    student = store.add_student()
    for e in _events(store, lecturer, 2):
        store.add_row(event=e, student=student, marked=e.start_time + timedelta(minutes=30))
    analytics.failing |= {"student_late_count", "student_present_days", "daily_totals", "student_course_totals"}

    m = service.student_metrics(student.id)

    assert m.overall_attendance_rate == 100.0
    assert m.total_late == 0
    assert m.attendance_streak == 0
    assert m.attendance_trend == []
    assert m.per_course_rates == []


def test_primary_failure_propagates(store, service, analytics):
    student = store.add_student()
    analytics.failing.add("student_totals")
    with pytest.raises(StoreError):
        service.student_metrics(student.id)


def test_lecturer_metrics_average_over_positive_event_rates(store, service):
    lecturer = store.add_lecturer()
    ada, bola = store.add_student(), store.add_student("Bola", "Ade")
    e1, e2, e3 = _events(store, lecturer, 3)
    store.add_row(event=e1, student=ada)
    store.add_row(event=e1, student=bola, status=AttendanceStatus.ABSENT)
    store.add_row(event=e2, student=ada)
    # e3 has no rows and is left out of the average.

    m = service.lecturer_course_metrics(lecturer.id)

    assert m.total_events == 3
    assert m.total_students_reached == 2
    assert m.average_attendance_rate == 75.0
    assert m.most_attended_course.course_code == "CSC301"
    assert m.courses[0].session_count == 3


def test_course_performance_scoped_to_lecturer(store, service):
    owner = store.add_lecturer()
    other = store.add_lecturer("Alan", "Turing")
    _events(store, owner, 1, course_code="CSC301")

    assert service.course_performance(owner.id, "CSC301").course_code == "CSC301"
    with pytest.raises(NotFoundError):
        service.course_performance(other.id, "CSC301")


def test_lecturer_summary_counts_today_and_this_week(store, service, clock):
    lecturer = store.add_lecturer()
    store.add_event(start=clock.now - timedelta(hours=1), lecturer_id=lecturer.id)
    store.add_event(start=clock.now - timedelta(days=2), lecturer_id=lecturer.id)
    store.add_event(start=clock.now - timedelta(days=20), lecturer_id=lecturer.id)

    summary = service.lecturer_summary(lecturer.id)

    assert summary.total_events_created == 3
    assert summary.sessions_today == 1
    assert summary.sessions_this_week == 2


def test_admin_overview_and_realtime(store, service, clock):
    lecturer = store.add_lecturer()
    student = store.add_student()
    live = store.add_event(start=clock.now - timedelta(minutes=30), lecturer_id=lecturer.id)
    store.add_row(event=live, student=student, marked=clock.now - timedelta(minutes=5))

    overview = service.admin_overview()
    assert overview.active_sessions_now == overview.total_active_sessions == 1
    assert overview.total_checkins_today == 1
    assert overview.qr_codes_generated_today == 1
    assert overview.total_departments == 1
    assert overview.overall_attendance_rate == 100.0
    assert overview.system_health.database_status == "healthy"
    assert overview.system_health.last_check_in == clock.now - timedelta(minutes=5)

    realtime = service.realtime()
    assert realtime.active_sessions_now == 1
    assert realtime.average_attendance_today == 100.0


def test_department_deep_dive(store, service):
    lecturer = store.add_lecturer(department="Physics")
    ada, bola = store.add_student(), store.add_student("Bola", "Ade")
    e1, e2 = _events(store, lecturer, 2, course_code="PHY101", department="Physics", venue="Hall A")
    store.add_row(event=e1, student=ada)
    store.add_row(event=e1, student=bola)
    store.add_row(event=e2, student=ada)

    dive = service.department_deep_dive("Physics")

    assert dive.event_count == 2
    assert dive.student_count == 2
    assert dive.lecturer_count == 1
    assert dive.course_count == 1
    assert dive.overall_attendance_rate == 100.0
    venue = dive.venue_utilization[0]
    assert (venue.venue, venue.sessions_held, venue.capacity) == ("Hall A", 2, 2)
    assert venue.utilization_rate == 75.0
    assert dive.course_enrollment_vs_attendance[0].attendance_rate == 100.0

    with pytest.raises(NotFoundError):
        service.department_deep_dive("Alchemy")


def test_temporal_requires_known_granularity(service):
    with pytest.raises(ValidationError):
        service.temporal(start="2025-11-01T00:00:00Z", end="2025-11-30T00:00:00Z", granularity="daily")
    with pytest.raises(ValidationError):
        service.temporal(start="2025-11-30T00:00:00Z", end="2025-11-01T00:00:00Z")


def test_temporal_heatmap_and_holidays(store, service):
    lecturer = store.add_lecturer()
    student = store.add_student()
    thursday = store.add_event(start=utc(2025, 11, 27, 10, 0), lecturer_id=lecturer.id)
    friday = store.add_event(start=utc(2025, 11, 28, 10, 0), lecturer_id=lecturer.id)
    store.add_row(event=thursday, student=student, marked=utc(2025, 11, 27, 10, 3))
    store.add_row(event=friday, student=student, marked=utc(2025, 11, 28, 10, 0), status=AttendanceStatus.ABSENT)

    t = service.temporal(start="2025-11-24T00:00:00Z", end="2025-11-30T23:59:59Z", granularity="monthly")

    assert t.granularity == "monthly"
    assert [(c.day_of_week, c.time_slot) for c in t.attendance_heatmap] == [("Thursday", "10:00"), ("Friday", "10:00")]
    assert t.attendance_heatmap[0].avg_checkin_time_minutes == 3.0
    assert [d.day_of_week for d in t.day_of_week_analysis] == ["Thursday", "Friday"]
    assert [p.period for p in t.seasonal_trends] == ["2025-11"]
    assert [h.date.isoformat() for h in t.holiday_impact] == ["2025-11-28"]


def test_anomalies_are_deduplicated(store, service, analytics):
    analytics.extra_pairs = [
        DuplicatePair(student_id=1, event_id=7, first_id=10, second_id=11),
        DuplicatePair(student_id=1, event_id=7, first_id=11, second_id=10),
    ]

    report = service.anomalies()

    assert report.anomaly_count == 1
    assert report.critical_anomalies == 1
    assert report.anomalies[0].type == "duplicate_checkin"
    assert report.anomalies[0].severity == "high"


def test_no_anomalies_on_clean_data(store, service):
    assert service.anomalies().anomaly_count == 0


@pytest.mark.parametrize(
    "present,total,risks",
    [
        (4, 4, []),
        (3, 5, ["Current attendance below 75%"]),
        (1, 4, ["Current attendance below 75%", "Critical: Attendance below 50%"]),
    ],
)
def test_student_prediction_risk_factors(store, service, clock, present, total, risks):
    lecturer = store.add_lecturer()
    student = store.add_student()
    for i in range(total):
        event = store.add_event(start=clock.now - timedelta(days=i + 1), lecturer_id=lecturer.id)
        status = AttendanceStatus.PRESENT if i < present else AttendanceStatus.ABSENT
        store.add_row(event=event, student=student, status=status)

    p = service.predict_student(student.id)

    assert p.forecasted_attendance == p.current_attendance
    assert p.confidence_level == 65.0
    assert p.risk_factors == risks
    assert len(p.recommended_actions) == len(risks)


def test_prediction_ignores_rows_older_than_four_weeks(store, service, clock):
    lecturer = store.add_lecturer()
    student = store.add_student()
    old = store.add_event(start=clock.now - timedelta(weeks=6), lecturer_id=lecturer.id)
    recent = store.add_event(start=clock.now - timedelta(days=1), lecturer_id=lecturer.id)
    store.add_row(event=old, student=student, status=AttendanceStatus.ABSENT)
    store.add_row(event=recent, student=student)

    assert service.predict_student(student.id).current_attendance == 100.0


def test_benchmark_student_against_all_rows(store, service):
    lecturer = store.add_lecturer()
    ada, bola = store.add_student(), store.add_student("Bola", "Ade")
    e1, e2 = _events(store, lecturer, 2)
    store.add_row(event=e1, student=ada)
    store.add_row(event=e2, student=ada)
    store.add_row(event=e1, student=bola, status=AttendanceStatus.ABSENT)
    store.add_row(event=e2, student=bola, status=AttendanceStatus.ABSENT)

    b = service.benchmark(entity_type="student", entity_id=str(ada.id))

    assert b.performance_value == 100.0
    assert b.peer_average == 50.0
    assert b.performance_vs_peers == "above"
    assert b.percentile_rank == 200.0


def test_benchmark_with_no_rows_reports_zero_percentile(store, service):
    student = store.add_student()
    b = service.benchmark(entity_type="student", entity_id=str(student.id))
    assert b.performance_vs_peers == "average"
    assert b.percentile_rank == 0.0


def test_benchmark_rejects_unknown_entity_type(service):
    with pytest.raises(ValidationError):
        service.benchmark(entity_type="department", entity_id="1")


def test_chart_shapes(store, service):
    lecturer = store.add_lecturer()
    student = store.add_student()
    for e in _events(store, lecturer, 2, course_code="MTH201"):
        store.add_row(event=e, student=student)

    bar = service.chart("bar_comparison", entity_type="student", entity_id=str(student.id))
    assert bar.data_points.labels == ["MTH201"]
    assert bar.data_points.datasets[0].label == "Attendance %"
    assert bar.data_points.datasets[0].color == "#3498db"

    line = service.chart("line_trend", entity_type="student", entity_id=str(student.id))
    assert line.data_points.datasets[0].color == "#2ecc71"
    assert len(line.data_points.labels) == len(line.data_points.datasets[0].data)

    with pytest.raises(ValidationError):
        service.chart("pie", entity_type="student", entity_id=str(student.id))
    with pytest.raises(ValidationError):
        service.chart("line_trend", entity_type="course", entity_id="MTH201")
