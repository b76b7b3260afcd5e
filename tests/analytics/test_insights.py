from __future__ import annotations

import pytest

from src.qr_attendance.qr_attendance.analytics.insights import build_lecturer_insight, build_student_insight
from src.qr_attendance.qr_attendance.analytics.model import StudentMetrics, TrendPoint

from tests.fakes import utc

NOW = utc(2025, 11, 27, 12, 0)


def _metrics(rate: float, *, late: int = 0, trend=()) -> StudentMetrics:
    return StudentMetrics(
        student_id=3,
        student_name="Chidi Okafor",
        matric_number="MAT0003",
        overall_attendance_rate=rate,
        total_sessions=10,
        total_present=int(rate / 10),
        total_absent=10 - int(rate / 10),
        total_late=late,
        attendance_streak=0,
        late_checkin_frequency=0.0,
        class_average_comparison=0.0,
        at_risk_status=rate < 75,
        engagement_score=0.0,
        per_course_rates=[],
        attendance_trend=list(trend),
        generated_at=NOW,
    )


def _point(period: str, rate: float) -> TrendPoint:
    return TrendPoint(period=period, attendance_rate=rate, sessions_attended=0, total_sessions=0)


def test_below_threshold_summary_and_high_priority_recommendation():
    insight = build_student_insight(_metrics(60.0), generated_at=NOW)

    assert "below the 75% threshold" in insight.summary
    assert any(r.priority == "high" for r in insight.recommendations)
    assert insight.entity_type == "student"
    assert insight.entity_id == "3"


@pytest.mark.parametrize(
    "rate,word",
    [(80.0, "excellent"), (75.0, "good"), (74.9, "below")],
)
def test_summary_thresholds(rate, word):
    assert word in build_student_insight(_metrics(rate), generated_at=NOW).summary


def test_good_attendance_has_no_recommendations():
    insight = build_student_insight(_metrics(90.0), generated_at=NOW)
    assert insight.recommendations == []
    assert "Excellent attendance record" in insight.key_takeaways


def test_declining_trend_adds_high_priority_action():
    trend = [_point("2025-W47", 90.0), _point("2025-W48", 70.0)]
    insight = build_student_insight(_metrics(85.0, trend=trend), generated_at=NOW)

    assert [t.trend for t in insight.trends] == ["Attendance declining"]
    assert insight.recommendations[0].priority == "high"


def test_improving_trend_is_reported_without_action():
    trend = [_point("2025-W47", 50.0), _point("2025-W48", 90.0)]
    insight = build_student_insight(_metrics(85.0, trend=trend), generated_at=NOW)
    assert [t.trend for t in insight.trends] == ["Attendance improving"]
    assert insight.recommendations == []


def test_frequent_lateness_needs_more_than_three():
    assert build_student_insight(_metrics(90.0, late=3), generated_at=NOW).trends == []
    insight = build_student_insight(_metrics(90.0, late=4), generated_at=NOW)
    assert insight.trends[0].trend == "Frequent late arrivals"
    assert insight.recommendations[0].priority == "medium"


@pytest.mark.parametrize(
    "rate,priority",
    [(85.0, None), (72.0, "medium"), (50.0, "high")],
)
def test_lecturer_thresholds(rate, priority):
    insight = build_lecturer_insight(
        lecturer_id=1,
        lecturer_name="Grace Hopper",
        average_rate=rate,
        total_courses=2,
        total_events=5,
        trend=[],
        generated_at=NOW,
    )
    assert [r.priority for r in insight.recommendations] == ([priority] if priority else [])
    assert insight.trends[0].trend == "Managing 2 courses"
