from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..core.constants import AT_RISK_THRESHOLD, FREQUENT_LATE_COUNT
from .model import Insight, Recommendation, StudentMetrics, TrendInsight, TrendPoint

STUDENT_EXCELLENT = 80.0
STUDENT_GOOD = AT_RISK_THRESHOLD
LECTURER_EXCELLENT = 80.0
LECTURER_GOOD = 70.0


def _trend_direction(trend: Sequence[TrendPoint]) -> int:
    """+1 if the last point beats the one before it, -1 if worse, else 0."""

    if len(trend) < 2:
        return 0
    last, prev = trend[-1].attendance_rate, trend[-2].attendance_rate
    if last > prev:
        return 1
    if last < prev:
        return -1
    return 0


def build_student_insight(metrics: StudentMetrics, *, generated_at: datetime) -> Insight:
    name = metrics.student_name or "Student"
    rate = metrics.overall_attendance_rate
    takeaways: list[str] = []
    trends: list[TrendInsight] = []
    recommendations: list[Recommendation] = []

    if rate >= STUDENT_EXCELLENT:
        summary = (
            f"{name} has excellent attendance at {rate:.1f}%. "
            "Keep up the consistency and engagement with courses."
        )
        takeaways += ["Excellent attendance record", "High engagement score"]
    elif rate >= STUDENT_GOOD:
        summary = (
            f"{name} has good attendance at {rate:.1f}%. "
            "Continue to maintain consistency throughout the semester."
        )
        takeaways.append("Attendance is acceptable")
    else:
        summary = (
            f"{name} has attendance at {rate:.1f}%, which is below the "
            f"{STUDENT_GOOD:.0f}% threshold. Immediate action is recommended."
        )
        takeaways.append("Attendance is at-risk")
        recommendations.append(
            Recommendation(
                action="Attend more classes regularly",
                priority="high",
                expected_impact="Improve overall attendance and engagement",
                timeframe="immediate",
            )
        )

    direction = _trend_direction(metrics.attendance_trend)
    if direction > 0:
        trends.append(
            TrendInsight(
                trend="Attendance improving",
                explanation="Recent weeks show improvement in attendance rates",
                timeframe="past 4 weeks",
            )
        )
    elif direction < 0:
        trends.append(
            TrendInsight(
                trend="Attendance declining",
                explanation="Recent weeks show a decline in attendance",
                timeframe="past 4 weeks",
            )
        )
        recommendations.append(
            Recommendation(
                action="Investigate reasons for declining attendance",
                priority="high",
                expected_impact="Reverse downward trend",
                timeframe="this week",
            )
        )

    if metrics.total_late > FREQUENT_LATE_COUNT:
        trends.append(
            TrendInsight(
                trend="Frequent late arrivals",
                explanation=f"Student has {metrics.total_late} late check-ins, indicating time management issues",
                timeframe="this semester",
            )
        )
        recommendations.append(
            Recommendation(
                action="Arrive on time for classes",
                priority="medium",
                expected_impact="Improve punctuality and class engagement",
                timeframe="ongoing",
            )
        )

    return Insight(
        entity_type="student",
        entity_id=str(metrics.student_id),
        summary=summary,
        key_takeaways=takeaways,
        trends=trends,
        recommendations=recommendations,
        generated_at=generated_at,
    )


def build_lecturer_insight(
    *,
    lecturer_id: int,
    lecturer_name: str,
    average_rate: float,
    total_courses: int,
    total_events: int,
    trend: Sequence[TrendPoint],
    generated_at: datetime,
) -> Insight:
    name = lecturer_name or "Lecturer"
    takeaways: list[str] = []
    recommendations: list[Recommendation] = []

    if average_rate >= LECTURER_EXCELLENT:
        summary = (
            f"{name} maintains excellent class attendance at {average_rate:.1f}% across all courses. "
            "Classes are well-attended and engaging."
        )
        takeaways += ["High average class attendance", f"Generated {total_events} QR codes"]
    elif average_rate >= LECTURER_GOOD:
        summary = (
            f"{name} has acceptable class attendance at {average_rate:.1f}%. "
            "There may be opportunities to improve student engagement."
        )
        recommendations.append(
            Recommendation(
                action="Consider strategies to improve student engagement",
                priority="medium",
                expected_impact="Increase class attendance rates",
                timeframe="this month",
            )
        )
    else:
        summary = (
            f"{name} has lower than desired class attendance at {average_rate:.1f}%. "
            "Action to improve engagement is recommended."
        )
        recommendations.append(
            Recommendation(
                action="Review teaching strategies and student engagement methods",
                priority="high",
                expected_impact="Improve overall course attendance",
                timeframe="immediate",
            )
        )

    trends = [
        TrendInsight(
            trend=f"Managing {total_courses} courses",
            explanation=f"Average attendance across all courses: {average_rate:.1f}%",
            timeframe="current semester",
        )
    ]
    direction = _trend_direction(trend)
    if direction:
        trends.append(
            TrendInsight(
                trend="Attendance improving" if direction > 0 else "Attendance declining",
                explanation=f"Latest week {trend[-1].attendance_rate:.1f}% vs {trend[-2].attendance_rate:.1f}% the week before",
                timeframe="past 8 weeks",
            )
        )

    return Insight(
        entity_type="lecturer",
        entity_id=str(lecturer_id),
        summary=summary,
        key_takeaways=takeaways,
        trends=trends,
        recommendations=recommendations,
        generated_at=generated_at,
    )
