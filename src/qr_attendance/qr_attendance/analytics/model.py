from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

# ---- aggregate records returned by the repository ----


@dataclass(frozen=True)
class Totals:
    total: int = 0
    present: int = 0


@dataclass(frozen=True)
class CourseTotals:
    course_code: str
    course_name: str
    department: str
    total: int
    present: int
    sessions: int = 0
    students: int = 0


@dataclass(frozen=True)
class DailyTotals:
    """Attendance rows of one UTC day."""

    day: date
    total: int
    present: int
    sessions: int = 0
    delay_minutes_sum: float = 0.0


@dataclass(frozen=True)
class HourlyTotals:
    weekday: int  # 0 = Monday
    hour: int
    total: int
    present: int
    sessions: int = 0
    delay_minutes_sum: float = 0.0


@dataclass(frozen=True)
class EventStats:
    event_id: int
    course_code: str
    course_name: str
    department: str
    venue: str
    lecturer_id: Optional[int]
    start_time: datetime
    end_time: datetime
    created_at: Optional[datetime]
    total: int
    present: int


@dataclass(frozen=True)
class OverviewCounts:
    total_students: int = 0
    total_lecturers: int = 0
    total_departments: int = 0
    total_events: int = 0
    active_sessions: int = 0
    events_created_today: int = 0
    checkins_today: int = 0
    present_today: int = 0
    last_check_in: Optional[datetime] = None


@dataclass(frozen=True)
class DepartmentPeople:
    department: str
    students: int
    lecturers: int


@dataclass(frozen=True)
class CourseEnrollment:
    course_code: str
    course_name: str
    enrolled: int
    attended: int


@dataclass(frozen=True)
class DuplicatePair:
    student_id: int
    event_id: int
    first_id: int
    second_id: int


# ---- response shapes ----


@dataclass(frozen=True)
class CourseRate:
    course_code: str
    course_name: str
    department: str
    attendance_rate: float
    sessions_attended: int
    total_sessions: int


@dataclass(frozen=True)
class TrendPoint:
    period: str
    attendance_rate: float
    sessions_attended: int
    total_sessions: int
    average_checkin_time_minutes: float = 0.0


@dataclass(frozen=True)
class StudentMetrics:
    student_id: int
    student_name: str
    matric_number: str
    overall_attendance_rate: float
    total_sessions: int
    total_present: int
    total_absent: int
    total_late: int
    attendance_streak: int
    late_checkin_frequency: float
    class_average_comparison: float
    at_risk_status: bool
    engagement_score: float
    per_course_rates: list[CourseRate]
    attendance_trend: list[TrendPoint]
    generated_at: datetime


@dataclass(frozen=True)
class MostAttendedCourse:
    course_code: str
    course_name: str
    avg_attendance: float


@dataclass(frozen=True)
class CoursePerformance:
    course_code: str
    course_name: str
    department: str
    session_count: int
    student_count: int
    overall_rate: float
    sessions_attended: int
    total_records: int
    attendance_trend: list[TrendPoint] = field(default_factory=list)
    generated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LecturerCourseMetrics:
    lecturer_id: int
    lecturer_name: str
    department: str
    total_events: int
    total_courses: int
    total_students_reached: int
    average_attendance_rate: float
    most_attended_course: Optional[MostAttendedCourse]
    courses: list[CoursePerformance]
    attendance_trend: list[TrendPoint]
    generated_at: datetime


@dataclass(frozen=True)
class LecturerSummary:
    total_events_created: int
    total_students_reached: int
    average_attendance_rate: float
    sessions_this_week: int
    sessions_today: int
    most_attended_course: Optional[MostAttendedCourse]
    attendance_trend: list[TrendPoint]
    generated_at: datetime


@dataclass(frozen=True)
class SystemHealth:
    database_status: str
    last_check_in: Optional[datetime]
    uptime_hours: float


@dataclass(frozen=True)
class AdminOverview:
    total_students: int
    total_lecturers: int
    total_departments: int
    total_events: int
    average_attendance_rate: float
    overall_attendance_rate: float
    active_sessions_now: int
    total_active_sessions: int
    qr_codes_generated_today: int
    total_checkins_today: int
    system_health: SystemHealth
    generated_at: datetime


@dataclass(frozen=True)
class EnrollmentVsAttendance:
    course_code: str
    course_name: str
    enrolled: int
    actual_attended: int
    attendance_rate: float


@dataclass(frozen=True)
class VenueUtilization:
    venue: str
    sessions_held: int
    average_attendance: float
    capacity: int
    utilization_rate: float


@dataclass(frozen=True)
class DepartmentDeepDive:
    department_name: str
    overall_attendance_rate: float
    student_count: int
    lecturer_count: int
    course_count: int
    event_count: int
    attendance_trend: list[TrendPoint]
    course_enrollment_vs_attendance: list[EnrollmentVsAttendance]
    venue_utilization: list[VenueUtilization]
    generated_at: datetime


@dataclass(frozen=True)
class DepartmentStat:
    department: str
    total_students: int
    total_lecturers: int
    total_events: int
    average_attendance_rate: float
    total_check_ins: int


@dataclass(frozen=True)
class DepartmentStats:
    departments: list[DepartmentStat]
    generated_at: datetime


@dataclass(frozen=True)
class RealtimeDashboard:
    active_sessions_now: int
    total_checkins_today: int
    average_attendance_today: float
    generated_at: datetime


@dataclass(frozen=True)
class HeatmapCell:
    day_of_week: str
    time_slot: str
    attendance_rate: float
    session_count: int
    avg_checkin_time_minutes: float


@dataclass(frozen=True)
class DayOfWeekMetrics:
    day_of_week: str
    attendance_rate: float
    session_count: int
    average_present: float


@dataclass(frozen=True)
class HolidayImpact:
    date: date
    day_of_week: str
    sessions_scheduled: int
    check_ins: int


@dataclass(frozen=True)
class TemporalAnalytics:
    granularity: str
    start_date: datetime
    end_date: datetime
    attendance_heatmap: list[HeatmapCell]
    seasonal_trends: list[TrendPoint]
    day_of_week_analysis: list[DayOfWeekMetrics]
    holiday_impact: list[HolidayImpact]
    generated_at: datetime


@dataclass(frozen=True)
class Anomaly:
    type: str
    severity: str
    student_id: int
    event_id: int
    description: str
    detection_time: datetime
    recommended_action: str


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: list[Anomaly]
    anomaly_count: int
    critical_anomalies: int
    generated_at: datetime


@dataclass(frozen=True)
class Prediction:
    entity_type: str
    entity_id: str
    current_attendance: float
    forecasted_attendance: float
    confidence_level: float
    risk_factors: list[str]
    recommended_actions: list[str]
    generated_at: datetime


@dataclass(frozen=True)
class Benchmark:
    entity_type: str
    entity_id: str
    performance_value: float
    peer_average: float
    performance_vs_peers: str
    percentile_rank: float
    generated_at: datetime


@dataclass(frozen=True)
class TrendInsight:
    trend: str
    explanation: str
    timeframe: str


@dataclass(frozen=True)
class Recommendation:
    action: str
    priority: str
    expected_impact: str
    timeframe: str


@dataclass(frozen=True)
class Insight:
    entity_type: str
    entity_id: str
    summary: str
    key_takeaways: list[str]
    trends: list[TrendInsight]
    recommendations: list[Recommendation]
    generated_at: datetime


@dataclass(frozen=True)
class ChartDataset:
    label: str
    data: list[float]
    color: str


@dataclass(frozen=True)
class ChartData:
    labels: list[str]
    datasets: list[ChartDataset]


@dataclass(frozen=True)
class Chart:
    chart_type: str
    title: str
    description: str
    data_points: ChartData
    generated_at: datetime
