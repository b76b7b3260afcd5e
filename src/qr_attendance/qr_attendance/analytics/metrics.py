"""Metric formulas shared by every analytics endpoint.

All rates are percentages in [0, 100] rounded to two decimals.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from typing import Callable, Iterable, Sequence

from ..common.datetime_utils import month_period, week_period
from ..core.constants import (
    AT_RISK_THRESHOLD,
    ENGAGEMENT_ATTENDANCE_WEIGHT,
    ENGAGEMENT_PUNCTUALITY_WEIGHT,
)
from ..core.enums import Granularity
from .model import DailyTotals, EventStats, TrendPoint

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def attendance_rate(present: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(100.0 * min(present, total) / total, 2)


def punctuality_score(late: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(max(0.0, 100.0 - 100.0 * late / total), 2)


def engagement_score(rate: float, punctuality: float) -> float:
    return round(ENGAGEMENT_ATTENDANCE_WEIGHT * rate + ENGAGEMENT_PUNCTUALITY_WEIGHT * punctuality, 2)


def is_at_risk(rate: float, threshold: float = AT_RISK_THRESHOLD) -> bool:
    return rate < threshold


def attendance_streak(present_days: Iterable[date], today: date) -> int:
    """Consecutive distinct days with a present row, counting back from today."""

    days = set(present_days)
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compare_to_peers(value: float, peer_average: float) -> str:
    if value > peer_average:
        return "above"
    if value < peer_average:
        return "below"
    return "average"


def percentile_rank(value: float, peer_average: float) -> float:
    # Not clamped; a zero peer mean reports 0 instead of dividing by zero.
    if peer_average == 0:
        return 0.0
    return round(100.0 * value / peer_average, 2)


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def period_key(granularity: Granularity) -> Callable[[date], str]:
    return month_period if granularity == Granularity.MONTHLY else week_period


def roll_up(days: Iterable[DailyTotals], granularity: Granularity = Granularity.WEEKLY) -> list[TrendPoint]:
    """Group daily totals into ISO-week or calendar-month trend points."""

    key_of = period_key(granularity)
    buckets: "OrderedDict[str, list[float]]" = OrderedDict()
    for d in sorted(days, key=lambda d: d.day):
        bucket = buckets.setdefault(key_of(d.day), [0, 0, 0.0])
        bucket[0] += d.total
        bucket[1] += d.present
        bucket[2] += d.delay_minutes_sum

    return [
        TrendPoint(
            period=period,
            attendance_rate=attendance_rate(int(present), int(total)),
            sessions_attended=int(present),
            total_sessions=int(total),
            average_checkin_time_minutes=round(delay / total, 2) if total else 0.0,
        )
        for period, (total, present, delay) in buckets.items()
    ]


def event_daily_totals(events: Iterable[EventStats]) -> list[DailyTotals]:
    """Fold per-event counts onto the UTC day each event starts."""

    buckets: "OrderedDict[date, list[int]]" = OrderedDict()
    for e in sorted(events, key=lambda e: e.start_time):
        bucket = buckets.setdefault(e.start_time.date(), [0, 0, 0])
        bucket[0] += e.total
        bucket[1] += e.present
        bucket[2] += 1
    return [
        DailyTotals(day=day, total=total, present=present, sessions=sessions)
        for day, (total, present, sessions) in buckets.items()
    ]


def daily_points(days: Iterable[DailyTotals]) -> list[TrendPoint]:
    return [
        TrendPoint(
            period=d.day.isoformat(),
            attendance_rate=attendance_rate(d.present, d.total),
            sessions_attended=d.present,
            total_sessions=d.total,
            average_checkin_time_minutes=round(d.delay_minutes_sum / d.total, 2) if d.total else 0.0,
        )
        for d in sorted(days, key=lambda d: d.day)
    ]


def event_rates(events: Iterable[EventStats], *, positive_only: bool = False) -> list[float]:
    """Per-event attendance rates for events that have at least one row."""

    rates = [attendance_rate(e.present, e.total) for e in events if e.total > 0]
    if positive_only:
        rates = [r for r in rates if r > 0]
    return rates
