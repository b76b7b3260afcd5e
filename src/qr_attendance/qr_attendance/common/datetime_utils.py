from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from ..core.exceptions import ValidationError


def now_utc() -> datetime:
    """Current UTC time truncated to whole seconds.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_rfc3339(value: str, field_name: str) -> datetime:
    """Parse an RFC 3339 instant into an aware UTC datetime."""

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field_name} must be an RFC 3339 timestamp") from None
    if parsed.tzinfo is None:
        raise ValidationError(f"{field_name} must include a UTC offset")
    return parsed.astimezone(timezone.utc)


def format_rfc3339(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    if value.microsecond:
        return value.isoformat().replace("+00:00", "Z")
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def to_db(value: datetime) -> datetime:
    """Aware datetime -> naive UTC for DATETIME columns."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db(value: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC DATETIME column value -> aware UTC datetime."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def week_period(value: datetime | date) -> str:
    """ISO year and week, e.g. ``2025-W48``."""
    year, week, _ = value.isocalendar()
    return f"{year}-W{week:02d}"


def month_period(value: datetime | date) -> str:
    return f"{value.year}-{value.month:02d}"
