from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Principal roles carried in bearer tokens."""

    STUDENT = "student"
    LECTURER = "lecturer"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Attendance row status.

    Check-in only ever produces PRESENT; the others are written by
    administrative correction.
    """

    PRESENT = "present"
    ABSENT = "absent"
    EXCUSED = "excused"


class Granularity(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SettingType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
