from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Event:
    """Domain entity: one class session and its check-in token."""

    id: int
    course_code: str
    course_name: str
    department: str
    venue: str
    start_time: datetime
    end_time: datetime
    qr_code_token: str
    lecturer_id: Optional[int]
    event_name: str = ""
    created_at: Optional[datetime] = None

    def is_open_at(self, instant: datetime) -> bool:
        return self.start_time <= instant <= self.end_time


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's mark for one event."""

    id: int
    event_id: int
    student_id: int
    status: AttendanceStatus
    marked_time: datetime


@dataclass(frozen=True)
class RosterEntry:
    """Read-model: attendance row joined to its student."""

    id: int
    student_id: int
    student_name: str
    matric_number: str
    status: AttendanceStatus
    marked_time: datetime


@dataclass(frozen=True)
class HistoryEntry:
    """Read-model: attendance row joined to its event."""

    id: int
    event_id: int
    course_code: str
    course_name: str
    venue: str
    status: AttendanceStatus
    marked_time: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class LecturerEventRow:
    event_id: int
    course_name: str
    course_code: str
    department: str
    venue: str
    start_time: datetime
    end_time: datetime
    qr_token: str
    created_at: Optional[datetime]
    total_attendance: int


@dataclass(frozen=True)
class SessionCreated:
    event_id: int
    qr_token: str
    qr_code: str
    course_name: str
    course_code: str
    start_time: datetime
    end_time: datetime
    venue: str
    department: str
    created_by: str
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class CheckInResult:
    status: AttendanceStatus
    event_id: int
    student_id: int
    student_name: str
    matric_number: str
    course_name: str
    course_code: str
    marked_time: datetime


@dataclass(frozen=True)
class EventRoster:
    event_id: int
    course_name: str
    course_code: str
    department: str
    start_time: datetime
    end_time: datetime
    venue: str
    created_by: str
    total_present: int
    attendance_records: list[RosterEntry]
    generated_at: datetime


@dataclass(frozen=True)
class StudentHistory:
    student_id: int
    student_name: str
    matric_number: str
    total_events: int
    total_present: int
    attendance_records: list[HistoryEntry]
    generated_at: datetime


@dataclass(frozen=True)
class LecturerEventDetail:
    event_id: int
    course_name: str
    course_code: str
    department: str
    venue: str
    start_time: datetime
    end_time: datetime
    qr_token: str
    status: str
    total_attendance: int
    created_at: Optional[datetime]


@dataclass(frozen=True)
class LecturerEvents:
    events: list[LecturerEventDetail] = field(default_factory=list)
    total_events: int = 0
    total_students_reached: int = 0
