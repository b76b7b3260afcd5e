from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, Event, HistoryEntry, LecturerEventRow, RosterEntry


class EventRepository(Protocol):
    def create_event(
        self,
        *,
        event_name: str,
        course_code: str,
        course_name: str,
        department: str,
        venue: str,
        start_time: datetime,
        end_time: datetime,
        qr_code_token: str,
        lecturer_id: int,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def get_by_token(self, token: str) -> Optional[Event]:
        raise NotImplementedError

    def list_for_lecturer(self, lecturer_id: int) -> Sequence[LecturerEventRow]:
        """Newest first, each with its distinct-student attendance count."""

        raise NotImplementedError

    def count_students_reached(self, lecturer_id: int) -> int:
        raise NotImplementedError


class AttendanceRepository(Protocol):
    def exists(self, *, event_id: int, student_id: int) -> bool:
        raise NotImplementedError

    def create(
        self,
        *,
        event_id: int,
        student_id: int,
        status: AttendanceStatus,
        marked_time: datetime,
    ) -> AttendanceRecord:
        """Insert one row; raises AlreadyExistsError on a second (event, student)."""

        raise NotImplementedError

    def list_for_event(self, event_id: int) -> Sequence[RosterEntry]:
        """Rows ordered by marked time ascending."""

        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[HistoryEntry]:
        """Rows ordered by marked time descending."""

        raise NotImplementedError
