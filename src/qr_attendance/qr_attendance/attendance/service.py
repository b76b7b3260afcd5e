from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from ..auth.tokens import Principal
from ..common.datetime_utils import format_rfc3339, now_utc, parse_rfc3339
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import (
    AlreadyExistsError,
    AlreadyRecordedError,
    AuthorizationError,
    NotFoundError,
    TooEarlyError,
    TooLateError,
    ValidationError,
)
from ..users.repository import UserRepository
from .model import (
    CheckInResult,
    Event,
    EventRoster,
    LecturerEventDetail,
    LecturerEvents,
    SessionCreated,
    StudentHistory,
)
from .qr import mint_token, render_qr_base64
from .repository import AttendanceRepository, EventRepository

logger = logging.getLogger(__name__)

ALREADY_RECORDED_MESSAGE = "Attendance already recorded for this event"


class AttendanceService:
    """Session creation, the check-in state machine and attendance retrieval.

    ``now`` arguments exist for tests; in production the server clock
    (whole UTC seconds) is authoritative.
    """

    def __init__(
        self,
        events: EventRepository,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        token_factory: Callable[[], str] = mint_token,
        qr_renderer: Callable[[str], str] = render_qr_base64,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._events = events
        self._attendance = attendance
        self._users = users
        self._token_factory = token_factory
        self._qr_renderer = qr_renderer
        self._clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return (now or self._clock()).replace(microsecond=0)

    def create_session(
        self,
        *,
        lecturer_id: int,
        course_code: Any,
        course_name: Any,
        start_time: Any,
        end_time: Any,
        venue: Any,
        department: Any,
        now: Optional[datetime] = None,
    ) -> SessionCreated:
        course_code = require_non_empty(course_code, "course_code")
        course_name = require_non_empty(course_name, "course_name")
        venue = require_non_empty(venue, "venue")
        department = require_non_empty(department, "department")
        start = parse_rfc3339(start_time, "start_time").replace(microsecond=0)
        end = parse_rfc3339(end_time, "end_time").replace(microsecond=0)
        if end < start:
            raise ValidationError("end_time must not be before start_time")

        lecturer = self._users.get_lecturer_by_id(lecturer_id)
        if not lecturer:
            raise NotFoundError("Lecturer not found")

        created_at = self._now(now)
        token = self._token_factory()
        event_id = self._events.create_event(
            event_name=f"{course_code} - {course_name}",
            course_code=course_code,
            course_name=course_name,
            department=department,
            venue=venue,
            start_time=start,
            end_time=end,
            qr_code_token=token,
            lecturer_id=lecturer.id,
            created_at=created_at,
        )
        # The row is committed; a scan from now on resolves the token.
        qr_code = self._qr_renderer(token)
        logger.info("Lecturer %s created event %s for %s", lecturer.id, event_id, course_code)

        return SessionCreated(
            event_id=event_id,
            qr_token=token,
            qr_code=qr_code,
            course_name=course_name,
            course_code=course_code,
            start_time=start,
            end_time=end,
            venue=venue,
            department=department,
            created_by=lecturer.full_name,
            created_at=created_at,
            expires_at=end,
        )

    def check_in(self, *, student_id: int, qr_token: Any, now: Optional[datetime] = None) -> CheckInResult:
        """UNMARKED -> PRESENT for (event, student); every other path raises.

        The unique (event_id, student_id) index is what makes this at most
        once; the existence check only saves a failing insert.
        """

        if not isinstance(qr_token, str) or not qr_token.strip():
            raise ValidationError("qr_token is required")
        token = qr_token.strip()

        event = self._events.get_by_token(token)
        if not event:
            raise NotFoundError("Invalid QR code: event not found")

        now = self._now(now)
        if now < event.start_time:
            raise TooEarlyError(
                "Event has not started yet",
                details={"start_time": format_rfc3339(event.start_time)},
            )
        if now > event.end_time:
            raise TooLateError(
                "Event has already ended",
                details={"end_time": format_rfc3339(event.end_time)},
            )

        if self._attendance.exists(event_id=event.id, student_id=student_id):
            raise AlreadyRecordedError(ALREADY_RECORDED_MESSAGE)

        student = self._users.get_student_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")

        try:
            record = self._attendance.create(
                event_id=event.id,
                student_id=student.id,
                status=AttendanceStatus.PRESENT,
                marked_time=now,
            )
        except AlreadyExistsError as exc:
            raise AlreadyRecordedError(ALREADY_RECORDED_MESSAGE) from exc

        logger.info("Student %s checked in to event %s", student.id, event.id)
        return CheckInResult(
            status=record.status,
            event_id=event.id,
            student_id=student.id,
            student_name=student.full_name,
            matric_number=student.matric_number,
            course_name=event.course_name,
            course_code=event.course_code,
            marked_time=record.marked_time,
        )

    def _lecturer_name(self, lecturer_id: Optional[int]) -> str:
        if lecturer_id is None:
            return ""
        lecturer = self._users.get_lecturer_by_id(lecturer_id)
        return lecturer.full_name if lecturer else ""

    def _owned_event(self, principal: Principal, event_id: int) -> Event:
        event = self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found")
        if (
            principal.role == Role.LECTURER
            and event.lecturer_id is not None
            and event.lecturer_id != principal.user_id
        ):
            raise AuthorizationError("You can only view attendance for your own events")
        return event

    def get_roster(self, principal: Principal, event_id: int, *, now: Optional[datetime] = None) -> EventRoster:
        event = self._owned_event(principal, event_id)
        records = list(self._attendance.list_for_event(event.id))
        present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
        return EventRoster(
            event_id=event.id,
            course_name=event.course_name,
            course_code=event.course_code,
            department=event.department,
            start_time=event.start_time,
            end_time=event.end_time,
            venue=event.venue,
            created_by=self._lecturer_name(event.lecturer_id),
            total_present=present,
            attendance_records=records,
            generated_at=self._now(now),
        )

    def get_student_history(self, student_id: int, *, now: Optional[datetime] = None) -> StudentHistory:
        records = list(self._attendance.list_for_student(student_id))
        student = self._users.get_student_by_id(student_id)
        return StudentHistory(
            student_id=student_id,
            student_name=student.full_name if student else "",
            matric_number=student.matric_number if student else "",
            total_events=len(records),
            total_present=sum(1 for r in records if r.status == AttendanceStatus.PRESENT),
            attendance_records=records,
            generated_at=self._now(now),
        )

    def list_lecturer_events(self, lecturer_id: int, *, now: Optional[datetime] = None) -> LecturerEvents:
        now = self._now(now)
        rows = self._events.list_for_lecturer(lecturer_id)
        events = [
            LecturerEventDetail(
                event_id=r.event_id,
                course_name=r.course_name,
                course_code=r.course_code,
                department=r.department,
                venue=r.venue,
                start_time=r.start_time,
                end_time=r.end_time,
                qr_token=r.qr_token,
                status="expired" if r.end_time < now else "active",
                total_attendance=r.total_attendance,
                created_at=r.created_at,
            )
            for r in rows
        ]
        return LecturerEvents(
            events=events,
            total_events=len(events),
            total_students_reached=self._events.count_students_reached(lecturer_id),
        )
